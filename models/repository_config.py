from pydantic import BaseModel, ConfigDict
from typing import Optional


class RepositoryConfig(BaseModel):
    """
    One repository binding: which pushes to accept and which script to run.
    """
    model_config = ConfigDict(frozen=True)

    full_name: str
    branch: str = ""
    secret: str = ""
    script_path: str = ""
    timeout: Optional[float] = None
    working_dir: Optional[str] = None

    def is_usable(self) -> bool:
        return bool(self.secret) and bool(self.script_path)
