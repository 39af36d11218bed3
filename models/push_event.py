from pydantic import BaseModel, Field, field_validator


class RepositoryRef(BaseModel):
    full_name: str = ""
    name: str = ""

    @field_validator("full_name", "name", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        return "" if value is None else value


class PushEvent(BaseModel):
    ref: str = ""
    repository: RepositoryRef = Field(default_factory=RepositoryRef)
    # Other payload keys (pusher, commits, ...) are ignored.

    @field_validator("ref", mode="before")
    @classmethod
    def null_ref_as_empty(cls, value):
        return "" if value is None else value

    @field_validator("repository", mode="before")
    @classmethod
    def null_repository_as_empty(cls, value):
        return {} if value is None else value

    @property
    def repository_full_name(self) -> str:
        return self.repository.full_name
