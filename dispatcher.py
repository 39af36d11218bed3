# dispatcher.py

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from fastapi import status
from pydantic import ValidationError

from exceptions import AuthenticationError, ClientPayloadError, DispatchError, ExecutionError
from executor import ExecutionResult, execute_script
from models.push_event import PushEvent
from models.repository_config import RepositoryConfig
from utils import verify_signature

logger = logging.getLogger(__name__)

Executor = Callable[..., ExecutionResult]


@dataclass(frozen=True)
class DispatchResult:
    status_code: int
    message: str


def parse_push_event(raw_body: bytes) -> PushEvent:
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise ClientPayloadError(f"Invalid JSON payload: {e}")

    if not isinstance(payload, dict):
        raise ClientPayloadError("Invalid JSON payload: expected an object")

    try:
        return PushEvent(**payload)
    except ValidationError as e:
        raise ClientPayloadError(f"Invalid payload: {e}")


def branch_matches(repository: RepositoryConfig, ref: str) -> bool:
    """
    True when the repository has no branch filter, the event carries no ref,
    or the ref names the configured branch (refs/heads/<branch>).
    """
    if not repository.branch or not ref:
        return True
    return ref.endswith(f"/{repository.branch}")


class Dispatcher:
    """
    Turns one webhook delivery into at most one deploy script run.

    Steps, in order: parse the payload, find the repository by full name,
    verify the signature with that repository's secret, apply the branch
    filter, run the script. The repository tuple is read-only; nothing is
    shared between requests, so concurrent pushes may run a script concurrently.
    """

    def __init__(self, repositories: Sequence[RepositoryConfig], executor: Executor = execute_script):
        self.repositories = tuple(repositories)
        self.executor = executor

    def find_repository(self, full_name: str) -> Optional[RepositoryConfig]:
        for repository in self.repositories:
            if repository.full_name == full_name:
                return repository
        return None

    def dispatch(self, raw_body: bytes, signature: Optional[str], event: Optional[str] = None) -> DispatchResult:
        try:
            return self._dispatch(raw_body, signature, event)
        except DispatchError as e:
            return DispatchResult(status_code=e.status_code, message=e.message)

    def _dispatch(self, raw_body: bytes, signature: Optional[str], event: Optional[str]) -> DispatchResult:
        # 1. Parse payload.
        try:
            push_event = parse_push_event(raw_body)
        except ClientPayloadError as e:
            logger.error(e.message)
            raise

        repo_full_name = push_event.repository_full_name
        logger.info(f"Received webhook for repo: {repo_full_name}, ref: {push_event.ref}")

        # 2. Find the repository; unknown repositories are ignored before any authentication.
        repository = self.find_repository(repo_full_name)
        if repository is None:
            message = f"Ignored push to repository: {repo_full_name}"
            logger.info(message)
            return DispatchResult(status_code=status.HTTP_200_OK, message=message)

        # 3. Verify signature with the repository's own secret.
        if not verify_signature(raw_body, repository.secret, signature):
            logger.warning(f"Invalid signature for repository: {repo_full_name}")
            raise AuthenticationError("Invalid signature")

        if event == "ping":
            logger.info(f"Received ping event for repository: {repo_full_name}")
            return DispatchResult(status_code=status.HTTP_200_OK, message="Ping successful")

        # 4. Branch filter.
        if not branch_matches(repository, push_event.ref):
            message = f"Ignored push to branch: {push_event.ref}"
            logger.info(message)
            return DispatchResult(status_code=status.HTTP_200_OK, message=message)

        # 5. Run the deploy script.
        result = self.executor(repository.script_path, timeout=repository.timeout, cwd=repository.working_dir)
        if not result.exit_ok:
            reason = "timed out" if result.timed_out else "failed"
            raise ExecutionError(
                f"Error executing shell script ({reason})\n"
                f"stdout:\n{result.stdout}\n"
                f"stderr:\n{result.stderr}"
            )

        logger.info(f"Deployment script executed for {repo_full_name}.")
        return DispatchResult(
            status_code=status.HTTP_200_OK,
            message=f"Deployment script executed for {repo_full_name}"
        )
