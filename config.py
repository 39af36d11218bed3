# config.py

import os
import logging
from typing import Iterable, List, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError

from models.repository_config import RepositoryConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_PORT = 5099
DEFAULT_HOST = "0.0.0.0"

# Prefixes of the numbered environment variables: REPO_FULL_NAME_1, REPO_FULL_NAME_2, ...
ENV_FULL_NAME = "REPO_FULL_NAME"
ENV_SECRET = "GITHUB_WEBHOOK_SECRET"
ENV_SCRIPT = "SHELL_PATH"
ENV_BRANCH = "BRANCH_NAME"
ENV_TIMEOUT = "SCRIPT_TIMEOUT"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    debug: bool = False
    log_db_path: Optional[str] = None
    repositories: Tuple[RepositoryConfig, ...] = ()


def load_config(path: str, required: bool = False) -> dict:
    """
    Load configuration from a YAML file.

    Returns an empty dict when the file is missing and not required.
    """
    if not os.path.exists(path):
        if required:
            logger.error(f"Configuration file '{path}' not found.")
            raise FileNotFoundError(f"Configuration file '{path}' not found.")
        logger.debug(f"No configuration file at '{path}'. Using environment variables only.")
        return {}

    try:
        with open(path, 'r') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file '{path}': {e}")
        raise

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file '{path}' must contain a mapping at the top level.")
    logger.info(f"Configuration loaded successfully from '{path}'.")
    return config


def _parse_timeout(value: Optional[str], key: str) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number of seconds, got '{value}'.")


def _entry_from_env(environ: Mapping[str, str], suffix: str) -> dict:
    return {
        "full_name": environ.get(f"{ENV_FULL_NAME}{suffix}", "").strip(),
        "secret": environ.get(f"{ENV_SECRET}{suffix}", "").strip(),
        "script_path": environ.get(f"{ENV_SCRIPT}{suffix}", "").strip(),
        "branch": environ.get(f"{ENV_BRANCH}{suffix}", "").strip(),
        "timeout": _parse_timeout(environ.get(f"{ENV_TIMEOUT}{suffix}"), f"{ENV_TIMEOUT}{suffix}"),
    }


def load_repositories_from_env(environ: Mapping[str, str]) -> List[dict]:
    """
    Reads REPO_FULL_NAME_<n>, GITHUB_WEBHOOK_SECRET_<n>, SHELL_PATH_<n>, BRANCH_NAME_<n>
    (and SCRIPT_TIMEOUT_<n>) for n = 1, 2, 3, ... until REPO_FULL_NAME_<n> is missing.

    Falls back to the unnumbered variables (REPO_FULL_NAME, ...) for single-repository
    setups when no numbered entry exists.
    """
    entries = []
    n = 1
    while f"{ENV_FULL_NAME}_{n}" in environ:
        entries.append(_entry_from_env(environ, f"_{n}"))
        n += 1

    if not entries and environ.get(ENV_FULL_NAME):
        logger.debug("No numbered repository variables found. Using single-repository variables.")
        entries.append(_entry_from_env(environ, ""))

    return entries


def load_repositories_from_config(config: dict) -> List[dict]:
    repositories = config.get("repositories") or []
    if not isinstance(repositories, list):
        raise ValueError("'repositories' must be a list of repository entries.")
    return repositories


def build_repositories(entries: Iterable[dict]) -> Tuple[RepositoryConfig, ...]:
    """
    Validates raw repository entries and keeps the usable ones in their original order.

    Entries without a name, a secret or a script path are dropped with a warning.
    """
    repositories = []
    for index, entry in enumerate(entries, start=1):
        try:
            repository = RepositoryConfig(**entry)
        except (TypeError, ValidationError) as e:
            raise ValueError(f"Invalid repository entry #{index}: {e}")

        if not repository.full_name:
            logger.warning(f"Repository entry #{index} has no full name. Skipping.")
            continue
        if not repository.is_usable():
            logger.warning(
                f"Repository entry #{index} ('{repository.full_name}') is missing a secret or script path. Skipping."
            )
            continue
        repositories.append(repository)
    return tuple(repositories)


def _as_bool(value) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = ".env") -> Settings:
    """
    Builds the process settings once at startup.

    Order of sources: the .env file is loaded into os.environ without overriding
    variables that are already set, then the YAML file named by CONFIG_PATH
    (default config.yaml), then the environment. Repositories from YAML come first,
    followed by the ones declared in environment variables.
    """
    if environ is None:
        if dotenv_path and os.path.exists(dotenv_path):
            load_dotenv(dotenv_path, override=False)
            logger.info(f"Loaded environment variables from '{dotenv_path}'.")
        environ = os.environ

    config_path = environ.get("CONFIG_PATH")
    config = load_config(config_path or DEFAULT_CONFIG_PATH, required=bool(config_path))

    entries = load_repositories_from_config(config) + load_repositories_from_env(environ)
    repositories = build_repositories(entries)

    port = environ.get("PORT") or config.get("port") or DEFAULT_PORT
    try:
        port = int(port)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got '{port}'.")

    settings = Settings(
        host=environ.get("HOST") or config.get("host") or DEFAULT_HOST,
        port=port,
        debug=_as_bool(environ.get("DEBUG", config.get("debug", False))),
        log_db_path=environ.get("LOG_DB_PATH") or config.get("log_db_path") or None,
        repositories=repositories,
    )

    # Log summary of key settings (without secrets)
    logger.info(f"Listening address: {settings.host}:{settings.port}")
    if not settings.repositories:
        logger.warning("No usable repositories configured. Every push will be ignored.")
    for repository in settings.repositories:
        logger.info(
            f"Repository: {repository.full_name}, branch: {repository.branch or '(any)'}, "
            f"script: {repository.script_path}"
        )
    return settings
