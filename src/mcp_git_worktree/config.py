"""Server configuration.

The repository root is resolved exactly once, here, and handed to the
dispatcher as part of an immutable ``ServerConfig``. Precedence:

1. An explicit ``--repository`` path
2. ``GIT_REPO_PATH`` (the process environment, or a ``.env`` file in the
   working directory that does not override existing variables)
3. The process working directory
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

REPO_PATH_ENV = "GIT_REPO_PATH"

SERVER_NAME = "git-server"
SERVER_VERSION = "0.1.0"
PROTOCOL_VERSION = "2024-11-05"


class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository: Path
    server_name: str = SERVER_NAME
    server_version: str = SERVER_VERSION
    protocol_version: str = PROTOCOL_VERSION

    @field_validator("repository")
    @classmethod
    def _absolute(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @classmethod
    def from_environment(
        cls,
        repository: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "ServerConfig":
        """Resolve the bound repository root from CLI, environment or cwd."""
        cwd = cwd or Path.cwd()
        if repository is not None:
            logger.debug(f"Repository from command line: {repository}")
            return cls(repository=repository)

        environ = dict(os.environ if env is None else env)
        env_file = cwd / ".env"
        if REPO_PATH_ENV not in environ and env_file.exists():
            file_values = dotenv_values(env_file)
            if file_values.get(REPO_PATH_ENV):
                environ[REPO_PATH_ENV] = file_values[REPO_PATH_ENV]
                logger.info(f"Loaded {REPO_PATH_ENV} from {env_file}")

        configured = environ.get(REPO_PATH_ENV)
        if configured:
            logger.debug(f"Repository from {REPO_PATH_ENV}: {configured}")
            return cls(repository=Path(configured))

        return cls(repository=cwd)
