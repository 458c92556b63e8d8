"""Server configuration."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from mashumaro.mixins.dict import DataClassDictMixin

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config/config.yaml"


@dataclass
class AuthConfig(DataClassDictMixin):
    """Authentication settings."""

    secret_key: str = "folderhub-secret-key"
    """HS256 secret used to verify bearer tokens."""

    trust_user_header: bool = False
    """Accept an X-User-Id header set by a trusted API gateway."""


@dataclass
class ServerConfig(DataClassDictMixin):
    """Top level server configuration."""

    host: str = "0.0.0.0"
    port: int = 8083
    database_url: str = "sqlite+aiosqlite:///./folderhub.db"
    trace_log_file: str | None = None

    file_service_url: str = "http://localhost:8082"
    user_service_url: str = "http://localhost:8081"
    collaborator_timeout: float = 10.0
    """Total timeout in seconds for one collaborator request."""

    user_cache_ttl: int = 300
    """Seconds a user lookup stays cached."""

    auth: AuthConfig = field(default_factory=AuthConfig)

    @classmethod
    def load(cls, config_file: str | None = None) -> "ServerConfig":
        """Load the config from YAML, then apply environment overrides."""
        path = Path(
            config_file or os.environ.get("FOLDERHUB_CONFIG", DEFAULT_CONFIG_FILE)
        )
        data: dict = {}
        if path.exists():
            with path.open("r") as f:
                data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", path)
        else:
            logger.info("Config file %s not found, using defaults", path)

        config = cls.from_dict(data)
        config._apply_env()
        return config

    def _apply_env(self) -> None:
        if host := os.environ.get("FOLDERHUB_HOST"):
            self.host = host
        if port := os.environ.get("FOLDERHUB_PORT"):
            self.port = int(port)
        if database_url := os.environ.get("FOLDERHUB_DATABASE_URL"):
            self.database_url = database_url
        if file_service_url := os.environ.get("FOLDERHUB_FILE_SERVICE_URL"):
            self.file_service_url = file_service_url
        if user_service_url := os.environ.get("FOLDERHUB_USER_SERVICE_URL"):
            self.user_service_url = user_service_url
        if secret := os.environ.get("FOLDERHUB_JWT_SECRET"):
            self.auth.secret_key = secret
