"""Configuration management for Commit History."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".commit-history"
CONFIG_FILE_NAME = "config.json"


class ProviderConfig(BaseModel):
    """Configuration for the AWS CodeCommit API.

    Requests are signed with SigV4 using credentials from the standard AWS
    chain (environment, shared credentials/config files, container or
    instance roles), optionally narrowed to a named profile. The region
    falls back to the AWS config chain when not set here.
    """

    region: Optional[str] = Field(
        default=None,
        description="AWS region; defaults to AWS_REGION or the profile's region",
    )
    profile: Optional[str] = Field(
        default=None, description="Named AWS profile used to resolve credentials"
    )
    endpoint: Optional[str] = Field(
        default=None,
        description="Endpoint URL override; defaults to the regional CodeCommit endpoint",
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    throttling_error_codes: List[str] = Field(
        default=["ThrottlingException"],
        description="Provider error codes treated as transient rate limiting",
    )

    @field_validator("endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the endpoint URL."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Endpoint must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    def endpoint_for(self, region: str) -> str:
        """Return the endpoint override or the regional CodeCommit endpoint."""
        return self.endpoint or f"https://codecommit.{region}.amazonaws.com"


class RetryConfig(BaseModel):
    """Configuration for the throttling retry policy."""

    max_attempts: int = Field(
        default=3, ge=1, description="Maximum attempts per remote call"
    )
    base_delay: float = Field(
        default=0.2,
        ge=0.0,
        description="Backoff unit in seconds; attempt n waits n * base_delay",
    )


class TraversalConfig(BaseModel):
    """Configuration for branch history traversal."""

    detect_cycles: bool = Field(
        default=True,
        description="Abort a traversal that revisits a commit id",
    )
    max_workers: int = Field(
        default=1,
        ge=1,
        description="Branches traversed concurrently per repository (1 = sequential)",
    )


class Config(BaseModel):
    """Main configuration for Commit History."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    traversal: TraversalConfig = Field(default_factory=TraversalConfig)


class ConfigManager:
    """Manages configuration loading, saving, and validation."""

    DEFAULT_CONFIG_PATH = Path(CONFIG_DIR_NAME) / CONFIG_FILE_NAME

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = Config(**data)
                logger.debug(f"Loaded configuration from {self.config_path}")
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            logger.debug(f"No config at {self.config_path}, using defaults")
            self._config = Config()

        return self._config

    def save(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2)
        self._config = config

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("Failed to load configuration")
        return self._config

    def create_default_config(self, **provider_overrides: Any) -> Config:
        """Create and save a default configuration."""
        config = Config(provider=ProviderConfig(**provider_overrides))
        self.save(config)
        return config

    def update_config(self, **kwargs: Any) -> Config:
        """Update top-level configuration sections with new values."""
        config = self.get_config()

        config_dict = config.model_dump()
        for section, values in kwargs.items():
            if isinstance(values, dict) and isinstance(config_dict.get(section), dict):
                config_dict[section].update(values)
            else:
                config_dict[section] = values

        new_config = Config(**config_dict)
        self.save(new_config)
        return new_config

    @staticmethod
    def find_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
        """Find .commit-history/config.json by walking up the directory tree.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Path to config.json if found, None otherwise
        """
        current = start_dir or Path.cwd()

        for path in [current] + list(current.parents):
            config_path = path / CONFIG_DIR_NAME / CONFIG_FILE_NAME
            if config_path.exists():
                return config_path

        return None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Create ConfigManager by finding config through directory backtracking.

        Falls back to ``<start_dir>/.commit-history/config.json`` when no
        config exists in any parent directory.
        """
        config_path = cls.find_config_path(start_dir)
        if config_path is None:
            start = start_dir or Path.cwd()
            config_path = start / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        return cls(config_path)
