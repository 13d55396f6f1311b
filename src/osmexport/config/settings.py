"""
Configuration management for the OSM export pipeline.

Usage:
    from osmexport.config.settings import Config
    config = Config()
    settings = config.get_export_settings()

Environment Variables:
    OSMEXPORT_DATABASE: Destination GeoPackage/SpatiaLite file
    OSMEXPORT_STORE_FORMAT: Destination format (gpkg | spatialite)
    OSMEXPORT_REPOSITORY: Layered source file holding the node and way collections
    OSMEXPORT_FAILURE_POLICY: Cross-rule policy (fail_fast | continue)
    OSMEXPORT_PROGRESS_INTERVAL: Features between progress log lines
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from ..domain.enums import FailurePolicy, StoreFormat
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ExportConfig:
    """Destination, source and policy settings for export runs."""
    database: str = "osm.gpkg"
    store_format: StoreFormat = StoreFormat.GPKG
    repository: str = "repository.gpkg"
    failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST
    progress_interval: int = 1000

    def __post_init__(self):
        """Validate export configuration."""
        if not self.database:
            raise ValueError("Database path cannot be empty")

        if not self.repository:
            raise ValueError("Repository path cannot be empty")

        # Accept plain strings coming from the environment
        self.store_format = StoreFormat(getattr(self.store_format, "value", self.store_format).lower())
        self.failure_policy = FailurePolicy(getattr(self.failure_policy, "value", self.failure_policy).lower())

        if self.progress_interval < 1:
            raise ValueError("Progress interval must be positive")


class Config:
    """
    Centralized configuration management for the export pipeline.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Example:
        config = Config(environment="development")
        config = Config(env_file=Path("/secure/production.env"))
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)
        self._load_export_config()

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml, .git or .env."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        if (Path.cwd() / '.env').exists():
            return Path.cwd()

        return Path.cwd()

    def _load_environment_variables(self, env_file: Path | None) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.info(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self.loaded_env_files = loaded_files

    def _load_export_config(self) -> None:
        """Load export configuration with sensible defaults."""
        try:
            self.export = ExportConfig(
                database=os.getenv("OSMEXPORT_DATABASE", "osm.gpkg"),
                store_format=os.getenv("OSMEXPORT_STORE_FORMAT", "gpkg"),
                repository=os.getenv("OSMEXPORT_REPOSITORY", "repository.gpkg"),
                failure_policy=os.getenv("OSMEXPORT_FAILURE_POLICY", "fail_fast"),
                progress_interval=int(os.getenv("OSMEXPORT_PROGRESS_INTERVAL", "1000")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid export configuration: {e}") from e

    def get_export_settings(self) -> dict[str, Any]:
        """
        Get export configuration settings as dictionary.

        Returns:
            Dictionary of export settings
        """
        return {
            'database': self.export.database,
            'store_format': self.export.store_format.value,
            'repository': self.export.repository,
            'failure_policy': self.export.failure_policy.value,
            'progress_interval': self.export.progress_interval,
        }

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment}, "
            f"database={self.export.database}, "
            f"repository={self.export.repository})"
        )
