"""
Configuration loader for the PIF Submission Pipeline.

Loads settings from pif_config.yaml and provides typed access
to all configuration sections.
"""
import os
from datetime import date
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "pif_config.yaml"

DATABASE_URL_ENV = "PIF_DATABASE_URL"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class PIFConfig:
    """
    Configuration manager for the PIF Submission Pipeline.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Database
    # =========================================================================

    @property
    def database(self) -> dict:
        """Database configuration."""
        return self._config.get("database", {})

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL; the environment variable wins over the file."""
        return os.environ.get(DATABASE_URL_ENV) or self.database.get("url", "sqlite:///./pif.db")

    @property
    def database_echo(self) -> bool:
        return bool(self.database.get("echo", False))

    # =========================================================================
    # Sites
    # =========================================================================

    @property
    def sites(self) -> dict:
        """Site configuration."""
        return self._config.get("sites", {})

    @property
    def site_codes(self) -> list[str]:
        """Real, writable site codes."""
        return [str(code) for code in self.sites.get("codes", [])]

    @property
    def fleet_site(self) -> str:
        """Name of the read-only aggregate pseudo-site."""
        return str(self.sites.get("fleet", "Fleet"))

    def is_fleet(self, site: Optional[str]) -> bool:
        """Check whether a site selection is the aggregate pseudo-site (case-insensitive)."""
        return bool(site) and site.strip().lower() == self.fleet_site.lower()

    # =========================================================================
    # Validation
    # =========================================================================

    @property
    def validation(self) -> dict:
        """Validation rule configuration."""
        return self._config.get("validation", {})

    @property
    def segment_ceiling(self) -> int:
        """Largest accepted segment code."""
        return int(self.validation.get("segment_ceiling", 99999))

    @property
    def approved_statuses(self) -> list[str]:
        """Statuses that require a justification."""
        return self.validation.get("approved_statuses", ["Approved", "Dispositioned"])

    @property
    def scenarios(self) -> list[str]:
        """Allowed cost line scenarios."""
        return self.validation.get("scenarios", ["Target", "Closings"])

    @property
    def variance_threshold_dollars(self) -> int:
        """Variance magnitude above which an advisory finding is raised."""
        return int(self.validation.get("variance_threshold_dollars", 1_000_000))

    @property
    def variance_threshold_cents(self) -> int:
        return self.variance_threshold_dollars * 100

    # =========================================================================
    # Reporting
    # =========================================================================

    @property
    def reporting(self) -> dict:
        """Report view configuration."""
        return self._config.get("reporting", {})

    @property
    def horizon_years(self) -> int:
        """Number of years after the reporting year shown in wide views."""
        return int(self.reporting.get("horizon_years", 5))

    @property
    def reporting_year(self) -> int:
        """
        Current reporting year.

        Reporting periods can lag the calendar, so the year can be pinned
        in the config file. Falls back to the calendar year.
        """
        year = self.reporting.get("reporting_year")
        return int(year) if year else date.today().year

    # =========================================================================
    # Audit Configuration
    # =========================================================================

    @property
    def audit(self) -> dict:
        """Submission log configuration."""
        return self._config.get("audit", {})

    @property
    def audit_default_notes(self) -> str:
        return self.audit.get("default_notes", "Submitted via pipeline")

    @property
    def audit_default_submitter(self) -> str:
        return self.audit.get("default_submitter", "system")

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> PIFConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        PIFConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return PIFConfig(path)


def reload_config() -> PIFConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()
