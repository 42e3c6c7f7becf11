"""Configuration management for Nomina Calc.

Settings live in a single settings.json file. Every key is optional; the
typed view EngineSettings supplies defaults for anything not set.

Config directory resolution:
1. NOMINA_CALC_CONFIG_PATH environment variable (if set)
2. ~/.config/nomina-calc/ (XDG_CONFIG_HOME fallback)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidConfigError
from .schemas import Severity


APP_NAME = "nomina-calc"
SETTINGS_FILENAME = "settings.json"

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

AUDIT_CODES = ["AUDIT_COST", "AUDIT_STATE_TAKE", "AUDIT_PERCENT", "AUDIT_TAX_BRACKETS"]


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. NOMINA_CALC_CONFIG_PATH environment variable
    2. ~/.config/nomina-calc/ (XDG_CONFIG_HOME)
    """
    env_path = os.environ.get("NOMINA_CALC_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Get the path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Save settings to settings.json.

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value from settings.json."""
    settings = load_settings()
    return settings.get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def unset_setting(key: str) -> bool:
    """Remove a setting. Returns True if it was present."""
    settings = load_settings()
    if key not in settings:
        return False
    del settings[key]
    save_settings(settings)
    return True


class EngineSettings(BaseModel):
    """Typed view of settings.json as consumed by PayrollEngine.

    Failure policy: findings whose severity is in ``fatal_severities`` reject
    the calculation. With ``strict_mode``, findings whose code is in
    ``strict_codes`` are rejected too, whatever their severity.
    """
    model_config = ConfigDict(extra="ignore")

    default_region: str = "valencia"
    default_sector: str = "hosteleria_valencia"
    strict_mode: bool = False
    strict_codes: List[str] = Field(default_factory=lambda: list(AUDIT_CODES))
    fatal_severities: List[Severity] = Field(default_factory=lambda: [Severity.CRITICAL])
    jurisdiction_fallback: bool = Field(
        default=False,
        description="Use the default region/sector for unknown ids instead of raising",
    )
    rules_dir: Optional[str] = Field(default=None, description="Override for the bundled rules/ directory")
    tax_year: int = 2025
    fail_on_region_audit: bool = Field(
        default=True, description="Raise at startup when a region audit reports an ERROR",
    )
    reference_brackets: Optional[str] = Field(
        default=None, description="YAML fixture the region audit diffs bracket schedules against",
    )


def load_engine_settings(**overrides) -> EngineSettings:
    """Build EngineSettings from settings.json plus explicit overrides.

    Overrides whose value is None are ignored so CLI options can be passed
    through unconditionally.
    """
    data = load_settings()
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return EngineSettings.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(f"Invalid settings in {get_settings_path()}: {e}") from e


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from LOG_LEVEL (default INFO)."""
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
