"""Configuration loader and validation for ledger sync settings."""

from pathlib import Path
from typing import Any, Optional
import logging
import os

import yaml
from pydantic import BaseModel, Field, field_validator

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ENV = "YNAB_ACCESS_TOKEN"
DATABASE_URL_ENV = "OFX_LEDGER_SYNC_DATABASE_URL"


class LedgerSettings(BaseModel):
    """Connection settings for the remote budgeting ledger."""

    base_url: str = "https://api.ynab.com/v1"
    access_token: Optional[str] = None
    timeout_seconds: float = 30.0

    def require_token(self) -> str:
        """Return the bearer token or fail with a configuration error."""
        if not self.access_token:
            raise ConfigurationError(
                f"No ledger access token configured; set ledger.access_token or {ACCESS_TOKEN_ENV}"
            )
        return self.access_token.strip()


class StorageSettings(BaseModel):
    """Location of the local ledger database."""

    database_url: str = "sqlite:///ofx_ledger_sync.sqlite3"


class ReconciliationSettings(BaseModel):
    """Settings for import id derivation and the duplicate retry loop."""

    import_id_namespace: str = "YNAB"
    max_rounds: int = 10
    cleared_status: str = "cleared"

    @field_validator("max_rounds")
    @classmethod
    def _positive_rounds(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_rounds must be at least 1")
        return value

    @field_validator("import_id_namespace")
    @classmethod
    def _ascii_namespace(cls, value: str) -> str:
        if not value or not value.isascii() or ":" in value:
            raise ValueError("import_id_namespace must be non-empty ASCII without ':'")
        return value

    @field_validator("cleared_status")
    @classmethod
    def _known_status(cls, value: str) -> str:
        if value not in ("cleared", "uncleared", "reconciled"):
            raise ValueError("cleared_status must be cleared, uncleared or reconciled")
        return value


class InputConfig(BaseModel):
    """Configuration for statement export input."""

    encodings: list[str] = Field(default_factory=lambda: ["utf-8", "cp1252"])
    transaction_dir: Optional[Path] = None


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "import_report_{date}_{time}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    submitted: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Submitted"))
    skipped: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Already Imported"))
    unresolved: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Unresolved"))


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


class SyncConfig(BaseModel):
    """Main configuration model for ledger sync."""

    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    reconciliation: ReconciliationSettings = Field(default_factory=ReconciliationSettings)
    input: InputConfig = Field(default_factory=InputConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "ledger": {
            "base_url": "https://api.ynab.com/v1",
            "access_token": None,
            "timeout_seconds": 30.0,
        },
        "storage": {
            "database_url": "sqlite:///ofx_ledger_sync.sqlite3",
        },
        "reconciliation": {
            "import_id_namespace": "YNAB",
            "max_rounds": 10,
            "cleared_status": "cleared",
        },
        "input": {
            "encodings": ["utf-8", "cp1252"],
            "transaction_dir": None,
        },
        "output": {
            "excel": {
                "filename_template": "import_report_{date}_{time}.xlsx",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "submitted": {"enabled": True, "name": "Submitted"},
                "skipped": {"enabled": True, "name": "Already Imported"},
                "unresolved": {"enabled": True, "name": "Unresolved"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> SyncConfig:
    """
    Load configuration from a YAML file or use defaults.

    Environment variables override the file for secrets and the database
    location: ``YNAB_ACCESS_TOKEN`` and ``OFX_LEDGER_SYNC_DATABASE_URL``.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        SyncConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    token = os.getenv(ACCESS_TOKEN_ENV)
    if token:
        config_dict["ledger"]["access_token"] = token
    database_url = os.getenv(DATABASE_URL_ENV)
    if database_url:
        config_dict["storage"]["database_url"] = database_url

    try:
        return SyncConfig(**config_dict)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = f"""# OFX to YNAB ledger sync configuration
# The access token is best supplied through the {ACCESS_TOKEN_ENV} environment variable.

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
