"""
Application configuration using environment variables.
"""
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from fabricwall.exceptions import ConfigError
from fabricwall.schemas.deployment import DeploymentConfig

# Load .env file
load_dotenv()


@dataclass
class Settings:
    """Application settings."""
    APP_NAME: str = "Fabric Chinese Wall Toolkit"

    # Credentials
    ACCESS_TOKEN: str = os.getenv("ACCESS_TOKEN", "")

    # API endpoints
    FABRIC_API_BASE: str = os.getenv("FABRIC_API_BASE", "https://api.fabric.microsoft.com/v1")
    POWERBI_API_BASE: str = os.getenv("POWERBI_API_BASE", "https://api.powerbi.com/v1.0/myorg")

    # Token audiences (tried in order by the Azure CLI token provider)
    FABRIC_AUDIENCE: str = os.getenv("FABRIC_AUDIENCE", "https://api.fabric.microsoft.com")
    POWERBI_AUDIENCE: str = os.getenv("POWERBI_AUDIENCE", "https://analysis.windows.net/powerbi/api")

    # HTTP client settings
    HTTP_TIMEOUT: int = int(os.getenv("HTTP_TIMEOUT", "30"))
    PROBE_TIMEOUT: int = int(os.getenv("PROBE_TIMEOUT", "10"))

    # Reports
    RESULTS_DIR: str = os.getenv("RESULTS_DIR", ".")
    EXPORT_DEPTH: int = int(os.getenv("EXPORT_DEPTH", "5"))

    # Default config file looked up by the CLI
    CONFIG_FILE: str = os.getenv("FABRICWALL_CONFIG", "fabricwall.json")


settings = Settings()


def access_token() -> str:
    """Current ACCESS_TOKEN, re-read so tokens exported after import are seen."""
    return os.getenv("ACCESS_TOKEN", settings.ACCESS_TOKEN)


def load_deployment(path: Optional[Path], overrides: Optional[dict] = None) -> DeploymentConfig:
    """Load deployment identifiers from a flat JSON file and apply CLI overrides.

    Args:
        path: Config file path, or None to use overrides only
        overrides: Values supplied on the command line; None values are ignored

    Returns:
        DeploymentConfig

    Raises:
        ConfigError: if the file is unreadable, not a flat JSON object,
            or contains invalid keys
    """
    data: dict = {}

    if path is not None:
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        nested = [k for k, v in data.items() if isinstance(v, (dict, list))]
        if nested:
            raise ConfigError(f"Config file {path} must be flat; nested keys: {', '.join(nested)}")

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return DeploymentConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def save_deployment(config: DeploymentConfig, path: Path) -> None:
    """Write deployment identifiers as a flat JSON object."""
    payload = config.model_dump(exclude_none=True)
    Path(path).write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
