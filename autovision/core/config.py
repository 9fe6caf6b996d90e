"""
Configuration with schema validation.

Values come from model defaults, then an optional YAML file named by
AUTOVISION_CONFIG (with ${VAR} / ${VAR:default} substitution), then
AUTOVISION_* environment variables. get_settings() re-reads every call so
tests can point AUTOVISION_DATA_DIR at a temporary directory.
"""

import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

ENV_PREFIX = "AUTOVISION_"
DEFAULT_JWT_SECRET = "change-me-autovision-development-secret-key"


class Settings(BaseModel):
    environment: str = "development"
    data_dir: Path = Path("data")

    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = Field(default=15, gt=0)
    refresh_token_ttl_days: int = Field(default=7, gt=0)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    log_level: str = "INFO"
    log_file: str = ""
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    admin_email: str = "admin@autovision.com"
    admin_password: str = "admin123"
    admin_name: str = "Administrator"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} and ${VAR:default} references"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            return os.getenv(var_expr, value)
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid settings file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return _substitute_env_vars(raw)


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in Settings.model_fields:
        value = os.getenv(ENV_PREFIX + name.upper())
        if value is None:
            continue
        if name == "cors_origins":
            out[name] = [o.strip() for o in value.split(",") if o.strip()]
        else:
            out[name] = value
    # Shared deployment convention
    if "environment" not in out and os.getenv("ENVIRONMENT"):
        out["environment"] = os.getenv("ENVIRONMENT")
    return out


def get_settings() -> Settings:
    """Build validated settings from YAML and environment"""
    data: Dict[str, Any] = {}
    config_path = os.getenv(ENV_PREFIX + "CONFIG")
    if config_path:
        data.update(_load_yaml(Path(config_path)))
    data.update(_env_overrides())
    try:
        settings = Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    if settings.is_production and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise ConfigError("AUTOVISION_JWT_SECRET must be set in production")
    return settings
