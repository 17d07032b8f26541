"""
Configuration manager with JSON schema validation

Settings are read once at startup from, in increasing precedence: built-in
defaults, an optional JSON config file, and environment variables.

Design Notes:
- Uses jsonschema (Draft 7) to validate the JSON config file
- Environment variable names match the deployment environment
  (TBURN_RPC_URL, TBC20_FACTORY_ADDRESS, ...)
- Factory addresses that are not configured fall back to deterministic
  placeholder addresses; the status report flags them as warnings
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema

from ..core.models import TokenStandard
from .exceptions import ConfigurationError, ErrorCodes
from .tburn_address import generate_system_address

LOG = logging.getLogger(__name__)

TBURN_MAINNET_CHAIN_ID = 5800
DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_DATABASE_URL = "sqlite:///tburn_tokens.db"
DEFAULT_LAUNCH_DATE = "2024-12-22T00:00:00-05:00"

PLACEHOLDER_LABELS: Dict[TokenStandard, str] = {
    TokenStandard.TBC20: "tburn-factory-tbc20",
    TokenStandard.TBC721: "tburn-factory-tbc721",
    TokenStandard.TBC1155: "tburn-factory-tbc1155",
}

FACTORY_ENV_VARS: Dict[TokenStandard, str] = {
    TokenStandard.TBC20: "TBC20_FACTORY_ADDRESS",
    TokenStandard.TBC721: "TBC721_FACTORY_ADDRESS",
    TokenStandard.TBC1155: "TBC1155_FACTORY_ADDRESS",
}

# Config-file key -> (environment variable, type)
ENV_OVERRIDES = {
    "rpc_url": ("TBURN_RPC_URL", str),
    "chain_id": ("TBURN_CHAIN_ID", int),
    "tbc20_factory_address": ("TBC20_FACTORY_ADDRESS", str),
    "tbc721_factory_address": ("TBC721_FACTORY_ADDRESS", str),
    "tbc1155_factory_address": ("TBC1155_FACTORY_ADDRESS", str),
    "database_url": ("TBURN_DATABASE_URL", str),
    "strict_persistence": ("TBURN_STRICT_PERSISTENCE", bool),
    "receipt_timeout": ("TBURN_RECEIPT_TIMEOUT", float),
    "rpc_timeout": ("TBURN_RPC_TIMEOUT", float),
    "launch_date": ("TBURN_LAUNCH_DATE", str),
}

SETTINGS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "rpc_url": {"type": "string", "minLength": 1},
        "chain_id": {"type": "integer", "minimum": 1},
        "tbc20_factory_address": {"type": ["string", "null"]},
        "tbc721_factory_address": {"type": ["string", "null"]},
        "tbc1155_factory_address": {"type": ["string", "null"]},
        "database_url": {"type": "string", "minLength": 1},
        "strict_persistence": {"type": "boolean"},
        "receipt_timeout": {"type": "number", "exclusiveMinimum": 0},
        "rpc_timeout": {"type": "number", "exclusiveMinimum": 0},
        "launch_date": {"type": "string"},
    },
}


@dataclass
class Settings:
    """Validated runtime settings"""
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = TBURN_MAINNET_CHAIN_ID
    tbc20_factory_address: Optional[str] = None
    tbc721_factory_address: Optional[str] = None
    tbc1155_factory_address: Optional[str] = None
    database_url: str = DEFAULT_DATABASE_URL
    strict_persistence: bool = False
    receipt_timeout: float = 60.0
    rpc_timeout: float = 30.0
    launch_date: str = DEFAULT_LAUNCH_DATE
    _placeholders: Dict[TokenStandard, bool] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        for standard in TokenStandard:
            attr = self._address_attr(standard)
            if not getattr(self, attr):
                setattr(self, attr, generate_system_address(PLACEHOLDER_LABELS[standard]))
                self._placeholders[standard] = True
            else:
                self._placeholders.setdefault(standard, False)

    @staticmethod
    def _address_attr(standard: TokenStandard) -> str:
        return {
            TokenStandard.TBC20: "tbc20_factory_address",
            TokenStandard.TBC721: "tbc721_factory_address",
            TokenStandard.TBC1155: "tbc1155_factory_address",
        }[standard]

    @property
    def factory_addresses(self) -> Dict[TokenStandard, str]:
        return {s: getattr(self, self._address_attr(s)) for s in TokenStandard}

    def is_placeholder(self, standard) -> bool:
        """True when the factory address for `standard` was not configured"""
        return self._placeholders[TokenStandard.parse(standard)]


def _parse_env_value(env_key: str, raw: str, typ: type) -> Any:
    if typ is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
        raise ConfigurationError(f"Invalid boolean value for {env_key}: {raw}", field=env_key)
    try:
        return typ(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid {typ.__name__} value for {env_key}: {raw}",
            field=env_key
        )


class ConfigManager:
    """Loads Settings from an optional JSON file plus environment overrides"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            environ: Environment mapping (default: os.environ)
        """
        self.environ = os.environ if environ is None else environ

    def load_file(self, config_file: Path) -> Dict[str, Any]:
        """
        Load and validate a JSON config file.

        Raises:
            ConfigurationError: If the file is missing, not JSON, or fails
                schema validation
        """
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}",
                config_file=str(config_file),
                code=ErrorCodes.CONFIG_FILE_NOT_FOUND
            )

        try:
            with open(config_file, "r") as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in configuration file {config_file}: {e}",
                config_file=str(config_file)
            )

        self.validate(config, str(config_file))
        return config

    @staticmethod
    def validate(config: Dict[str, Any], source: str = "configuration") -> None:
        validator = jsonschema.Draft7Validator(SETTINGS_SCHEMA)
        errors = []
        for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
            if error.path:
                path = " -> ".join(str(p) for p in error.path)
                errors.append(f"'{path}' {error.message}")
            else:
                errors.append(error.message)

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed for {source}:\n"
                + "\n".join(f"  - {e}" for e in errors),
                config_file=source
            )

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(config)
        for key, (env_key, typ) in ENV_OVERRIDES.items():
            raw = self.environ.get(env_key)
            if raw is not None and raw != "":
                result[key] = _parse_env_value(env_key, raw, typ)
        return result

    def load_settings(self, config_file: Optional[Path] = None) -> Settings:
        """
        Build Settings from defaults, an optional file, and the environment.

        Args:
            config_file: Optional JSON config file

        Returns:
            Settings with placeholder factory addresses filled in
        """
        config: Dict[str, Any] = {}
        if config_file is not None:
            config = self.load_file(config_file)

        config = self._apply_env_overrides(config)

        known = {f.name for f in fields(Settings) if not f.name.startswith("_")}
        settings = Settings(**{k: v for k, v in config.items() if k in known})

        for standard in TokenStandard:
            if settings.is_placeholder(standard):
                LOG.warning(
                    f"{FACTORY_ENV_VARS[standard]} not set, using placeholder "
                    f"{settings.factory_addresses[standard]}"
                )

        return settings
