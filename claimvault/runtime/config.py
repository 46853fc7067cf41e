"""
Vault configuration — YAML file plus CLAIMVAULT_* environment overrides.

Example claimvault.yaml:

    admin: "0xadmin"
    operator_public_key: "3b6a27bc..."      # 64 hex chars, optional
    history_path: ".claimvault/history.jsonl"
    event_log_path: ".claimvault/events.jsonl"
    log_level: INFO
    assets: ["0xa::coin::USDC"]
    collections: ["Genesis Badges"]

Environment variables win over file values:
    CLAIMVAULT_ADMIN, CLAIMVAULT_OPERATOR_PUBLIC_KEY, CLAIMVAULT_HISTORY_PATH,
    CLAIMVAULT_EVENT_LOG_PATH, CLAIMVAULT_LOG_LEVEL
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from claimvault.core.exceptions import ValidationError


_log = logging.getLogger(__name__)

ENV_PREFIX = "CLAIMVAULT_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


def _str_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ValidationError(f"config '{key}' must be a list of non-empty strings")
    return list(value)


@dataclass
class VaultConfig:
    """Settings a VaultContext is built from."""
    admin:               str
    operator_public_key: Optional[str] = None
    history_path:        Optional[Path] = None
    event_log_path:      Optional[Path] = None
    log_level:           str = "INFO"
    assets:              List[str] = field(default_factory=list)
    collections:         List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.admin, str) or not self.admin:
            raise ValidationError("config 'admin' must be a non-empty string")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ValidationError(
                f"config 'log_level' must be one of {_LOG_LEVELS}",
                {"got": self.log_level},
            )
        if self.history_path is not None:
            self.history_path = Path(self.history_path)
        if self.event_log_path is not None:
            self.event_log_path = Path(self.event_log_path)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        env:  Optional[Mapping[str, str]] = None,
    ) -> "VaultConfig":
        """Build from a mapping, applying environment overrides on top."""
        env    = os.environ if env is None else env
        merged: Dict[str, Any] = dict(data or {})

        for key in ("admin", "operator_public_key", "history_path",
                    "event_log_path", "log_level"):
            override = _env_str(env, key.upper())
            if override is not None:
                _log.debug("config %s overridden from environment", key)
                merged[key] = override

        unknown = set(merged) - {
            "admin", "operator_public_key", "history_path", "event_log_path",
            "log_level", "assets", "collections",
        }
        if unknown:
            raise ValidationError(f"Unknown config keys: {sorted(unknown)}")

        if "admin" not in merged:
            raise ValidationError("config 'admin' is required")

        return cls(
            admin=               merged["admin"],
            operator_public_key= merged.get("operator_public_key"),
            history_path=        merged.get("history_path"),
            event_log_path=      merged.get("event_log_path"),
            log_level=           merged.get("log_level", "INFO"),
            assets=              _str_list(merged.get("assets"), "assets"),
            collections=         _str_list(merged.get("collections"), "collections"),
        )

    @classmethod
    def from_yaml(
        cls,
        path: Path,
        env:  Optional[Mapping[str, str]] = None,
    ) -> "VaultConfig":
        """Load from a YAML file. Raises ValidationError on unreadable or invalid YAML."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise ValidationError(f"Cannot read config {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ValidationError(f"Invalid YAML in {path}: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError(f"Config {path} must contain a mapping")
        return cls.from_dict(data, env=env)
