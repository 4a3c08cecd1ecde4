"""TOML config loading, profiles and logging setup."""

from __future__ import annotations

import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

DEFAULT_GBP_TO_USD = 1.27


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return Path(config_dir)
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = directory / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        polymarket: dict[str, Any] | None = None,
        betfair: dict[str, Any] | None = None,
        settings: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.polymarket = polymarket or {}
        self.betfair = betfair or {}
        self.settings = settings or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            polymarket=raw.get("polymarket"),
            betfair=raw.get("betfair"),
            settings=raw.get("settings"),
            logging=raw.get("logging"),
        )

    # Polymarket
    @property
    def polymarket_base_url(self) -> str:
        return self.polymarket.get("base_url") or "https://polymarket.com"

    @property
    def polymarket_enabled(self) -> bool:
        return self.polymarket.get("enabled", True) is not False

    # Betfair
    @property
    def betfair_sso_url(self) -> str:
        return self.betfair.get("sso_url") or "https://identitysso.betfair.com/api"

    @property
    def betfair_cert_sso_url(self) -> str:
        return self.betfair.get("cert_sso_url") or "https://identitysso-cert.betfair.com/api"

    @property
    def betfair_base_url(self) -> str:
        return self.betfair.get("base_url") or "https://api.betfair.com/exchange/betting/rest/v1.0"

    @property
    def betfair_app_key(self) -> str:
        return self.betfair.get("app_key") or ""

    @property
    def betfair_username(self) -> str:
        return self.betfair.get("username") or ""

    @property
    def betfair_password(self) -> str:
        return self.betfair.get("password") or ""

    @property
    def betfair_cert_path(self) -> str | None:
        return self.betfair.get("cert_path") or None

    @property
    def betfair_key_path(self) -> str | None:
        return self.betfair.get("key_path") or None

    @property
    def betfair_enabled(self) -> bool:
        return self.betfair.get("enabled", True) is not False

    # Global
    @property
    def gbp_to_usd(self) -> float:
        return float(self.settings.get("gbp_to_usd") or DEFAULT_GBP_TO_USD)

    @property
    def default_max_results(self) -> int:
        return int(self.settings.get("default_max_results", 50))

    @property
    def request_timeout_sec(self) -> float:
        return float(self.settings.get("request_timeout_sec", 30.0))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "WARNING").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.WARNING)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry.

    Logs go to stderr; stdout is reserved for command output.
    """
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
