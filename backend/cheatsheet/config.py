# backend/cheatsheet/config.py
from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Type

from dotenv import load_dotenv

from .db import build_db_url
from .document import DEFAULT_CHEATSHEET_PATH
from .errors import ConfigurationError

log = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
CONFIG_DIR = REPO_ROOT / "config"
CONFIG_PATH = CONFIG_DIR / "appconfig.json"

_REPO_ROOT_PREFIX = "<REPO_ROOT>/"
# The prefix above allows configuration values to reference the repository root clearly.

DEFAULT_SECRET_KEY = "dev-only-change-me"

# Load backend/.env then the root .env (does nothing if the files don't exist)
load_dotenv(BACKEND_DIR / ".env", override=False)
load_dotenv(REPO_ROOT / ".env", override=False)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        log.warning("%s is not an integer; using %s", name, default)
        return default


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = _env_flag("SQLALCHEMY_ECHO", False)
    CHEATSHEET_PATH = os.getenv("CHEATSHEET_PATH") or str(DEFAULT_CHEATSHEET_PATH)
    PERMANENT_SESSION_LIFETIME = timedelta(days=30)
    REMEMBER_COOKIE_DURATION = timedelta(days=30)
    SESSION_COOKIE_HTTPONLY = True
    LINKCHECK_TIMEOUT = _env_int("LINKCHECK_TIMEOUT", 10)
    LINKCHECK_WORKERS = _env_int("LINKCHECK_WORKERS", 4)
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", True)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DEBUG = False
    TESTING = False

    @classmethod
    def database_uri(cls) -> str:
        return build_db_url()


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "testing-secret"
    LOG_TO_FILE = False
    LINKCHECK_WORKERS = 1

    @classmethod
    def database_uri(cls) -> str:
        return os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


class ProductionConfig(BaseConfig):
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")


CONFIGS: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(name: Optional[str] = None) -> Type[BaseConfig]:
    """Return the config class for ``name`` (falls back to FLASK_CONFIG, then development)."""
    if name is None:
        name = os.getenv("FLASK_CONFIG") or "development"
    key = name.strip().lower()
    try:
        return CONFIGS[key]
    except KeyError:
        raise ValueError(f"Unknown configuration '{name}'. Expected one of: {', '.join(CONFIGS)}") from None


def _read_json_file(path: Path) -> dict:
    """Read JSON from disk, returning an empty mapping on failure."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        log.warning("Could not read %s; falling back to defaults", path, exc_info=True)
        return {}
    if not isinstance(data, Mapping):
        log.warning("%s does not hold a JSON object; ignoring it", path)
        return {}
    return dict(data)


def load_app_config(path: Optional[Path] = None) -> dict:
    """Return the raw JSON overrides for the application."""
    return _read_json_file(path or CONFIG_PATH)


def _resolve_config_path(raw_value: Any) -> Optional[str]:
    """Expand "<REPO_ROOT>/..." and relative paths found in the JSON overrides."""
    if raw_value is None:
        return None
    text_value = str(raw_value).strip()
    if not text_value:
        return None
    if text_value.startswith(_REPO_ROOT_PREFIX):
        return str((REPO_ROOT / text_value[len(_REPO_ROOT_PREFIX):]).resolve())
    candidate = Path(text_value).expanduser()
    if not candidate.is_absolute():
        candidate = (CONFIG_DIR / candidate).resolve()
    return str(candidate)


def initialize_app_config(app: Any, config_name: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> Type[BaseConfig]:
    """Populate a Flask app from a config object, appconfig.json, then explicit overrides."""
    config_cls = get_config(config_name)
    app.config.from_object(config_cls)
    app.config["SQLALCHEMY_DATABASE_URI"] = config_cls.database_uri()

    # Tests must not pick up a developer's local JSON overrides
    if not config_cls.TESTING:
        cfg = load_app_config()
        if cfg:
            log.debug("Applying %d setting(s) from %s", len(cfg), CONFIG_PATH)
            app.config.update(cfg)
            if "CHEATSHEET_PATH" in cfg:
                app.config["CHEATSHEET_PATH"] = _resolve_config_path(cfg["CHEATSHEET_PATH"])

    if overrides:
        app.config.update(overrides)

    if config_cls is ProductionConfig and app.config.get("SECRET_KEY") in (None, "", DEFAULT_SECRET_KEY):
        raise ConfigurationError("SECRET_KEY must be set to a real secret in production.")

    app.config["CONFIG_NAME"] = next(k for k, v in CONFIGS.items() if v is config_cls)
    return config_cls
