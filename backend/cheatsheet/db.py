# backend/cheatsheet/db.py
from __future__ import annotations

import json
import logging
import os
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator
from urllib.parse import quote_plus

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.orm import Session

from .extensions import db

log = logging.getLogger(__name__)

bp = Blueprint("dbstatus", __name__, url_prefix="/api/db")

# Resolve paths based on this file's location:
#   repo_root/backend/cheatsheet/db.py  -> parents[2] == repo_root
REPO_ROOT = Path(__file__).resolve().parents[2]
OPTIONAL_DB_JSON = REPO_ROOT / "config" / "db.json"  # optional, non-secret connection parts
DEFAULT_SQLITE_PATH = REPO_ROOT / "var" / "cheatsheet.db"


def _from_db_json() -> Dict[str, str]:
    """
    Optional: read config/db.json (non-secret) for connection parts if envs are missing.
    File format example:
        {
          "DB_USER": "app",
          "DB_NAME": "app",
          "DB_HOST": "127.0.0.1",
          "DB_PORT": 5432
        }
    """
    if not OPTIONAL_DB_JSON.exists():
        return {}
    try:
        data = json.loads(OPTIONAL_DB_JSON.read_text(encoding="utf-8"))
    except Exception:
        log.warning("Failed to read %s", OPTIONAL_DB_JSON, exc_info=True)
        return {}
    if not isinstance(data, dict):
        return {}
    log.debug("db cfg loaded json file %s", OPTIONAL_DB_JSON)
    return {str(k): str(v) for k, v in data.items()}


def build_db_url() -> str:
    """
    Decide the effective database URL.
    Precedence:
      1) DATABASE_URL
      2) DB_* envs (or PG*), possibly backed by config/db.json; needs at least a database name
      3) a SQLite file under var/
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    cfg = {
        # DB_* preferred, fall back to standard PG* names
        "DB_USER": os.getenv("DB_USER") or os.getenv("PGUSER"),
        "DB_PASSWORD": os.getenv("DB_PASSWORD") or os.getenv("PGPASSWORD"),
        "DB_NAME": os.getenv("DB_NAME") or os.getenv("PGDATABASE"),
        "DB_HOST": os.getenv("DB_HOST") or os.getenv("PGHOST"),
        "DB_PORT": os.getenv("DB_PORT") or os.getenv("PGPORT"),
    }

    # Fill any missing from optional JSON (non-secret)
    if any(v is None for v in cfg.values()):
        json_fallback = _from_db_json()
        for k in cfg:
            if cfg[k] is None and k in json_fallback:
                cfg[k] = json_fallback[k]

    if not cfg["DB_NAME"]:
        DEFAULT_SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"

    user = cfg["DB_USER"] or "app"
    pwd = cfg["DB_PASSWORD"] or ""
    host = cfg["DB_HOST"] or "127.0.0.1"
    port = str(cfg["DB_PORT"] or "5432")

    # URL-encode credentials in case they have special chars
    auth = quote_plus(user)
    if pwd:
        auth += ":" + quote_plus(pwd)

    # Use SQLAlchemy 2.x psycopg (v3) driver
    return f"postgresql+psycopg://{auth}@{host}:{port}/{cfg['DB_NAME']}"


def redact_db_url(url: str) -> str:
    """Hide the password part of a database URL so it can be logged."""
    return re.sub(r"(://[^:/@]+):[^@]*@", r"\1:***@", url)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield the request's session; commit when the block succeeds, roll back when it raises."""
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def ping_db() -> bool:
    """Quick health check."""
    try:
        db.session.execute(text("select 1"))
        return True
    except Exception:
        log.exception("DB ping failed")
        db.session.rollback()
        return False


@bp.get("/status")
def get_database_status():
    """Return a lightweight JSON payload describing the current database connection usage."""
    engine = db.engine
    pool = engine.pool
    status_text = pool.status()

    # QueuePool reports "Current Checked out connections: N"; SQLite's pools may not
    match = re.search(r"Current Checked out connections:\s*(\d+)", status_text)
    checked_out = int(match.group(1)) if match else 0

    return jsonify({
        "ok": ping_db(),
        "dialect": engine.dialect.name,
        "url": engine.url.render_as_string(hide_password=True),
        "checked_out": checked_out,
        "status": status_text,
    })
