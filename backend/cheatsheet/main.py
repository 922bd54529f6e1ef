from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from flask import Flask, jsonify
from sqlalchemy import text

from .bookmarks import bp as bp_bookmarks
from .cli import register_commands
from .config import initialize_app_config
from .db import bp as bp_dbstatus
from .db import redact_db_url
from .docs import bp as bp_docs
from .errors import register_error_handlers
from .extensions import db, login_manager, migrate
from .links import bp as bp_links
from .logging_setup import start_log
from .user_login import bp as bp_auth

log = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def create_app(config_name: Optional[str] = None, **overrides: Any) -> Flask:
    """Instantiate and fully configure the Flask application instance."""

    # The explicit module name gives Flask the import context for templates/ and static/.
    app = Flask(__name__)

    config_cls = initialize_app_config(app, config_name, overrides)

    if not app.config.get("TESTING"):
        start_log(
            app_name="cheatsheet",
            level=app.config.get("LOG_LEVEL"),
            to_file=bool(app.config.get("LOG_TO_FILE", True)),
        )
    log.info(
        "Config %s, database %s",
        config_cls.__name__,
        redact_db_url(app.config["SQLALCHEMY_DATABASE_URI"]),
    )

    db.init_app(app)
    migrate.init_app(app, db, directory=str(MIGRATIONS_DIR))
    login_manager.init_app(app)

    # Register each blueprint explicitly so the available HTTP routes are easy to audit.
    app.register_blueprint(bp_docs)
    app.register_blueprint(bp_auth)
    app.register_blueprint(bp_bookmarks)
    app.register_blueprint(bp_links)
    app.register_blueprint(bp_dbstatus)

    register_error_handlers(app)
    register_commands(app)

    @app.get("/api/health")
    def health():
        """Provide a quick database reachability probe for monitoring."""
        db.session.execute(text("select 1"))
        return jsonify(ok=True)

    return app
