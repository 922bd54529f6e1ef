# backend/cheatsheet/errors.py
from __future__ import annotations

import json

from flask import jsonify, render_template, request
from flask.signals import got_request_exception
from werkzeug.exceptions import HTTPException

# note about app.logger and the module loggers:
# Both propagate to the root logger, and since create_app() calls start_log(...) (which configures the root),
# they end up in the same rotating log files/console. The only difference is the %(name)s shown in each line.


class CheatsheetError(Exception):
    """Base class for errors raised by the cheatsheet package."""


class DocumentNotFound(CheatsheetError):
    """The markdown cheat sheet could not be read from disk."""

    def __init__(self, path, reason: str = "") -> None:
        self.path = path
        message = f"Cheat sheet not found at {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConfigurationError(CheatsheetError):
    """Settings are missing or unsafe for the selected environment."""


def _wants_json() -> bool:
    if request.path.startswith("/api/"):
        return True
    best = request.accept_mimetypes.best_match(["application/json", "text/html"])
    return best == "application/json" and request.accept_mimetypes[best] > request.accept_mimetypes["text/html"]


def register_error_handlers(app):
    setup_signals(app)

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        app.logger.warning("HTTP %s on %s %s", e.code, request.method, request.path)
        if not _wants_json():
            return render_template("error.html", error=e), e.code
        resp = e.get_response()
        payload = {
            "ok": False,
            "error": e.name,
            "code": e.code,
            "description": e.description,
            "path": request.path,
            "method": request.method,
        }
        resp.data = json.dumps(payload)
        resp.content_type = "application/json"
        return resp

    @app.errorhandler(DocumentNotFound)
    def handle_missing_document(e: DocumentNotFound):
        app.logger.error("Cheat sheet unavailable: %s", e)
        return jsonify(ok=False, error="Cheat sheet unavailable", description=str(e)), 503

    @app.errorhandler(Exception)
    def handle_uncaught(e: Exception):
        app.logger.exception("Unhandled exception")
        return jsonify(ok=False, error="Internal Server Error"), 500

    @app.teardown_request
    def log_teardown(exc):
        if exc is not None:
            app.logger.error("Teardown exception", exc_info=exc)
        return None


def setup_signals(app):
    def on_exc(sender, exception, **extra):
        app.logger.debug("Signal caught exception: %r", exception)
    got_request_exception.connect(on_exc, app)
