# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets up the environment before the package is imported (config classes read
# os.environ at import time) and provides app/client/user fixtures.
#
# Nothing here touches the network: link checks go through FakeSession.
# =============================================================================

import os
import threading

os.environ["FLASK_CONFIG"] = "testing"
os.environ["LOG_TO_FILE"] = "0"
os.environ.pop("SECRET_KEY", None)
os.environ.pop("DATABASE_URL", None)
os.environ.pop("TEST_DATABASE_URL", None)

import pytest
import requests

from cheatsheet.extensions import db
from cheatsheet.main import create_app
from cheatsheet.user_login import create_user


# =============================================================================
# Fake HTTP layer
# =============================================================================

class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code
        self.closed = False

    def close(self):
        self.closed = True


class FakeSession:
    """
    Stands in for requests.Session.

    ``routes`` maps URL -> status code, or -> a list of status codes consumed one
    per request (HEAD first, then GET), or -> an exception instance to raise.
    """

    def __init__(self, routes=None, default=200):
        self.routes = dict(routes or {})
        self.default = default
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def request(self, method, url, **kwargs):
        with self._lock:
            self.calls.append((method, url, kwargs))
            outcome = self.routes.get(url, self.default)
            if isinstance(outcome, list):
                outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("Name or service not known")


# =============================================================================
# Markdown samples
# =============================================================================

# Line numbers matter for the lint tests; keep this layout in sync with them.
BROKEN_MARKDOWN = "\n".join([
    "# Demo",                        # 1
    "",                              # 2
    "## Contents",                   # 3
    "",                              # 4
    "- [Setup](#setup)",             # 5
    "- [Missing](#missing)",         # 6
    "",                              # 7
    "## Setup",                      # 8
    "",                              # 9
    "See [below](#nowhere).",        # 10
    "",                              # 11
    "```python",                     # 12
    "class Broken",                  # 13
    "    pass",                      # 14
    "```",                           # 15
    "",                              # 16
    "```",                           # 17
    "echo hi",                       # 18
    "```",                           # 19
    "",                              # 20
    "## Extra",                      # 21
    "",                              # 22
    "Docs at [Flask](https://flask.example.com/).",  # 23
    "",
])

CLEAN_MARKDOWN = "\n".join([
    "# Mini Sheet",
    "",
    "Intro with `inline code`.",
    "",
    "## Table of Contents",
    "",
    "- [Simple App](#simple-app)",
    "- [Blueprints](#blueprints)",
    "",
    "## Simple App",
    "",
    "```python",
    "from flask import Flask",
    "app = Flask(__name__)",
    "```",
    "",
    "### Running",
    "",
    "```bash",
    "flask --app hello run",
    "```",
    "",
    "## Blueprints",
    "",
    "Read the [guide](https://flask.example.com/blueprints/).",
    "",
])


@pytest.fixture
def broken_markdown():
    return BROKEN_MARKDOWN


@pytest.fixture
def clean_markdown():
    return CLEAN_MARKDOWN


# =============================================================================
# Application fixtures
# =============================================================================

@pytest.fixture
def app():
    """A testing app on an in-memory SQLite database, with tables created."""
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    u = create_user("ada", "lovelace")
    db.session.commit()
    return u


@pytest.fixture
def logged_in_client(client, user):
    resp = client.post("/api/login", json={"username": "ada", "password": "lovelace"})
    assert resp.status_code == 200
    return client
