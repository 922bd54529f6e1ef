# =============================================================================
# tests/test_links_api.py - Stored link-check results
# =============================================================================

from cheatsheet.extensions import db
from cheatsheet.linkcheck import LinkChecker
from cheatsheet.models import LinkCheck

from .conftest import FakeSession

QUICKSTART = "https://flask.palletsprojects.com/en/latest/quickstart/"


def _install_fake(app, session):
    app.extensions["link_checker_factory"] = lambda: LinkChecker(session=session, workers=1)


def test_check_requires_login(client):
    assert client.post("/api/links/check").status_code == 401


def test_check_stores_results(app, logged_in_client):
    session = FakeSession({QUICKSTART: 404})
    _install_fake(app, session)

    resp = logged_in_client.post("/api/links/check")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["ok"] is False
    assert data["checked"] == len({call[1] for call in session.calls})
    failing = [r for r in data["results"] if not r["ok"]]
    assert [r["url"] for r in failing] == [QUICKSTART]

    stored = db.session.execute(db.select(LinkCheck)).scalars().all()
    assert len(stored) == data["checked"]


def test_latest_result_wins(app, logged_in_client):
    _install_fake(app, FakeSession({QUICKSTART: 500}))
    logged_in_client.post("/api/links/check")
    _install_fake(app, FakeSession(default=200))
    logged_in_client.post("/api/links/check")

    data = logged_in_client.get("/api/links").get_json()
    assert data["ok"] is True
    assert data["summary"]["failing"] == 0
    urls = [row["url"] for row in data["links"]]
    assert urls == sorted(set(urls))
    assert QUICKSTART in urls


def test_list_empty(client):
    data = client.get("/api/links").get_json()
    assert data == {"ok": True, "summary": {"ok": 0, "failing": 0}, "links": []}
