from __future__ import annotations

import logging
from typing import Dict, List, Optional

from flask import Blueprint, current_app, jsonify
from sqlalchemy import func

from .db import session_scope
from .docs import get_document
from .extensions import db
from .linkcheck import LinkChecker, LinkResult
from .models import LinkCheck
from .user_login import login_required

log = logging.getLogger(__name__)

bp = Blueprint("links", __name__, url_prefix="/api/links")


def build_link_checker() -> LinkChecker:
    """Make a checker from app config; tests swap this out through app.extensions."""
    factory = current_app.extensions.get("link_checker_factory")
    if factory is not None:
        return factory()
    return LinkChecker(
        timeout=float(current_app.config.get("LINKCHECK_TIMEOUT", 10)),
        workers=int(current_app.config.get("LINKCHECK_WORKERS", 4)),
    )


def run_link_checks(checker: Optional[LinkChecker] = None) -> List[LinkResult]:
    """Probe every external link of the current cheat sheet and store one LinkCheck row per URL."""
    doc = get_document()
    urls = [link.target for link in doc.links if link.is_external]
    owned = checker is None
    checker = checker or build_link_checker()
    try:
        results = checker.check_many(urls)
    finally:
        if owned:
            checker.close()

    with session_scope() as session:
        for result in results:
            session.add(LinkCheck(
                url=result.url,
                ok=result.ok,
                status=result.status,
                error=result.error,
                elapsed_ms=result.elapsed_ms,
            ))
    failed = sum(1 for r in results if not r.ok)
    log.info("Stored %d link check result(s), %d failing", len(results), failed)
    return results


def latest_results() -> List[LinkCheck]:
    newest = (
        db.select(LinkCheck.url, func.max(LinkCheck.id).label("max_id"))
        .group_by(LinkCheck.url)
        .subquery()
    )
    stmt = (
        db.select(LinkCheck)
        .join(newest, LinkCheck.id == newest.c.max_id)
        .order_by(LinkCheck.url)
    )
    return list(db.session.execute(stmt).scalars())


@bp.post("/check")
@login_required
def check_links():
    results = run_link_checks()
    return jsonify(
        ok=all(r.ok for r in results),
        checked=len(results),
        results=[r.to_dict() for r in results],
    ), 200


@bp.get("")
def list_links():
    rows = latest_results()
    summary: Dict[str, int] = {"ok": 0, "failing": 0}
    for row in rows:
        summary["ok" if row.ok else "failing"] += 1
    return jsonify(ok=summary["failing"] == 0, summary=summary, links=[row.to_dict() for row in rows])
