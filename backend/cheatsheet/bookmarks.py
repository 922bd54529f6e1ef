from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from .docs import get_document
from .extensions import db
from .models import Bookmark
from .user_login import login_required

log = logging.getLogger(__name__)

bp = Blueprint("bookmarks", __name__, url_prefix="/api/bookmarks")


def _find_bookmark(anchor: str):
    return db.session.execute(
        db.select(Bookmark).filter_by(user_id=current_user.id, anchor=anchor)
    ).scalar_one_or_none()


@bp.get("")
@login_required
def list_bookmarks():
    doc = get_document()
    items = []
    for bookmark in current_user.bookmarks:
        entry = bookmark.to_dict()
        section = doc.find_section(bookmark.anchor)
        # the cheat sheet may have been edited since the bookmark was made
        entry["title"] = section.title if section is not None else None
        entry["exists"] = section is not None
        items.append(entry)
    return jsonify(ok=True, bookmarks=items), 200


@bp.post("")
@login_required
def add_bookmark():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Expected JSON body."), 400

    anchor = str(data.get("anchor") or "").strip().lstrip("#")
    if not anchor:
        return jsonify(error="Missing 'anchor'."), 400
    if get_document().find_section(anchor) is None:
        return jsonify(error=f"Unknown section '{anchor}'."), 400

    if _find_bookmark(anchor) is not None:
        return jsonify(error="Already bookmarked."), 409

    note = data.get("note")
    bookmark = Bookmark(user_id=current_user.id, anchor=anchor, note=str(note) if note is not None else None)
    db.session.add(bookmark)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race with a concurrent insert of the same bookmark
        db.session.rollback()
        return jsonify(error="Already bookmarked."), 409

    log.info("User %s bookmarked %s", current_user.username, anchor)
    return jsonify(ok=True, bookmark=bookmark.to_dict()), 201


@bp.delete("/<anchor>")
@login_required
def delete_bookmark(anchor: str):
    bookmark = _find_bookmark(anchor)
    if bookmark is None:
        return jsonify(error="Bookmark not found."), 404
    db.session.delete(bookmark)
    db.session.commit()
    return jsonify(ok=True), 200
