# backend/cheatsheet/docs.py
from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, Response, abort, current_app, jsonify, render_template
from markupsafe import Markup, escape

from .document import CodeBlock, Document, Section, load_document
from .lint import lint_document

log = logging.getLogger(__name__)

bp = Blueprint("docs", __name__)

# Parsed document per app, refreshed when the file on disk changes
_CACHE_LOCK = threading.Lock()
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_INLINE_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")


def _cheatsheet_path() -> Path:
    return Path(current_app.config["CHEATSHEET_PATH"])


def get_document() -> Document:
    """Return the parsed cheat sheet, re-reading it when its mtime changes."""
    path = _cheatsheet_path()
    try:
        mtime: Optional[float] = path.stat().st_mtime
    except OSError:
        mtime = None

    cache: Dict[str, Tuple[Optional[float], Document]] = current_app.extensions.setdefault("cheatsheet_cache", {})
    key = str(path)
    with _CACHE_LOCK:
        cached = cache.get(key)
        if cached is not None and mtime is not None and cached[0] == mtime:
            return cached[1]
        doc = load_document(path)
        cache[key] = (mtime, doc)
        log.info("Loaded cheat sheet from %s (%d sections)", path, len(doc.sections))
        return doc


def render_inline(text: str) -> Markup:
    """Tiny inline markdown: `code`, **bold** and [text](url), everything else escaped."""
    escaped = str(escape(text))
    # code spans first so their contents are not touched by the other rules
    parts: List[str] = []
    last = 0
    for match in _INLINE_CODE_RE.finditer(escaped):
        parts.append(_render_inline_plain(escaped[last:match.start()]))
        parts.append(f"<code>{match.group(1)}</code>")
        last = match.end()
    parts.append(_render_inline_plain(escaped[last:]))
    return Markup("".join(parts))


def _render_inline_plain(fragment: str) -> str:
    fragment = _BOLD_RE.sub(r"<strong>\1</strong>", fragment)

    def _link(match: "re.Match[str]") -> str:
        label, target = match.group(1), match.group(2)
        if target.startswith("#"):
            target = f"/section/{target[1:]}"
        return f'<a href="{target}">{label}</a>'

    return _INLINE_LINK_RE.sub(_link, fragment)


@bp.app_template_filter("inline_md")
def inline_md_filter(text: str) -> Markup:
    return render_inline(text or "")


def _code_block_dict(block: CodeBlock) -> Dict[str, Any]:
    return {"language": block.language, "code": block.code, "line": block.line}


def _section_summary(section: Section) -> Dict[str, Any]:
    return {
        "anchor": section.anchor,
        "title": section.title,
        "level": section.level,
        "code_blocks": len(section.code_blocks),
    }


# -------- HTML --------

@bp.get("/")
def index():
    doc = get_document()
    return render_template("index.html", doc=doc, sections=doc.top_sections)


@bp.get("/section/<anchor>")
def section_page(anchor: str):
    doc = get_document()
    section = doc.find_section(anchor)
    if section is None:
        abort(404, description=f"No section with anchor '{anchor}'.")
    return render_template("section.html", doc=doc, section=section)


@bp.get("/cheatsheet.md")
def raw_markdown():
    doc = get_document()
    return Response(doc.source, mimetype="text/markdown")


# -------- JSON --------

@bp.get("/api/sections")
def list_sections():
    doc = get_document()
    return jsonify(
        ok=True,
        title=doc.title,
        sections=[_section_summary(s) for s in doc.sections],
    )


@bp.get("/api/sections/<anchor>")
def get_section(anchor: str):
    doc = get_document()
    section = doc.find_section(anchor)
    if section is None:
        abort(404, description=f"No section with anchor '{anchor}'.")
    payload = _section_summary(section)
    payload["code_blocks"] = [_code_block_dict(b) for b in section.code_blocks]
    payload["links"] = [{"text": link.text, "target": link.target, "line": link.line} for link in section.all_links]
    payload["children"] = [c.anchor for c in section.children]
    return jsonify(ok=True, section=payload)


@bp.get("/api/lint")
def lint():
    """Offline checks only; the network check lives under /api/links."""
    report = lint_document(get_document())
    return jsonify(report.to_dict())
