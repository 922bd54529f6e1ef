import re
from typing import Dict, Optional

# Inline markdown that never shows up in a rendered heading's anchor
_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_EMPHASIS_RE = re.compile(r"(\*\*|\*|~~)(?=\S)(.+?)(?<=\S)\1")
_HTML_TAG_RE = re.compile(r"<[^>]+>")


def strip_inline_markup(text: str) -> str:
    """Return heading text as it reads once rendered (links, code ticks, emphasis removed)."""
    s = _LINK_RE.sub(r"\1", text or "")
    s = _HTML_TAG_RE.sub("", s)
    s = s.replace("`", "")
    previous = None
    while previous != s:
        previous = s
        s = _EMPHASIS_RE.sub(r"\2", s)
    return s.strip()


def heading_anchor(text: str) -> str:
    """
    Build the GitHub-style anchor for a markdown heading.

    Rules:
      - render inline markup first ("`db.Model`" -> "db.Model")
      - lowercase everything
      - drop every character that is not a letter, digit, '_', '-' or space
      - each space -> '-' (runs are NOT collapsed, "a  b" -> "a--b")
    """
    s = strip_inline_markup(text).lower()

    out = []
    for c in s:
        if c.isalnum() or c in ("_", "-"):
            out.append(c)
        elif c == " ":
            out.append("-")
        # any other punctuation is dropped
    return "".join(out)


class AnchorRegistry:
    """
    Hands out unique anchors for a single document.

    The first "Usage" heading gets "usage", the next ones "usage-1", "usage-2", ...
    which is how GitHub disambiguates repeated headings.
    """

    def __init__(self) -> None:
        self._seen: Dict[str, int] = {}

    def claim(self, text: str) -> str:
        base = heading_anchor(text)
        count: Optional[int] = self._seen.get(base)
        if count is None:
            self._seen[base] = 0
            return base
        count += 1
        # "usage-1" might itself be an explicit heading later on; skip taken names
        while f"{base}-{count}" in self._seen:
            count += 1
        self._seen[base] = count
        candidate = f"{base}-{count}"
        self._seen[candidate] = 0
        return candidate

    def __contains__(self, anchor: str) -> bool:
        return anchor in self._seen
