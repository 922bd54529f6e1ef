"""Parse the markdown cheat sheet into headings, sections, code blocks and links.

Only the parts of markdown the cheat sheet actually uses are understood:
ATX headings, fenced code blocks, bullet/numbered lists, paragraphs and
inline links. Anything else is kept as paragraph text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Set, Union
from urllib.parse import urlsplit

from .errors import DocumentNotFound
from .slugify import AnchorRegistry, strip_inline_markup

log = logging.getLogger(__name__)

DEFAULT_CHEATSHEET_PATH = Path(__file__).resolve().parent / "content" / "CHEATSHEET.md"

TOC_HEADINGS = {"table of contents", "contents", "toc"}

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})[ \t]*([^`]*?)[ \t]*$")
_LIST_ITEM_RE = re.compile(r"^\s*(?:([-*+])|(\d+)[.)])[ \t]+(.*)$")
# [text](target "optional title"); the lookbehind skips images
_INLINE_LINK_RE = re.compile(r"(?<!!)\[([^\]]*)\]\(\s*<?([^)\s>]*)>?(?:\s+\"[^\"]*\")?\s*\)")
_AUTOLINK_RE = re.compile(r"<(https?://[^>\s]+)>")
_CODE_SPAN_RE = re.compile(r"(`+)(.+?)\1")


@dataclass
class Heading:
    level: int
    text: str
    anchor: str
    line: int

    @property
    def title(self) -> str:
        return strip_inline_markup(self.text)


@dataclass
class Link:
    text: str
    target: str
    line: int

    @property
    def is_internal(self) -> bool:
        return self.target.startswith("#")

    @property
    def is_external(self) -> bool:
        return urlsplit(self.target).scheme in ("http", "https")

    @property
    def anchor(self) -> Optional[str]:
        if not self.is_internal:
            return None
        return self.target[1:]


@dataclass
class CodeBlock:
    language: str
    code: str
    line: int
    closed: bool = True

    @property
    def info(self) -> str:
        return self.language or "text"


@dataclass
class Paragraph:
    text: str
    line: int
    kind: str = "paragraph"


@dataclass
class ListBlock:
    items: List[str]
    ordered: bool
    line: int
    kind: str = "list"


Block = Union[Paragraph, ListBlock, CodeBlock]


@dataclass(eq=False)
class Section:
    heading: Heading
    blocks: List[Block] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    children: List["Section"] = field(default_factory=list)
    parent: Optional["Section"] = field(default=None, repr=False)

    @property
    def anchor(self) -> str:
        return self.heading.anchor

    @property
    def title(self) -> str:
        return self.heading.title

    @property
    def level(self) -> int:
        return self.heading.level

    def walk(self) -> Iterator["Section"]:
        """Yield this section and every nested subsection in document order."""
        yield self
        for child in self.children:
            yield from child.walk()

    @property
    def own_code_blocks(self) -> List[CodeBlock]:
        return [b for b in self.blocks if isinstance(b, CodeBlock)]

    @property
    def code_blocks(self) -> List[CodeBlock]:
        return [b for s in self.walk() for b in s.own_code_blocks]

    @property
    def all_links(self) -> List[Link]:
        return [link for s in self.walk() for link in s.links]


@dataclass
class Document:
    source: str
    title: Optional[str]
    headings: List[Heading]
    sections: List[Section]
    preamble: List[Block]
    toc_links: List[Link]
    code_blocks: List[CodeBlock]
    links: List[Link]
    path: Optional[Path] = None

    @property
    def anchors(self) -> Set[str]:
        return {h.anchor for h in self.headings}

    @property
    def top_sections(self) -> List[Section]:
        """Sections that render as entries of the main index (level 2, or level 1 without a title page)."""
        level = 2 if any(s.level == 2 for s in self.sections) else 1
        return [s for s in self.sections if s.level == level and not is_toc_heading(s.heading)]

    def find_section(self, anchor: str) -> Optional[Section]:
        for section in self.sections:
            if section.anchor == anchor:
                return section
        return None


def is_toc_heading(heading: Heading) -> bool:
    return heading.title.strip().lower() in TOC_HEADINGS


def _mask_code_spans(text: str) -> str:
    # Links inside `code` are not links; blank them out but keep the offsets
    return _CODE_SPAN_RE.sub(lambda m: " " * len(m.group(0)), text)


def extract_links(text: str, line: int) -> List[Link]:
    """Find the links in ``text``, a run of consecutive lines starting at ``line``.

    Link text may wrap across lines; each link reports the line it starts on.
    """
    masked = _mask_code_spans(text)
    found = []
    for match in _INLINE_LINK_RE.finditer(masked):
        start = match.start()
        label = " ".join(match.group(1).split())
        found.append((start, Link(text=label, target=match.group(2).strip(), line=line + text.count("\n", 0, start))))
    for match in _AUTOLINK_RE.finditer(masked):
        start = match.start()
        found.append((start, Link(text=match.group(1), target=match.group(1), line=line + text.count("\n", 0, start))))
    found.sort(key=lambda pair: pair[0])
    return [link for _, link in found]


class _Parser:
    def __init__(self, text: str) -> None:
        self.lines = text.splitlines()
        self.anchors = AnchorRegistry()
        self.headings: List[Heading] = []
        self.sections: List[Section] = []
        self.preamble: List[Block] = []
        self.code_blocks: List[CodeBlock] = []
        self.links: List[Link] = []
        self._stack: List[Section] = []
        self._paragraph: List[str] = []
        self._paragraph_line = 0
        self._list: Optional[ListBlock] = None
        # raw lines of the paragraph or list item being read, scanned for links on flush
        self._inline: List[str] = []
        self._inline_line = 0

    # -------- block sinks --------

    def _current_blocks(self) -> List[Block]:
        if self._stack:
            return self._stack[-1].blocks
        return self.preamble

    def _record_links(self, text: str, line: int) -> None:
        links = extract_links(text, line)
        if not links:
            return
        self.links.extend(links)
        if self._stack:
            self._stack[-1].links.extend(links)

    def _start_inline(self, raw: str, line: int) -> None:
        self._flush_inline()
        self._inline = [raw]
        self._inline_line = line

    def _flush_inline(self) -> None:
        if self._inline:
            self._record_links("\n".join(self._inline), self._inline_line)
            self._inline = []

    def _flush_paragraph(self) -> None:
        self._flush_inline()
        if self._paragraph:
            text = " ".join(part.strip() for part in self._paragraph)
            self._current_blocks().append(Paragraph(text=text, line=self._paragraph_line))
            self._paragraph = []

    def _flush_list(self) -> None:
        if self._list is not None:
            self._flush_inline()
            self._current_blocks().append(self._list)
            self._list = None

    def _flush(self) -> None:
        self._flush_paragraph()
        self._flush_list()

    # -------- main loop --------

    def parse(self) -> None:
        i = 0
        total = len(self.lines)
        while i < total:
            raw = self.lines[i]
            lineno = i + 1

            fence = _FENCE_RE.match(raw)
            if fence:
                self._flush()
                i = self._consume_fence(i, fence)
                continue

            heading = _HEADING_RE.match(raw)
            if heading:
                self._flush()
                self._open_section(len(heading.group(1)), heading.group(2).strip(), lineno)
                i += 1
                continue

            if not raw.strip():
                self._flush()
                i += 1
                continue

            item = _LIST_ITEM_RE.match(raw)
            if item:
                self._flush_paragraph()
                ordered = item.group(2) is not None
                if self._list is None or self._list.ordered != ordered:
                    self._flush_list()
                    self._list = ListBlock(items=[], ordered=ordered, line=lineno)
                self._list.items.append(item.group(3).strip())
                self._start_inline(raw, lineno)
                i += 1
                continue

            if self._list is not None and raw.startswith((" ", "\t")):
                # lazy continuation of the previous list item
                self._list.items[-1] += " " + raw.strip()
                self._inline.append(raw)
                i += 1
                continue

            self._flush_list()
            if not self._paragraph:
                self._paragraph_line = lineno
                self._start_inline(raw, lineno)
            else:
                self._inline.append(raw)
            self._paragraph.append(raw)
            i += 1

        self._flush()

    def _consume_fence(self, start: int, match: "re.Match[str]") -> int:
        indent = len(match.group(1))
        marker = match.group(2)
        language = match.group(3).split()[0] if match.group(3).strip() else ""
        body: List[str] = []
        closed = False
        i = start + 1
        while i < len(self.lines):
            candidate = self.lines[i]
            stripped = candidate.strip()
            if (
                stripped
                and stripped[0] == marker[0]
                and set(stripped) == {marker[0]}
                and len(stripped) >= len(marker)
                and len(candidate) - len(candidate.lstrip(" ")) <= 3
            ):
                closed = True
                i += 1
                break
            # strip up to the opening fence's indentation from each content line
            removable = min(indent, len(candidate) - len(candidate.lstrip(" ")))
            body.append(candidate[removable:])
            i += 1

        block = CodeBlock(language=language, code="\n".join(body), line=start + 1, closed=closed)
        if not closed:
            log.debug("Unterminated code fence opened on line %d", start + 1)
        self.code_blocks.append(block)
        self._current_blocks().append(block)
        return i

    def _open_section(self, level: int, text: str, lineno: int) -> None:
        heading = Heading(level=level, text=text, anchor=self.anchors.claim(text), line=lineno)
        self.headings.append(heading)
        section = Section(heading=heading)
        while self._stack and self._stack[-1].level >= level:
            self._stack.pop()
        if self._stack:
            section.parent = self._stack[-1]
            self._stack[-1].children.append(section)
        self._stack.append(section)
        self.sections.append(section)
        # headings can carry links too, e.g. "## [Flask](https://...)"
        self._record_links(text, lineno)

    # -------- table of contents --------

    def toc_links(self) -> List[Link]:
        for section in self.sections:
            if is_toc_heading(section.heading):
                return [link for link in section.links if link.is_internal]

        first_h2 = next((h.line for h in self.headings if h.level == 2), None)
        return [
            link
            for link in self.links
            if link.is_internal and (first_h2 is None or link.line < first_h2)
        ]


def parse_document(text: str, path: Optional[Path] = None) -> Document:
    """Parse markdown text into a :class:`Document`."""
    parser = _Parser(text or "")
    parser.parse()
    title = next((h.title for h in parser.headings if h.level == 1), None)
    doc = Document(
        source=text or "",
        title=title,
        headings=parser.headings,
        sections=parser.sections,
        preamble=parser.preamble,
        toc_links=parser.toc_links(),
        code_blocks=parser.code_blocks,
        links=parser.links,
        path=path,
    )
    log.debug(
        "Parsed cheat sheet: %d headings, %d code blocks, %d links",
        len(doc.headings),
        len(doc.code_blocks),
        len(doc.links),
    )
    return doc


def load_document(path: Optional[Union[str, Path]] = None) -> Document:
    """Read and parse the cheat sheet; defaults to the copy shipped with the package."""
    target = Path(path) if path is not None else DEFAULT_CHEATSHEET_PATH
    try:
        text = target.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DocumentNotFound(target) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentNotFound(target, str(exc)) from exc
    return parse_document(text, path=target)
