"""Editorial checks for the cheat sheet.

Each check takes a parsed :class:`~cheatsheet.document.Document` and returns a
list of :class:`LintIssue`. Checks are registered by name so callers (the web
API, ``flask lint`` and ``tools/lint_cheatsheet.py``) can pick a subset.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .document import Document, is_toc_heading
from .linkcheck import LinkChecker

log = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

PYTHON_LANGUAGES = {"python", "py", "python3"}


@dataclass
class LintIssue:
    check: str
    severity: str
    line: int
    message: str
    target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"line {self.line}: {self.severity}: [{self.check}] {self.message}"


class LintReport:
    def __init__(self, issues: Optional[Iterable[LintIssue]] = None, checks: Optional[List[str]] = None) -> None:
        self.issues: List[LintIssue] = sorted(issues or [], key=lambda i: (i.line, i.check))
        self.checks = list(checks or [])

    @property
    def errors(self) -> List[LintIssue]:
        return [i for i in self.issues if i.severity == ERROR]

    @property
    def warnings(self) -> List[LintIssue]:
        return [i for i in self.issues if i.severity == WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "checks": self.checks,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
        }


CheckFunction = Callable[[Document], List[LintIssue]]

_CHECKS: Dict[str, CheckFunction] = {}


def register_check(name: str) -> Callable[[CheckFunction], CheckFunction]:
    def decorator(fn: CheckFunction) -> CheckFunction:
        if name in _CHECKS:
            raise ValueError(f"Lint check '{name}' is already registered.")
        _CHECKS[name] = fn
        return fn
    return decorator


def available_checks() -> List[str]:
    return list(_CHECKS)


@register_check("toc-anchors")
def check_toc_anchors(doc: Document) -> List[LintIssue]:
    issues: List[LintIssue] = []
    anchors = doc.anchors
    listed = set()
    for link in doc.toc_links:
        listed.add(link.anchor)
        if link.anchor not in anchors:
            issues.append(LintIssue(
                check="toc-anchors",
                severity=ERROR,
                line=link.line,
                message=f"Table of contents entry '{link.text}' points to missing heading '#{link.anchor}'",
                target=link.target,
            ))

    # Only complain about omissions when there is a table of contents to begin with
    if doc.toc_links:
        for heading in doc.headings:
            if heading.level != 2 or is_toc_heading(heading):
                continue
            if heading.anchor not in listed:
                issues.append(LintIssue(
                    check="toc-anchors",
                    severity=WARNING,
                    line=heading.line,
                    message=f"Heading '{heading.title}' is not listed in the table of contents",
                    target=f"#{heading.anchor}",
                ))
    return issues


@register_check("internal-anchors")
def check_internal_anchors(doc: Document) -> List[LintIssue]:
    toc_ids = {id(link) for link in doc.toc_links}
    anchors = doc.anchors
    issues = []
    for link in doc.links:
        # TOC entries are reported by toc-anchors already
        if not link.is_internal or id(link) in toc_ids:
            continue
        if link.anchor not in anchors:
            issues.append(LintIssue(
                check="internal-anchors",
                severity=ERROR,
                line=link.line,
                message=f"Link '{link.text}' points to missing heading '#{link.anchor}'",
                target=link.target,
            ))
    return issues


@register_check("code-language")
def check_code_language(doc: Document) -> List[LintIssue]:
    issues = []
    for block in doc.code_blocks:
        if not block.language:
            issues.append(LintIssue(
                check="code-language",
                severity=ERROR,
                line=block.line,
                message="Fenced code block has no language label",
            ))
        if not block.closed:
            issues.append(LintIssue(
                check="code-language",
                severity=ERROR,
                line=block.line,
                message="Fenced code block is never closed",
            ))
    return issues


@register_check("python-syntax")
def check_python_syntax(doc: Document) -> List[LintIssue]:
    issues = []
    for block in doc.code_blocks:
        if block.language.lower() not in PYTHON_LANGUAGES:
            continue
        try:
            ast.parse(block.code, filename=f"<cheatsheet:{block.line}>")
        except SyntaxError as exc:
            # +1 for the opening fence line
            offset = exc.lineno or 1
            issues.append(LintIssue(
                check="python-syntax",
                severity=ERROR,
                line=block.line + offset,
                message=f"Python snippet does not parse: {exc.msg}",
                target=(exc.text or "").strip() or None,
            ))
    return issues


def check_external_links(doc: Document, checker: Optional[LinkChecker] = None) -> List[LintIssue]:
    external = [link for link in doc.links if link.is_external]
    if not external:
        return []

    owned = checker is None
    checker = checker or LinkChecker()
    try:
        results = {r.url: r for r in checker.check_many(link.target for link in external)}
    finally:
        if owned:
            checker.close()

    issues = []
    for link in external:
        result = results.get(link.target)
        if result is None or result.ok:
            continue
        issues.append(LintIssue(
            check="external-links",
            severity=ERROR,
            line=link.line,
            message=f"External link '{link.text}' failed: {result.error}",
            target=link.target,
        ))
    return issues


def lint_document(
    doc: Document,
    checks: Optional[Iterable[str]] = None,
    check_links: bool = False,
    link_checker: Optional[LinkChecker] = None,
) -> LintReport:
    """Run the named offline checks (all of them by default) and, optionally, the link check."""
    names = list(checks) if checks is not None else available_checks()
    unknown = [n for n in names if n not in _CHECKS and n != "external-links"]
    if unknown:
        raise ValueError(f"Unknown lint check(s): {', '.join(unknown)}")

    if "external-links" in names:
        names.remove("external-links")
        check_links = True

    issues: List[LintIssue] = []
    for name in names:
        found = _CHECKS[name](doc)
        log.debug("Lint check %s found %d issue(s)", name, len(found))
        issues.extend(found)

    if check_links:
        names.append("external-links")
        issues.extend(check_external_links(doc, link_checker))

    report = LintReport(issues, checks=names)
    log.info(
        "Lint finished: %d error(s), %d warning(s)",
        len(report.errors),
        len(report.warnings),
    )
    return report
