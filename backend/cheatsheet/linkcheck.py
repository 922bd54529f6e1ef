"""Check that external links in the cheat sheet still answer."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

import requests

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "flask-cheatsheet-linkcheck/1.0 (+https://flask.palletsprojects.com/)"

# Some servers refuse HEAD outright; these answers mean "try again with GET"
_RETRY_WITH_GET = {403, 405, 501}


@dataclass
class LinkResult:
    url: str
    ok: bool
    status: Optional[int] = None
    error: Optional[str] = None
    elapsed_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LinkChecker:
    """
    Probe URLs with a shared ``requests.Session``.

    HEAD is tried first (redirects followed); a refusal listed in ``_RETRY_WITH_GET``
    falls back to a streamed GET whose body is never read. Any status below 400 is ok.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        workers: int = 4,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        # Maintain a single requests.Session so TCP connections can be reused across checks.
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.workers = workers
        self.headers = {"User-Agent": user_agent}

    def _request(self, method: str, url: str) -> requests.Response:
        return self.session.request(
            method,
            url,
            headers=self.headers,
            allow_redirects=True,
            timeout=self.timeout,
            stream=(method == "GET"),
        )

    def check(self, url: str) -> LinkResult:
        started = time.monotonic()
        try:
            resp = self._request("HEAD", url)
            status = resp.status_code
            resp.close()
            if status in _RETRY_WITH_GET:
                log.debug("HEAD %s answered %s; retrying with GET", url, status)
                resp = self._request("GET", url)
                status = resp.status_code
                resp.close()
        except requests.RequestException as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            log.warning("Link check failed for %s: %s", url, exc)
            return LinkResult(url=url, ok=False, status=None, error=str(exc) or exc.__class__.__name__, elapsed_ms=elapsed)

        elapsed = int((time.monotonic() - started) * 1000)
        ok = status < 400
        if not ok:
            log.info("Link %s answered HTTP %s", url, status)
        return LinkResult(
            url=url,
            ok=ok,
            status=status,
            error=None if ok else f"HTTP {status}",
            elapsed_ms=elapsed,
        )

    def check_many(self, urls: Iterable[str]) -> List[LinkResult]:
        """Check every distinct URL once; results follow the order of first appearance."""
        unique: List[str] = []
        seen = set()
        for url in urls:
            if url in seen:
                continue
            seen.add(url)
            unique.append(url)

        if not unique:
            return []

        log.info("Checking %d external links with %d workers", len(unique), self.workers)
        if self.workers == 1 or len(unique) == 1:
            return [self.check(url) for url in unique]

        with ThreadPoolExecutor(max_workers=min(self.workers, len(unique))) as pool:
            # map() keeps input order regardless of completion order
            return list(pool.map(self.check, unique))

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "LinkChecker":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
