"""Make the scripts under ``backend/tools`` runnable without installing the project."""

from pathlib import Path
import os
import sys
from typing import Iterable, Optional, Union

PathInput = Union[str, os.PathLike]


def _unique_paths(paths: Iterable[Path]) -> Iterable[Path]:
    """Yield each path only once while preserving the original order."""
    seen = set()
    for path in paths:
        normalized = path.resolve()
        if normalized not in seen:
            seen.add(normalized)
            yield normalized


def bootstrap(script_location: Optional[PathInput] = None, *, prepend: bool = True) -> Path:
    """Put the repository root and ``backend/`` on ``sys.path`` so ``import cheatsheet`` works.

    Parameters
    ----------
    script_location:
        Pass ``__file__`` from the calling script; its directory is added too.
    prepend:
        Insert at the front of ``sys.path`` (the default) so the working tree wins
        over an installed copy of the package.

    Returns
    -------
    Path
        The resolved repository root directory.
    """
    backend_directory = Path(__file__).resolve().parent
    repository_root = backend_directory.parent
    candidates = [repository_root, backend_directory]
    if script_location is not None:
        script_path = Path(script_location).resolve()
        candidates.append(script_path if script_path.is_dir() else script_path.parent)

    for candidate in _unique_paths(candidates):
        candidate_text = str(candidate)
        if candidate_text in sys.path:
            continue
        if prepend:
            sys.path.insert(0, candidate_text)
        else:
            sys.path.append(candidate_text)

    return repository_root


__all__ = ["bootstrap"]
