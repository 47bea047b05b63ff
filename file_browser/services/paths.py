from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from pathlib import Path


class InvalidPathError(ValueError):
    """Raised when a requested path falls outside the browsing root."""


@dataclass(frozen=True)
class ResolvedPath:
    """An absolute path confined to the root, plus its root-relative form."""

    absolute: Path
    relative: str


def _is_within(candidate: str, root: str) -> bool:
    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def resolve_path(
    root: str | os.PathLike[str], user_path: str = "", *, confine_symlinks: bool = False
) -> ResolvedPath:
    """Resolve ``user_path`` against ``root`` without ever leaving it.

    The path is collapsed lexically and the containment test runs on the
    canonical strings, so ``..`` segments, redundant separators and absolute
    remainders cannot escape. Existence is not checked here.

    With ``confine_symlinks`` the test is repeated on the real paths, which
    also rejects symlinks inside the root that point outside of it.
    """

    if "\x00" in user_path:
        raise InvalidPathError("Path contains a NUL byte")

    relative = user_path[1:] if user_path.startswith("/") else user_path
    relative = posixpath.normpath(relative) if relative else ""
    if relative == ".":
        relative = ""

    root_abs = os.path.abspath(os.fspath(root))
    candidate = os.path.abspath(os.path.join(root_abs, relative.lstrip("/"))) if relative else root_abs

    if not _is_within(candidate, root_abs):
        raise InvalidPathError(f"Path '{user_path}' escapes browsing root")

    if confine_symlinks and not _is_within(os.path.realpath(candidate), os.path.realpath(root_abs)):
        raise InvalidPathError(f"Path '{user_path}' links outside browsing root")

    rel = os.path.relpath(candidate, root_abs)
    rel = "" if rel == "." else Path(rel).as_posix()
    return ResolvedPath(absolute=Path(candidate), relative=rel)
