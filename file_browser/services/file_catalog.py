from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath

from file_browser.services.breadcrumbs import Breadcrumb, build_breadcrumbs
from file_browser.services.paths import resolve_path

logger = logging.getLogger("file_browser.catalog")


class SortKey(str, Enum):
    NAME = "name"
    SIZE = "size"
    MODIFIED = "mod"

    @classmethod
    def parse(cls, raw: str | None) -> SortKey:
        if isinstance(raw, cls):
            return raw
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.NAME


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: str | None) -> SortOrder:
        if isinstance(raw, cls):
            return raw
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.ASC


@dataclass
class FileEntry:
    """Metadata describing an entry in the browsed directory."""

    name: str
    relative_path: str
    is_dir: bool
    size: int
    modified_at: datetime


@dataclass
class ListingRequest:
    path: str = ""
    query: str = ""
    sort: SortKey | str = SortKey.NAME
    order: SortOrder | str = SortOrder.ASC

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> ListingRequest:
        """Build a request from raw query parameters, defaulting anything unknown."""

        return cls(
            path=params.get("path") or "",
            query=(params.get("q") or "").strip(),
            sort=SortKey.parse(params.get("sort")),
            order=SortOrder.parse(params.get("order")),
        )


@dataclass
class ListingResult:
    entries: list[FileEntry]
    path: str
    query: str
    sort: SortKey
    order: SortOrder
    breadcrumbs: list[Breadcrumb] = field(default_factory=list)
    parent_path: str | None = None


class DirectoryNotFoundError(FileNotFoundError):
    """Raised when the requested directory does not exist or is a file."""


class DirectoryUnreadableError(OSError):
    """Raised when the directory itself cannot be read."""


class DownloadIsDirectory(Exception):
    """Raised when a download targets a directory; callers redirect to its listing."""

    def __init__(self, relative_path: str):
        super().__init__(f"'{relative_path}' is a directory")
        self.relative_path = relative_path


def list_entries(directory: Path, relative_path: str = "", query: str = "") -> list[FileEntry]:
    """Return the unsorted, filtered children of an already confined directory.

    A child whose metadata cannot be read (a broken symlink, a file removed
    mid-listing) is skipped; only failures reading the directory itself raise.
    """

    base_posix = PurePosixPath(relative_path) if relative_path else None
    needle = query.lower()

    try:
        if not stat.S_ISDIR(os.stat(directory).st_mode):
            raise NotADirectoryError(relative_path)
        with os.scandir(directory) as it:
            items: Iterable[os.DirEntry[str]] = list(it)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise DirectoryNotFoundError(f"Directory '{relative_path}' not found") from exc
    except OSError as exc:
        raise DirectoryUnreadableError(
            f"Cannot read directory '{relative_path}': {exc.strerror or exc}"
        ) from exc

    file_entries = []
    for item in items:
        if needle and needle not in item.name.lower():
            continue
        try:
            info = item.stat()
        except OSError as exc:
            logger.debug("Skipping %s: %s", item.path, exc)
            continue
        rel_path = base_posix / item.name if base_posix else PurePosixPath(item.name)
        file_entries.append(
            FileEntry(
                name=item.name,
                relative_path=str(rel_path),
                is_dir=stat.S_ISDIR(info.st_mode),
                size=info.st_size,
                modified_at=datetime.fromtimestamp(info.st_mtime),
            )
        )
    return file_entries


def sort_entries(
    entries: Iterable[FileEntry], sort: SortKey | str, order: SortOrder | str
) -> list[FileEntry]:
    """Return a stably sorted copy of ``entries``.

    For name and size, directories always come first; descending order only
    reverses the order inside each group. Modification time has no grouping.
    """

    sort = sort if isinstance(sort, SortKey) else SortKey.parse(sort)
    order = order if isinstance(order, SortOrder) else SortOrder.parse(order)
    reverse = order is SortOrder.DESC

    if sort is SortKey.MODIFIED:
        return sorted(entries, key=lambda entry: entry.modified_at, reverse=reverse)

    if sort is SortKey.SIZE:
        ordered = sorted(entries, key=lambda entry: entry.size, reverse=reverse)
    else:
        ordered = sorted(entries, key=lambda entry: entry.name.lower(), reverse=reverse)
    ordered.sort(key=lambda entry: not entry.is_dir)
    return ordered


def _parent_of(relative_path: str) -> str | None:
    if not relative_path:
        return None
    parent = str(PurePosixPath(relative_path).parent)
    return "" if parent == "." else parent


class FileCatalog:
    """Listing and download lookups confined to a single root directory."""

    def __init__(self, root: str | os.PathLike[str], *, confine_symlinks: bool = False):
        self.root = Path(os.path.abspath(root))
        self.confine_symlinks = confine_symlinks

    def build_listing(self, request: ListingRequest) -> ListingResult:
        resolved = resolve_path(self.root, request.path, confine_symlinks=self.confine_symlinks)
        sort = SortKey.parse(request.sort)
        order = SortOrder.parse(request.order)
        entries = list_entries(resolved.absolute, resolved.relative, request.query)
        return ListingResult(
            entries=sort_entries(entries, sort, order),
            path=resolved.relative,
            query=request.query,
            sort=sort,
            order=order,
            breadcrumbs=build_breadcrumbs(resolved.relative),
            parent_path=_parent_of(resolved.relative),
        )

    def resolve_download(self, relative_path: str) -> Path:
        """Return the absolute file path for download, ensuring safety."""

        resolved = resolve_path(self.root, relative_path, confine_symlinks=self.confine_symlinks)
        target = resolved.absolute
        try:
            mode = os.stat(target).st_mode
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise FileNotFoundError(f"File '{resolved.relative}' not found") from exc
        except OSError as exc:
            raise DirectoryUnreadableError(
                f"Cannot read '{resolved.relative}': {exc.strerror or exc}"
            ) from exc
        if stat.S_ISDIR(mode):
            raise DownloadIsDirectory(resolved.relative)
        if not stat.S_ISREG(mode):
            raise FileNotFoundError(f"File '{resolved.relative}' not found")
        return target
