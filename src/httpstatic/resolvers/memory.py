"""
=============================================================================
MEMORY RESOLVER
=============================================================================

Loads the whole site into memory ONCE at startup. Afterwards a request is a
dictionary lookup: no syscalls, no blocking, no failure modes beyond "miss".

=============================================================================
CONSTRUCTION: A LEVEL-BY-LEVEL WORKLIST
=============================================================================

    frontier = [root]
    while frontier:
        list every directory in frontier
            └── partition entries into files and subdirectories
        read all files of this level            ← may fan out over threads
        frontier = subdirectories               ← next level

    root/                    level 0: index.html, app.js
    ├── index.html
    ├── app.js
    └── docs/                level 1: docs/index.html, docs/guide.html
        ├── index.html
        ├── guide.html
        └── img/             level 2: docs/img/logo.png
            └── logo.png

Subdirectories of a level are only known once the level has been listed,
so a level is fully drained before the next one starts.

A directory is identified by (st_dev, st_ino). It is not expanded again
below itself, so a symlink pointing back up the tree ends that branch and
the walk always terminates. An alias elsewhere in the tree (latest -> v2)
is a separate path and is loaded under both names, as on disk.

=============================================================================
KEYS
=============================================================================

    File (relative to root)      Key
    ───────────────────────      ─────────────────
    index.html                   ""                  ← answers GET /
    app.js                       "app.js"
    docs/index.html              "docs"              ← answers GET /docs/
    docs/guide.html              "docs/guide.html"

Two files normalizing to the same key: the one inserted last wins. Which
one that is depends on directory listing order and is not defined.

=============================================================================
PUBLISHING THE TABLE
=============================================================================

The table is built in a local dict, wrapped in a read-only MappingProxyType
and only then passed to the MemoryResolver constructor. A resolver with a
half-built table can never exist, so request handlers need no locks: there
is no writer after construction.

=============================================================================
"""

import logging
import os
import threading
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from ..core.thread_pool import ThreadPool
from ..http.mime_types import get_mime_type
from .content import NOT_FOUND, ResolvedContent, normalize_request_path


logger = logging.getLogger(__name__)


# Normalized relative path → preloaded, bytes-backed content
CacheTable = Mapping[str, ResolvedContent]


class MemoryResolver:
    """
    Resolve request paths against a table preloaded at startup.

    Do not call the constructor with a table you are still filling; use
    MemoryResolver.load(), which publishes the table only once complete.

    Usage:
        resolver = MemoryResolver.load("./public", index="index.html",
                                       default="./public/404.html")
        content = resolver.resolve("/docs/")
    """

    def __init__(
        self,
        files: CacheTable,
        default: Optional[ResolvedContent] = None,
        index: str = "index.html",
    ):
        """
        Args:
            files: Finished cache table.
            default: Preloaded fallback entry, or None.
            index: File name the table stores under its directory key.
        """
        self._files = files
        self._default = default
        self._index = index

    def __repr__(self) -> str:
        return f"MemoryResolver(files={len(self._files)}, default={self._default!r})"

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, key: str) -> bool:
        return key in self._files

    @property
    def files(self) -> CacheTable:
        """The read-only cache table."""
        return self._files

    @property
    def default(self) -> Optional[ResolvedContent]:
        return self._default

    def resolve(self, request_path: str) -> ResolvedContent:
        """
        Look up a request path.

        "/docs/index.html" finds the entry stored under "docs", as it
        would on disk.

        Returns:
            The stored entry on a hit, else the default entry, else
            NOT_FOUND. Entries are shared, never copied.
        """
        key = normalize_request_path(request_path)

        if key is None:
            logger.warning(f"Rejected path outside root: {request_path!r}")
        else:
            entry = self._files.get(key)
            if entry is None:
                path = PurePosixPath(key)
                if path.name == self._index:
                    entry = self._files.get(_directory_key(path))
            if entry is not None:
                return entry
            logger.debug(f"Miss {key!r}")

        return self._default or NOT_FOUND

    @classmethod
    def load(
        cls,
        root: Union[str, Path],
        index: str = "index.html",
        default: Optional[Union[str, Path]] = "index.html",
        workers: int = 1,
    ) -> "MemoryResolver":
        """
        Walk the root, load every regular file and build the resolver.

        Args:
            root: Directory to preload.
            index: File name that stands for its directory.
            default: Fallback file (relative to the working directory).
                     Missing or unreadable is fine: no default is used.
            workers: Threads used to read the files of one level.

        Returns:
            A fully built MemoryResolver.

        Raises:
            OSError: root cannot be listed or a file cannot be read.
                     This is fatal: the server must not start.
        """
        default_entry = _load_default(default)

        root = Path(root)
        if not root.is_dir():
            raise NotADirectoryError(f"Root is not a directory: {root}")

        files = _read_tree(root, workers)
        table = build_cache_table(files, index)

        total = sum(entry.length for entry in table.values())
        logger.info(f"Preloaded {len(table)} files ({total} bytes) from {root}")

        return cls(table, default_entry, index=index)


def build_cache_table(files: Iterable[Tuple[str, bytes]], index: str) -> CacheTable:
    """
    Turn (relative path, data) pairs into the read-only cache table.

    Args:
        files: "/"-separated paths relative to the root, with contents.
        index: File name that stands for its directory.

    Returns:
        Read-only mapping of key → content. Later pairs overwrite
        earlier ones with the same key.
    """
    table: Dict[str, ResolvedContent] = {}

    for relative, data in files:
        path = PurePosixPath(relative)
        key = _directory_key(path) if path.name == index else path.as_posix()

        if key in table:
            logger.debug(f"Key collision on {key!r}, keeping {relative}")

        table[key] = ResolvedContent(body=data, mime=get_mime_type(path), status=200)

    return MappingProxyType(table)


def _directory_key(index_path: PurePosixPath) -> str:
    parent = index_path.parent.as_posix()
    return "" if parent == "." else parent


def _load_default(default: Optional[Union[str, Path]]) -> Optional[ResolvedContent]:
    if default is None:
        return None

    try:
        data = Path(default).read_bytes()
    except OSError as e:
        logger.info(f"No default resource ({default}): {e}")
        return None

    return ResolvedContent(body=data, mime=get_mime_type(default), status=200)


def _read_tree(root: Path, workers: int) -> List[Tuple[str, bytes]]:
    """
    Read every regular file below root, level by level.

    Returns:
        (relative path, data) pairs in traversal order.
    """
    results: List[Tuple[str, bytes]] = []
    # Each directory travels with the identities of the directories above it
    frontier: List[Tuple[Path, FrozenSet[Tuple[int, int]]]] = [(root, frozenset())]

    pool = ThreadPool(min_workers=workers, max_workers=workers, queue_size=0) if workers > 1 else None

    try:
        if pool:
            pool.start()

        while frontier:
            level_files: List[Path] = []
            next_frontier: List[Tuple[Path, FrozenSet[Tuple[int, int]]]] = []

            for directory, ancestors in frontier:
                identity = _identity(directory)
                if identity in ancestors:
                    logger.debug(f"Skipping symlink cycle at {directory}")
                    continue

                files, subdirs = _list_directory(directory)
                level_files.extend(files)
                lineage = ancestors | {identity}
                next_frontier.extend((subdir, lineage) for subdir in subdirs)

            for path, data in _read_files(level_files, pool):
                results.append((path.relative_to(root).as_posix(), data))

            frontier = next_frontier
    finally:
        if pool:
            pool.shutdown(wait=False)

    return results


def _identity(directory: Path) -> Tuple[int, int]:
    info = directory.stat()
    return (info.st_dev, info.st_ino)


def _list_directory(directory: Path) -> Tuple[List[Path], List[Path]]:
    """Partition a directory's entries into (files, subdirectories)."""
    files: List[Path] = []
    subdirs: List[Path] = []

    with os.scandir(directory) as entries:
        for entry in entries:
            path = Path(entry.path)
            try:
                if entry.is_dir():
                    subdirs.append(path)
                elif entry.is_file():
                    files.append(path)
                else:
                    logger.debug(f"Skipping special file {path}")
            except OSError as e:
                # Dangling symlinks and vanished entries
                logger.debug(f"Skipping {path}: {e}")

    return files, subdirs


def _read_files(paths: List[Path], pool: Optional[ThreadPool]) -> List[Tuple[Path, bytes]]:
    """
    Read files, optionally in parallel.

    Raises:
        OSError: The first read failure, after the level has drained. Any
            other exception from a read is re-raised the same way.
    """
    if pool is None:
        return [(path, path.read_bytes()) for path in paths]

    loaded: Dict[Path, bytes] = {}
    errors: List[Exception] = []
    lock = threading.Lock()

    def read_one(path: Path):
        try:
            data = path.read_bytes()
        except Exception as e:
            with lock:
                errors.append(e)
            return
        with lock:
            loaded[path] = data

    for path in paths:
        pool.submit(read_one, args=(path,))
    pool.join()

    if errors:
        raise errors[0]

    return [(path, loaded[path]) for path in paths]
