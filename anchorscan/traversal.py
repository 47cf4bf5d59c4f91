# Workspace walking: collect the .rs files of an Anchor/Cargo project.

import logging
from pathlib import Path
from typing import Callable, Iterator, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_DIRS: Set[str] = {
    # cargo / anchor build output
    "target",
    ".anchor",
    "dist",
    "out",
    # integration tests and fixtures live beside programs, not in them
    "tests",
    "test",
    "__tests__",
    # JS client code and vendored crates
    "node_modules",
    "vendor",
    "third_party",
    ".git",
    ".svn",
    ".hg",
    ".vscode",
    ".idea",
    # python tooling that sometimes sits in the workspace
    "venv",
    ".venv",
    "__pycache__",
    ".cache",
    ".pytest_cache",
}


def is_rust_file(path: Path) -> bool:
    return path.suffix.lower() == ".rs"


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """Exact, case-sensitive match on the directory's own name."""
    return dir_path.name in ignore_dirs


def _iter_rust_files(
    directory: Path,
    ignore_dirs: Set[str],
    follow_symlinks: bool,
) -> Iterator[Path]:
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        # PermissionError included; one unreadable directory does not end the walk
        logger.warning("Cannot list %s: %s", directory, e)
        return

    for entry in entries:
        if entry.is_symlink() and not follow_symlinks:
            logger.debug("Skipping symlink: %s", entry)
        elif entry.is_dir():
            if should_ignore_directory(entry, ignore_dirs):
                logger.debug("Ignoring directory: %s", entry)
            else:
                yield from _iter_rust_files(entry, ignore_dirs, follow_symlinks)
        elif entry.is_file() and is_rust_file(entry):
            yield entry


def find_rust_files(
    root: Path,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
    filter_fn: Optional[Callable[[Path], bool]] = None,
) -> list[Path]:
    """
    Return every .rs file under root, sorted.

    ignore_dirs replaces DEFAULT_IGNORE_DIRS when given (pass set() to walk
    everything). filter_fn, if set, must accept a path for it to be kept.
    Raises FileNotFoundError / NotADirectoryError for a bad root.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS

    root = root.resolve()
    if not root.exists():
        logger.error("Root directory does not exist: %s", root)
        raise FileNotFoundError(f"Root directory does not exist: {root}")
    if not root.is_dir():
        logger.error("Root path is not a directory: %s", root)
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    logger.info("Starting traversal from: %s", root)
    files = []
    for path in _iter_rust_files(root, ignore_dirs, follow_symlinks):
        if filter_fn is not None and not filter_fn(path):
            logger.debug("Rejected by filter: %s", path)
            continue
        files.append(path)
    files.sort()

    logger.info("Traversal complete: found %d Rust file(s) in %s", len(files), root)
    return files
