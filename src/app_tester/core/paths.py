"""Working-directory resolution and file lookup helpers."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def working_directory() -> Path:
    """Return the absolute current working directory."""
    return Path.cwd().resolve()


def resolve_in_working_directory(path: Path | str) -> Path:
    """Resolve a possibly relative path against the working directory.

    Args:
        path: Absolute path, or path relative to the working directory.

    Returns:
        Absolute path.
    """
    path = Path(path)
    if path.is_absolute():
        return path
    return working_directory() / path


def try_find_path(name: str, search_root: Path | str | None = None) -> Path | None:
    """Find a file by name beneath a directory.

    Args:
        name: File name (not a path) to look for.
        search_root: Directory to search. Defaults to the working directory.

    Returns:
        Absolute path of the first match, or None if not found.
    """
    root = resolve_in_working_directory(search_root) if search_root else working_directory()
    direct = root / name
    if direct.is_file():
        return direct.resolve()

    try:
        for candidate in root.rglob(name):
            if candidate.is_file():
                return candidate.resolve()
    except OSError as e:
        logger.debug(f"Search for {name} under {root} stopped: {e}")
    return None


def ensure_directory(path: Path) -> bool:
    """Create a directory (and parents) if absent.

    Returns:
        True if the directory exists afterwards, False on failure.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.debug(f"Could not create directory {path}: {e}")
        return False
    return path.is_dir()
