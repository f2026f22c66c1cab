"""
Project-root and `.env` helpers.

The catalog path (`data/places/locations.json`) and an optional `.env` are both
relative to the repository root, but the API, the CLI and pytest are launched from
different working directories. These helpers pin relative paths to one root:

- `get_project_root()`: `PARENTMAP_PROJECT_ROOT`, else the parent of `PARENTMAP_ENV_FILE`,
  else the first ancestor (of the CWD, then of this file) carrying a root marker
- `load_dotenv_if_present()`: load `.env` once, never overriding the real environment
- `resolve_project_path()`: anchor a relative path at the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_FILES = (".env", "pyproject.toml")


def _is_root(path: Path) -> bool:
    if any((path / name).is_file() for name in _ROOT_FILES):
        return True
    if (path / ".git").exists():
        return True
    return (path / "src" / "parentmap").is_dir() and (path / "data").is_dir()


def _search_up(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if _is_root(candidate):
            return candidate
    return None


def _env_file_override() -> Path | None:
    explicit = os.getenv("PARENTMAP_ENV_FILE")
    return Path(explicit).expanduser().resolve() if explicit else None


@lru_cache
def get_project_root() -> Path:
    """Return the project root directory (cached for the process)."""
    override = os.getenv("PARENTMAP_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = _env_file_override()
    if env_file is not None:
        return env_file.parent

    return _search_up(Path.cwd()) or _search_up(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project `.env` once; returns the loaded path, or None if there is none."""
    env_path = _env_file_override() or get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve `path` against the project root unless it is already absolute."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
