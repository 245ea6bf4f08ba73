"""Fallback layer for harness settings read from `.env.defaults` and `.env`.

Environment variables always win. The files only fill in keys the
environment leaves unset, which keeps CI runs (env only) and local runs
(checked-in defaults plus a private `.env`) on the same code path.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable


def _search_dirs() -> list[Path]:
    dirs: list[Path] = []
    try:
        dirs.append(Path.cwd())
    except (OSError, FileNotFoundError):
        # Working directory was removed underneath us.
        pass
    repo_root = Path(__file__).resolve().parents[2]
    if all(repo_root != d.resolve() for d in dirs):
        dirs.append(repo_root)
    return dirs


@lru_cache(maxsize=1)
def load_defaults() -> Dict[str, str]:
    """Merge `.env.defaults` then `.env` from the working directory and repo root."""
    return _merge(_search_dirs())


def _merge(dirs: Iterable[Path]) -> Dict[str, str]:
    dirs = list(dirs)
    merged: Dict[str, str] = {}
    for filename in (".env.defaults", ".env"):
        # Later directories are fallbacks, so apply them first.
        for directory in reversed(dirs):
            candidate = directory / filename
            if candidate.is_file():
                merged.update(parse_env_file(candidate))
    return merged


def get_default(key: str, fallback: str | None = None) -> str | None:
    return load_defaults().get(key, fallback)


def parse_env_file(env_path: Path) -> Dict[str, str]:
    """Parse KEY=VALUE lines, skipping blanks and comments and unquoting values."""
    values: Dict[str, str] = {}
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        values[key.strip()] = value
    return values
