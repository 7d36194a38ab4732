"""Read harness defaults from .env.defaults.

Lets a checkout pin its own base URL or credentials without exporting
environment variables. Real environment variables still win.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
        return value[1:-1]
    return value


def _parse_line(raw: str) -> Optional[Tuple[str, str]]:
    line = raw.strip()
    if not line or line.startswith("#"):
        return None
    key, sep, value = line.partition("=")
    if not sep:
        return None
    return key.strip(), _unquote(value.strip())


@lru_cache(maxsize=1)
def _load_env_defaults(path: Optional[Path] = None) -> Dict[str, str]:
    env_file = path or REPO_ROOT / ".env.defaults"
    if not env_file.exists():
        return {}

    pairs = (_parse_line(raw) for raw in env_file.read_text(encoding="utf-8").splitlines())
    return dict(pair for pair in pairs if pair)


def get_env_default(key: str) -> str | None:
    return _load_env_defaults().get(key)
