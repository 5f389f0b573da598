"""Simple .env file manager used to persist the Gemini API key."""

from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import MutableMapping, Optional


ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


def read_env_file(path: Optional[Path] = None) -> MutableMapping[str, str]:
    """Return key/value pairs from the .env file (order preserved)."""

    env_path = path or ENV_FILE
    pairs: MutableMapping[str, str] = OrderedDict()
    if not env_path.exists():
        return pairs
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        pairs[key.strip()] = value.strip().strip('"').strip("'")
    return pairs


def write_env_file(data: MutableMapping[str, str], path: Optional[Path] = None) -> None:
    """Persist the given key/value pairs back to the .env file."""

    env_path = path or ENV_FILE
    env_path.parent.mkdir(parents=True, exist_ok=True)
    lines = []
    for key, value in data.items():
        if not key:
            continue
        lines.append(f"{key}={value}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def update_env_value(key: str, value: str, path: Optional[Path] = None) -> None:
    """Set one key in the .env file, keeping every other entry untouched."""

    pairs = read_env_file(path)
    pairs[key] = value
    write_env_file(pairs, path)
