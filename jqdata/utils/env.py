from __future__ import annotations

import os
from pathlib import Path


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def load_env_file_if_present(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    """Load KEY=VALUE pairs from a .env file if one exists.

    Keeps the JQData credential (``JQDATA_MOB``/``JQDATA_PWD``) or a ready
    token (``JQDATA_TOKEN``) out of shell history without pulling in
    python-dotenv.

    Blank lines and ``#`` comments are skipped, an ``export`` prefix is
    accepted and matching surrounding quotes are removed. Variables already in
    the environment win unless ``override`` is set. Returns every pair parsed
    from the file.
    """
    env_path = Path(path)
    loaded: dict[str, str] = {}
    if not env_path.exists():
        return loaded

    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = _unquote(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value
        loaded[key] = value
    return loaded
