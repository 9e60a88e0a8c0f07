from __future__ import annotations

import sys
from pathlib import Path


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _ensure_sys_path() -> None:
    root = str(_project_root())
    if root not in sys.path:
        sys.path.insert(0, root)


_ensure_sys_path()
