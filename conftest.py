"""Pytest bootstrap: puts the local src package on `sys.path`.

Lets the tests run from a checkout without installing the package first.
"""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Iterable


def _extend_sys_path(paths: Iterable[Path]) -> None:
    """Prepend directories to `sys.path` once.

    Args:
        paths: Directories to put at the front of `sys.path`.
    """

    for p in paths:
        str_path = str(p)
        if str_path not in sys.path:
            sys.path.insert(0, str_path)


def _collect_src_paths(root: Path) -> list[Path]:
    """Collect local src directories.

    Args:
        root: Repository root.

    Returns:
        Existing src directories.
    """

    candidates: list[Path] = [
        root / "services" / "chat_router" / "src",
    ]
    return [p for p in candidates if p.exists()]


_extend_sys_path(_collect_src_paths(Path(__file__).parent.resolve()))
