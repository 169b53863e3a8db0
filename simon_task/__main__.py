from __future__ import annotations

import logging
import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    If this module is executed as a script (``python simon_task/__main__.py``),
    the package may not be discoverable by Python. This helper inserts the
    parent directory of the package into ``sys.path`` so that imports resolve
    correctly.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root = pkg_dir.parent
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # Works when executed as a module: python -m simon_task
    from .app import run  # type: ignore[attr-defined]
except ImportError:
    # Works when executed as a script (absolute path, IDE "Run Python File", etc.)
    _ensure_repo_root_on_path()
    from simon_task.app import run  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for running the task from the command line."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
