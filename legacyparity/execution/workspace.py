"""Per-task isolated working directories

Every task gets its own uniquely named root directory, with one
sub-directory per program variant. A variant directory is wiped and
recreated before each build so nothing from a previous build (or another
task) can leak into the next one.
"""

import re
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional
import logging

from legacyparity.config import WORKSPACE_CONFIG

logger = logging.getLogger(__name__)


class TaskWorkspace:
    """
    Context manager owning the working directories of one task.

    Usage:
        with TaskWorkspace(task_id) as ws:
            legacy_dir = ws.fresh("legacy")
    """

    def __init__(self, task_id: str, base_dir: Optional[Path] = None,
                 keep: Optional[bool] = None):
        self.task_id = task_id
        self.base_dir = Path(base_dir or WORKSPACE_CONFIG["base_dir"])
        self.keep = WORKSPACE_CONFIG["keep_workspaces"] if keep is None else keep
        self.root: Optional[Path] = None
        self._variants: Dict[str, Path] = {}

    def __enter__(self) -> "TaskWorkspace":
        self.base_dir.mkdir(parents=True, exist_ok=True)
        safe_id = re.sub(r"[^A-Za-z0-9_.-]", "_", self.task_id)[:64]
        self.root = Path(tempfile.mkdtemp(prefix=f"lp-{safe_id}-", dir=self.base_dir))
        logger.info(f"Created workspace {self.root}")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False

    def fresh(self, variant: str) -> Path:
        """Return an empty directory for a variant, clearing any previous content"""
        if self.root is None:
            raise RuntimeError("Workspace is not open")
        path = self.root / variant
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True)
        self._variants[variant] = path
        return path

    def path(self, variant: str) -> Path:
        """Directory last handed out for a variant"""
        return self._variants[variant]

    def cleanup(self):
        if self.root is None:
            return
        if self.keep:
            logger.info(f"Keeping workspace {self.root}")
        else:
            shutil.rmtree(self.root, ignore_errors=True)
            logger.info(f"Removed workspace {self.root}")
        self.root = None
        self._variants = {}
