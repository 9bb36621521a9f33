"""Request-scoped scratch directories"""

import logging
import shutil
import signal
import tempfile
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

TMP_PREFIX = "helm-git."


class Workspace:
    """
    Registry of the temporary directories of one request.

    Every directory handed out by :meth:`mkdtemp` is removed when the
    workspace is closed, whether the request succeeded or not. Directories
    that must outlive the request (promoted into the request cache) are
    never created through a workspace.

    Usage:
        with Workspace(config.tmp_dir) as workspace:
            checkout_dir = workspace.mkdtemp()
    """

    def __init__(self, root: Path):
        self.root = root
        self._paths: List[Path] = []

    def mkdtemp(self) -> Path:
        path = Path(tempfile.mkdtemp(prefix=TMP_PREFIX, dir=self.root))
        self._paths.append(path)
        logger.debug(f"Created scratch directory {path}")
        return path

    def cleanup(self) -> None:
        while self._paths:
            path = self._paths.pop()
            shutil.rmtree(path, ignore_errors=True)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.cleanup()


def _exit_on_signal(signum, frame):
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """
    Turn SIGTERM and SIGHUP into SystemExit.

    The exception unwinds through open workspaces so their directories are
    removed; SIGINT already does so through KeyboardInterrupt.
    """
    for signum in (signal.SIGTERM, signal.SIGHUP):
        signal.signal(signum, _exit_on_signal)
