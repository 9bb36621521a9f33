"""
Cache of complete requests, keyed by the raw URI.

    $HELM_GIT_CHART_CACHE/
    └── <md5 of the raw URI>/
        ├── index.yaml          # the file that was requested
        └── app-1.0.0.tgz       # whatever else the pipeline produced

Entries are built in a staging directory next to them and renamed into place
once the whole pipeline succeeded, so a failed request never leaves an entry
behind. URIs are not normalized: the same request with its query parameters
in another order is another entry.

Concurrency: there is no locking. Two processes computing the same entry
both do the work and the last rename wins.
"""

import hashlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

from helm_git.workspace import Workspace

logger = logging.getLogger(__name__)

Compute = Callable[[Path], bytes]


def request_hash(raw_uri: str) -> str:
    return hashlib.md5(raw_uri.encode("utf-8")).hexdigest()


class RequestCache:
    """
    Memoizes the bytes served for a raw request URI.

    ``compute`` receives the directory to produce its files in and returns
    the bytes of the requested file. With caching enabled that directory
    becomes the cache entry; otherwise it is a scratch directory of the
    request's workspace.
    """

    def __init__(self, root: Optional[Path] = None):
        self.root = self._prepare_root(root)

    @staticmethod
    def _prepare_root(root: Optional[Path]) -> Optional[Path]:
        if root is None:
            return None
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.debug(f"HELM_GIT_CHART_CACHE:{root} is not usable, cannot cache: {e}")
            return None
        return root

    @property
    def enabled(self) -> bool:
        return self.root is not None

    def entry_path(self, raw_uri: str) -> Optional[Path]:
        if self.root is None:
            return None
        return self.root / request_hash(raw_uri)

    def get(self, raw_uri: str, file_name: str) -> Optional[bytes]:
        entry = self.entry_path(raw_uri)
        if entry is None:
            return None

        cached_file = entry / file_name
        if cached_file.is_file():
            logger.debug(f"Returning cached helm request for {raw_uri}: {cached_file}")
            return cached_file.read_bytes()
        logger.debug(f"Helm request not found in cache {cached_file}")
        return None

    def get_or_compute(
        self, raw_uri: str, file_name: str, compute: Compute, workspace: Workspace
    ) -> bytes:
        cached = self.get(raw_uri, file_name)
        if cached is not None:
            return cached

        if self.root is None:
            return compute(workspace.mkdtemp())

        entry = self.root / request_hash(raw_uri)
        try:
            staging = Path(tempfile.mkdtemp(prefix=f".{entry.name}.", dir=self.root))
        except OSError as e:
            logger.debug(f"Cannot stage cache entry in {self.root}: {e}")
            return compute(workspace.mkdtemp())

        try:
            content = compute(staging)
            self._promote(staging, entry, file_name, content)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        return content

    @staticmethod
    def _promote(staging: Path, entry: Path, file_name: str, content: bytes) -> None:
        try:
            output_file = staging / file_name
            if not output_file.exists():
                output_file.write_bytes(content)

            if entry.exists():
                shutil.rmtree(entry)
            staging.rename(entry)
        except OSError as e:
            logger.debug(f"Could not store {entry} in cache: {e}")
            return
        logger.debug(f"Cached helm request in {entry}")
