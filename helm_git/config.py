"""Runtime configuration, read once from the environment"""

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

APP_NAME = "helm-git"

DEFAULT_HELM_BIN = "helm"

# HELM_BIN values set by tools that embed helm rather than the helm binary itself
_FOREIGN_HELM_BINS = ("terraform-provider-helm", "diff")


def _flag(value: Optional[str]) -> bool:
    return value == "1"


def _optional_dir(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value).expanduser()


def resolve_helm_bin(environ: Mapping[str, str]) -> str:
    """
    Pick the helm binary to drive.

    HELM_GIT_HELM_BIN always wins. HELM_BIN is used when it looks like a real
    helm binary; when helm is embedded (terraform provider, helm-diff) it
    points at the host program instead, so we fall back to ``helm``.
    """
    override = environ.get("HELM_GIT_HELM_BIN")
    if override:
        return override

    helm_bin = environ.get("HELM_BIN", "")
    if not helm_bin or any(name in helm_bin for name in _FOREIGN_HELM_BINS):
        return DEFAULT_HELM_BIN
    return helm_bin


def resolve_dependency_depth(environ: Mapping[str, str]) -> int:
    depth = environ.get("HELM_GIT_DEPENDENCY_DEPTH")
    if depth:
        try:
            return max(int(depth), 0)
        except ValueError:
            pass
    if environ.get("HELM_GIT_DEPENDENCY_CIRCUITBREAKER") == "true":
        return 1
    return 0


@dataclass(frozen=True)
class Config:
    """
    Immutable plugin configuration.

    Built once per invocation with :meth:`from_env` and handed to every
    component explicitly.

    Attributes:
        repo_cache_dir: Root of the bare mirror cache, None disables it
        chart_cache_dir: Root of the request result cache, None disables it
        tmp_dir: Root for scratch directories
        debug: Emit debug messages
        trace: Also log the output of git and helm
        helm_bin: Helm binary to invoke
        dependency_depth: How many helm-git invocations are above this one
    """

    repo_cache_dir: Optional[Path] = None
    chart_cache_dir: Optional[Path] = None
    tmp_dir: Path = Path(tempfile.gettempdir())
    debug: bool = False
    trace: bool = False
    helm_bin: str = DEFAULT_HELM_BIN
    dependency_depth: int = 0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        if environ is None:
            environ = os.environ

        trace = _flag(environ.get("HELM_GIT_TRACE"))
        tmp_dir = environ.get("TMPDIR") or tempfile.gettempdir()

        return cls(
            repo_cache_dir=_optional_dir(environ.get("HELM_GIT_REPO_CACHE")),
            chart_cache_dir=_optional_dir(environ.get("HELM_GIT_CHART_CACHE")),
            tmp_dir=Path(tmp_dir),
            debug=trace or _flag(environ.get("HELM_GIT_DEBUG")),
            trace=trace,
            helm_bin=resolve_helm_bin(environ),
            dependency_depth=resolve_dependency_depth(environ),
        )

    def with_debug(self, debug: bool) -> "Config":
        return replace(self, debug=debug or self.trace)
