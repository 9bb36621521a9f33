"""Thin wrapper around the helm binary"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

import yaml

from helm_git.exceptions import ToolFailureError

logger = logging.getLogger(__name__)
trace_logger = logging.getLogger("helm_git.trace")

DEPTH_ENV = "HELM_GIT_DEPENDENCY_DEPTH"


@dataclass(frozen=True)
class ChartMetadata:
    name: str
    version: str


class HelmClient:
    """
    Runs helm as a child process.

    ``dependency_depth`` counts the helm-git invocations above this one.
    Each helm child gets depth + 1 in its environment, so a helm-git started
    by ``helm dependency update`` knows it is nested and skips the repository
    refresh that would start it again.
    """

    def __init__(self, helm_bin: str = "helm", dependency_depth: int = 0):
        self.helm_bin = helm_bin
        self.dependency_depth = dependency_depth

    def _env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env[DEPTH_ENV] = str(self.dependency_depth + 1)
        return env

    def _run(self, step: str, path: Path, args: List[str]) -> str:
        command = [self.helm_bin] + args
        logger.debug(f"Running {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                text=True,
                capture_output=True,
                check=False,
                env=self._env(),
            )
        except OSError as e:
            raise ToolFailureError(step, str(path), str(e)) from e

        if result.stdout:
            trace_logger.debug(result.stdout.rstrip())
        if result.returncode != 0:
            logger.debug(f"helm {step} failed on {path}:\n{result.stderr.rstrip()}")
            raise ToolFailureError(step, str(path), result.stderr.strip())
        return result.stdout

    def inspect(self, chart_path: Path) -> ChartMetadata:
        """Read name and version of the chart at ``chart_path``."""
        output = self._run("inspect", chart_path, ["show", "chart", str(chart_path)])
        try:
            chart = yaml.safe_load(output)
        except yaml.YAMLError as e:
            raise ToolFailureError("inspect", str(chart_path), str(e)) from e

        if not isinstance(chart, dict) or not chart.get("name"):
            raise ToolFailureError("inspect", str(chart_path), "chart has no name")
        return ChartMetadata(
            name=str(chart["name"]), version=str(chart.get("version", ""))
        )

    def dependency_update(self, chart_path: Path) -> None:
        args = ["dependency", "update"]
        if self.dependency_depth > 0:
            args.append("--skip-refresh")
        args.append(str(chart_path))
        self._run("dependency", chart_path, args)

    def package(self, chart_path: Path, destination: Path) -> None:
        self._run(
            "package",
            chart_path,
            ["package", "--destination", str(destination), str(chart_path)],
        )

    def repo_index(self, target_path: Path, base_url: str) -> None:
        self._run(
            "index",
            target_path,
            ["repo", "index", f"--url={base_url}", str(target_path)],
        )
