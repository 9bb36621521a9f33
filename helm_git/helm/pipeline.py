"""
Package and index the charts of a checked out tree.

For every Chart.yaml found at most one directory below the search root:

    1. ``helm show chart`` gives the chart name and version
    2. ``helm dependency update`` (depupdate=1)
    3. ``helm package`` of a scratch copy of the chart (package=1)

then ``helm repo index`` over the target directory, with the canonical URI
of the request as base URL so charts are fetched again at the same ref.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from helm_git.exceptions import NoChartsFoundError
from helm_git.model.uri import FetchDescriptor
from helm_git.workspace import Workspace

from .client import HelmClient

logger = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"


@dataclass
class ChartCandidate:
    definition_path: Path
    name: str
    version: str
    artifact_path: Optional[Path] = None

    @property
    def chart_path(self) -> Path:
        return self.definition_path.parent


def discover_charts(search_root: Path) -> List[Path]:
    """Chart.yaml files in ``search_root`` and its direct subdirectories."""
    if not search_root.is_dir():
        return []
    found = [search_root / CHART_FILE] + sorted(search_root.glob(f"*/{CHART_FILE}"))
    return [path for path in found if path.is_file()]


def package_chart(
    helm: HelmClient, chart: ChartCandidate, target_path: Path, workspace: Workspace
) -> Path:
    """
    Package ``chart`` into ``target_path``.

    The chart is copied first, following symlinks, so build artifacts never
    land in the checked out tree.
    """
    source_path = workspace.mkdtemp() / chart.name
    shutil.copytree(chart.chart_path, source_path, symlinks=False)
    helm.package(source_path, target_path)
    return target_path / f"{chart.name}-{chart.version}.tgz"


def run_pipeline(
    search_root: Path,
    target_path: Path,
    descriptor: FetchDescriptor,
    helm: HelmClient,
    workspace: Workspace,
) -> List[ChartCandidate]:
    """
    Package every chart under ``search_root`` into ``target_path`` and index it.

    Raises:
        NoChartsFoundError: if there is no Chart.yaml to work on
        ToolFailureError: if any helm step fails
    """
    definitions = discover_charts(search_root)
    if not definitions:
        raise NoChartsFoundError(str(search_root))
    logger.debug(f"Found {len(definitions)} charts in {search_root}")

    charts = []
    for definition_path in definitions:
        metadata = helm.inspect(definition_path.parent)
        chart = ChartCandidate(
            definition_path=definition_path,
            name=metadata.name,
            version=metadata.version,
        )
        logger.debug(f"Processing chart {chart.name} at {chart.chart_path}")

        if descriptor.dependency_update:
            helm.dependency_update(chart.chart_path)
        if descriptor.package:
            chart.artifact_path = package_chart(helm, chart, target_path, workspace)
        charts.append(chart)

    helm.repo_index(target_path, descriptor.canonical_uri)
    return charts
