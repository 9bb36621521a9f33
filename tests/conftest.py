import io
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pytest
import yaml

from helm_git.helm.client import ChartMetadata


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("helm_git")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


# git fixtures


def pytest_collection_modifyitems(config, items):
    if shutil.which("git") is not None:
        return
    skip_git = pytest.mark.skip(reason="git binary not available")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_git)


GIT_IDENTITY = [
    "-c",
    "user.name=helm-git tests",
    "-c",
    "user.email=tests@helm-git.invalid",
    "-c",
    "commit.gpgsign=false",
    "-c",
    "tag.gpgsign=false",
]

CHART_YAML = """apiVersion: v2
name: {name}
version: {version}
"""


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@dataclass
class RemoteRepo:
    """A local repository standing in for a remote one."""

    path: Path
    commit: str
    feature_commit: str

    @property
    def url(self) -> str:
        return self.path.as_uri()

    def uri(self, sub_path: str, query: str = "") -> str:
        uri = f"git+{self.url}@{sub_path}"
        return f"{uri}?{query}" if query else uri

    def tag_tree(self, tag: str, files: Dict[str, str]) -> str:
        """Commit ``files`` on top of master on a side branch and tag it."""
        run_git(self.path, "checkout", "--quiet", "-b", f"release-{tag}")
        for name, content in files.items():
            path = self.path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        run_git(self.path, "add", ".")
        run_git(self.path, "commit", "--quiet", "-m", f"Release {tag}")
        run_git(self.path, "tag", tag)
        commit = run_git(self.path, "rev-parse", "HEAD")
        run_git(self.path, "checkout", "--quiet", "master")
        return commit


@pytest.fixture
def remote_repo(tmp_path) -> RemoteRepo:
    """
    Repository with two charts, on master:

        README.md
        charts/app/Chart.yaml       (app 1.0.0)
        charts/app/values.yaml
        charts/other/Chart.yaml     (other 0.1.0)

    plus a lightweight tag v1.0.0, an annotated tag v1.1.0 and a branch
    ``feature`` adding charts/app/templates/configmap.yaml.
    """
    path = tmp_path / "remote" / "org" / "charts"
    path.mkdir(parents=True)
    run_git(path, "init", "--quiet")
    run_git(path, "symbolic-ref", "HEAD", "refs/heads/master")
    run_git(path, "config", "uploadpack.allowAnySHA1InWant", "true")

    (path / "README.md").write_text("# charts\n")
    for name, version in (("app", "1.0.0"), ("other", "0.1.0")):
        chart_dir = path / "charts" / name
        chart_dir.mkdir(parents=True)
        (chart_dir / "Chart.yaml").write_text(
            CHART_YAML.format(name=name, version=version)
        )
    (path / "charts" / "app" / "values.yaml").write_text("replicas: 1\n")
    run_git(path, "add", ".")
    run_git(path, "commit", "--quiet", "-m", "Add charts")
    commit = run_git(path, "rev-parse", "HEAD")

    run_git(path, "tag", "v1.0.0")
    run_git(path, "tag", "-a", "v1.1.0", "-m", "Release 1.1.0")

    run_git(path, "checkout", "--quiet", "-b", "feature")
    templates = path / "charts" / "app" / "templates"
    templates.mkdir()
    (templates / "configmap.yaml").write_text("kind: ConfigMap\n")
    run_git(path, "add", ".")
    run_git(path, "commit", "--quiet", "-m", "Add configmap")
    feature_commit = run_git(path, "rev-parse", "HEAD")
    run_git(path, "checkout", "--quiet", "master")

    return RemoteRepo(path=path, commit=commit, feature_commit=feature_commit)


# helm fixtures


@dataclass
class FakeHelm:
    """Stands in for HelmClient, recording every call."""

    calls: List[tuple] = field(default_factory=list)

    def inspect(self, chart_path: Path) -> ChartMetadata:
        self.calls.append(("inspect", chart_path))
        chart = yaml.safe_load((chart_path / "Chart.yaml").read_text())
        return ChartMetadata(name=chart["name"], version=str(chart["version"]))

    def dependency_update(self, chart_path: Path) -> None:
        self.calls.append(("dependency", chart_path))

    def package(self, chart_path: Path, destination: Path) -> None:
        self.calls.append(("package", chart_path))
        chart = yaml.safe_load((chart_path / "Chart.yaml").read_text())
        artifact = destination / f"{chart['name']}-{chart['version']}.tgz"
        artifact.write_bytes(f"{chart['name']} archive".encode())

    def repo_index(self, target_path: Path, base_url: str) -> None:
        self.calls.append(("index", target_path))
        entries = sorted(p.name for p in target_path.glob("*.tgz"))
        index = {"apiVersion": "v1", "baseUrl": base_url, "entries": entries}
        (target_path / "index.yaml").write_text(yaml.safe_dump(index))

    def steps(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_helm() -> FakeHelm:
    return FakeHelm()
