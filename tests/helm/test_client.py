"""Tests for the helm subprocess wrapper."""

import logging
import os
import subprocess
from pathlib import Path

import pytest

from helm_git.exceptions import ToolFailureError
from helm_git.helm import client as helm_client
from helm_git.helm.client import ChartMetadata, HelmClient


class FakeRun:
    """Replacement for subprocess.run returning canned results."""

    def __init__(self, stdout="", returncode=0, stderr=""):
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr
        self.commands = []
        self.envs = []

    def __call__(self, command, **kwargs):
        self.commands.append(command)
        self.envs.append(kwargs.get("env"))
        return subprocess.CompletedProcess(
            command, self.returncode, stdout=self.stdout, stderr=self.stderr
        )


@pytest.fixture
def fake_run(monkeypatch):
    run = FakeRun()
    monkeypatch.setattr(helm_client.subprocess, "run", run)
    return run


@pytest.mark.short
class TestInspect:
    def test_reads_name_and_version(self, fake_run):
        fake_run.stdout = "apiVersion: v2\nname: app\nversion: 1.2.3\n"

        metadata = HelmClient("helm").inspect(Path("/charts/app"))

        assert metadata == ChartMetadata(name="app", version="1.2.3")
        assert fake_run.commands == [["helm", "show", "chart", "/charts/app"]]

    def test_chart_without_name(self, fake_run):
        fake_run.stdout = "apiVersion: v2\nversion: 1.2.3\n"

        with pytest.raises(ToolFailureError) as excinfo:
            HelmClient().inspect(Path("/charts/app"))

        assert excinfo.value.step == "inspect"

    def test_failure(self, fake_run):
        fake_run.returncode = 1
        fake_run.stderr = "Error: Chart.yaml file is missing"

        with pytest.raises(ToolFailureError, match="Chart.yaml file is missing") as excinfo:
            HelmClient().inspect(Path("/charts/app"))

        assert excinfo.value.step == "inspect"
        assert excinfo.value.path == "/charts/app"


@pytest.mark.short
class TestDependencyUpdate:
    def test_top_level_refreshes_repositories(self, fake_run):
        HelmClient("helm", dependency_depth=0).dependency_update(Path("/charts/app"))

        assert fake_run.commands == [["helm", "dependency", "update", "/charts/app"]]

    def test_nested_call_skips_refresh(self, fake_run):
        HelmClient("helm", dependency_depth=1).dependency_update(Path("/charts/app"))

        assert fake_run.commands == [
            ["helm", "dependency", "update", "--skip-refresh", "/charts/app"]
        ]

    def test_children_get_next_depth(self, fake_run, monkeypatch):
        monkeypatch.delenv("HELM_GIT_DEPENDENCY_DEPTH", raising=False)

        HelmClient("helm", dependency_depth=2).dependency_update(Path("/charts/app"))

        assert fake_run.envs[0]["HELM_GIT_DEPENDENCY_DEPTH"] == "3"

    def test_process_environment_is_untouched(self, fake_run, monkeypatch):
        monkeypatch.delenv("HELM_GIT_DEPENDENCY_DEPTH", raising=False)

        HelmClient().dependency_update(Path("/charts/app"))

        assert "HELM_GIT_DEPENDENCY_DEPTH" not in os.environ

    def test_failure(self, fake_run):
        fake_run.returncode = 1

        with pytest.raises(ToolFailureError) as excinfo:
            HelmClient().dependency_update(Path("/charts/app"))

        assert excinfo.value.step == "dependency"

    def test_failure_message_is_one_line(self, fake_run, caplog):
        fake_run.returncode = 1
        fake_run.stderr = (
            "Hang tight while we grab the latest from your chart repositories...\n"
            "Saving 1 charts\n"
            "Error: could not find dependency redis\n"
            "\n"
        )

        with caplog.at_level(logging.DEBUG, logger="helm_git"):
            with pytest.raises(ToolFailureError) as excinfo:
                HelmClient().dependency_update(Path("/charts/app"))

        assert str(excinfo.value) == (
            "Error while helm dependency on '/charts/app': "
            "Error: could not find dependency redis"
        )
        assert excinfo.value.details == fake_run.stderr.strip()
        assert "Saving 1 charts" in caplog.text


@pytest.mark.short
class TestPackageAndIndex:
    def test_package_command(self, fake_run):
        HelmClient("/opt/helm").package(Path("/tmp/x/app"), Path("/out"))

        assert fake_run.commands == [
            ["/opt/helm", "package", "--destination", "/out", "/tmp/x/app"]
        ]

    def test_index_command(self, fake_run):
        HelmClient().repo_index(Path("/out"), "git+https://h/o/r@charts?ref=v1")

        assert fake_run.commands == [
            ["helm", "repo", "index", "--url=git+https://h/o/r@charts?ref=v1", "/out"]
        ]

    @pytest.mark.parametrize(
        "method, args, step",
        [
            ("package", (Path("/c"), Path("/out")), "package"),
            ("repo_index", (Path("/out"), "git+https://h/o/r@c"), "index"),
        ],
    )
    def test_failures_name_the_step(self, fake_run, method, args, step):
        fake_run.returncode = 2

        with pytest.raises(ToolFailureError) as excinfo:
            getattr(HelmClient(), method)(*args)

        assert excinfo.value.step == step

    def test_missing_binary(self):
        client = HelmClient("/nonexistent/helm-binary")

        with pytest.raises(ToolFailureError) as excinfo:
            client.package(Path("/c"), Path("/out"))

        assert excinfo.value.step == "package"
