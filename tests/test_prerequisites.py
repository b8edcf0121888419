"""Tests for the prerequisite checker."""

from __future__ import annotations

import docker
import pytest

from devcluster import prerequisites
from devcluster.prerequisites import check_docker_daemon, check_prerequisites
from devcluster.utils import PrerequisiteError


@pytest.fixture
def fake_downloads(monkeypatch, fake_sh):
    """Record downloads and make installed tools resolve on PATH afterwards."""
    fetched: list[str] = []

    def _download(url, dest, tools_cfg):
        fetched.append(url)
        dest.write_bytes(b"#!/bin/sh\n")
        return dest

    def _install(src, name, bin_dir):
        fake_sh.missing.discard(name)
        return bin_dir / name

    monkeypatch.setattr(prerequisites, "download_file", _download)
    monkeypatch.setattr(prerequisites, "install_binary", _install)
    return fetched


@pytest.mark.parametrize("tool", ["docker", "kubectl"])
def test_missing_required_tool_aborts(fake_sh, docker_ok, config, tool):
    fake_sh.missing.add(tool)
    with pytest.raises(PrerequisiteError, match=f"{tool} is not installed"):
        check_prerequisites(config)
    assert fake_sh.command_lines() == []


def test_all_tools_present_installs_nothing(fake_sh, docker_ok, fake_downloads, config):
    check_prerequisites(config)
    assert fake_downloads == []
    assert fake_sh.command_lines() == []


def test_missing_kind_is_downloaded(fake_sh, docker_ok, fake_downloads, config, monkeypatch):
    monkeypatch.setattr(prerequisites, "detect_platform", lambda: ("linux", "amd64"))
    fake_sh.missing.add("kind")
    check_prerequisites(config)
    assert fake_downloads == ["https://kind.sigs.k8s.io/dl/latest/kind-linux-amd64"]
    assert "kind" not in fake_sh.missing


def test_missing_helm_runs_installer_script(fake_sh, docker_ok, fake_downloads, config):
    fake_sh.missing.add("helm")

    def _bash(script, _env=None):
        assert _env["HELM_INSTALL_DIR"] == str(config.tools.bin_dir)
        fake_sh.missing.discard("helm")
        return ""

    fake_sh.on("bash", _bash)
    check_prerequisites(config)
    assert fake_downloads == ["https://raw.githubusercontent.com/helm/helm/main/scripts/get-helm-3"]
    assert len(fake_sh.invocations("bash")) == 1


def test_tool_still_missing_after_install_is_an_error(fake_sh, docker_ok, config, monkeypatch):
    fake_sh.missing.add("kind")
    monkeypatch.setattr(prerequisites, "install_kind", lambda tools_cfg: None)
    monkeypatch.setitem(prerequisites._INSTALLERS, "kind", lambda tools_cfg: None)
    with pytest.raises(PrerequisiteError, match="not on PATH"):
        check_prerequisites(config)


def test_docker_daemon_unreachable(monkeypatch):
    def _from_env():
        raise docker.errors.DockerException("connection refused")

    monkeypatch.setattr("devcluster.prerequisites.docker.from_env", _from_env)
    with pytest.raises(PrerequisiteError, match="Cannot connect to the Docker daemon"):
        check_docker_daemon()


def test_docker_daemon_ping_failure_closes_client(monkeypatch):
    closed = []

    class _Client:
        def ping(self):
            raise docker.errors.APIError("500 Server Error")

        def close(self):
            closed.append(True)

    monkeypatch.setattr("devcluster.prerequisites.docker.from_env", lambda: _Client())
    with pytest.raises(PrerequisiteError, match="not responding"):
        check_docker_daemon()
    assert closed == [True]
