"""Tests for the Istio installer."""

from __future__ import annotations

import io
import tarfile

import pytest
import sh

from devcluster import mesh
from devcluster.mesh import (
    addon_urls,
    extract_istioctl,
    install_istioctl,
    install_mesh,
    resolve_istio_version,
)
from devcluster.utils import DownloadError

ADDONS_BASE = "https://raw.githubusercontent.com/istio/istio/master/samples/addons"


def _bundle(path, version: str, with_binary: bool = True):
    with tarfile.open(path, "w:gz") as tar:
        name = f"istio-{version}/bin/istioctl" if with_binary else f"istio-{version}/README.md"
        data = b"istioctl-binary"
        info = tarfile.TarInfo(name)
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
    return path


def test_addon_urls_in_install_order(config):
    assert addon_urls(config) == [
        f"{ADDONS_BASE}/prometheus.yaml",
        f"{ADDONS_BASE}/kiali.yaml",
        f"{ADDONS_BASE}/grafana.yaml",
        f"{ADDONS_BASE}/jaeger.yaml",
    ]


def test_install_mesh_command_sequence(fake_sh, config):
    install_mesh(config)
    ctx = ("--context", "kind-collage-cluster")
    assert fake_sh.command_lines() == [
        "istioctl install --context kind-collage-cluster --set profile=demo -y",
        "kubectl --context kind-collage-cluster label namespace default istio-injection=enabled --overwrite",
        *[f"kubectl {' '.join(ctx)} apply -f {url}" for url in addon_urls(config)],
        "kubectl --context kind-collage-cluster wait --for=condition=Ready pods --all "
        "-n istio-system --timeout=300s",
    ]


def test_mesh_wait_timeout_is_fatal(fake_sh, config):
    fake_sh.fail("kubectl", exit_code=1, when=lambda args: "wait" in args)
    with pytest.raises(sh.ErrorReturnCode) as excinfo:
        install_mesh(config)
    assert excinfo.value.exit_code == 1


def test_resolve_istio_version_strips_prefix(monkeypatch, config):
    monkeypatch.setattr(mesh, "fetch_json", lambda url, tools_cfg: {"tag_name": "v1.27.1"})
    assert resolve_istio_version(config.tools) == "1.27.1"


def test_resolve_istio_version_without_tag(monkeypatch, config):
    monkeypatch.setattr(mesh, "fetch_json", lambda url, tools_cfg: {"message": "rate limited"})
    with pytest.raises(DownloadError, match="No tag_name"):
        resolve_istio_version(config.tools)


def test_extract_istioctl(tmp_path):
    bundle = _bundle(tmp_path / "istio.tar.gz", "1.27.1")
    out = tmp_path / "out"
    out.mkdir()
    binary = extract_istioctl(bundle, "1.27.1", out)
    assert binary.read_bytes() == b"istioctl-binary"


def test_extract_istioctl_missing_member(tmp_path):
    bundle = _bundle(tmp_path / "istio.tar.gz", "1.27.1", with_binary=False)
    with pytest.raises(DownloadError, match="does not contain"):
        extract_istioctl(bundle, "1.27.1", tmp_path)


def test_install_istioctl_skipped_when_present(fake_sh, config, monkeypatch):
    monkeypatch.setattr(mesh, "fetch_json", lambda *a: pytest.fail("no lookup expected"))
    install_istioctl(config)


def test_install_istioctl_latest(fake_sh, config, monkeypatch):
    fake_sh.missing.add("istioctl")
    monkeypatch.setattr(mesh, "fetch_json", lambda url, tools_cfg: {"tag_name": "1.27.1"})
    monkeypatch.setattr(mesh, "istio_platform", lambda: ("linux", "amd64"))
    fetched = []

    def _download(url, dest, tools_cfg):
        fetched.append(url)
        return _bundle(dest, "1.27.1")

    def _install(src, name, bin_dir):
        assert src.read_bytes() == b"istioctl-binary"
        fake_sh.missing.discard(name)
        return bin_dir / name

    monkeypatch.setattr(mesh, "download_file", _download)
    monkeypatch.setattr(mesh, "install_binary", _install)
    install_istioctl(config)
    assert fetched == [
        "https://github.com/istio/istio/releases/download/1.27.1/istio-1.27.1-linux-amd64.tar.gz",
    ]


def test_install_istioctl_pinned_version_skips_lookup(fake_sh, monkeypatch, tmp_path):
    from devcluster.config import resolve_config

    cfg = resolve_config(bin_dir=tmp_path, istio_version="1.22.3")
    fake_sh.missing.add("istioctl")
    monkeypatch.setattr(mesh, "fetch_json", lambda *a: pytest.fail("no lookup expected"))
    monkeypatch.setattr(mesh, "download_file", lambda url, dest, tools_cfg: _bundle(dest, "1.22.3"))

    def _install(src, name, bin_dir):
        fake_sh.missing.discard(name)
        return bin_dir / name

    monkeypatch.setattr(mesh, "install_binary", _install)
    install_istioctl(cfg)
    assert "istioctl" not in fake_sh.missing


def test_extract_istioctl_rejects_html_body(tmp_path):
    bundle = tmp_path / "istio.tar.gz"
    bundle.write_bytes(b"<html>not a tarball</html>")
    with pytest.raises(DownloadError, match="not a valid Istio bundle"):
        extract_istioctl(bundle, "1.27.1", tmp_path)


def test_extract_istioctl_rejects_truncated_bundle(tmp_path):
    bundle = _bundle(tmp_path / "istio.tar.gz", "1.27.1")
    data = bundle.read_bytes()
    bundle.write_bytes(data[: len(data) // 2])
    out = tmp_path / "out"
    out.mkdir()
    with pytest.raises(DownloadError, match="not a valid Istio bundle"):
        extract_istioctl(bundle, "1.27.1", out)


def test_corrupt_bundle_fails_mesh_step(fake_sh, config, monkeypatch):
    from devcluster.components import install_database
    from devcluster.orchestrator import StepStatus, run_steps

    fake_sh.missing.add("istioctl")
    monkeypatch.setattr(mesh, "fetch_json", lambda url, tools_cfg: {"tag_name": "1.27.1"})

    def _download(url, dest, tools_cfg):
        dest.write_bytes(b"<html>not a tarball</html>")
        return dest

    monkeypatch.setattr(mesh, "download_file", _download)
    report = run_steps(config, [("mesh", install_mesh), ("database", install_database)])
    assert [(r.name, r.status) for r in report.results] == [
        ("mesh", StepStatus.FAILED),
        ("database", StepStatus.SKIPPED),
    ]
    assert "not a valid Istio bundle" in report.failed_step.detail
    assert report.exit_code == 1
    assert fake_sh.invocations("istioctl") == []
