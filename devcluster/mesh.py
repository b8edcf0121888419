# /*
# Copyright 2026 The devcluster Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""istioctl installation, Istio control plane, and observability add-ons."""

from __future__ import annotations

import tarfile
import tempfile
from pathlib import Path

import sh
from rich.panel import Panel

from devcluster import console, logger
from devcluster.config import BringupConfig, ToolsConfig
from devcluster.constants import (
    ISTIO_BUNDLE_URL,
    ISTIO_INJECTION_LABEL,
    ISTIO_LATEST_RELEASE_API,
)
from devcluster.utils import (
    DownloadError,
    PrerequisiteError,
    command_exists,
    download_file,
    fetch_json,
    install_binary,
    istio_platform,
)


# ============================================================================
# istioctl
# ============================================================================

def resolve_istio_version(tools_cfg: ToolsConfig) -> str:
    """Ask the GitHub releases API for the newest Istio release tag.

    Args:
        tools_cfg: Tool settings with HTTP timeout and retry count.

    Returns:
        Version string such as ``1.27.1``.

    Raises:
        DownloadError: If the API response carries no tag.
    """
    release = fetch_json(ISTIO_LATEST_RELEASE_API, tools_cfg)
    tag = release.get("tag_name")
    if not tag:
        raise DownloadError(f"No tag_name in latest Istio release from {ISTIO_LATEST_RELEASE_API}")
    return tag.lstrip("v")


def istio_bundle_url(version: str) -> str:
    """Build the release bundle URL for *version* on this host's platform."""
    system, arch = istio_platform()
    return ISTIO_BUNDLE_URL.format(version=version, os=system, arch=arch)


def extract_istioctl(bundle: Path, version: str, dest_dir: Path) -> Path:
    """Pull ``istio-<version>/bin/istioctl`` out of a release bundle.

    Args:
        bundle: Downloaded ``.tar.gz`` release bundle.
        version: Istio version the bundle was built for.
        dest_dir: Directory the binary is extracted into.

    Returns:
        Path of the extracted binary.

    Raises:
        DownloadError: If the bundle is not a readable gzip tarball or has no
            istioctl member.
    """
    member_name = f"istio-{version}/bin/istioctl"
    target = dest_dir / "istioctl"
    try:
        with tarfile.open(bundle, "r:gz") as tar:
            try:
                member = tar.getmember(member_name)
            except KeyError as err:
                raise DownloadError(f"{bundle.name} does not contain {member_name}") from err
            src = tar.extractfile(member)
            if src is None:
                raise DownloadError(f"{member_name} in {bundle.name} is not a regular file")
            with src, open(target, "wb") as out:
                out.write(src.read())
    except (tarfile.TarError, EOFError) as err:
        raise DownloadError(f"{bundle.name} is not a valid Istio bundle: {err}") from err
    return target


def install_istioctl(config: BringupConfig) -> None:
    """Download istioctl into the tool directory unless it is already present.

    Args:
        config: Bring-up configuration with the pinned Istio version (if any)
            and tool settings.
    """
    if command_exists("istioctl"):
        return
    version = config.mesh.istio_version or resolve_istio_version(config.tools)
    url = istio_bundle_url(version)
    console.print(f"[yellow]\u26a0\ufe0f  istioctl is not installed. Installing Istio {version}...[/yellow]")
    with tempfile.TemporaryDirectory() as tmp:
        bundle = download_file(url, Path(tmp) / f"istio-{version}.tar.gz", config.tools)
        binary = extract_istioctl(bundle, version, Path(tmp))
        dest = install_binary(binary, "istioctl", config.tools.bin_dir)
    if not command_exists("istioctl"):
        raise PrerequisiteError(f"istioctl was installed to {config.tools.bin_dir} but is not on PATH")
    console.print(f"[green]\u2705 istioctl {version} installed to {dest}[/green]")


# ============================================================================
# Mesh
# ============================================================================

def addon_urls(config: BringupConfig) -> list[str]:
    """Return the manifest URL of every configured add-on, in install order."""
    base = config.mesh.istio_addons_base_url.rstrip("/")
    return [f"{base}/{name}.yaml" for name in config.mesh.istio_addons]


def install_control_plane(config: BringupConfig) -> None:
    """Install the Istio control plane with the configured profile."""
    profile = config.mesh.istio_profile
    console.print(f"[yellow]\u2139\ufe0f  Installing Istio control plane (profile: {profile})...[/yellow]")
    sh.istioctl(
        "install",
        "--context", config.cluster.kube_context,
        "--set", f"profile={profile}",
        "-y",
    )
    console.print("[green]\u2705 Istio control plane installed[/green]")


def enable_sidecar_injection(config: BringupConfig) -> None:
    """Label the injection namespace so new pods get an Envoy sidecar."""
    namespace = config.mesh.injection_namespace
    sh.kubectl(
        "--context", config.cluster.kube_context,
        "label", "namespace", namespace, ISTIO_INJECTION_LABEL, "--overwrite",
    )
    console.print(f"[green]\u2705 Sidecar injection enabled for namespace '{namespace}'[/green]")


def apply_addons(config: BringupConfig) -> None:
    """Apply the observability add-on manifests by URL."""
    for url in addon_urls(config):
        logger.info("Applying Istio add-on %s", url)
        sh.kubectl("--context", config.cluster.kube_context, "apply", "-f", url)
    console.print(f"[green]\u2705 Applied {len(config.mesh.istio_addons)} Istio add-ons[/green]")


def wait_for_mesh(config: BringupConfig) -> None:
    """Wait for every pod in the mesh namespace to be ready.

    Raises:
        sh.ErrorReturnCode: If kubectl gives up, including on timeout.
    """
    namespace = config.mesh.istio_namespace
    timeout = config.mesh.mesh_ready_timeout
    console.print(f"[yellow]\u2139\ufe0f  Waiting up to {timeout}s for pods in '{namespace}' to be ready...[/yellow]")
    sh.kubectl(
        "--context", config.cluster.kube_context,
        "wait", "--for=condition=Ready", "pods", "--all",
        "-n", namespace, f"--timeout={timeout}s",
    )
    console.print("[green]\u2705 Istio components are ready[/green]")


def install_mesh(config: BringupConfig) -> None:
    """Install istioctl if needed, then the control plane, injection label and add-ons.

    Args:
        config: Bring-up configuration.
    """
    console.print(Panel.fit("Installing Istio", style="bold blue"))
    install_istioctl(config)
    install_control_plane(config)
    enable_sidecar_injection(config)
    apply_addons(config)
    wait_for_mesh(config)
