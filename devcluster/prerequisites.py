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

"""Host tool checks and installation of kind and helm."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import docker
import requests
import sh
from rich.panel import Panel

from devcluster import console, logger
from devcluster.config import BringupConfig, ToolsConfig
from devcluster.constants import (
    HELM_INSTALLER_URL,
    INSTALLABLE_TOOLS,
    KIND_DOWNLOAD_URL,
    REQUIRED_TOOLS,
)
from devcluster.utils import (
    PrerequisiteError,
    command_exists,
    detect_platform,
    download_file,
    install_binary,
    require_command,
)


def check_docker_daemon() -> None:
    """Ping the Docker daemon; kind cannot create nodes without it.

    Raises:
        PrerequisiteError: If the daemon is not reachable.
    """
    try:
        client = docker.from_env()
    except docker.errors.DockerException as err:
        raise PrerequisiteError(f"Cannot connect to the Docker daemon: {err}") from err
    try:
        client.ping()
    except (docker.errors.DockerException, requests.RequestException) as err:
        raise PrerequisiteError(f"Docker daemon is not responding: {err}") from err
    finally:
        client.close()


def install_kind(tools_cfg: ToolsConfig) -> None:
    """Download the latest kind release binary into the tool directory.

    Args:
        tools_cfg: Tool settings with install directory and download policy.
    """
    system, arch = detect_platform()
    url = KIND_DOWNLOAD_URL.format(os=system, arch=arch)
    console.print(f"[yellow]\u26a0\ufe0f  kind is not installed. Installing kind from {url}...[/yellow]")
    with tempfile.TemporaryDirectory() as tmp:
        binary = download_file(url, Path(tmp) / "kind", tools_cfg)
        dest = install_binary(binary, "kind", tools_cfg.bin_dir)
    console.print(f"[green]\u2705 kind installed to {dest}[/green]")


def install_helm(tools_cfg: ToolsConfig) -> None:
    """Run the upstream helm installer script.

    Args:
        tools_cfg: Tool settings with install directory and download policy.
    """
    console.print("[yellow]\u26a0\ufe0f  helm is not installed. Installing helm...[/yellow]")
    with tempfile.TemporaryDirectory() as tmp:
        script = download_file(HELM_INSTALLER_URL, Path(tmp) / "get_helm.sh", tools_cfg)
        script.chmod(0o700)
        env = {**os.environ, "HELM_INSTALL_DIR": str(tools_cfg.bin_dir)}
        logger.debug("Running %s with HELM_INSTALL_DIR=%s", script, tools_cfg.bin_dir)
        sh.bash(str(script), _env=env)
    console.print("[green]\u2705 helm installed[/green]")


_INSTALLERS = {
    "kind": install_kind,
    "helm": install_helm,
}


def ensure_tool(name: str, tools_cfg: ToolsConfig) -> None:
    """Install *name* if it is missing, then confirm it resolves on PATH.

    Raises:
        PrerequisiteError: If the tool is still not found after installation.
    """
    if command_exists(name):
        return
    _INSTALLERS[name](tools_cfg)
    if not command_exists(name):
        raise PrerequisiteError(
            f"{name} was installed to {tools_cfg.bin_dir} but is not on PATH"
        )


def check_prerequisites(config: BringupConfig) -> None:
    """Verify required tools and install the missing auto-installable ones.

    Docker and kubectl must already be present; kind and helm are fetched
    when absent.

    Args:
        config: Bring-up configuration.

    Raises:
        PrerequisiteError: If a required tool is missing or Docker is down.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in REQUIRED_TOOLS:
        require_command(cmd)
    check_docker_daemon()
    for cmd in INSTALLABLE_TOOLS:
        ensure_tool(cmd, config.tools)
    console.print("[green]\u2705 All required tools are available[/green]")
