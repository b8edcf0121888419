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

"""Scratch directories and kind cluster lifecycle."""

from __future__ import annotations

import sh
from rich.panel import Panel

from devcluster import console, logger
from devcluster.config import BringupConfig
from devcluster.constants import SCRATCH_DIR_MODE, SCRATCH_ISTIO_DIR, SCRATCH_WORKER_DIR
from devcluster.topology import default_topology


# ============================================================================
# Scratch directories
# ============================================================================

def prepare_scratch_dirs(config: BringupConfig) -> None:
    """Create the host directories mounted into the kind nodes.

    Both directories and their root are opened up to every user because the
    node containers write to them with arbitrary UIDs.

    Args:
        config: Bring-up configuration with the scratch root.
    """
    console.print(Panel.fit("Creating scratch directories", style="bold blue"))
    root = config.cluster.scratch_root
    for sub in (SCRATCH_ISTIO_DIR, SCRATCH_WORKER_DIR):
        path = root / sub
        path.mkdir(parents=True, exist_ok=True)
        path.chmod(SCRATCH_DIR_MODE)
    root.chmod(SCRATCH_DIR_MODE)
    console.print(f"[green]\u2705 Scratch directories ready under {root}[/green]")


# ============================================================================
# Cluster operations
# ============================================================================

def list_clusters() -> list[str]:
    """Return the names of all kind clusters on this host."""
    output = str(sh.kind("get", "clusters"))
    return [line.strip() for line in output.splitlines() if line.strip()]


def cluster_exists(config: BringupConfig) -> bool:
    """Return True if a kind cluster with the configured name exists."""
    return config.cluster.cluster_name in list_clusters()


def delete_cluster(config: BringupConfig) -> None:
    """Delete the kind cluster, warning if there is nothing to delete.

    Args:
        config: Bring-up configuration with the cluster name.
    """
    name = config.cluster.cluster_name
    if not cluster_exists(config):
        console.print(f"[yellow]\u26a0\ufe0f  Cluster '{name}' not found or already deleted[/yellow]")
        return
    console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{name}'...[/yellow]")
    sh.kind("delete", "cluster", "--name", name)
    console.print(f"[green]\u2705 Cluster '{name}' deleted[/green]")


def create_cluster(config: BringupConfig) -> None:
    """Create the kind cluster, replacing any cluster with the same name.

    The topology descriptor is piped to kind on stdin and never written to
    disk.

    Args:
        config: Bring-up configuration with cluster name, networking and
            scratch root.
    """
    console.print(Panel.fit("Creating kind cluster", style="bold blue"))
    name = config.cluster.cluster_name
    if cluster_exists(config):
        console.print(f"[yellow]\u26a0\ufe0f  Cluster '{name}' already exists. Deleting...[/yellow]")
        sh.kind("delete", "cluster", "--name", name)

    descriptor = default_topology(config.cluster).render()
    logger.debug("kind cluster config:\n%s", descriptor)
    sh.kind("create", "cluster", "--config", "-", _in=descriptor)
    console.print(f"[green]\u2705 Cluster '{name}' created[/green]")


def wait_for_nodes(config: BringupConfig) -> None:
    """Wait for all nodes to be ready.

    Raises:
        sh.ErrorReturnCode: If kubectl gives up, including on timeout.
    """
    timeout = config.cluster.node_ready_timeout
    console.print(f"[yellow]\u2139\ufe0f  Waiting up to {timeout}s for all nodes to be ready...[/yellow]")
    sh.kubectl(
        "--context", config.cluster.kube_context,
        "wait", "--for=condition=Ready", "nodes", "--all", f"--timeout={timeout}s",
    )
    console.print("[green]\u2705 All nodes are ready[/green]")


def provision_cluster(config: BringupConfig) -> None:
    """Create the cluster and block until its nodes are ready."""
    create_cluster(config)
    wait_for_nodes(config)
