#!/usr/bin/env python3
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

"""
cli.py - Local development cluster bring-up.

Running ``devcluster`` with no subcommand (or ``devcluster up``) performs the
full bring-up: prerequisites, scratch directories, kind cluster, Istio,
MongoDB, and kube-prometheus-stack. The subcommands run individual steps
against the same configuration.

Subcommands:
    up         Full bring-up pipeline
    check      Verify required tools, installing kind/helm when missing
    create     Create infrastructure resources (cluster)
    delete     Delete infrastructure resources (cluster)
    install    Install components (mesh, database, monitoring)

Environment Variables:
    All configuration can be overridden via DEVCLUSTER_* environment variables:
    - DEVCLUSTER_CLUSTER_NAME (default: collage-cluster)
    - DEVCLUSTER_SCRATCH_ROOT (default: /tmp/kind)
    - DEVCLUSTER_BIN_DIR (default: /usr/local/bin)
    - DEVCLUSTER_ISTIO_VERSION (default: latest release)
    - DEVCLUSTER_NODE_READY_TIMEOUT / DEVCLUSTER_MESH_READY_TIMEOUT (default: 300)
    - And more (see config classes for full list)

Examples:
    # Full bring-up
    devcluster

    # Recreate only the cluster
    devcluster create cluster

    # Install MongoDB on an existing cluster
    devcluster install database

    # Tear down
    devcluster delete cluster
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from devcluster import console
from devcluster.commands import create_cmd, delete_cmd, install_cmd, run_and_report
from devcluster.config import display_config, resolve_config
from devcluster.orchestrator import print_next_steps, print_report, run_bringup
from devcluster.prerequisites import check_prerequisites

app = typer.Typer(
    help="Local kind cluster bring-up with Istio, MongoDB and monitoring.",
)


@app.callback(invoke_without_command=True)
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster name (overrides DEVCLUSTER_CLUSTER_NAME)"),
    scratch_root: Path | None = typer.Option(
        None, "--scratch-root", help="Host scratch directory root"),
    bin_dir: Path | None = typer.Option(
        None, "--bin-dir", help="Install directory for downloaded tools"),
    istio_version: str | None = typer.Option(
        None, "--istio-version", help="istioctl version to install when missing"),
) -> None:
    """Initialize logging and configuration; run the full bring-up by default."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.obj = resolve_config(
        cluster_name=cluster_name,
        scratch_root=scratch_root,
        bin_dir=bin_dir,
        istio_version=istio_version,
    )
    if ctx.invoked_subcommand is None:
        up(ctx)


@app.command()
def up(ctx: typer.Context) -> None:
    """Full bring-up: tools, cluster, Istio, MongoDB, monitoring."""
    config = ctx.obj
    display_config(config)
    report = run_bringup(config)
    print_report(report)
    if not report.succeeded:
        raise typer.Exit(report.exit_code)
    print_next_steps(config)


@app.command()
def check(ctx: typer.Context) -> None:
    """Verify docker and kubectl; install kind and helm when missing."""
    run_and_report(ctx.obj, [("prerequisites", check_prerequisites)])


app.add_typer(create_cmd.app, name="create")
app.add_typer(delete_cmd.app, name="delete")
app.add_typer(install_cmd.app, name="install")


def main() -> None:
    """Console-script entry point."""
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
