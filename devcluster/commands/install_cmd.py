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

"""Install subcommands (mesh, database, monitoring) against an existing cluster."""

from __future__ import annotations

import typer

from devcluster.commands import run_and_report
from devcluster.components import install_database, install_monitoring
from devcluster.mesh import install_mesh
from devcluster.prerequisites import check_prerequisites

app = typer.Typer(help="Install components.")


@app.command()
def mesh(ctx: typer.Context) -> None:
    """Install Istio, its add-ons, and enable sidecar injection."""
    run_and_report(ctx.obj, [("prerequisites", check_prerequisites), ("mesh", install_mesh)])


@app.command()
def database(ctx: typer.Context) -> None:
    """Install MongoDB via Helm."""
    run_and_report(ctx.obj, [("prerequisites", check_prerequisites), ("database", install_database)])


@app.command()
def monitoring(ctx: typer.Context) -> None:
    """Install kube-prometheus-stack via Helm."""
    run_and_report(ctx.obj, [("prerequisites", check_prerequisites), ("monitoring", install_monitoring)])
