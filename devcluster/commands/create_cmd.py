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

"""Create subcommands (cluster)."""

from __future__ import annotations

import typer

from devcluster.cluster import prepare_scratch_dirs, provision_cluster
from devcluster.commands import run_and_report
from devcluster.prerequisites import check_prerequisites

app = typer.Typer(help="Create infrastructure resources.")


@app.command("cluster")
def cluster(ctx: typer.Context) -> None:
    """Check tools, prepare scratch directories, (re)create the kind cluster and wait for nodes."""
    run_and_report(ctx.obj, [
        ("prerequisites", check_prerequisites),
        ("scratch-directories", prepare_scratch_dirs),
        ("cluster", provision_cluster),
    ])
