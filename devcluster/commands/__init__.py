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

"""Subcommand groups and the shared run-and-report helper."""

from __future__ import annotations

from collections.abc import Sequence

import typer

from devcluster.config import BringupConfig
from devcluster.orchestrator import StepFn, print_report, run_steps


def run_and_report(config: BringupConfig, steps: Sequence[tuple[str, StepFn]]) -> None:
    """Run *steps*, print the step table, and exit non-zero on failure.

    Raises:
        typer.Exit: With the failing step's exit code.
    """
    report = run_steps(config, steps)
    print_report(report)
    if not report.succeeded:
        raise typer.Exit(report.exit_code)
