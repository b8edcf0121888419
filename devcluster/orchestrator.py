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

"""Orchestration functions that compose domain modules into the bring-up pipeline."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import sh
from rich.panel import Panel
from rich.table import Table

from devcluster import console, logger
from devcluster.cluster import prepare_scratch_dirs, provision_cluster
from devcluster.components import install_database, install_monitoring
from devcluster.config import BringupConfig
from devcluster.constants import GRAFANA_DEFAULT_CREDENTIALS, GRAFANA_LOCAL_PORT
from devcluster.mesh import install_mesh
from devcluster.prerequisites import check_prerequisites

StepFn = Callable[[BringupConfig], None]

# Exit code reported when a step fails without an external command to blame.
GENERIC_FAILURE_EXIT_CODE = 1
COMMAND_NOT_FOUND_EXIT_CODE = 127
SIGNAL_EXIT_CODE_BASE = 128


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    """Outcome of one pipeline step.

    Attributes:
        name: Step name.
        status: Whether the step ran to completion, failed, or never ran.
        detail: Human-readable failure description, empty otherwise.
        exit_code: Exit code of the failing command, or None.
        duration: Wall-clock seconds spent in the step.
    """

    name: str
    status: StepStatus
    detail: str = ""
    exit_code: int | None = None
    duration: float = 0.0


@dataclass
class BringupReport:
    """Per-step results of a pipeline run, in execution order."""

    results: list[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(r.status is StepStatus.SUCCEEDED for r in self.results)

    @property
    def failed_step(self) -> StepResult | None:
        return next((r for r in self.results if r.status is StepStatus.FAILED), None)

    @property
    def exit_code(self) -> int:
        failed = self.failed_step
        if failed is None:
            return 0
        if failed.exit_code is not None and failed.exit_code < 0:
            # killed by a signal; report it the way a shell does
            return SIGNAL_EXIT_CODE_BASE - failed.exit_code
        return failed.exit_code or GENERIC_FAILURE_EXIT_CODE


# ============================================================================
# Pipeline
# ============================================================================

BRINGUP_STEPS: tuple[tuple[str, StepFn], ...] = (
    ("prerequisites", check_prerequisites),
    ("scratch-directories", prepare_scratch_dirs),
    ("cluster", provision_cluster),
    ("mesh", install_mesh),
    ("database", install_database),
    ("monitoring", install_monitoring),
)


def _failure(name: str, err: Exception, started: float) -> StepResult:
    """Translate an exception raised by a step into a failed result."""
    duration = time.monotonic() - started
    if isinstance(err, sh.ErrorReturnCode):
        command = err.full_cmd
        return StepResult(
            name, StepStatus.FAILED,
            detail=f'"{command}" command failed with exit code {err.exit_code}.',
            exit_code=err.exit_code, duration=duration,
        )
    if isinstance(err, sh.CommandNotFound):
        return StepResult(
            name, StepStatus.FAILED,
            detail=f"Command not found: {err}", exit_code=COMMAND_NOT_FOUND_EXIT_CODE, duration=duration,
        )
    return StepResult(
        name, StepStatus.FAILED,
        detail=str(err), exit_code=GENERIC_FAILURE_EXIT_CODE, duration=duration,
    )


def run_steps(config: BringupConfig, steps: Sequence[tuple[str, StepFn]]) -> BringupReport:
    """Run *steps* in order, stopping at the first failure.

    Steps after a failure are reported as skipped and never executed. Nothing
    is rolled back.

    Args:
        config: Bring-up configuration handed to every step.
        steps: ``(name, fn)`` pairs in execution order.

    Returns:
        Report with one result per step.
    """
    report = BringupReport()
    failed = False
    for name, fn in steps:
        if failed:
            report.results.append(StepResult(name, StepStatus.SKIPPED))
            continue
        logger.info("Starting step: %s", name)
        started = time.monotonic()
        try:
            fn(config)
        except (sh.ErrorReturnCode, sh.CommandNotFound, RuntimeError, OSError) as err:
            result = _failure(name, err, started)
            logger.error("Step %s failed: %s", name, result.detail)
            report.results.append(result)
            failed = True
            continue
        report.results.append(StepResult(name, StepStatus.SUCCEEDED, duration=time.monotonic() - started))
    return report


def run_bringup(config: BringupConfig) -> BringupReport:
    """Run the full pipeline: prerequisites, scratch dirs, cluster, mesh, database, monitoring.

    Args:
        config: Bring-up configuration.

    Returns:
        Report with one result per step.
    """
    return run_steps(config, BRINGUP_STEPS)


# ============================================================================
# Reporting
# ============================================================================

_STATUS_STYLE = {
    StepStatus.SUCCEEDED: "[green]succeeded[/green]",
    StepStatus.FAILED: "[red]failed[/red]",
    StepStatus.SKIPPED: "[dim]skipped[/dim]",
}


def print_report(report: BringupReport) -> None:
    """Print a step table, plus the failure line if a step failed."""
    table = Table(title="Bring-up steps", show_header=True, header_style="bold")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    for result in report.results:
        duration = f"{result.duration:.1f}s" if result.status is not StepStatus.SKIPPED else "-"
        table.add_row(result.name, _STATUS_STYLE[result.status], duration)
    console.print(table)

    failed = report.failed_step
    if failed is not None:
        console.print(f"[red]\u274c {failed.detail}[/red]")


def mongodb_connection_string(config: BringupConfig) -> str:
    """In-cluster MongoDB URI for the application user."""
    db = config.database
    host = f"{db.mongodb_release}.{db.mongodb_namespace}.svc.cluster.local"
    return (
        f"mongodb://{db.mongodb_username}:{db.mongodb_password.get_secret_value()}"
        f"@{host}:{db.mongodb_port}/{db.mongodb_database}"
    )


def next_steps(config: BringupConfig) -> str:
    """Render the follow-up commands shown after a successful run."""
    mon = config.monitoring
    return "\n".join([
        "Useful commands:",
        "",
        "1. Check cluster status:",
        "   [yellow]kubectl get nodes",
        "   kubectl get pods --all-namespaces[/yellow]",
        "",
        "2. Access Kiali dashboard:",
        "   [yellow]istioctl dashboard kiali[/yellow]",
        "",
        "3. Access Grafana:",
        f"   [yellow]kubectl port-forward -n {mon.monitoring_namespace} "
        f"svc/{mon.monitoring_release}-grafana {GRAFANA_LOCAL_PORT}:80",
        f"   # Then visit http://localhost:{GRAFANA_LOCAL_PORT} ({GRAFANA_DEFAULT_CREDENTIALS})[/yellow]",
        "",
        "4. MongoDB connection string:",
        f"   [yellow]{mongodb_connection_string(config)}[/yellow]",
        "",
        "5. Check Istio status:",
        "   [yellow]istioctl analyze[/yellow]",
        "",
        "To deploy your MERN application:",
        "1. Apply your Helm charts:",
        "   [yellow]helm upgrade --install mern-auth ./helm[/yellow]",
        "",
        "2. Monitor the deployment:",
        f"   [yellow]kubectl get pods -n {config.mesh.injection_namespace} -w[/yellow]",
    ])


def print_next_steps(config: BringupConfig) -> None:
    console.print(Panel.fit("=== Setup Complete! ===", style="bold green"))
    console.print(next_steps(config), highlight=False)
