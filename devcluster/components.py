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

"""MongoDB and kube-prometheus-stack installation via Helm."""

from __future__ import annotations

import sh
import yaml
from rich.panel import Panel

from devcluster import console
from devcluster.config import BringupConfig, DatabaseConfig, MonitoringConfig
from devcluster.constants import (
    HELM_KEY_GRAFANA_ENABLED,
    HELM_KEY_MONGODB_DATABASE,
    HELM_KEY_MONGODB_PASSWORD,
    HELM_KEY_MONGODB_ROOT_PASSWORD,
    HELM_KEY_MONGODB_USERNAME,
    HELM_KEY_SERVICE_MONITOR_SELECTOR,
)


# ============================================================================
# Shared helpers
# ============================================================================

def namespace_manifest(namespace: str) -> dict:
    """Build a bare Namespace resource."""
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": namespace},
    }


def ensure_namespace(config: BringupConfig, namespace: str) -> None:
    """Create *namespace* if missing; applying an existing one is a no-op.

    Args:
        config: Bring-up configuration with the kube context.
        namespace: Namespace name.
    """
    sh.kubectl(
        "--context", config.cluster.kube_context,
        "apply", "-f", "-",
        _in=yaml.safe_dump(namespace_manifest(namespace), default_flow_style=False),
    )


def add_helm_repo(name: str, url: str) -> None:
    """Register (or refresh) a chart repository and update its index."""
    sh.helm("repo", "add", name, url, "--force-update")
    sh.helm("repo", "update", name)


def _bool_value(value: bool) -> str:
    return "true" if value else "false"


def collect_database_values(db_cfg: DatabaseConfig) -> list[str]:
    """Build helm ``--set`` strings for the MongoDB chart.

    Args:
        db_cfg: MongoDB chart settings.

    Returns:
        List of ``key=value`` strings for ``helm --set`` arguments.
    """
    return [
        f"{HELM_KEY_MONGODB_ROOT_PASSWORD}={db_cfg.mongodb_root_password.get_secret_value()}",
        f"{HELM_KEY_MONGODB_USERNAME}={db_cfg.mongodb_username}",
        f"{HELM_KEY_MONGODB_PASSWORD}={db_cfg.mongodb_password.get_secret_value()}",
        f"{HELM_KEY_MONGODB_DATABASE}={db_cfg.mongodb_database}",
    ]


def collect_monitoring_values(mon_cfg: MonitoringConfig) -> list[str]:
    """Build helm ``--set`` strings for kube-prometheus-stack.

    Args:
        mon_cfg: Monitoring chart settings.

    Returns:
        List of ``key=value`` strings for ``helm --set`` arguments.
    """
    return [
        f"{HELM_KEY_GRAFANA_ENABLED}={_bool_value(mon_cfg.grafana_enabled)}",
        f"{HELM_KEY_SERVICE_MONITOR_SELECTOR}="
        f"{_bool_value(mon_cfg.service_monitor_selector_nil_uses_helm_values)}",
    ]


def helm_upgrade_install(
    config: BringupConfig,
    release: str,
    chart: str,
    namespace: str,
    set_values: list[str],
) -> None:
    """Install or upgrade *release* and wait until its resources are ready.

    No ``--timeout`` is passed, so helm's own default applies.

    Raises:
        sh.ErrorReturnCode: If helm fails or the wait times out.
    """
    set_args = [item for val in set_values for item in ("--set", val)]
    sh.helm(
        "upgrade", "--install", release, chart,
        "--kube-context", config.cluster.kube_context,
        "--namespace", namespace,
        *set_args,
        "--wait",
    )


# ============================================================================
# MongoDB
# ============================================================================

def install_database(config: BringupConfig) -> None:
    """Install MongoDB from the Bitnami chart into its own namespace.

    Args:
        config: Bring-up configuration with the database settings.
    """
    db_cfg = config.database
    console.print(Panel.fit(f"Setting up MongoDB (namespace: {db_cfg.mongodb_namespace})", style="bold blue"))
    ensure_namespace(config, db_cfg.mongodb_namespace)
    add_helm_repo(db_cfg.mongodb_repo, db_cfg.mongodb_repo_url)
    console.print(f"[yellow]\u2139\ufe0f  Installing {db_cfg.mongodb_chart} as '{db_cfg.mongodb_release}'...[/yellow]")
    helm_upgrade_install(
        config,
        db_cfg.mongodb_release,
        db_cfg.mongodb_chart,
        db_cfg.mongodb_namespace,
        collect_database_values(db_cfg),
    )
    console.print("[green]\u2705 MongoDB installed[/green]")


# ============================================================================
# Monitoring
# ============================================================================

def install_monitoring(config: BringupConfig) -> None:
    """Install kube-prometheus-stack into its own namespace.

    Args:
        config: Bring-up configuration with the monitoring settings.
    """
    mon_cfg = config.monitoring
    console.print(Panel.fit(f"Setting up monitoring (namespace: {mon_cfg.monitoring_namespace})", style="bold blue"))
    ensure_namespace(config, mon_cfg.monitoring_namespace)
    add_helm_repo(mon_cfg.monitoring_repo, mon_cfg.monitoring_repo_url)
    console.print(f"[yellow]\u2139\ufe0f  Installing {mon_cfg.monitoring_chart} as '{mon_cfg.monitoring_release}'...[/yellow]")
    helm_upgrade_install(
        config,
        mon_cfg.monitoring_release,
        mon_cfg.monitoring_chart,
        mon_cfg.monitoring_namespace,
        collect_monitoring_values(mon_cfg),
    )
    console.print("[green]\u2705 Monitoring stack installed[/green]")
