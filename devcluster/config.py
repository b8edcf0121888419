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

"""Configuration classes, BringupConfig, and config resolution/display."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.table import Table

from devcluster import console
from devcluster.constants import (
    DEFAULT_API_SERVER_ADDRESS,
    DEFAULT_API_SERVER_PORT,
    DEFAULT_BIN_DIR,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_DOWNLOAD_MAX_RETRIES,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_INJECTION_NAMESPACE,
    DEFAULT_ISTIO_NAMESPACE,
    DEFAULT_ISTIO_PROFILE,
    DEFAULT_MESH_READY_TIMEOUT_SECONDS,
    DEFAULT_MONGODB_DATABASE,
    DEFAULT_MONGODB_NAMESPACE,
    DEFAULT_MONGODB_PASSWORD,
    DEFAULT_MONGODB_PORT,
    DEFAULT_MONGODB_RELEASE,
    DEFAULT_MONGODB_ROOT_PASSWORD,
    DEFAULT_MONGODB_USERNAME,
    DEFAULT_MONITORING_NAMESPACE,
    DEFAULT_MONITORING_RELEASE,
    DEFAULT_NODE_READY_TIMEOUT_SECONDS,
    DEFAULT_POD_SUBNET,
    DEFAULT_SCRATCH_ROOT,
    DEFAULT_SERVICE_SUBNET,
    ISTIO_ADDONS,
    ISTIO_ADDONS_BASE_URL,
    MONGODB_CHART,
    MONGODB_REPO,
    MONGODB_REPO_URL,
    MONITORING_CHART,
    MONITORING_REPO,
    MONITORING_REPO_URL,
)

# RFC 1123 label, as required for namespaces and release names.
K8S_NAME_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
CIDR_PATTERN = r"^\d{1,3}(\.\d{1,3}){3}/\d{1,2}$"


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """kind cluster configuration, auto-loaded from DEVCLUSTER_* env vars.

    Attributes:
        cluster_name: Name of the kind cluster.
        scratch_root: Host directory holding the per-node scratch mounts.
        api_server_address: Address the API server binds on the host.
        api_server_port: Host port of the API server.
        pod_subnet: Pod network CIDR.
        service_subnet: Service network CIDR.
        node_ready_timeout: Seconds to wait for all nodes to become Ready.
    """

    model_config = SettingsConfigDict(env_prefix="DEVCLUSTER_", extra="ignore")

    cluster_name: str = Field(default=DEFAULT_CLUSTER_NAME, pattern=K8S_NAME_PATTERN)
    scratch_root: Path = DEFAULT_SCRATCH_ROOT
    api_server_address: str = DEFAULT_API_SERVER_ADDRESS
    api_server_port: int = Field(default=DEFAULT_API_SERVER_PORT, ge=1, le=65535)
    pod_subnet: str = Field(default=DEFAULT_POD_SUBNET, pattern=CIDR_PATTERN)
    service_subnet: str = Field(default=DEFAULT_SERVICE_SUBNET, pattern=CIDR_PATTERN)
    node_ready_timeout: int = Field(default=DEFAULT_NODE_READY_TIMEOUT_SECONDS, ge=1)

    @property
    def kube_context(self) -> str:
        """kubeconfig context kind writes for this cluster."""
        return f"kind-{self.cluster_name}"


class ToolsConfig(BaseSettings):
    """Tool installation settings, auto-loaded from DEVCLUSTER_* env vars.

    Attributes:
        bin_dir: Directory downloaded binaries are installed into.
        http_timeout: Per-request timeout in seconds for downloads.
        download_max_retries: Attempts per download before giving up.
    """

    model_config = SettingsConfigDict(env_prefix="DEVCLUSTER_", extra="ignore")

    bin_dir: Path = DEFAULT_BIN_DIR
    http_timeout: int = Field(default=DEFAULT_HTTP_TIMEOUT_SECONDS, ge=1)
    download_max_retries: int = Field(default=DEFAULT_DOWNLOAD_MAX_RETRIES, ge=1, le=10)


class MeshConfig(BaseSettings):
    """Istio settings, auto-loaded from DEVCLUSTER_* env vars.

    Attributes:
        istio_version: istioctl version to install, or None for the latest release.
        istio_profile: ``istioctl install`` profile.
        istio_namespace: Namespace of the mesh control plane.
        injection_namespace: Namespace labelled for sidecar injection.
        istio_addons: Add-on manifest names under the add-ons base URL.
        istio_addons_base_url: Base URL of the Istio sample add-on manifests.
        mesh_ready_timeout: Seconds to wait for mesh pods to become Ready.
    """

    model_config = SettingsConfigDict(env_prefix="DEVCLUSTER_", extra="ignore")

    istio_version: str | None = Field(default=None, pattern=r"^\d+\.\d+\.\d+([-.\w]*)$")
    istio_profile: str = DEFAULT_ISTIO_PROFILE
    istio_namespace: str = Field(default=DEFAULT_ISTIO_NAMESPACE, pattern=K8S_NAME_PATTERN)
    injection_namespace: str = Field(default=DEFAULT_INJECTION_NAMESPACE, pattern=K8S_NAME_PATTERN)
    istio_addons: list[str] = Field(default_factory=lambda: list(ISTIO_ADDONS))
    istio_addons_base_url: str = ISTIO_ADDONS_BASE_URL
    mesh_ready_timeout: int = Field(default=DEFAULT_MESH_READY_TIMEOUT_SECONDS, ge=1)


class DatabaseConfig(BaseSettings):
    """MongoDB chart settings, auto-loaded from DEVCLUSTER_* env vars.

    Attributes:
        mongodb_namespace: Namespace the release is installed into.
        mongodb_release: Helm release name.
        mongodb_repo: Helm repository alias.
        mongodb_repo_url: Helm repository URL.
        mongodb_chart: Chart reference (``<repo>/<chart>``).
        mongodb_root_password: Root password passed to the chart.
        mongodb_username: Application user.
        mongodb_password: Application user's password.
        mongodb_database: Database created for the application user.
        mongodb_port: Service port used in the connection string.
    """

    model_config = SettingsConfigDict(env_prefix="DEVCLUSTER_", extra="ignore")

    mongodb_namespace: str = Field(default=DEFAULT_MONGODB_NAMESPACE, pattern=K8S_NAME_PATTERN)
    mongodb_release: str = Field(default=DEFAULT_MONGODB_RELEASE, pattern=K8S_NAME_PATTERN)
    mongodb_repo: str = MONGODB_REPO
    mongodb_repo_url: str = MONGODB_REPO_URL
    mongodb_chart: str = MONGODB_CHART
    mongodb_root_password: SecretStr = SecretStr(DEFAULT_MONGODB_ROOT_PASSWORD)
    mongodb_username: str = DEFAULT_MONGODB_USERNAME
    mongodb_password: SecretStr = SecretStr(DEFAULT_MONGODB_PASSWORD)
    mongodb_database: str = DEFAULT_MONGODB_DATABASE
    mongodb_port: int = Field(default=DEFAULT_MONGODB_PORT, ge=1, le=65535)


class MonitoringConfig(BaseSettings):
    """kube-prometheus-stack settings, auto-loaded from DEVCLUSTER_* env vars.

    Attributes:
        monitoring_namespace: Namespace the release is installed into.
        monitoring_release: Helm release name.
        monitoring_repo: Helm repository alias.
        monitoring_repo_url: Helm repository URL.
        monitoring_chart: Chart reference (``<repo>/<chart>``).
        grafana_enabled: Whether the chart deploys Grafana.
        service_monitor_selector_nil_uses_helm_values: When False, Prometheus
            picks up every ServiceMonitor instead of only the release's own.
    """

    model_config = SettingsConfigDict(env_prefix="DEVCLUSTER_", extra="ignore")

    monitoring_namespace: str = Field(default=DEFAULT_MONITORING_NAMESPACE, pattern=K8S_NAME_PATTERN)
    monitoring_release: str = Field(default=DEFAULT_MONITORING_RELEASE, pattern=K8S_NAME_PATTERN)
    monitoring_repo: str = MONITORING_REPO
    monitoring_repo_url: str = MONITORING_REPO_URL
    monitoring_chart: str = MONITORING_CHART
    grafana_enabled: bool = True
    service_monitor_selector_nil_uses_helm_values: bool = False


# ============================================================================
# Aggregate configuration
# ============================================================================

@dataclass(frozen=True)
class BringupConfig:
    """Everything one bring-up run needs, passed explicitly to every step.

    Attributes:
        cluster: kind cluster configuration.
        tools: Tool installation settings.
        mesh: Istio settings.
        database: MongoDB chart settings.
        monitoring: kube-prometheus-stack settings.
    """

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    mesh: MeshConfig = field(default_factory=MeshConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def resolve_config(
    *,
    cluster_name: str | None = None,
    scratch_root: Path | None = None,
    bin_dir: Path | None = None,
    istio_version: str | None = None,
) -> BringupConfig:
    """Load configuration from the environment and apply CLI overrides.

    Overrides go through ``model_validate`` so they are checked by the same
    field constraints as environment values.

    Args:
        cluster_name: CLI override for the kind cluster name, or None.
        scratch_root: CLI override for the scratch directory root, or None.
        bin_dir: CLI override for the tool install directory, or None.
        istio_version: CLI override for the istioctl version, or None.

    Returns:
        Resolved, immutable bring-up configuration.
    """
    cluster_cfg = ClusterConfig()
    tools_cfg = ToolsConfig()
    mesh_cfg = MeshConfig()

    cluster_overrides: dict = {}
    if cluster_name is not None:
        cluster_overrides["cluster_name"] = cluster_name
    if scratch_root is not None:
        cluster_overrides["scratch_root"] = scratch_root
    if cluster_overrides:
        cluster_cfg = ClusterConfig.model_validate({**cluster_cfg.model_dump(), **cluster_overrides})
    if bin_dir is not None:
        tools_cfg = ToolsConfig.model_validate({**tools_cfg.model_dump(), "bin_dir": bin_dir})
    if istio_version is not None:
        mesh_cfg = MeshConfig.model_validate({**mesh_cfg.model_dump(), "istio_version": istio_version})

    return BringupConfig(
        cluster=cluster_cfg,
        tools=tools_cfg,
        mesh=mesh_cfg,
        database=DatabaseConfig(),
        monitoring=MonitoringConfig(),
    )


def display_config(config: BringupConfig) -> None:
    """Print the resolved configuration as a table. Secrets stay masked."""
    table = Table(title="Bring-up configuration", show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Cluster", config.cluster.cluster_name)
    table.add_row("Scratch root", str(config.cluster.scratch_root))
    table.add_row("API server", f"{config.cluster.api_server_address}:{config.cluster.api_server_port}")
    table.add_row("Tool directory", str(config.tools.bin_dir))
    table.add_row("Istio", f"{config.mesh.istio_version or 'latest'} (profile {config.mesh.istio_profile})")
    table.add_row("Istio add-ons", ", ".join(config.mesh.istio_addons))
    table.add_row(
        "MongoDB",
        f"{config.database.mongodb_release} ({config.database.mongodb_chart}) "
        f"in {config.database.mongodb_namespace}",
    )
    table.add_row(
        "Monitoring",
        f"{config.monitoring.monitoring_release} ({config.monitoring.monitoring_chart}) "
        f"in {config.monitoring.monitoring_namespace}",
    )
    console.print(table)
