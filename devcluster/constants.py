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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load download URLs, add-on names and chart repos from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Tools --
REQUIRED_TOOLS = ("docker", "kubectl")
INSTALLABLE_TOOLS = ("kind", "helm")
KIND_DOWNLOAD_URL = dep_value("tools", "kind", "url")
HELM_INSTALLER_URL = dep_value("tools", "helm", "installer_url")
ISTIO_LATEST_RELEASE_API = dep_value("tools", "istioctl", "latest_release_api")
ISTIO_BUNDLE_URL = dep_value("tools", "istioctl", "bundle_url")

# -- kind topology --
KIND_API_VERSION = "kind.x-k8s.io/v1alpha4"
KUBEADM_INIT_KIND = "InitConfiguration"
KUBEADM_JOIN_KIND = "JoinConfiguration"
ROLE_CONTROL_PLANE = "control-plane"
ROLE_WORKER = "worker"
CONTROL_PLANE_NODE_LABELS = "ingress-ready=true"
CONTROL_PLANE_SYSTEM_RESERVED = "memory=512Mi,cpu=500m"
WORKER_NODE_LABELS = "node-role.kubernetes.io/worker=worker"
WORKER_SYSTEM_RESERVED = "memory=256Mi,cpu=250m"
# Istio status, HTTP, HTTPS, istiod monitoring, MongoDB
CONTROL_PLANE_PORTS = (15021, 80, 443, 15014, 27017)
SCRATCH_ISTIO_DIR = "istio"
SCRATCH_WORKER_DIR = "worker"
ISTIO_CONTAINER_PATH = "/var/lib/istio"
WORKER_CONTAINER_PATH = "/var/lib/kubelet"
SCRATCH_DIR_MODE = 0o777

# -- Istio --
ISTIO_INJECTION_LABEL = "istio-injection=enabled"
ISTIO_ADDONS_BASE_URL = dep_value("istio", "addons_base_url")
ISTIO_ADDONS = tuple(dep_value("istio", "addons", default=[]))

# -- Helm charts --
MONGODB_REPO = dep_value("charts", "mongodb", "repo")
MONGODB_REPO_URL = dep_value("charts", "mongodb", "repo_url")
MONGODB_CHART = dep_value("charts", "mongodb", "chart")
MONITORING_REPO = dep_value("charts", "monitoring", "repo")
MONITORING_REPO_URL = dep_value("charts", "monitoring", "repo_url")
MONITORING_CHART = dep_value("charts", "monitoring", "chart")

# -- Helm override keys --
HELM_KEY_MONGODB_ROOT_PASSWORD = "auth.rootPassword"
HELM_KEY_MONGODB_USERNAME = "auth.username"
HELM_KEY_MONGODB_PASSWORD = "auth.password"
HELM_KEY_MONGODB_DATABASE = "auth.database"
HELM_KEY_GRAFANA_ENABLED = "grafana.enabled"
HELM_KEY_SERVICE_MONITOR_SELECTOR = "prometheus.prometheusSpec.serviceMonitorSelectorNilUsesHelmValues"

# -- Cluster defaults --
DEFAULT_CLUSTER_NAME = "collage-cluster"
DEFAULT_SCRATCH_ROOT = Path("/tmp/kind")
DEFAULT_API_SERVER_ADDRESS = "0.0.0.0"
DEFAULT_API_SERVER_PORT = 6443
DEFAULT_POD_SUBNET = "10.244.0.0/16"
DEFAULT_SERVICE_SUBNET = "10.96.0.0/16"
DEFAULT_NODE_READY_TIMEOUT_SECONDS = 300

# -- Tool install defaults --
DEFAULT_BIN_DIR = Path("/usr/local/bin")
DEFAULT_HTTP_TIMEOUT_SECONDS = 60
DEFAULT_DOWNLOAD_MAX_RETRIES = 3
DOWNLOAD_RETRY_WAIT_SECONDS = 5

# -- Mesh defaults --
DEFAULT_ISTIO_PROFILE = "demo"
DEFAULT_ISTIO_NAMESPACE = "istio-system"
DEFAULT_INJECTION_NAMESPACE = "default"
DEFAULT_MESH_READY_TIMEOUT_SECONDS = 300

# -- Database defaults --
DEFAULT_MONGODB_NAMESPACE = "mongodb"
DEFAULT_MONGODB_RELEASE = "mongodb"
DEFAULT_MONGODB_ROOT_PASSWORD = "rootpassword"
DEFAULT_MONGODB_USERNAME = "mernuser"
DEFAULT_MONGODB_PASSWORD = "mernpass"
DEFAULT_MONGODB_DATABASE = "merndb"
DEFAULT_MONGODB_PORT = 27017

# -- Monitoring defaults --
DEFAULT_MONITORING_NAMESPACE = "monitoring"
DEFAULT_MONITORING_RELEASE = "prometheus"
GRAFANA_DEFAULT_CREDENTIALS = "admin/prom-operator"
GRAFANA_LOCAL_PORT = 3000
