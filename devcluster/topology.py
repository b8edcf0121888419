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

"""kind cluster topology descriptor."""

from __future__ import annotations

from dataclasses import dataclass, field

import yaml

from devcluster.config import ClusterConfig
from devcluster.constants import (
    CONTROL_PLANE_NODE_LABELS,
    CONTROL_PLANE_PORTS,
    CONTROL_PLANE_SYSTEM_RESERVED,
    ISTIO_CONTAINER_PATH,
    KIND_API_VERSION,
    KUBEADM_INIT_KIND,
    KUBEADM_JOIN_KIND,
    ROLE_CONTROL_PLANE,
    ROLE_WORKER,
    SCRATCH_ISTIO_DIR,
    SCRATCH_WORKER_DIR,
    WORKER_CONTAINER_PATH,
    WORKER_NODE_LABELS,
    WORKER_SYSTEM_RESERVED,
)


@dataclass(frozen=True)
class PortMapping:
    """Container port published on the host."""

    container_port: int
    host_port: int
    protocol: str = "TCP"

    def to_manifest(self) -> dict:
        return {
            "containerPort": self.container_port,
            "hostPort": self.host_port,
            "protocol": self.protocol,
        }


@dataclass(frozen=True)
class HostMount:
    """Host directory mounted into the node container."""

    host_path: str
    container_path: str

    def to_manifest(self) -> dict:
        return {"hostPath": self.host_path, "containerPath": self.container_path}


@dataclass(frozen=True)
class NodeSpec:
    """One kind node.

    Attributes:
        role: ``control-plane`` or ``worker``.
        node_labels: Value of the kubelet ``node-labels`` argument.
        system_reserved: Value of the kubelet ``system-reserved`` argument.
        port_mappings: Ports published on the host.
        mounts: Host paths mounted into the node.
    """

    role: str
    node_labels: str
    system_reserved: str
    port_mappings: tuple[PortMapping, ...] = ()
    mounts: tuple[HostMount, ...] = ()

    def kubeadm_patch(self) -> str:
        """Render the kubeadm patch carrying the kubelet extra args.

        The control plane is configured at init time, workers at join time.
        """
        kind = KUBEADM_INIT_KIND if self.role == ROLE_CONTROL_PLANE else KUBEADM_JOIN_KIND
        patch = {
            "kind": kind,
            "nodeRegistration": {
                "kubeletExtraArgs": {
                    "node-labels": self.node_labels,
                    "system-reserved": self.system_reserved,
                },
            },
        }
        return yaml.safe_dump(patch, default_flow_style=False, sort_keys=False)

    def to_manifest(self) -> dict:
        node: dict = {
            "role": self.role,
            "kubeadmConfigPatches": [self.kubeadm_patch()],
        }
        if self.port_mappings:
            node["extraPortMappings"] = [p.to_manifest() for p in self.port_mappings]
        if self.mounts:
            node["extraMounts"] = [m.to_manifest() for m in self.mounts]
        return node


@dataclass(frozen=True)
class ClusterTopology:
    """The kind ``Cluster`` document handed to ``kind create cluster``."""

    name: str
    api_server_address: str
    api_server_port: int
    pod_subnet: str
    service_subnet: str
    nodes: tuple[NodeSpec, ...] = field(default_factory=tuple)

    def to_manifest(self) -> dict:
        return {
            "kind": "Cluster",
            "apiVersion": KIND_API_VERSION,
            "name": self.name,
            "networking": {
                "apiServerAddress": self.api_server_address,
                "apiServerPort": self.api_server_port,
                "podSubnet": self.pod_subnet,
                "serviceSubnet": self.service_subnet,
            },
            "nodes": [n.to_manifest() for n in self.nodes],
        }

    def render(self) -> str:
        return yaml.safe_dump(self.to_manifest(), default_flow_style=False, sort_keys=False)


def default_topology(cluster_cfg: ClusterConfig) -> ClusterTopology:
    """Build the two-node development topology.

    The control plane publishes the mesh and database ports and mounts the
    Istio scratch directory; the worker mounts its kubelet scratch directory.

    Args:
        cluster_cfg: Cluster configuration with name, networking and scratch root.

    Returns:
        Topology with one control-plane node followed by one worker.
    """
    scratch = cluster_cfg.scratch_root
    control_plane = NodeSpec(
        role=ROLE_CONTROL_PLANE,
        node_labels=CONTROL_PLANE_NODE_LABELS,
        system_reserved=CONTROL_PLANE_SYSTEM_RESERVED,
        port_mappings=tuple(PortMapping(port, port) for port in CONTROL_PLANE_PORTS),
        mounts=(HostMount(str(scratch / SCRATCH_ISTIO_DIR), ISTIO_CONTAINER_PATH),),
    )
    worker = NodeSpec(
        role=ROLE_WORKER,
        node_labels=WORKER_NODE_LABELS,
        system_reserved=WORKER_SYSTEM_RESERVED,
        mounts=(HostMount(str(scratch / SCRATCH_WORKER_DIR), WORKER_CONTAINER_PATH),),
    )
    return ClusterTopology(
        name=cluster_cfg.cluster_name,
        api_server_address=cluster_cfg.api_server_address,
        api_server_port=cluster_cfg.api_server_port,
        pod_subnet=cluster_cfg.pod_subnet,
        service_subnet=cluster_cfg.service_subnet,
        nodes=(control_plane, worker),
    )
