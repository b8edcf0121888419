"""Tests for the kind topology descriptor."""

from __future__ import annotations

from pathlib import Path

import yaml
from hypothesis import given
from hypothesis import strategies as st

from devcluster.config import ClusterConfig
from devcluster.topology import default_topology

k8s_names = st.from_regex(r"[a-z0-9]([-a-z0-9]{0,20}[a-z0-9])?", fullmatch=True)


def _manifest(**overrides) -> dict:
    cfg = ClusterConfig.model_validate({**ClusterConfig().model_dump(), **overrides})
    return yaml.safe_load(default_topology(cfg).render())


def test_cluster_document_header():
    doc = _manifest(cluster_name="collage-cluster")
    assert doc["kind"] == "Cluster"
    assert doc["apiVersion"] == "kind.x-k8s.io/v1alpha4"
    assert doc["name"] == "collage-cluster"
    assert doc["networking"] == {
        "apiServerAddress": "0.0.0.0",
        "apiServerPort": 6443,
        "podSubnet": "10.244.0.0/16",
        "serviceSubnet": "10.96.0.0/16",
    }


def test_control_plane_node():
    control_plane = _manifest(scratch_root=Path("/tmp/kind"))["nodes"][0]
    assert control_plane["role"] == "control-plane"

    patch = yaml.safe_load(control_plane["kubeadmConfigPatches"][0])
    assert patch["kind"] == "InitConfiguration"
    assert patch["nodeRegistration"]["kubeletExtraArgs"] == {
        "node-labels": "ingress-ready=true",
        "system-reserved": "memory=512Mi,cpu=500m",
    }

    ports = [(p["containerPort"], p["hostPort"], p["protocol"]) for p in control_plane["extraPortMappings"]]
    assert ports == [(p, p, "TCP") for p in (15021, 80, 443, 15014, 27017)]
    assert control_plane["extraMounts"] == [
        {"hostPath": "/tmp/kind/istio", "containerPath": "/var/lib/istio"},
    ]


def test_worker_node():
    worker = _manifest(scratch_root=Path("/tmp/kind"))["nodes"][1]
    assert worker["role"] == "worker"

    patch = yaml.safe_load(worker["kubeadmConfigPatches"][0])
    assert patch["kind"] == "JoinConfiguration"
    assert patch["nodeRegistration"]["kubeletExtraArgs"] == {
        "node-labels": "node-role.kubernetes.io/worker=worker",
        "system-reserved": "memory=256Mi,cpu=250m",
    }
    assert "extraPortMappings" not in worker
    assert worker["extraMounts"] == [
        {"hostPath": "/tmp/kind/worker", "containerPath": "/var/lib/kubelet"},
    ]


def test_render_is_plain_yaml_block_style():
    text = default_topology(ClusterConfig()).render()
    assert text.startswith("kind: Cluster\n")
    assert "{" not in text


@given(name=k8s_names, port=st.integers(min_value=1, max_value=65535))
def test_topology_shape_holds_for_any_name_and_port(name, port):
    doc = _manifest(cluster_name=name, api_server_port=port, scratch_root=Path("/scratch"))
    assert doc["name"] == name
    assert doc["networking"]["apiServerPort"] == port
    assert [n["role"] for n in doc["nodes"]] == ["control-plane", "worker"]
    for node in doc["nodes"]:
        for mount in node["extraMounts"]:
            assert mount["hostPath"].startswith("/scratch/")
