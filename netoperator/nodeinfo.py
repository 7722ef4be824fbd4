"""Kubernetes node attributes, label filters and node-pool partitioning."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

log = logging.getLogger(__name__)

NODE_LABEL_OS_NAME = "feature.node.kubernetes.io/system-os_release.ID"
NODE_LABEL_OS_VER = "feature.node.kubernetes.io/system-os_release.VERSION_ID"
NODE_LABEL_KERNEL_VER_FULL = "feature.node.kubernetes.io/kernel-version.full"
NODE_LABEL_HOSTNAME = "kubernetes.io/hostname"
NODE_LABEL_CPU_ARCH = "kubernetes.io/arch"
NODE_LABEL_MLNX_NIC = "feature.node.kubernetes.io/pci-15b3.present"
NODE_LABEL_NV_GPU = "nvidia.com/gpu.present"
NODE_LABEL_WAIT_OFED = "network.nvidia.com/operator.mofed.wait"
NODE_LABEL_CUDA_VERSION_MAJOR = "nvidia.com/cuda.driver.major"
NODE_LABEL_OSTREE_VERSION = "feature.node.kubernetes.io/system-os_release.OSTREE_VERSION"

MELLANOX_NIC_LABELS = {NODE_LABEL_MLNX_NIC: "true"}
"""Labels that select nodes bearing a Mellanox NIC."""


class ContainerRuntime(str, Enum):
    """Container runtimes recognised on a node."""

    DOCKER = "docker"
    CONTAINERD = "containerd"
    CRIO = "cri-o"


@dataclass
class Node:
    """The parts of a Kubernetes Node this package looks at."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    container_runtime_version: str = ""


@dataclass(frozen=True)
class NodePool:
    """A set of nodes grouped by common attributes."""

    name: str
    os_name: str
    os_version: str
    kernel: str
    arch: str
    rhcos_version: str = ""
    container_runtime: str = ""


class Filter(Protocol):
    """Anything that narrows down a list of nodes."""

    def apply(self, nodes: Sequence[Node]) -> list[Node]: ...


@dataclass
class NodeLabelFilter:
    """Keeps nodes carrying every label with exactly the given value."""

    labels: dict[str, str] = field(default_factory=dict)

    def apply(self, nodes: Sequence[Node]) -> list[Node]:
        return [
            node
            for node in nodes
            if all(
                key in node.labels and node.labels[key] == value
                for key, value in self.labels.items()
            )
        ]


class NodeLabelFilterBuilder:
    """Builds a NodeLabelFilter label by label."""

    def __init__(self) -> None:
        self._filter = NodeLabelFilter()

    def with_label(self, key: str, value: str) -> NodeLabelFilterBuilder:
        self._filter.labels[key] = value
        return self

    def build(self) -> NodeLabelFilter:
        return self._filter

    def reset(self) -> NodeLabelFilterBuilder:
        self._filter = NodeLabelFilter()
        return self


@dataclass
class NodeLabelNoValFilter:
    """Keeps nodes carrying every label, whatever its value."""

    labels: set[str] = field(default_factory=set)

    def apply(self, nodes: Sequence[Node]) -> list[Node]:
        return [node for node in nodes if self.labels.issubset(node.labels)]


class NodeLabelNoValFilterBuilder:
    """Builds a NodeLabelNoValFilter label by label."""

    def __init__(self) -> None:
        self._filter = NodeLabelNoValFilter()

    def with_label(self, key: str) -> NodeLabelNoValFilterBuilder:
        self._filter.labels.add(key)
        return self

    def build(self) -> NodeLabelNoValFilter:
        return self._filter

    def reset(self) -> NodeLabelNoValFilterBuilder:
        self._filter = NodeLabelNoValFilter()
        return self


def get_container_runtime(node: Node) -> str:
    """Return the runtime named by a '<runtime>://<version>' string, or ''."""
    version = node.container_runtime_version
    for runtime in ContainerRuntime:
        if version.startswith(runtime.value):
            return runtime.value
    return ""


_REQUIRED_LABELS = (
    NODE_LABEL_OS_NAME,
    NODE_LABEL_OS_VER,
    NODE_LABEL_CPU_ARCH,
    NODE_LABEL_KERNEL_VER_FULL,
)


def _pool_for(node: Node) -> NodePool | None:
    for label in _REQUIRED_LABELS:
        if label not in node.labels:
            log.info(
                "WARNING: Could not find NFD labels for node. Is NFD installed? "
                "Node=%s Label=%s",
                node.name,
                label,
            )
            return None
    labels = node.labels
    os_name = labels[NODE_LABEL_OS_NAME]
    os_version = labels[NODE_LABEL_OS_VER]
    kernel = labels[NODE_LABEL_KERNEL_VER_FULL]
    return NodePool(
        name=f"{os_name}{os_version}-{kernel}",
        os_name=os_name,
        os_version=os_version,
        kernel=kernel,
        arch=labels[NODE_LABEL_CPU_ARCH],
        rhcos_version=labels.get(NODE_LABEL_OSTREE_VERSION, ""),
        container_runtime=get_container_runtime(node),
    )


class NodeInfoProvider:
    """Provides node pools out of a list of nodes."""

    def __init__(self, nodes: Sequence[Node]) -> None:
        self._nodes = list(nodes)

    def get_node_pools(self, *args: Filter) -> list[NodePool]:
        """Partition the nodes passing every filter by OS version and kernel."""
        nodes: list[Node] = self._nodes
        for node_filter in args:
            nodes = node_filter.apply(nodes)

        pools: dict[str, NodePool] = {}
        for node in nodes:
            pool = _pool_for(node)
            if pool is None or pool.name in pools:
                continue
            pools[pool.name] = pool
            log.info("NodePool found name=%s", pool.name)
        return list(pools.values())