"""A catalog of information sources that states may consult while syncing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from .nodeinfo import NodePool

CLUSTER_TYPE_KUBERNETES = "kubernetes"


class InfoType(IntEnum):
    """Categories of information sources."""

    NODE_INFO = 0
    CLUSTER_TYPE = 1
    STATIC_CONFIG = 2
    DOCA_DRIVER_IMAGE = 3


_REQUIRED_METHOD = {
    InfoType.NODE_INFO: "get_node_pools",
    InfoType.CLUSTER_TYPE: "is_openshift",
    InfoType.STATIC_CONFIG: "get_static_config",
    InfoType.DOCA_DRIVER_IMAGE: "tag_exists",
}


class InfoCatalog:
    """Holds one information source per InfoType; missing sources read as None."""

    def __init__(self) -> None:
        self._sources: dict[InfoType, Any] = {}

    def add(self, info_type: InfoType, source: Any) -> None:
        self._sources[InfoType(info_type)] = source

    def _get(self, info_type: InfoType) -> Any:
        source = self._sources.get(info_type)
        if source is None:
            return None
        method = _REQUIRED_METHOD[info_type]
        if not callable(getattr(source, method, None)):
            raise TypeError(
                f"source registered as {info_type.name} has no {method}() method"
            )
        return source

    def get_node_info_provider(self) -> Any:
        return self._get(InfoType.NODE_INFO)

    def get_cluster_type_provider(self) -> Any:
        return self._get(InfoType.CLUSTER_TYPE)

    def get_static_config_provider(self) -> Any:
        return self._get(InfoType.STATIC_CONFIG)

    def get_doca_driver_image_provider(self) -> Any:
        return self._get(InfoType.DOCA_DRIVER_IMAGE)


@dataclass(frozen=True)
class StaticConfig:
    """Static configuration of the operator."""

    cni_bin_directory: str = ""


class DummyProvider:
    """Fixed answers for every provider kind, used to render manifests offline."""

    def get_cluster_type(self) -> str:
        return CLUSTER_TYPE_KUBERNETES

    def is_kubernetes(self) -> bool:
        return True

    def is_openshift(self) -> bool:
        return False

    def get_static_config(self) -> StaticConfig:
        return StaticConfig(cni_bin_directory="")

    def get_node_pools(self, *args: Any) -> list[NodePool]:
        return [
            NodePool(
                name="ubuntu20.04-5.15",
                os_name="ubuntu",
                os_version="20.04",
                kernel="5.15.0-78-generic",
                arch="",
            )
        ]

    def tag_exists(self, tag: str) -> bool:
        return False


def get_dummy_catalog() -> InfoCatalog:
    """Return a catalog whose every source is a DummyProvider."""
    catalog = InfoCatalog()
    for info_type in (
        InfoType.NODE_INFO,
        InfoType.STATIC_CONFIG,
        InfoType.CLUSTER_TYPE,
        InfoType.DOCA_DRIVER_IMAGE,
    ):
        catalog.add(info_type, DummyProvider())
    return catalog