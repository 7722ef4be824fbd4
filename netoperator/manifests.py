"""Helpers shared by states that render manifests from a NicClusterPolicy."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from .catalog import InfoCatalog, get_dummy_catalog

_WORKLOAD_KINDS = ("Deployment", "DaemonSet")


class ManifestRenderer(Protocol):
    """A state that renders manifest objects for a custom resource."""

    def get_manifest_objects(self, cr: Any, catalog: InfoCatalog) -> list[dict[str, Any]]: ...


def create_container_resources_map(
    resources: Iterable[Mapping[str, Any]] | None,
) -> dict[str, Mapping[str, Any]]:
    """Key container resource requirements by container name; later entries win."""
    return {item["name"]: item for item in resources or ()}


def _nested(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, Mapping) or key not in obj:
            return None
        obj = obj[key]
    return obj


def parse_container_names(renderer: ManifestRenderer | None, cr: Any) -> list[str]:
    """Render the manifests offline and list the workload container names in them."""
    if renderer is None:
        raise ValueError("renderer is nil")

    manifests = renderer.get_manifest_objects(cr, get_dummy_catalog())
    names: list[str] = []
    for obj in manifests:
        if obj.get("kind") not in _WORKLOAD_KINDS:
            continue
        containers = _nested(obj, "spec", "template", "spec", "containers")
        if not isinstance(containers, list):
            continue
        for container in containers:
            name = _nested(container, "name")
            if isinstance(name, str):
                names.append(name)
    return names