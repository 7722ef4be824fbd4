"""Render NetworkAttachmentDefinitions for HostDeviceNetwork and IPoIBNetwork resources."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .render import MANIFEST_FILE_SUFFIXES, Renderer, RenderError, TemplatingData
from .state import SyncError, SyncState

log = logging.getLogger(__name__)

DEFAULT_RESOURCE_NAMESPACE = "nvidia-network-operator"
RESOURCE_NAME_PREFIX = "nvidia.com/"
LAST_IPOIB_NETWORK_NAMESPACE_ANNOTATION = (
    "operator.ipoibnetwork.mellanox.com/last-network-namespace"
)
NET_ATTACH_DEF_KIND = "NetworkAttachmentDefinition"

_MELLANOX_API_VERSION = "mellanox.com/v1alpha1"
_NET_ATTACH_DEF_API_VERSION = "k8s.cni.cncf.io/v1"


@dataclass(frozen=True)
class _RuntimeSpec:
    namespace: str


@dataclass
class HostDeviceManifestRenderData:
    """Data handed to the templates of a HostDeviceNetwork."""

    host_device_network_name: str
    cr_spec: Mapping[str, Any]
    runtime_spec: _RuntimeSpec
    resource_name: str


def prefixed_resource_name(name: str) -> str:
    """Return the resource name with the vendor prefix, adding it if absent."""
    return name if name.startswith(RESOURCE_NAME_PREFIX) else RESOURCE_NAME_PREFIX + name


def format_ipam(ipam: str | None) -> str:
    """Return the '"ipam":...' fragment of a CNI config, with all whitespace removed."""
    if ipam:
        return '"ipam":' + "".join(ipam.split())
    return '"ipam":{}'


def _metadata(cr: Mapping[str, Any]) -> Mapping[str, Any]:
    return cr.get("metadata") or {}


def _spec(cr: Mapping[str, Any]) -> Mapping[str, Any]:
    return cr.get("spec") or {}


def _last_namespace(cr: Mapping[str, Any]) -> str | None:
    annotations = _metadata(cr).get("annotations") or {}
    return annotations.get(LAST_IPOIB_NETWORK_NAMESPACE_ANNOTATION)


def stale_network_namespace(cr: Mapping[str, Any], namespace: str) -> str | None:
    """Return the namespace a previous definition lives in, if it differs from ``namespace``."""
    last = _last_namespace(cr)
    if last is not None and last != namespace:
        return last
    return None


def needs_namespace_annotation(cr: Mapping[str, Any], namespace: str) -> bool:
    """Tell whether the last-namespace annotation is missing or out of date."""
    last = _last_namespace(cr)
    return last is None or last != namespace


def _manifest_files(directory: str | Path) -> list[Path]:
    try:
        return sorted(
            path
            for path in Path(directory).iterdir()
            if path.is_file() and path.suffix[1:] in MANIFEST_FILE_SUFFIXES
        )
    except OSError as exc:
        raise RenderError(f"failed to get files from manifest dir: {exc}") from exc


def _watch_sources(kind: str) -> dict[str, Any]:
    return {
        kind: {"apiVersion": _MELLANOX_API_VERSION, "kind": kind},
        NET_ATTACH_DEF_KIND: {
            "apiVersion": _NET_ATTACH_DEF_API_VERSION,
            "kind": NET_ATTACH_DEF_KIND,
        },
    }


@dataclass
class _NetworkRendererBase:
    manifest_dir: str | Path
    namespace: str = DEFAULT_RESOURCE_NAMESPACE
    renderer: Renderer = field(init=False)

    def __post_init__(self) -> None:
        self.renderer = Renderer(_manifest_files(self.manifest_dir))

    def _render(self, data: Any, what: str) -> list[dict[str, Any]]:
        log.debug("Rendering objects data=%r", data)
        try:
            objects = self.renderer.render_objects(TemplatingData(data=data))
        except RenderError as exc:
            raise SyncError(
                f"failed to render {what}: failed to render objects: {exc}", SyncState.ERROR
            ) from exc
        log.debug("Rendered objects=%r", objects)
        if not objects:
            raise SyncError("no rendered objects found", SyncState.ERROR)
        if objects[0].get("kind") != NET_ATTACH_DEF_KIND:
            raise SyncError("no NetworkAttachmentDefinition object found", SyncState.ERROR)
        return objects


@dataclass
class HostDeviceNetworkRenderer(_NetworkRendererBase):
    """Renders the net-attach-def of a HostDeviceNetwork resource."""

    name = "state-host-device-network"
    description = "Host Device net-attach-def CR deployed in cluster"

    def get_manifest_objects(self, cr: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Render the objects; the first one is the NetworkAttachmentDefinition."""
        spec = _spec(cr)
        data = HostDeviceManifestRenderData(
            host_device_network_name=_metadata(cr).get("name", ""),
            cr_spec=spec,
            runtime_spec=_RuntimeSpec(namespace=self.namespace),
            resource_name=prefixed_resource_name(spec.get("resourceName", "")),
        )
        return self._render(data, "HostDeviceNetwork")

    def get_watch_sources(self) -> dict[str, Any]:
        return _watch_sources("HostDeviceNetwork")


@dataclass
class IPoIBNetworkRenderer(_NetworkRendererBase):
    """Renders the net-attach-def of an IPoIBNetwork resource."""

    name = "state-IPoIB-Network"
    description = "IPoIB net-attach-def CR deployed in cluster"

    def get_manifest_objects(self, cr: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Render the objects; the first one is the NetworkAttachmentDefinition."""
        spec = _spec(cr)
        data = {
            "NetworkName": _metadata(cr).get("name", ""),
            "NetworkNamespace": spec.get("networkNamespace") or "default",
            "Master": spec.get("master", ""),
            "Ipam": format_ipam(spec.get("ipam")),
        }
        return self._render(data, "IPoIBNetwork")

    def get_watch_sources(self) -> dict[str, Any]:
        return _watch_sources("IPoIBNetwork")