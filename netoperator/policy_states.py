"""Render the ib-kubernetes and DOCA Telemetry Service parts of a NicClusterPolicy."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .catalog import InfoCatalog
from .manifests import create_container_resources_map
from .render import MANIFEST_FILE_SUFFIXES, Renderer, RenderError, TemplatingData

log = logging.getLogger(__name__)

DEFAULT_RESOURCE_NAMESPACE = "nvidia-network-operator"
DOCA_TELEMETRY_SERVICE_DEFAULT_CONFIG_MAP_NAME = "doca-telemetry-service"


@dataclass
class _RuntimeSpec:
    namespace: str
    is_openshift: bool = False
    container_resources: dict[str, Mapping[str, Any]] = field(default_factory=dict)


@dataclass
class IBKubernetesManifestRenderData:
    """Data handed to the ib-kubernetes templates."""

    cr_spec: Mapping[str, Any]
    periodic_update_seconds_string: str
    tolerations: Sequence[Any] | None
    node_affinity: Mapping[str, Any] | None
    deploy_init_container: bool
    runtime_spec: _RuntimeSpec


@dataclass
class DocaTelemetryServiceManifestRenderData:
    """Data handed to the DOCA Telemetry Service templates."""

    cr_spec: Mapping[str, Any]
    config_map_name: str
    deploy_config_map: bool
    runtime_spec: _RuntimeSpec
    tolerations: Sequence[Any] | None
    node_affinity: Mapping[str, Any] | None


def should_deploy_config_map(spec: Mapping[str, Any]) -> bool:
    """The default ConfigMap is deployed only when the spec names no configuration."""
    return spec.get("config") is None


def _manifest_files(directory: str | Path) -> list[Path]:
    try:
        return sorted(
            path
            for path in Path(directory).iterdir()
            if path.is_file() and path.suffix[1:] in MANIFEST_FILE_SUFFIXES
        )
    except OSError as exc:
        raise RenderError(f"failed to get files from manifest dir: {exc}") from exc


def _policy_spec(cr: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if cr is None:
        return {}
    return cr.get("spec") or {}


def _cluster_info(catalog: InfoCatalog, message: str) -> Any:
    cluster_info = catalog.get_cluster_type_provider()
    if cluster_info is None:
        raise ValueError(message)
    return cluster_info


@dataclass
class _PolicyRendererBase:
    manifest_dir: str | Path
    namespace: str = DEFAULT_RESOURCE_NAMESPACE
    renderer: Renderer = field(init=False)

    def __post_init__(self) -> None:
        self.renderer = Renderer(_manifest_files(self.manifest_dir))

    def _render(self, data: Any) -> list[dict[str, Any]]:
        log.debug("Rendering objects data=%r", data)
        try:
            objects = self.renderer.render_objects(TemplatingData(data=data))
        except RenderError as exc:
            raise RenderError(f"failed to render objects: {exc}") from exc
        log.debug("Rendered objects=%r", objects)
        return objects


@dataclass
class IBKubernetesRenderer(_PolicyRendererBase):
    """Renders the ib-kubernetes deployment of a NicClusterPolicy."""

    name = "state-ib-kubernetes"
    description = "ib-kubernetes deployed in the cluster"

    def get_manifest_objects(
        self, cr: Mapping[str, Any] | None, catalog: InfoCatalog
    ) -> list[dict[str, Any]]:
        """Render the ib-kubernetes objects for the policy."""
        spec = _policy_spec(cr)
        ib_spec = spec.get("ibKubernetes")
        if ib_spec is None:
            raise ValueError("failed to render objects: state spec is nil")
        cluster_info = _cluster_info(catalog, "clusterType provider required")

        data = IBKubernetesManifestRenderData(
            cr_spec=ib_spec,
            periodic_update_seconds_string=str(int(ib_spec.get("periodicUpdateSeconds", 0))),
            tolerations=spec.get("tolerations"),
            node_affinity=spec.get("nodeAffinity"),
            deploy_init_container=spec.get("ofedDriver") is not None,
            runtime_spec=_RuntimeSpec(
                namespace=self.namespace,
                is_openshift=bool(cluster_info.is_openshift()),
                container_resources=create_container_resources_map(
                    ib_spec.get("containerResources")
                ),
            ),
        )
        return self._render(data)

    def get_watch_sources(self) -> dict[str, Any]:
        return {"Deployment": {"apiVersion": "apps/v1", "kind": "Deployment"}}


@dataclass
class DocaTelemetryServiceRenderer(_PolicyRendererBase):
    """Renders the DOCA Telemetry Service daemon set of a NicClusterPolicy."""

    name = "state-doca-telemetry-service"
    description = "DOCA Telemetry Service deployed in the cluster"

    def get_manifest_objects(
        self, cr: Mapping[str, Any] | None, catalog: InfoCatalog
    ) -> list[dict[str, Any]]:
        """Render the DOCA Telemetry Service objects for the policy."""
        spec = _policy_spec(cr)
        dts = spec.get("docaTelemetryService")
        if dts is None:
            raise ValueError("failed to render objects: state spec is nil")

        config = dts.get("config")
        config_map_name = (
            DOCA_TELEMETRY_SERVICE_DEFAULT_CONFIG_MAP_NAME
            if config is None
            else config.get("fromConfigMap", "")
        )
        cluster_info = _cluster_info(catalog, "clusterInfo provider required")

        data = DocaTelemetryServiceManifestRenderData(
            cr_spec=dts,
            config_map_name=config_map_name,
            deploy_config_map=should_deploy_config_map(dts),
            runtime_spec=_RuntimeSpec(
                namespace=self.namespace,
                is_openshift=bool(cluster_info.is_openshift()),
                container_resources=create_container_resources_map(
                    dts.get("containerResources")
                ),
            ),
            tolerations=spec.get("tolerations"),
            node_affinity=spec.get("nodeAffinity"),
        )
        return self._render(data)

    def get_watch_sources(self) -> dict[str, Any]:
        return {"DaemonSet": {"apiVersion": "apps/v1", "kind": "DaemonSet"}}