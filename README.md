# netoperator

Building blocks for a Kubernetes network operator: grouping cluster nodes
into pools, rendering Kubernetes objects from templated YAML/JSON manifest
files, tracking object revisions, and running a set of states to get one
overall sync result.

## Installation

```
pip install netoperator
```

For running the test suite:

```
pip install "netoperator[test]"
pytest
```

## Modules

### `netoperator.nodeinfo`

- `Node` (name, labels, container runtime version) and `NodePool`.
- `NodeLabelFilterBuilder().with_label(key, value).build()` gives a
  `NodeLabelFilter` keeping nodes whose labels all match exactly;
  `NodeLabelNoValFilterBuilder().with_label(key).build()` gives a
  `NodeLabelNoValFilter` keeping nodes that carry the labels with any value.
  Both builders have `reset()`.
- `NodeInfoProvider(nodes).get_node_pools(*filters)` applies the filters in
  turn and groups the remaining nodes into pools named
  `<os name><os version>-<kernel>`. Nodes lacking the OS name, OS version,
  architecture or full kernel version label are skipped with a log message.
- `get_container_runtime(node)` returns `"docker"`, `"containerd"`,
  `"cri-o"` (the values of `ContainerRuntime`) or `""`.

### `netoperator.render`

`Renderer(files).render_objects(TemplatingData(data=..., funcs=...))` renders
each file in order as a Jinja2 template and decodes the result as one or more
YAML/JSON documents, returning them as dictionaries. Documents without a
`kind` are dropped; a file that renders to whitespace yields nothing.
Undefined template variables are errors.

The template context is built from `data`: a mapping is used as is, a
dataclass contributes its fields, any other object its attributes. Extra
callables in `funcs` become template globals. Built in are the globals
`yaml`, `quote`, `indent`, `nindent`, `nindentPrefix` and `hasPrefix`, and
the filters `yaml`, `quote`, `nindent` and `nindentPrefix`. The functions
`indent`, `nindent` and `nindent_prefix` are also importable.

A file that cannot be read, parsed, rendered or decoded raises `RenderError`.

### `netoperator.revision`

- `calculate_revision(obj)` – 32-bit FNV-1a hash of the object's JSON form
  (keys sorted); raises `RevisionError` for objects that are not
  JSON-serialisable.
- `set_revision(obj, revision)` stores the number under the
  `network-operator/controller-revision` annotation, creating `metadata` and
  `annotations` as needed; values outside the 32-bit unsigned range raise
  `ValueError`.
- `get_revision(obj)` reads it back, or returns 0 when absent or invalid.

### `netoperator.state` and `netoperator.manager`

`SyncState` lists `READY`, `NOT_READY`, `IGNORE`, `RESET` and `ERROR`.
`State` is the abstract base with `name`, `description`, `sync(...)` and
`get_watch_sources()`; a failing sync raises `SyncError`, which carries the
state it ended in.

`StateManager(states).sync_state(custom_resource, info_catalog)` syncs every
state in order and returns `Results`: one `StateResult` per state and an
overall status that is `READY` only if no state is `NOT_READY` or `ERROR`.
An exception from one state is recorded in its result and does not stop the
others. `get_watch_sources()` merges the states' watch sources, the first
state to name a kind winning. `FakeState` always reports a fixed state.

### `netoperator.catalog`

`InfoCatalog` holds one information source per `InfoType` (`NODE_INFO`,
`CLUSTER_TYPE`, `STATIC_CONFIG`, `DOCA_DRIVER_IMAGE`); getters return `None`
for missing sources. `DummyProvider` answers every provider kind with fixed
values (plain Kubernetes, empty CNI bin directory, one Ubuntu pool), and
`get_dummy_catalog()` returns a catalog filled with it.

### `netoperator.manifests`

- `create_container_resources_map(resources)` keys resource requirement
  entries by their `name`.
- `parse_container_names(renderer, cr)` renders a policy's manifests against
  the dummy catalog and lists the container names of its Deployments and
  DaemonSets.

### `netoperator.network_states` and `netoperator.policy_states`

Renderers built from a manifest directory (files ending in `.yaml`, `.yml`
or `.json`, in sorted order):

- `HostDeviceNetworkRenderer` and `IPoIBNetworkRenderer` render the
  NetworkAttachmentDefinition of a HostDeviceNetwork or IPoIBNetwork
  resource, raising `SyncError` if nothing is rendered or the first object is
  not a NetworkAttachmentDefinition. Helpers: `prefixed_resource_name`,
  `format_ipam`, `stale_network_namespace`, `needs_namespace_annotation`.
- `IBKubernetesRenderer` and `DocaTelemetryServiceRenderer` render the
  ib-kubernetes and DOCA Telemetry Service parts of a NicClusterPolicy; they
  need a cluster-type source in the catalog and raise `ValueError` when it or
  their part of the spec is missing. `should_deploy_config_map(spec)` is true
  when the telemetry spec names no configuration.

Custom resources are passed as plain dictionaries in their Kubernetes form
(`metadata`, `spec`).

## Example

```python
from netoperator.nodeinfo import Node, NodeInfoProvider, NodeLabelFilterBuilder

nodes = [
    Node(name="node-1", labels={
        "feature.node.kubernetes.io/pci-15b3.present": "true",
        "feature.node.kubernetes.io/system-os_release.ID": "ubuntu",
        "feature.node.kubernetes.io/system-os_release.VERSION_ID": "22.04",
        "feature.node.kubernetes.io/kernel-version.full": "5.15.0-78-generic",
        "kubernetes.io/arch": "amd64",
    }),
]

nic_filter = (
    NodeLabelFilterBuilder()
    .with_label("feature.node.kubernetes.io/pci-15b3.present", "true")
    .build()
)
pools = NodeInfoProvider(nodes).get_node_pools(nic_filter)
print([pool.name for pool in pools])  # ['ubuntu22.04-5.15.0-78-generic']
```

```python
from netoperator.render import Renderer, TemplatingData

renderer = Renderer(["manifests/daemonset.yaml"])
objects = renderer.render_objects(TemplatingData(data={"Name": "example"}))
```

## What this package does not do

It does not talk to a Kubernetes cluster: rendered objects are returned, not
created, updated or deleted, and there is no controller loop, no command-line
program and no bundled manifest templates. Renderers produce objects; applying
them is left to the caller.