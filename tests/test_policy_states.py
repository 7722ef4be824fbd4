import pytest

from netoperator.catalog import DummyProvider, InfoCatalog, InfoType
from netoperator.policy_states import (
    DocaTelemetryServiceRenderer,
    IBKubernetesRenderer,
    should_deploy_config_map,
)
from netoperator.render import RenderError

IB_DEPLOYMENT = """apiVersion: apps/v1
kind: Deployment
metadata:
  name: ib-kubernetes
  namespace: {{ runtime_spec.namespace }}
spec:
  template:
    spec:
      {%- if deploy_init_container %}
      initContainers:
        - name: wait-ofed
      {%- endif %}
      containers:
        - name: ib-kubernetes
          image: {{ cr_spec.get("image", "") }}:{{ cr_spec.get("version", "") }}
          env:
            - name: DAEMON_SM_PLUGIN
              value: "ufm"
            - name: DAEMON_PERIODIC_UPDATE
              value: {{ periodic_update_seconds_string | tojson }}
            - name: GUID_POOL_RANGE_START
              value: {{ cr_spec.get("pKeyGUIDPoolRangeStart", "") | tojson }}
            - name: GUID_POOL_RANGE_END
              value: {{ cr_spec.get("pKeyGUIDPoolRangeEnd", "") | tojson }}
            - name: DAEMON_UFM_SECRET
              valueFrom:
                secretKeyRef:
                  name: {{ cr_spec.get("ufmSecret", "none") }}
          {%- set res = runtime_spec.container_resources.get("ib-kubernetes") %}
          {%- if res %}
          resources:
            {%- if res.get("requests") %}
            requests: {{ res["requests"] | tojson }}
            {%- endif %}
            {%- if res.get("limits") %}
            limits: {{ res["limits"] | tojson }}
            {%- endif %}
          {%- endif %}
"""

DTS_DAEMONSET = """apiVersion: apps/v1
kind: DaemonSet
metadata:
  name: doca-telemetry-service
  namespace: {{ runtime_spec.namespace }}
spec:
  template:
    spec:
      containers:
        - name: doca-telemetry-service
      volumes:
        - name: doca-telemetry-service-configmap
          configMap:
            name: {{ config_map_name }}
"""

DTS_CONFIGMAP = """{% if deploy_config_map %}apiVersion: v1
kind: ConfigMap
metadata:
  name: doca-telemetry-service
{% endif %}"""

DTS_OPENSHIFT = """{% if runtime_spec.is_openshift %}apiVersion: rbac.authorization.k8s.io/v1
kind: Role
metadata:
  name: doca-telemetry-service
---
apiVersion: rbac.authorization.k8s.io/v1
kind: RoleBinding
metadata:
  name: doca-telemetry-service
{% endif %}"""


class _OpenshiftProvider:
    def is_openshift(self):
        return True


@pytest.fixture
def ib_dir(tmp_path):
    (tmp_path / "0-serviceaccount.yaml").write_text(
        "apiVersion: v1\nkind: ServiceAccount\nmetadata:\n  name: ib-kubernetes\n"
    )
    (tmp_path / "1-role.yaml").write_text(
        "apiVersion: v1\nkind: Role\nmetadata:\n  name: ib-kubernetes\n"
    )
    (tmp_path / "2-rolebinding.yaml").write_text(
        "apiVersion: v1\nkind: RoleBinding\nmetadata:\n  name: ib-kubernetes\n"
    )
    (tmp_path / "3-deployment.yaml").write_text(IB_DEPLOYMENT)
    return tmp_path


@pytest.fixture
def dts_dir(tmp_path):
    (tmp_path / "0-serviceaccount.yaml").write_text(
        "apiVersion: v1\nkind: ServiceAccount\nmetadata:\n  name: doca-telemetry-service\n"
    )
    (tmp_path / "1-daemonset.yaml").write_text(DTS_DAEMONSET)
    (tmp_path / "2-configmap.yaml").write_text(DTS_CONFIGMAP)
    (tmp_path / "3-openshift.yaml").write_text(DTS_OPENSHIFT)
    return tmp_path


def _catalog(openshift=False):
    catalog = InfoCatalog()
    catalog.add(InfoType.CLUSTER_TYPE, _OpenshiftProvider() if openshift else DummyProvider())
    return catalog


def _container(deployment):
    return deployment["spec"]["template"]["spec"]["containers"][0]


def _ib_spec(**extra):
    spec = {"image": "image", "version": "version", "imagePullSecrets": []}
    spec.update(extra)
    return spec


def test_ib_kubernetes_renders_env_values(ib_dir):
    renderer = IBKubernetesRenderer(ib_dir)
    assert renderer.name == "state-ib-kubernetes"
    cr = {
        "metadata": {"name": "nic-cluster-policy"},
        "spec": {
            "ibKubernetes": _ib_spec(
                periodicUpdateSeconds=6,
                pKeyGUIDPoolRangeStart="rangestart",
                pKeyGUIDPoolRangeEnd="rangeend",
                ufmSecret="secret",
            )
        },
    }
    objs = renderer.get_manifest_objects(cr, _catalog())
    assert len(objs) == 4
    deployment = objs[3]
    assert deployment["kind"] == "Deployment"
    expected = {
        "DAEMON_SM_PLUGIN": "ufm",
        "DAEMON_PERIODIC_UPDATE": "6",
        "GUID_POOL_RANGE_START": "rangestart",
        "GUID_POOL_RANGE_END": "rangeend",
    }
    values = {e["name"]: e["value"] for e in _container(deployment)["env"] if "value" in e}
    assert values == expected


def test_ib_kubernetes_renders_container_resources(ib_dir):
    resources = [{"name": "ib-kubernetes", "requests": {"cpu": "150Mi"}, "limits": {"cpu": "150Mi"}}]
    cr = {"spec": {"ibKubernetes": _ib_spec(containerResources=resources)}}
    objs = IBKubernetesRenderer(ib_dir).get_manifest_objects(cr, _catalog())
    assert len(objs) == 4
    res = _container(objs[3])["resources"]
    assert res["requests"]["cpu"] == "150Mi"
    assert res["limits"]["cpu"] == "150Mi"


def test_ib_kubernetes_ignores_resources_of_wrong_container(ib_dir):
    resources = [{"name": "ib-kubernetes-wrong", "requests": {"cpu": "150Mi"}, "limits": {"cpu": "150Mi"}}]
    cr = {"spec": {"ibKubernetes": _ib_spec(containerResources=resources)}}
    objs = IBKubernetesRenderer(ib_dir).get_manifest_objects(cr, _catalog())
    assert len(objs) == 4
    assert _container(objs[3]).get("resources") is None


def test_ib_kubernetes_omits_limits_when_absent(ib_dir):
    resources = [{"name": "ib-kubernetes", "requests": {"cpu": "150Mi"}}]
    cr = {"spec": {"ibKubernetes": _ib_spec(containerResources=resources)}}
    objs = IBKubernetesRenderer(ib_dir).get_manifest_objects(cr, _catalog())
    res = _container(objs[3])["resources"]
    assert res["requests"]["cpu"] == "150Mi"
    assert res.get("limits") is None


def test_ib_kubernetes_default_period_and_init_container(ib_dir):
    cr = {"spec": {"ibKubernetes": _ib_spec(), "ofedDriver": {"image": "ofed"}}}
    objs = IBKubernetesRenderer(ib_dir).get_manifest_objects(cr, _catalog())
    pod = objs[3]["spec"]["template"]["spec"]
    assert pod["initContainers"][0]["name"] == "wait-ofed"
    env = {e["name"]: e.get("value") for e in pod["containers"][0]["env"]}
    assert env["DAEMON_PERIODIC_UPDATE"] == "0"
    assert objs[3]["metadata"]["namespace"] == "nvidia-network-operator"


def test_ib_kubernetes_no_init_container_without_ofed(ib_dir):
    cr = {"spec": {"ibKubernetes": _ib_spec()}}
    objs = IBKubernetesRenderer(ib_dir).get_manifest_objects(cr, _catalog())
    assert "initContainers" not in objs[3]["spec"]["template"]["spec"]


def test_ib_kubernetes_requires_spec(ib_dir):
    renderer = IBKubernetesRenderer(ib_dir)
    with pytest.raises(ValueError, match="state spec is nil"):
        renderer.get_manifest_objects({"spec": {}}, _catalog())
    with pytest.raises(ValueError, match="state spec is nil"):
        renderer.get_manifest_objects(None, _catalog())


def test_ib_kubernetes_requires_cluster_type_provider(ib_dir):
    cr = {"spec": {"ibKubernetes": _ib_spec()}}
    with pytest.raises(ValueError, match="clusterType provider required"):
        IBKubernetesRenderer(ib_dir).get_manifest_objects(cr, InfoCatalog())


def test_ib_kubernetes_watch_sources(ib_dir):
    assert list(IBKubernetesRenderer(ib_dir).get_watch_sources()) == ["Deployment"]


def test_missing_manifest_dir_raises(tmp_path):
    with pytest.raises(RenderError):
        IBKubernetesRenderer(tmp_path / "does-not-exist")


def _dts_cr(config=None):
    dts = {
        "image": "image",
        "version": "version",
        "containerResources": [{"name": "doca-telemetry-service", "requests": {"cpu": "1"}}],
    }
    if config is not None:
        dts["config"] = config
    return {"metadata": {"name": "nic-cluster-policy"}, "spec": {"docaTelemetryService": dts}}


def _configmap_volume_name(objs):
    ds = next(o for o in objs if o["kind"] == "DaemonSet")
    volumes = ds["spec"]["template"]["spec"]["volumes"]
    volume = next(v for v in volumes if v["name"] == "doca-telemetry-service-configmap")
    return volume["configMap"]["name"]


def test_dts_renders_default_config_map(dts_dir):
    objs = DocaTelemetryServiceRenderer(dts_dir).get_manifest_objects(_dts_cr(), _catalog())
    assert sorted(o["kind"] for o in objs) == sorted(["ServiceAccount", "DaemonSet", "ConfigMap"])
    config_map = next(o for o in objs if o["kind"] == "ConfigMap")
    assert config_map["metadata"]["name"] == "doca-telemetry-service"
    assert _configmap_volume_name(objs) == "doca-telemetry-service"


def test_dts_custom_config_map_not_rendered(dts_dir):
    cr = _dts_cr(config={"fromConfigMap": "custom-cm-name"})
    objs = DocaTelemetryServiceRenderer(dts_dir).get_manifest_objects(cr, _catalog())
    assert sorted(o["kind"] for o in objs) == sorted(["ServiceAccount", "DaemonSet"])
    assert _configmap_volume_name(objs) == "custom-cm-name"


def test_dts_openshift_renders_role_and_binding(dts_dir):
    objs = DocaTelemetryServiceRenderer(dts_dir).get_manifest_objects(
        _dts_cr(), _catalog(openshift=True)
    )
    assert sorted(o["kind"] for o in objs) == sorted(
        ["ServiceAccount", "DaemonSet", "ConfigMap", "Role", "RoleBinding"]
    )


def test_dts_requires_spec_and_cluster_provider(dts_dir):
    renderer = DocaTelemetryServiceRenderer(dts_dir)
    with pytest.raises(ValueError, match="state spec is nil"):
        renderer.get_manifest_objects({"spec": {}}, _catalog())
    with pytest.raises(ValueError, match="clusterInfo provider required"):
        renderer.get_manifest_objects(_dts_cr(), InfoCatalog())


def test_dts_name_and_watch_sources(dts_dir):
    renderer = DocaTelemetryServiceRenderer(dts_dir)
    assert renderer.name == "state-doca-telemetry-service"
    assert list(renderer.get_watch_sources()) == ["DaemonSet"]


@pytest.mark.parametrize(
    "spec, expected",
    [
        ({}, True),
        ({"config": None}, True),
        ({"config": {"fromConfigMap": "x"}}, False),
    ],
)
def test_should_deploy_config_map(spec, expected):
    assert should_deploy_config_map(spec) is expected