import pytest

from netoperator.catalog import (
    CLUSTER_TYPE_KUBERNETES,
    DummyProvider,
    InfoCatalog,
    InfoType,
    get_dummy_catalog,
)


def test_empty_catalog_returns_none():
    catalog = InfoCatalog()
    assert catalog.get_node_info_provider() is None
    assert catalog.get_cluster_type_provider() is None
    assert catalog.get_static_config_provider() is None
    assert catalog.get_doca_driver_image_provider() is None


def test_added_source_is_returned():
    catalog = InfoCatalog()
    provider = DummyProvider()
    catalog.add(InfoType.CLUSTER_TYPE, provider)
    assert catalog.get_cluster_type_provider() is provider
    assert catalog.get_node_info_provider() is None


def test_add_replaces_previous_source():
    catalog = InfoCatalog()
    first, second = DummyProvider(), DummyProvider()
    catalog.add(InfoType.STATIC_CONFIG, first)
    catalog.add(InfoType.STATIC_CONFIG, second)
    assert catalog.get_static_config_provider() is second


def test_source_of_wrong_kind_raises():
    catalog = InfoCatalog()
    catalog.add(InfoType.NODE_INFO, object())
    with pytest.raises(TypeError):
        catalog.get_node_info_provider()


def test_dummy_catalog_holds_every_provider():
    catalog = get_dummy_catalog()
    assert [p.name for p in catalog.get_node_info_provider().get_node_pools()] == [
        "ubuntu20.04-5.15"
    ]
    assert catalog.get_cluster_type_provider().is_kubernetes() is True
    assert catalog.get_cluster_type_provider().is_openshift() is False
    assert catalog.get_static_config_provider().get_static_config().cni_bin_directory == ""
    assert catalog.get_doca_driver_image_provider().tag_exists("any-tag") is False


def test_dummy_provider_answers():
    provider = DummyProvider()
    assert provider.get_cluster_type() == CLUSTER_TYPE_KUBERNETES
    assert provider.is_kubernetes() is True
    assert provider.is_openshift() is False
    assert provider.get_static_config().cni_bin_directory == ""
    assert provider.tag_exists("any-tag") is False


def test_dummy_provider_node_pools():
    pools = DummyProvider().get_node_pools()
    assert len(pools) == 1
    pool = pools[0]
    assert pool.name == "ubuntu20.04-5.15"
    assert pool.os_name == "ubuntu"
    assert pool.os_version == "20.04"
    assert pool.kernel == "5.15.0-78-generic"