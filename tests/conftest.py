"""Shared fixtures for HDInsight provisioner tests."""

import copy
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.mgmt.hdinsight.models import (
    AzureMonitorResponse,
    Cluster,
    ClusterConfigurations,
    ClusterCreateParametersExtended,
    ClusterGetProperties,
    ClusterMonitoringResponse,
    ConnectivityEndpoint,
)

from hdiprovisioner.app.services.provisioning.base import ProvisionerConfig, Timeouts
from hdiprovisioner.app.services.provisioning.bigdata.spark import SparkClusterProvisioner

SUBSCRIPTION_ID = "11111111-2222-3333-4444-555555555555"
RESOURCE_GROUP = "rg-analytics"
CLUSTER_NAME = "spark-test-01"
CLUSTER_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{RESOURCE_GROUP}"
    f"/providers/Microsoft.HDInsight/clusters/{CLUSTER_NAME}"
)


def make_node(vm_size: str, **overrides: Any) -> Dict[str, Any]:
    node = {
        "vm_size": vm_size,
        "username": "sshuser",
        "password": "Node-Passw0rd!",
    }
    node.update(overrides)
    return node


def make_attributes(**overrides: Any) -> Dict[str, Any]:
    """Build a valid Spark cluster attribute set."""
    attributes = {
        "name": CLUSTER_NAME,
        "resource_group_name": RESOURCE_GROUP,
        "location": "West Europe",
        "cluster_version": "4.0",
        "tier": "Standard",
        "component_version": {"spark": "2.4"},
        "gateway": {"username": "admin", "password": "Gateway-Passw0rd!"},
        "storage_account": [
            {
                "storage_account_key": "c3RvcmFnZS1rZXk=",
                "storage_container_id": "https://sparkstore.blob.core.windows.net/clusterdata",
                "is_default": True,
            }
        ],
        "roles": {
            "head_node": make_node("Standard_D3_V2"),
            "worker_node": make_node("Standard_D4_V2", target_instance_count=3),
            "zookeeper_node": make_node("Medium"),
        },
        "tags": {"env": "test"},
    }
    attributes.update(overrides)
    return attributes


def make_poller(result: Any = None) -> MagicMock:
    poller = MagicMock()
    poller.result = AsyncMock(return_value=result)
    return poller


def make_remote_cluster(
    parameters: ClusterCreateParametersExtended,
    tier: Optional[str] = None,
    cluster_version: str = "4.0.3000.1"
) -> Cluster:
    """Build the cluster the service would report for a create request."""
    props = parameters.properties
    return Cluster(
        location="westeurope",
        tags=copy.deepcopy(parameters.tags),
        identity=parameters.identity,
        properties=ClusterGetProperties(
            cluster_version=cluster_version,
            os_type=props.os_type,
            tier=tier or props.tier,
            cluster_definition=props.cluster_definition,
            security_profile=props.security_profile,
            compute_profile=props.compute_profile,
            disk_encryption_properties=props.disk_encryption_properties,
            encryption_in_transit_properties=props.encryption_in_transit_properties,
            min_supported_tls_version=props.min_supported_tls_version,
            network_properties=props.network_properties,
            compute_isolation_properties=props.compute_isolation_properties,
            storage_profile=props.storage_profile,
            connectivity_endpoints=[
                ConnectivityEndpoint(name="SSH", protocol="TCP", location=f"{CLUSTER_NAME}-ssh.azurehdinsight.net", port=22),
                ConnectivityEndpoint(name="HTTPS", protocol="TCP", location=f"{CLUSTER_NAME}.azurehdinsight.net", port=443),
            ],
        ),
    )


@pytest.fixture
def attributes() -> Dict[str, Any]:
    """A valid Spark cluster attribute set."""
    return make_attributes()


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock HDInsightManagementClient with async operations."""
    client = MagicMock()

    client.clusters.get = AsyncMock()
    client.clusters.update = AsyncMock()
    client.clusters.begin_create = AsyncMock(return_value=make_poller())
    client.clusters.begin_delete = AsyncMock(return_value=make_poller())
    client.clusters.begin_resize = AsyncMock(return_value=make_poller())
    client.clusters.begin_update_auto_scale_configuration = AsyncMock(return_value=make_poller())
    client.clusters.begin_update_gateway_settings = AsyncMock(return_value=make_poller())

    client.configurations.list = AsyncMock()

    client.extensions.get_monitoring_status = AsyncMock(
        return_value=ClusterMonitoringResponse(cluster_monitoring_enabled=False)
    )
    client.extensions.get_azure_monitor_status = AsyncMock(
        return_value=AzureMonitorResponse(cluster_monitoring_enabled=False)
    )
    client.extensions.begin_enable_monitoring = AsyncMock(return_value=make_poller())
    client.extensions.begin_disable_monitoring = AsyncMock(return_value=make_poller())
    client.extensions.begin_enable_azure_monitor = AsyncMock(return_value=make_poller())
    client.extensions.begin_disable_azure_monitor = AsyncMock(return_value=make_poller())
    return client


@pytest.fixture
def provisioner_config() -> ProvisionerConfig:
    return ProvisionerConfig(
        subscription_id=SUBSCRIPTION_ID,
        polling_interval=0,
        timeouts=Timeouts(create=30, read=30, update=30, delete=30),
    )


@pytest.fixture
def provisioner(provisioner_config: ProvisionerConfig, mock_client: MagicMock) -> SparkClusterProvisioner:
    """Create a SparkClusterProvisioner with a mocked client."""
    return SparkClusterProvisioner(provisioner_config, client=mock_client)


@pytest.fixture
def remote_cluster(provisioner: SparkClusterProvisioner, attributes: Dict[str, Any]) -> Cluster:
    """The cluster the service reports for the default attributes."""
    parameters = provisioner.build_create_parameters(provisioner.validate(attributes))
    return make_remote_cluster(parameters)


@pytest.fixture
def remote_configurations(attributes: Dict[str, Any]) -> ClusterConfigurations:
    gateway = attributes["gateway"]
    return ClusterConfigurations(configurations={
        "gateway": {
            "restAuthCredential.isEnabled": "true",
            "restAuthCredential.username": gateway["username"],
            "restAuthCredential.password": gateway["password"],
        },
        "core-site": {"fs.defaultFS": "wasbs://clusterdata@sparkstore.blob.core.windows.net"},
    })
