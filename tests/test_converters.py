"""Tests for expand/flatten conversions."""

import pytest
from azure.mgmt.hdinsight.models import (
    AzureMonitorResponse,
    ClusterMonitoringResponse,
    ConnectivityEndpoint,
    DirectoryType,
    StorageProfile,
)

from hdiprovisioner.app.services.provisioning.base import ResourceValidationError
from hdiprovisioner.app.services.provisioning.bigdata import converters
from hdiprovisioner.app.services.provisioning.bigdata.spark import (
    expand_spark_component_version,
    flatten_spark_component_version,
)


def _metastore(server: str, database: str) -> dict:
    return {
        "server": server,
        "database_name": database,
        "username": "sqladmin",
        "password": "Sql-Passw0rd!",
    }


class TestConfigurations:
    """Test gateway and metastore configuration sections."""

    def test_gateway_round_trip(self) -> None:
        gateway = {"username": "admin", "password": "Gateway-Passw0rd!"}

        sections = converters.expand_gateway(gateway)

        assert sections["gateway"]["restAuthCredential.isEnabled"] == "true"
        assert converters.flatten_gateway(sections["gateway"], None) == gateway

    def test_gateway_password_from_state(self) -> None:
        section = {"restAuthCredential.username": "admin"}

        result = converters.flatten_gateway(section, {"username": "admin", "password": "secret"})

        assert result == {"username": "admin", "password": "secret"}

    def test_metastores_round_trip(self) -> None:
        metastores = {
            "hive": _metastore("sql.database.windows.net", "hive"),
            "oozie": _metastore("sql.database.windows.net", "oozie"),
            "ambari": _metastore("sql.database.windows.net", "ambari"),
        }

        sections = converters.expand_metastores(metastores)

        assert set(sections) == {"hive-site", "hive-env", "oozie-site", "oozie-env", "ambari-conf"}
        assert sections["hive-site"]["javax.jdo.option.ConnectionURL"] == (
            "jdbc:sqlserver://sql.database.windows.net;database=hive;encrypt=true;"
            "trustServerCertificate=true;create=false;loginTimeout=300"
        )
        assert converters.flatten_metastores(sections, None) == metastores

    def test_partial_metastores(self) -> None:
        metastores = {"hive": _metastore("sql.database.windows.net", "hive"), "oozie": None, "ambari": None}

        sections = converters.expand_metastores(metastores)

        assert set(sections) == {"hive-site", "hive-env"}
        assert converters.flatten_metastores(sections, None) == metastores

    def test_no_metastores(self) -> None:
        assert converters.expand_metastores(None) == {}
        assert converters.flatten_metastores({"gateway": {}}, None) is None

    def test_metastore_password_from_state(self) -> None:
        sections = converters.expand_metastores({"ambari": _metastore("sql", "ambari")})
        del sections["ambari-conf"]["database-user-password"]

        result = converters.flatten_metastores(sections, {"ambari": {"password": "from-state"}})

        assert result["ambari"]["password"] == "from-state"

    def test_merge_collision(self) -> None:
        """Test a section defined twice is rejected."""
        with pytest.raises(ResourceValidationError):
            converters.merge_configurations({"gateway": {}}, {"gateway": {"x": "y"}})

    def test_merge(self) -> None:
        merged = converters.merge_configurations({"a": {"k": "v"}}, None, {"b": {}})

        assert merged == {"a": {"k": "v"}, "b": {}}


class TestStorage:
    """Test storage account conversions."""

    CLASSIC = {
        "storage_account_key": "key",
        "storage_container_id": "https://classic.blob.core.windows.net/data",
        "storage_resource_id": None,
        "is_default": True,
    }
    GEN2 = {
        "storage_resource_id": "/storageAccounts/gen2",
        "filesystem_id": "https://gen2.dfs.core.windows.net/fs",
        "managed_identity_resource_id": "/identities/storage-msi",
        "is_default": True,
    }

    def test_classic_account(self) -> None:
        accounts, identity = converters.expand_storage_accounts([self.CLASSIC], [])

        assert identity is None
        assert accounts[0].name == "classic.blob.core.windows.net"
        assert accounts[0].container == "data"
        assert accounts[0].key == "key"
        assert accounts[0].is_default is True

    def test_gen2_round_trip(self) -> None:
        accounts, identity = converters.expand_storage_accounts([], [self.GEN2])

        assert list(identity.user_assigned_identities) == ["/identities/storage-msi"]
        flattened = converters.flatten_storage_accounts_gen2(StorageProfile(storageaccounts=accounts), None)
        assert flattened == [self.GEN2]

    def test_two_primaries_rejected(self) -> None:
        """Test a classic and a Gen2 primary at the same time are rejected."""
        with pytest.raises(ResourceValidationError):
            converters.expand_storage_accounts([self.CLASSIC], [self.GEN2])

    def test_no_primary_rejected(self) -> None:
        secondary = dict(self.CLASSIC, is_default=False)

        with pytest.raises(ResourceValidationError):
            converters.expand_storage_accounts([secondary], [])

    def test_no_accounts_rejected(self) -> None:
        with pytest.raises(ResourceValidationError):
            converters.expand_storage_accounts([], [])

    def test_invalid_container_url(self) -> None:
        account = dict(self.CLASSIC, storage_container_id="classic.blob.core.windows.net")

        with pytest.raises(ResourceValidationError) as exc_info:
            converters.expand_storage_accounts([account], [])

        assert exc_info.value.field == "storage_account.storage_container_id"

    def test_gen2_kept_from_state_when_not_returned(self) -> None:
        assert converters.flatten_storage_accounts_gen2(None, [self.GEN2]) == [self.GEN2]


class TestProperties:
    """Test the single block property conversions."""

    def test_network_round_trip(self) -> None:
        network = {"connection_direction": "Outbound", "private_link_enabled": True}

        properties = converters.expand_network(network)

        assert properties.resource_provider_connection == "Outbound"
        assert properties.private_link == "Enabled"
        assert converters.flatten_network(properties) == network

    def test_private_link_requires_outbound(self) -> None:
        with pytest.raises(ResourceValidationError):
            converters.expand_network({"connection_direction": "Inbound", "private_link_enabled": True})

    def test_disk_encryption_round_trip(self) -> None:
        disk_encryption = {
            "encryption_algorithm": "RSA-OAEP",
            "encryption_at_host_enabled": False,
            "key_vault_key_id": "https://vault.vault.azure.net/keys/hdi/0123456789abcdef",
            "key_vault_managed_identity_id": "/identities/disk-msi",
        }

        properties = converters.expand_disk_encryption(disk_encryption)

        assert properties.vault_uri == "https://vault.vault.azure.net/"
        assert properties.key_name == "hdi"
        assert properties.key_version == "0123456789abcdef"
        assert converters.flatten_disk_encryption(properties) == disk_encryption

    def test_disk_encryption_requires_versioned_key(self) -> None:
        with pytest.raises(ResourceValidationError) as exc_info:
            converters.expand_disk_encryption({"key_vault_key_id": "https://vault.vault.azure.net/keys/hdi"})

        assert exc_info.value.field == "disk_encryption.key_vault_key_id"

    def test_compute_isolation_round_trip(self) -> None:
        compute_isolation = {"compute_isolation_enabled": True, "host_sku": "Standard_E64i_v3"}

        properties = converters.expand_compute_isolation(compute_isolation)

        assert converters.flatten_compute_isolation(properties) == compute_isolation

    def test_host_sku_requires_isolation(self) -> None:
        with pytest.raises(ResourceValidationError):
            converters.expand_compute_isolation({"compute_isolation_enabled": False, "host_sku": "Standard_E64i_v3"})

    def test_security_profile_round_trip(self) -> None:
        profile = {
            "aadds_resource_id": "/domainServices/contoso.com",
            "domain_name": "contoso.com",
            "domain_username": "admin@contoso.com",
            "domain_user_password": "Domain-Passw0rd!",
            "ldaps_urls": ["ldaps://contoso.com:636"],
            "msi_resource_id": "/identities/esp-msi",
            "cluster_users_group_dns": ["hdiusers"],
        }

        security_profile = converters.expand_security_profile(profile)

        assert security_profile.directory_type == DirectoryType.ACTIVE_DIRECTORY
        assert converters.flatten_security_profile(security_profile, None) == profile

    def test_security_profile_password_from_state(self) -> None:
        security_profile = converters.expand_security_profile({
            "aadds_resource_id": "/domainServices/contoso.com",
            "domain_name": "contoso.com",
            "domain_username": "admin@contoso.com",
            "domain_user_password": "ignored",
            "ldaps_urls": ["ldaps://contoso.com:636"],
            "msi_resource_id": "/identities/esp-msi",
        })
        security_profile.domain_user_password = None

        result = converters.flatten_security_profile(security_profile, {"domain_user_password": "from-state"})

        assert result["domain_user_password"] == "from-state"

    def test_empty_blocks(self) -> None:
        assert converters.expand_network(None) is None
        assert converters.expand_disk_encryption(None) is None
        assert converters.expand_compute_isolation(None) is None
        assert converters.expand_security_profile(None) is None
        assert converters.flatten_security_profile(None, {"domain_name": "x"}) is None


class TestMonitoring:
    """Test monitor and extension conversions."""

    def test_monitor_round_trip(self) -> None:
        monitor = {"log_analytics_workspace_id": "ws-1", "primary_key": "key-1"}

        request = converters.expand_monitor(monitor)
        response = ClusterMonitoringResponse(cluster_monitoring_enabled=True, workspace_id=request.workspace_id)

        assert converters.flatten_monitor(response, monitor) == monitor

    def test_monitor_disabled(self) -> None:
        response = ClusterMonitoringResponse(cluster_monitoring_enabled=False)

        assert converters.flatten_monitor(response, {"primary_key": "key"}) is None

    def test_extension_masks_unknown_key(self) -> None:
        response = AzureMonitorResponse(cluster_monitoring_enabled=True, workspace_id="ws-2")

        assert converters.flatten_extension(response, None) == {
            "log_analytics_workspace_id": "ws-2",
            "primary_key": "*****",
        }

    def test_extension_request(self) -> None:
        request = converters.expand_extension({"log_analytics_workspace_id": "ws-2", "primary_key": "key-2"})

        assert (request.workspace_id, request.primary_key) == ("ws-2", "key-2")


class TestScalars:
    """Test tags, endpoints, versions."""

    def test_tags(self) -> None:
        assert converters.expand_tags({}) is None
        assert converters.flatten_tags(converters.expand_tags({"env": "test"})) == {"env": "test"}
        assert converters.flatten_tags(None) == {}

    def test_find_connectivity_endpoint(self) -> None:
        endpoints = [
            ConnectivityEndpoint(name="SSH", location="c-ssh.azurehdinsight.net"),
            ConnectivityEndpoint(name="HTTPS", location="c.azurehdinsight.net"),
        ]

        assert converters.find_connectivity_endpoint("HTTPS", endpoints) == "c.azurehdinsight.net"
        assert converters.find_connectivity_endpoint("SSH", endpoints) == "c-ssh.azurehdinsight.net"
        assert converters.find_connectivity_endpoint("HTTPS", None) is None

    @pytest.mark.parametrize(
        "remote, configured, expected",
        [
            ("4.0.3000.1", "4.0", "4.0"),
            ("4.0.3000.1", "4.0.3000.1", "4.0.3000.1"),
            ("5.0.3000.1", "4.0", "5.0.3000.1"),
            ("4.0.3000.1", None, "4.0.3000.1"),
        ],
    )
    def test_flatten_cluster_version(self, remote: str, configured: str, expected: str) -> None:
        assert converters.flatten_cluster_version(remote, configured) == expected

    def test_spark_component_version(self) -> None:
        expanded = expand_spark_component_version({"spark": "3.1"})

        assert expanded == {"Spark": "3.1"}
        assert flatten_spark_component_version(expanded) == {"spark": "3.1"}
        assert flatten_spark_component_version({"spark": "2.4"}) == {"spark": "2.4"}
        assert flatten_spark_component_version(None) == {"spark": ""}
