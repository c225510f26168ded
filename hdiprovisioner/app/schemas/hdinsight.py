"""Pydantic schemas for blocks shared by every HDInsight cluster kind.

Each block mirrors one nested attribute of a cluster definition. Rules that
depend on the cluster kind (instance count bounds, autoscale eligibility,
storage primaries) are enforced by the expand step, not here.
"""

from typing import List, Optional

from pydantic import Field

from hdiprovisioner.app.models.enums import (
    ConnectionDirection,
    DiskEncryptionAlgorithm,
    Weekday,
)
from hdiprovisioner.app.schemas.common import Block, attribute


class GatewaySchema(Block):
    """Credentials for the cluster's HTTP gateway (Ambari, Spark UI)."""

    username: str = attribute(..., min_length=1, force_new=True, description="Gateway username")
    password: str = attribute(..., min_length=1, sensitive=True, description="Gateway password")


class MetastoreSchema(Block):
    """An external SQL Server database backing one metastore."""

    server: str = attribute(..., min_length=1, force_new=True, description="Fully qualified SQL server name")
    database_name: str = attribute(..., min_length=1, force_new=True, description="Database name")
    username: str = attribute(..., min_length=1, force_new=True, description="Database username")
    password: str = attribute(..., min_length=1, force_new=True, sensitive=True, description="Database password")


class MetastoresSchema(Block):
    """External metastores for Hive, Oozie and Ambari."""

    hive: Optional[MetastoreSchema] = attribute(None, force_new=True)
    oozie: Optional[MetastoreSchema] = attribute(None, force_new=True)
    ambari: Optional[MetastoreSchema] = attribute(None, force_new=True)


class NetworkSchema(Block):
    connection_direction: ConnectionDirection = attribute(
        ConnectionDirection.INBOUND.value, force_new=True,
        description="Direction of the resource provider connection",
    )
    private_link_enabled: bool = attribute(False, force_new=True)


class DiskEncryptionSchema(Block):
    """Customer managed key encryption for data disks."""

    encryption_algorithm: Optional[DiskEncryptionAlgorithm] = attribute(None, force_new=True)
    encryption_at_host_enabled: Optional[bool] = attribute(None, force_new=True)
    key_vault_key_id: Optional[str] = attribute(
        None, force_new=True,
        description="Versioned Key Vault key id, e.g. https://vault.vault.azure.net/keys/name/version",
    )
    key_vault_managed_identity_id: Optional[str] = attribute(None, force_new=True)


class ComputeIsolationSchema(Block):
    compute_isolation_enabled: bool = attribute(False, force_new=True)
    host_sku: Optional[str] = attribute(None, force_new=True)


class SecurityProfileSchema(Block):
    """Enterprise Security Package settings (domain joined cluster)."""

    aadds_resource_id: str = attribute(..., min_length=1, force_new=True)
    domain_name: str = attribute(..., min_length=1, force_new=True)
    domain_username: str = attribute(..., min_length=1, force_new=True)
    domain_user_password: str = attribute(..., min_length=1, force_new=True, sensitive=True)
    ldaps_urls: List[str] = attribute(..., min_length=1, force_new=True)
    msi_resource_id: str = attribute(..., min_length=1, force_new=True)
    cluster_users_group_dns: List[str] = attribute(default_factory=list, force_new=True)


class StorageAccountSchema(Block):
    """A classic blob storage account."""

    storage_account_key: str = attribute(..., min_length=1, force_new=True, sensitive=True)
    storage_container_id: str = attribute(
        ..., min_length=1, force_new=True,
        description="Container URL, e.g. https://account.blob.core.windows.net/container",
    )
    storage_resource_id: Optional[str] = attribute(None, force_new=True)
    is_default: bool = attribute(..., force_new=True)


class Gen2StorageAccountSchema(Block):
    """A Data Lake Storage Gen2 account accessed through a managed identity."""

    storage_resource_id: str = attribute(..., min_length=1, force_new=True)
    filesystem_id: str = attribute(
        ..., min_length=1, force_new=True,
        description="Filesystem URL, e.g. https://account.dfs.core.windows.net/filesystem",
    )
    managed_identity_resource_id: str = attribute(..., min_length=1, force_new=True)
    is_default: bool = attribute(..., force_new=True)


class ScriptActionSchema(Block):
    name: str = attribute(..., min_length=1, force_new=True)
    uri: str = attribute(..., min_length=1, force_new=True)
    parameters: str = attribute("", force_new=True)


class AutoscaleCapacitySchema(Block):
    min_instance_count: int = Field(..., ge=1, description="Lower bound of worker nodes")
    max_instance_count: int = Field(..., ge=1, description="Upper bound of worker nodes")


class AutoscaleScheduleSchema(Block):
    days: List[Weekday] = Field(..., min_length=1)
    time: str = Field(..., pattern=r'^([01][0-9]|2[0-3]):[0-5][0-9]$', description="24h HH:MM")
    target_instance_count: int = Field(..., ge=1)


class AutoscaleRecurrenceSchema(Block):
    timezone: str = Field(..., min_length=1)
    schedule: List[AutoscaleScheduleSchema] = Field(..., min_length=1)


class AutoscaleSchema(Block):
    """Load based (capacity) or schedule based (recurrence) autoscaling."""

    capacity: Optional[AutoscaleCapacitySchema] = None
    recurrence: Optional[AutoscaleRecurrenceSchema] = None


class NodeSchema(Block):
    """One node role of the compute profile."""

    vm_size: str = attribute(..., min_length=1, force_new=True)
    username: str = attribute(..., min_length=1, force_new=True)
    password: Optional[str] = attribute(None, force_new=True, sensitive=True)
    ssh_keys: List[str] = attribute(default_factory=list, force_new=True)
    subnet_id: Optional[str] = attribute(None, force_new=True)
    virtual_network_id: Optional[str] = attribute(None, force_new=True)
    script_actions: List[ScriptActionSchema] = attribute(default_factory=list, force_new=True)
    number_of_disks_per_node: Optional[int] = attribute(None, force_new=True)
    target_instance_count: Optional[int] = attribute(None)
    autoscale: Optional[AutoscaleSchema] = attribute(None)


class RolesSchema(Block):
    head_node: NodeSchema
    worker_node: NodeSchema
    zookeeper_node: NodeSchema


class MonitorSchema(Block):
    """Log Analytics workspace receiving classic cluster monitoring."""

    log_analytics_workspace_id: str = attribute(..., min_length=1)
    primary_key: str = attribute(..., min_length=1, sensitive=True)


class ExtensionSchema(MonitorSchema):
    """Log Analytics workspace receiving the Azure Monitor extension."""

