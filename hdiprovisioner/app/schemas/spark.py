"""Pydantic schemas for HDInsight Spark cluster management."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from hdiprovisioner.app.models.enums import ClusterTier, TLSVersion
from hdiprovisioner.app.schemas.common import (
    Block,
    TimeoutsSchema,
    attribute,
    canonical_tier,
    normalize_location,
    validate_tags,
)
from hdiprovisioner.app.schemas.hdinsight import (
    ComputeIsolationSchema,
    DiskEncryptionSchema,
    ExtensionSchema,
    Gen2StorageAccountSchema,
    GatewaySchema,
    MetastoresSchema,
    MonitorSchema,
    NetworkSchema,
    RolesSchema,
    SecurityProfileSchema,
    StorageAccountSchema,
)

CLUSTER_NAME_PATTERN = r'^[a-zA-Z0-9][a-zA-Z0-9-]{1,57}[a-zA-Z0-9]$'


class SparkComponentVersionSchema(Block):
    spark: str = attribute(..., min_length=1, force_new=True, description="Spark version, e.g. 2.4")


class SparkClusterSchema(BaseModel):
    """Declarative attributes of an HDInsight Spark cluster."""

    name: str = attribute(..., pattern=CLUSTER_NAME_PATTERN, force_new=True, description="Cluster name")
    resource_group_name: str = attribute(
        ..., min_length=1, max_length=90, force_new=True, description="Resource group name"
    )
    location: str = attribute(..., min_length=1, force_new=True, description="Azure region")
    cluster_version: str = attribute(..., min_length=1, force_new=True, description="HDInsight version, e.g. 4.0")
    tier: ClusterTier = attribute(..., force_new=True, description="Cluster tier")
    tls_min_version: Optional[TLSVersion] = attribute(None, force_new=True)
    encryption_in_transit_enabled: Optional[bool] = attribute(None, force_new=True, computed=True)
    disk_encryption: Optional[DiskEncryptionSchema] = attribute(None, force_new=True)
    component_version: SparkComponentVersionSchema = attribute(..., force_new=True)
    compute_isolation: Optional[ComputeIsolationSchema] = attribute(None, force_new=True)
    gateway: GatewaySchema
    metastores: Optional[MetastoresSchema] = attribute(None, force_new=True)
    network: Optional[NetworkSchema] = attribute(None, force_new=True)
    security_profile: Optional[SecurityProfileSchema] = attribute(None, force_new=True)
    storage_account: List[StorageAccountSchema] = attribute(
        default_factory=list, force_new=True, write_only=True,
        description="Classic storage accounts; keys are never returned so this is not read back",
    )
    storage_account_gen2: List[Gen2StorageAccountSchema] = attribute(
        default_factory=list, max_length=1, force_new=True
    )
    roles: RolesSchema
    https_endpoint: Optional[str] = attribute(None, computed=True)
    ssh_endpoint: Optional[str] = attribute(None, computed=True)
    monitor: Optional[MonitorSchema] = None
    extension: Optional[ExtensionSchema] = None
    tags: Dict[str, str] = attribute(default_factory=dict)
    timeouts: Optional[TimeoutsSchema] = None

    model_config = ConfigDict(extra='forbid', use_enum_values=True)

    @field_validator('tier', mode='before')
    @classmethod
    def _canonical_tier(cls, value):
        if not isinstance(value, str):
            return value
        return canonical_tier(value) or value

    @field_validator('location')
    @classmethod
    def _normalize_location(cls, value: str) -> str:
        return normalize_location(value)

    @field_validator('tags', mode='before')
    @classmethod
    def _default_tags(cls, value):
        return {} if value is None else value

    @field_validator('tags')
    @classmethod
    def _validate_tags(cls, value: Dict[str, str]) -> Dict[str, str]:
        return validate_tags(value)
