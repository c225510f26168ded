"""
Expand and flatten conversions for HDInsight cluster attributes.

``expand_*`` functions turn validated attribute values into request models of
``azure.mgmt.hdinsight``; ``flatten_*`` functions turn response models back
into attribute values shaped like ``model_dump()`` of the matching schema
block. Flattening an expanded value yields the original, except for secrets
the service never returns, which are carried over from the prior state.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from azure.mgmt.hdinsight.models import (
    AzureMonitorRequest,
    AzureMonitorResponse,
    ClusterIdentity,
    ClusterMonitoringRequest,
    ClusterMonitoringResponse,
    ComputeIsolationProperties,
    ConnectivityEndpoint,
    DirectoryType,
    DiskEncryptionProperties,
    NetworkProperties,
    ResourceIdentityType,
    SecurityProfile,
    StorageAccount,
    StorageProfile,
    UserAssignedIdentity,
)

from hdiprovisioner.app.models.enums import ConnectionDirection, PrivateLinkState
from ..base import ResourceValidationError

GATEWAY_SECTION = 'gateway'
GATEWAY_ENABLED_KEY = 'restAuthCredential.isEnabled'
GATEWAY_USERNAME_KEY = 'restAuthCredential.username'
GATEWAY_PASSWORD_KEY = 'restAuthCredential.password'

HIVE_SITE = 'hive-site'
HIVE_ENV = 'hive-env'
OOZIE_SITE = 'oozie-site'
OOZIE_ENV = 'oozie-env'
AMBARI_CONF = 'ambari-conf'

MSSQL_DRIVER = 'com.microsoft.sqlserver.jdbc.SQLServerDriver'
MSSQL_DATABASE_KIND = 'Existing MSSQL Server database with SQL authentication'
MSSQL_DATABASE_TYPE = 'mssql'

MASKED_SECRET = '*****'


def _value(item: Any) -> Any:
    """Unwrap an SDK enum member into its wire string."""
    return getattr(item, 'value', item)


def mssql_jdbc_url(server: str, database: str) -> str:
    return (
        f"jdbc:sqlserver://{server};database={database};"
        f"encrypt=true;trustServerCertificate=true;create=false;loginTimeout=300"
    )


def merge_configurations(*sources: Optional[Dict[str, Dict[str, str]]]) -> Dict[str, Dict[str, str]]:
    """
    Union configuration sections from several sources.

    Raises:
        ResourceValidationError: If two sources define the same section
    """
    merged: Dict[str, Dict[str, str]] = {}
    for source in sources:
        for section, values in (source or {}).items():
            if section in merged:
                raise ResourceValidationError(
                    f"configuration section {section!r} is defined more than once",
                    field='configurations'
                )
            merged[section] = dict(values)
    return merged


# Gateway

def expand_gateway(gateway: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    return {
        GATEWAY_SECTION: {
            GATEWAY_ENABLED_KEY: 'true',
            GATEWAY_USERNAME_KEY: gateway['username'],
            GATEWAY_PASSWORD_KEY: gateway['password'],
        }
    }


def flatten_gateway(section: Dict[str, str], existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    existing = existing or {}
    return {
        'username': section.get(GATEWAY_USERNAME_KEY) or existing.get('username'),
        'password': section.get(GATEWAY_PASSWORD_KEY) or existing.get('password'),
    }


# Metastores

def _expand_hive(metastore: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    server = metastore['server']
    database = metastore['database_name']
    return {
        HIVE_SITE: {
            'javax.jdo.option.ConnectionDriverName': MSSQL_DRIVER,
            'javax.jdo.option.ConnectionURL': mssql_jdbc_url(server, database),
            'javax.jdo.option.ConnectionUserName': metastore['username'],
            'javax.jdo.option.ConnectionPassword': metastore['password'],
        },
        HIVE_ENV: {
            'hive_database': MSSQL_DATABASE_KIND,
            'hive_database_name': database,
            'hive_database_type': MSSQL_DATABASE_TYPE,
            'hive_existing_mssql_server_database': database,
            'hive_existing_mssql_server_host': server,
            'hive_hostname': server,
        },
    }


def _expand_oozie(metastore: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    server = metastore['server']
    database = metastore['database_name']
    return {
        OOZIE_SITE: {
            'oozie.service.JPAService.jdbc.url': mssql_jdbc_url(server, database),
            'oozie.service.JPAService.jdbc.username': metastore['username'],
            'oozie.service.JPAService.jdbc.password': metastore['password'],
            'oozie.db.schema.name': 'oozie',
        },
        OOZIE_ENV: {
            'oozie_database': MSSQL_DATABASE_KIND,
            'oozie_database_name': database,
            'oozie_database_type': MSSQL_DATABASE_TYPE,
            'oozie_existing_mssql_server_database': database,
            'oozie_existing_mssql_server_host': server,
            'oozie_hostname': server,
        },
    }


def _expand_ambari(metastore: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    return {
        AMBARI_CONF: {
            'database-server': metastore['server'],
            'database-name': metastore['database_name'],
            'database-user-name': metastore['username'],
            'database-user-password': metastore['password'],
        },
    }


def expand_metastores(metastores: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, str]]:
    """Build the configuration sections for each external metastore."""
    metastores = metastores or {}
    sections = []
    if metastores.get('hive'):
        sections.append(_expand_hive(metastores['hive']))
    if metastores.get('oozie'):
        sections.append(_expand_oozie(metastores['oozie']))
    if metastores.get('ambari'):
        sections.append(_expand_ambari(metastores['ambari']))
    return merge_configurations(*sections)


def _metastore(
    server: Optional[str],
    database: Optional[str],
    username: Optional[str],
    password: Optional[str],
    existing: Optional[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    if not server or not database:
        return None
    existing = existing or {}
    return {
        'server': server,
        'database_name': database,
        'username': username or existing.get('username'),
        'password': password or existing.get('password'),
    }


def flatten_metastores(
    configurations: Dict[str, Dict[str, str]],
    existing: Optional[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    """Rebuild the metastores block from the cluster configuration sections.

    Returns None when no external metastore is configured.
    """
    existing = existing or {}
    hive_site = configurations.get(HIVE_SITE) or {}
    hive_env = configurations.get(HIVE_ENV) or {}
    oozie_site = configurations.get(OOZIE_SITE) or {}
    oozie_env = configurations.get(OOZIE_ENV) or {}
    ambari = configurations.get(AMBARI_CONF) or {}

    result = {
        'hive': _metastore(
            hive_env.get('hive_existing_mssql_server_host'),
            hive_env.get('hive_existing_mssql_server_database'),
            hive_site.get('javax.jdo.option.ConnectionUserName'),
            hive_site.get('javax.jdo.option.ConnectionPassword'),
            existing.get('hive'),
        ),
        'oozie': _metastore(
            oozie_env.get('oozie_existing_mssql_server_host'),
            oozie_env.get('oozie_existing_mssql_server_database'),
            oozie_site.get('oozie.service.JPAService.jdbc.username'),
            oozie_site.get('oozie.service.JPAService.jdbc.password'),
            existing.get('oozie'),
        ),
        'ambari': _metastore(
            ambari.get('database-server'),
            ambari.get('database-name'),
            ambari.get('database-user-name'),
            ambari.get('database-user-password'),
            existing.get('ambari'),
        ),
    }
    if not any(result.values()):
        return None
    return result


# Storage

def _split_container_url(field: str, value: str) -> Tuple[str, str]:
    parsed = urlparse(value)
    path = parsed.path.strip('/')
    if not parsed.scheme or not parsed.hostname or not path or '/' in path:
        raise ResourceValidationError(
            f"expected a URL of the form https://account.host/container, got {value!r}",
            field=field
        )
    return parsed.hostname, path


def expand_storage_accounts(
    storage_accounts: Optional[List[Dict[str, Any]]],
    gen2_accounts: Optional[List[Dict[str, Any]]]
) -> Tuple[List[StorageAccount], Optional[ClusterIdentity]]:
    """
    Build the storage accounts and the identity used to reach Gen2 storage.

    Exactly one account across both styles must be the default.

    Returns:
        Tuple of (storage accounts, identity or None)

    Raises:
        ResourceValidationError: If no account or not exactly one default is given
    """
    storage_accounts = storage_accounts or []
    gen2_accounts = gen2_accounts or []
    if not storage_accounts and not gen2_accounts:
        raise ResourceValidationError(
            "at least one `storage_account` or `storage_account_gen2` must be specified",
            field='storage_account'
        )

    defaults = [a for a in storage_accounts + gen2_accounts if a.get('is_default')]
    if len(defaults) != 1:
        raise ResourceValidationError(
            f"exactly one storage account must be the default, got {len(defaults)}",
            field='storage_account'
        )

    results: List[StorageAccount] = []
    for account in storage_accounts:
        host, container = _split_container_url('storage_account.storage_container_id', account['storage_container_id'])
        results.append(StorageAccount(
            name=host,
            is_default=account['is_default'],
            container=container,
            key=account['storage_account_key'],
            resource_id=account.get('storage_resource_id') or None,
        ))

    identity = None
    for account in gen2_accounts:
        host, filesystem = _split_container_url('storage_account_gen2.filesystem_id', account['filesystem_id'])
        managed_identity = account['managed_identity_resource_id']
        results.append(StorageAccount(
            name=host,
            is_default=account['is_default'],
            file_system=filesystem,
            resource_id=account['storage_resource_id'],
            msi_resource_id=managed_identity,
        ))
        identity = user_assigned_identity(managed_identity)

    return results, identity


def flatten_storage_accounts_gen2(
    storage_profile: Optional[StorageProfile],
    existing: Optional[List[Dict[str, Any]]]
) -> List[Dict[str, Any]]:
    """Rebuild the Gen2 storage list, keeping prior values when the service omits them."""
    if storage_profile is None or not storage_profile.storageaccounts:
        return list(existing or [])

    results = []
    for account in storage_profile.storageaccounts:
        if not account.file_system:
            continue
        results.append({
            'storage_resource_id': account.resource_id,
            'filesystem_id': f"https://{account.name}/{account.file_system}",
            'managed_identity_resource_id': account.msi_resource_id,
            'is_default': bool(account.is_default),
        })
    return results


def user_assigned_identity(resource_id: str) -> ClusterIdentity:
    return ClusterIdentity(
        type=ResourceIdentityType.USER_ASSIGNED,
        user_assigned_identities={resource_id: UserAssignedIdentity()},
    )


# Network

def expand_network(network: Optional[Dict[str, Any]]) -> Optional[NetworkProperties]:
    if not network:
        return None

    direction = network.get('connection_direction') or ConnectionDirection.INBOUND.value
    private_link = bool(network.get('private_link_enabled'))
    if private_link and direction != ConnectionDirection.OUTBOUND.value:
        raise ResourceValidationError(
            "`private_link_enabled` requires `connection_direction` to be Outbound",
            field='network.private_link_enabled'
        )
    return NetworkProperties(
        resource_provider_connection=direction,
        private_link=PrivateLinkState.ENABLED.value if private_link else PrivateLinkState.DISABLED.value,
    )


def flatten_network(network: Optional[NetworkProperties]) -> Optional[Dict[str, Any]]:
    if network is None:
        return None
    return {
        'connection_direction': _value(network.resource_provider_connection) or ConnectionDirection.INBOUND.value,
        'private_link_enabled': _value(network.private_link) == PrivateLinkState.ENABLED.value,
    }


# Disk encryption

def expand_disk_encryption(disk_encryption: Optional[Dict[str, Any]]) -> Optional[DiskEncryptionProperties]:
    """
    Build disk encryption properties.

    ``key_vault_key_id`` must be a versioned key URL which is split into the
    vault URI, key name and key version.
    """
    if not disk_encryption:
        return None

    properties = DiskEncryptionProperties(
        encryption_algorithm=disk_encryption.get('encryption_algorithm'),
        encryption_at_host=disk_encryption.get('encryption_at_host_enabled'),
        msi_resource_id=disk_encryption.get('key_vault_managed_identity_id'),
    )

    key_id = disk_encryption.get('key_vault_key_id')
    if key_id:
        parsed = urlparse(key_id)
        segments = parsed.path.strip('/').split('/')
        if not parsed.scheme or not parsed.hostname or len(segments) != 3 or segments[0] != 'keys':
            raise ResourceValidationError(
                f"expected a versioned key id of the form https://vault/keys/name/version, got {key_id!r}",
                field='disk_encryption.key_vault_key_id'
            )
        properties.vault_uri = f"{parsed.scheme}://{parsed.netloc}/"
        properties.key_name = segments[1]
        properties.key_version = segments[2]

    return properties


def flatten_disk_encryption(properties: Optional[DiskEncryptionProperties]) -> Optional[Dict[str, Any]]:
    if properties is None:
        return None

    key_id = None
    if properties.vault_uri and properties.key_name and properties.key_version:
        key_id = f"{properties.vault_uri.rstrip('/')}/keys/{properties.key_name}/{properties.key_version}"

    return {
        'encryption_algorithm': _value(properties.encryption_algorithm),
        'encryption_at_host_enabled': properties.encryption_at_host,
        'key_vault_key_id': key_id,
        'key_vault_managed_identity_id': properties.msi_resource_id,
    }


# Compute isolation

def expand_compute_isolation(compute_isolation: Optional[Dict[str, Any]]) -> Optional[ComputeIsolationProperties]:
    if not compute_isolation:
        return None

    enabled = bool(compute_isolation.get('compute_isolation_enabled'))
    host_sku = compute_isolation.get('host_sku') or None
    if host_sku and not enabled:
        raise ResourceValidationError(
            "`host_sku` requires `compute_isolation_enabled`",
            field='compute_isolation.host_sku'
        )
    return ComputeIsolationProperties(enable_compute_isolation=enabled, host_sku=host_sku)


def flatten_compute_isolation(properties: Optional[ComputeIsolationProperties]) -> Optional[Dict[str, Any]]:
    if properties is None:
        return None
    return {
        'compute_isolation_enabled': bool(properties.enable_compute_isolation),
        'host_sku': properties.host_sku,
    }


# Security profile

def expand_security_profile(profile: Optional[Dict[str, Any]]) -> Optional[SecurityProfile]:
    if not profile:
        return None
    return SecurityProfile(
        directory_type=DirectoryType.ACTIVE_DIRECTORY,
        domain=profile['domain_name'],
        ldaps_urls=list(profile['ldaps_urls']),
        domain_username=profile['domain_username'],
        domain_user_password=profile['domain_user_password'],
        cluster_users_group_d_ns=list(profile.get('cluster_users_group_dns') or []),
        aadds_resource_id=profile['aadds_resource_id'],
        msi_resource_id=profile['msi_resource_id'],
    )


def flatten_security_profile(
    profile: Optional[SecurityProfile],
    existing: Optional[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None

    existing = existing or {}
    return {
        'aadds_resource_id': profile.aadds_resource_id,
        'domain_name': profile.domain,
        'domain_username': profile.domain_username,
        'domain_user_password': profile.domain_user_password or existing.get('domain_user_password'),
        'ldaps_urls': list(profile.ldaps_urls or []),
        'msi_resource_id': profile.msi_resource_id,
        'cluster_users_group_dns': list(profile.cluster_users_group_d_ns or []),
    }


# Monitoring

def expand_monitor(monitor: Dict[str, Any]) -> ClusterMonitoringRequest:
    return ClusterMonitoringRequest(
        workspace_id=monitor['log_analytics_workspace_id'],
        primary_key=monitor['primary_key'],
    )


def flatten_monitor(
    response: Optional[ClusterMonitoringResponse],
    existing: Optional[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    if response is None or not response.cluster_monitoring_enabled:
        return None
    return {
        'log_analytics_workspace_id': response.workspace_id,
        'primary_key': (existing or {}).get('primary_key') or MASKED_SECRET,
    }


def expand_extension(extension: Dict[str, Any]) -> AzureMonitorRequest:
    return AzureMonitorRequest(
        workspace_id=extension['log_analytics_workspace_id'],
        primary_key=extension['primary_key'],
    )


def flatten_extension(
    response: Optional[AzureMonitorResponse],
    existing: Optional[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    if response is None or not response.cluster_monitoring_enabled:
        return None
    return {
        'log_analytics_workspace_id': response.workspace_id,
        'primary_key': (existing or {}).get('primary_key') or MASKED_SECRET,
    }


# Tags and scalar values

def expand_tags(tags: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    return dict(tags) if tags else None


def flatten_tags(tags: Optional[Dict[str, str]]) -> Dict[str, str]:
    return dict(tags or {})


def find_connectivity_endpoint(name: str, endpoints: Optional[List[ConnectivityEndpoint]]) -> Optional[str]:
    """Return the location of the named connectivity endpoint, if any."""
    for endpoint in endpoints or []:
        if (endpoint.name or '').upper() == name.upper():
            return endpoint.location
    return None


def flatten_cluster_version(remote: Optional[str], configured: Optional[str]) -> Optional[str]:
    """Keep the configured ``4.0`` form when the service reports ``4.0.3000.1``."""
    if remote and configured:
        if remote.split('.')[:2] == configured.split('.')[:2]:
            return configured
    return remote
