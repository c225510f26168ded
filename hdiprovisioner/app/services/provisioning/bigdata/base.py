"""
Base HDInsight provisioner for declarative cluster resources.

This module implements the Create/Read/Update/Delete/Import lifecycle shared
by every HDInsight cluster kind. Subclasses only describe what differs
between kinds: the cluster kind sent to the service, the node role
constraints, the attribute schema and the component version mapping.
"""

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Awaitable, Dict, Optional, Tuple, Type, Union

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity.aio import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.hdinsight.aio import HDInsightManagementClient
from azure.mgmt.hdinsight.models import (
    AutoscaleConfigurationUpdateParameter,
    Cluster,
    ClusterCreateParametersExtended,
    ClusterCreateProperties,
    ClusterDefinition,
    ClusterPatchParameters,
    ClusterResizeParameters,
    EncryptionInTransitProperties,
    OSType,
    StorageProfile,
    UpdateGatewaySettingsParameters,
)
from pydantic import BaseModel, ValidationError

from hdiprovisioner.app.models.enums import EndpointName, NodeRole
from hdiprovisioner.app.schemas.common import (
    TimeoutsSchema,
    canonical_tier,
    force_new_changes,
    normalize_location,
)
from hdiprovisioner.app.utils import timeout_wrapper, wait_for_poller
from ..base import (
    BaseProvisioner,
    OperationTimeoutError,
    PostCreateError,
    ProvisionerConfig,
    ProvisionerException,
    ResourceAlreadyExistsError,
    ResourceData,
    ResourceValidationError,
    Timeouts,
)
from ..resource_id import ClusterId
from . import converters
from .roles import (
    RoleDefinition,
    expand_autoscale,
    expand_roles,
    flatten_roles,
    validate_instance_count,
)

logger = logging.getLogger(__name__)


class BaseHDInsightProvisioner(BaseProvisioner):
    """
    Declarative provisioner for one HDInsight cluster kind.

    Class attributes set by subclasses:
        CLUSTER_KIND: Kind sent in the cluster definition, e.g. ``Spark``
        RESOURCE_TYPE: Resource type name used in conflict errors
        ROLE_DEFINITION: Node role constraints of the kind
        SCHEMA: Pydantic model validating the attributes
    """

    CLUSTER_KIND: str = ''
    RESOURCE_TYPE: str = ''
    ROLE_DEFINITION: RoleDefinition
    SCHEMA: Type[BaseModel]

    def __init__(
        self,
        config: ProvisionerConfig,
        client: Optional[HDInsightManagementClient] = None,
        credential: Optional[Any] = None
    ):
        """
        Initialize the provisioner.

        Args:
            config: Provisioner configuration containing:
                - subscription_id: Subscription clusters are created in
                - credentials: Dict with tenant_id, client_id, client_secret;
                  when client_secret is empty DefaultAzureCredential is used
                - polling_interval: Seconds between long-running operation polls
            client: Pre-built management client, mostly for tests
            credential: Pre-built async credential
        """
        super().__init__(config)

        if not config.subscription_id:
            raise ProvisionerException(
                "Missing required Azure setting: subscription_id",
                provider=config.provider_type
            )

        self._client = client
        self._credential = credential
        self._owns_client = client is None

    @property
    def provider(self) -> str:
        return self.config.provider_type

    @property
    def credential(self):
        """Lazy-load the async Azure credential."""
        if self._credential is None:
            creds = self.config.credentials or {}
            if creds.get('client_secret'):
                self._credential = ClientSecretCredential(
                    tenant_id=creds.get('tenant_id'),
                    client_id=creds.get('client_id'),
                    client_secret=creds.get('client_secret')
                )
            else:
                self._credential = DefaultAzureCredential()
        return self._credential

    @property
    def client(self) -> HDInsightManagementClient:
        """Lazy-load HDInsight Management Client."""
        if self._client is None:
            self._client = HDInsightManagementClient(
                self.credential,
                self.config.subscription_id,
                polling_interval=self.config.polling_interval
            )
        return self._client

    async def close(self) -> None:
        """Close the management client and credential this provisioner created."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
            if self._credential is not None:
                await self._credential.close()
                self._credential = None

    async def __aenter__(self) -> 'BaseHDInsightProvisioner':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # Cluster kind specifics

    @abstractmethod
    def expand_component_version(self, component_version: Dict[str, Any]) -> Dict[str, str]:
        """Map the component_version block to the wire component versions."""
        pass

    @abstractmethod
    def flatten_component_version(self, component_version: Optional[Dict[str, str]]) -> Dict[str, Any]:
        """Map wire component versions back to the component_version block."""
        pass

    # Validation and request building

    def _validate(self, model: Type[BaseModel], attributes: Dict[str, Any], prefix: str = '') -> BaseModel:
        try:
            return model.model_validate(attributes)
        except ValidationError as e:
            first = e.errors()[0]
            field = prefix + '.'.join(str(part) for part in first['loc'])
            raise ResourceValidationError(
                f"invalid value for `{field}`: {first['msg']}",
                field=field
            ) from e

    def validate(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate attributes against the schema.

        Returns:
            Normalised attribute values

        Raises:
            ResourceValidationError: If the attributes do not match the schema
        """
        return self._validate(self.SCHEMA, attributes).model_dump()

    def _normalized(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        # Imported state may be incomplete, compare it as stored
        try:
            return self.SCHEMA.model_validate(attributes).model_dump()
        except ValidationError:
            return attributes

    def _timeouts(self, data: ResourceData) -> Timeouts:
        overrides = data.get('timeouts')
        if overrides:
            overrides = self._validate(TimeoutsSchema, overrides, prefix='timeouts.').model_dump()
        return self.config.timeouts.merged(overrides)

    def build_create_parameters(self, desired: Dict[str, Any]) -> ClusterCreateParametersExtended:
        """
        Build the single create request for a validated attribute set.

        A security profile forces a user assigned identity holding only its
        ``msi_resource_id``, replacing any identity derived from Gen2 storage.

        Args:
            desired: Attribute values as returned by ``validate``

        Returns:
            Create request parameters

        Raises:
            ResourceValidationError: If attributes break a cross-field rule
        """
        configurations = converters.merge_configurations(
            converters.expand_gateway(desired['gateway']),
            converters.expand_metastores(desired.get('metastores')),
        )
        storage_accounts, identity = converters.expand_storage_accounts(
            desired.get('storage_account'),
            desired.get('storage_account_gen2')
        )
        compute_profile = expand_roles(desired['roles'], self.ROLE_DEFINITION)

        security_profile = converters.expand_security_profile(desired.get('security_profile'))
        if security_profile is not None:
            identity = converters.user_assigned_identity(security_profile.msi_resource_id)

        properties = ClusterCreateProperties(
            cluster_version=desired['cluster_version'],
            os_type=OSType.LINUX,
            tier=desired['tier'],
            cluster_definition=ClusterDefinition(
                kind=self.CLUSTER_KIND,
                component_version=self.expand_component_version(desired['component_version']),
                configurations=configurations,
            ),
            security_profile=security_profile,
            compute_profile=compute_profile,
            storage_profile=StorageProfile(storageaccounts=storage_accounts),
            disk_encryption_properties=converters.expand_disk_encryption(desired.get('disk_encryption')),
            encryption_in_transit_properties=EncryptionInTransitProperties(
                is_encryption_in_transit_enabled=bool(desired.get('encryption_in_transit_enabled'))
            ),
            min_supported_tls_version=desired.get('tls_min_version'),
            network_properties=converters.expand_network(desired.get('network')),
            compute_isolation_properties=converters.expand_compute_isolation(desired.get('compute_isolation')),
        )

        return ClusterCreateParametersExtended(
            location=normalize_location(desired['location']),
            tags=converters.expand_tags(desired.get('tags')),
            properties=properties,
            identity=identity,
        )

    # Remote call helpers

    def _error(
        self,
        action: str,
        cluster_id: ClusterId,
        error: Exception,
        operation: str
    ) -> ProvisionerException:
        return ProvisionerException(
            f"{action} {cluster_id}",
            provider=self.provider,
            resource_id=cluster_id.id(),
            original_error=error,
            operation=operation
        )

    async def _call(self, action: str, cluster_id: ClusterId, operation: str, awaitable: Awaitable) -> Any:
        try:
            return await awaitable
        except AzureError as e:
            raise self._error(action, cluster_id, e, operation) from e

    async def _run(self, operation: str, seconds: int, coro: Awaitable, resource_id: str = '') -> Any:
        try:
            return await timeout_wrapper(coro, timeout_seconds=seconds)
        except asyncio.TimeoutError as e:
            raise OperationTimeoutError(
                f"{operation} did not complete within {seconds} seconds",
                provider=self.provider,
                resource_id=resource_id or None,
                original_error=e,
                operation=operation
            ) from e

    async def _get_cluster(self, cluster_id: ClusterId, action: str, operation: str) -> Optional[Cluster]:
        try:
            return await self.client.clusters.get(cluster_id.resource_group_name, cluster_id.cluster_name)
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            raise self._error(action, cluster_id, e, operation) from e

    async def _enable_monitor(self, cluster_id: ClusterId, monitor: Dict[str, Any]) -> None:
        await self._call(
            "enabling monitoring for", cluster_id, 'enable monitoring',
            wait_for_poller(
                self.client.extensions.begin_enable_monitoring,
                cluster_id.resource_group_name,
                cluster_id.cluster_name,
                converters.expand_monitor(monitor)
            )
        )

    async def _disable_monitor(self, cluster_id: ClusterId) -> None:
        await self._call(
            "disabling monitoring for", cluster_id, 'disable monitoring',
            wait_for_poller(
                self.client.extensions.begin_disable_monitoring,
                cluster_id.resource_group_name,
                cluster_id.cluster_name
            )
        )

    async def _enable_extension(self, cluster_id: ClusterId, extension: Dict[str, Any]) -> None:
        await self._call(
            "enabling Azure Monitor for", cluster_id, 'enable azure monitor',
            wait_for_poller(
                self.client.extensions.begin_enable_azure_monitor,
                cluster_id.resource_group_name,
                cluster_id.cluster_name,
                converters.expand_extension(extension)
            )
        )

    async def _disable_extension(self, cluster_id: ClusterId) -> None:
        await self._call(
            "disabling Azure Monitor for", cluster_id, 'disable azure monitor',
            wait_for_poller(
                self.client.extensions.begin_disable_azure_monitor,
                cluster_id.resource_group_name,
                cluster_id.cluster_name
            )
        )

    # Create

    async def create(self, data: ResourceData) -> ResourceData:
        timeouts = self._timeouts(data)
        return await self._run('create', timeouts.create, self._create(data))

    async def _create(self, data: ResourceData) -> ResourceData:
        desired = self.validate(data.attributes)
        parameters = self.build_create_parameters(desired)
        cluster_id = ClusterId(
            subscription_id=self.config.subscription_id,
            resource_group_name=desired['resource_group_name'],
            cluster_name=desired['name'],
        )

        existing = await self._get_cluster(cluster_id, "checking for presence of existing", 'create')
        if existing is not None:
            raise ResourceAlreadyExistsError(self.RESOURCE_TYPE, cluster_id.id(), provider=self.provider)

        logger.info(f"Creating {cluster_id}")
        await self._call(
            "creating", cluster_id, 'create',
            wait_for_poller(
                self.client.clusters.begin_create,
                cluster_id.resource_group_name,
                cluster_id.cluster_name,
                parameters
            )
        )
        data.set_id(cluster_id.id())
        logger.info(f"Created {cluster_id}")

        # Monitoring can only be enabled once the cluster exists
        try:
            for key, enable in (('monitor', self._enable_monitor), ('extension', self._enable_extension)):
                _, enabled = data.get_ok(key)
                if enabled:
                    await enable(cluster_id, desired[key])
        except ProvisionerException as e:
            raise PostCreateError(
                f"{cluster_id} was created but {e.operation} failed",
                provider=self.provider,
                resource_id=cluster_id.id(),
                original_error=e.original_error,
                operation=e.operation
            ) from e

        return await self._read(data)

    # Read

    async def read(self, data: ResourceData) -> ResourceData:
        timeouts = self._timeouts(data)
        return await self._run('read', timeouts.read, self._read(data), resource_id=data.id)

    async def _read(self, data: ResourceData) -> ResourceData:
        cluster_id = ClusterId.parse(data.id)
        rg, name = cluster_id.resource_group_name, cluster_id.cluster_name

        cluster = await self._get_cluster(cluster_id, "retrieving", 'read')
        if cluster is None:
            logger.debug(f"{cluster_id} was not found - removing from state")
            data.set_id("")
            return data

        # One bulk call instead of one request per configuration section
        configurations = await self._call(
            "retrieving Configuration for", cluster_id, 'read',
            self.client.configurations.list(rg, name)
        )
        sections = configurations.configurations or {}
        gateway = sections.get(converters.GATEWAY_SECTION)
        if gateway is None:
            raise ProvisionerException(
                f"retrieving gateway for {cluster_id}: section {converters.GATEWAY_SECTION!r} is missing",
                provider=self.provider,
                resource_id=cluster_id.id(),
                operation='read'
            )
        data.set('metastores', converters.flatten_metastores(sections, data.get('metastores')))
        data.set('gateway', converters.flatten_gateway(gateway, data.get('gateway')))

        data.set('name', name)
        data.set('resource_group_name', rg)
        data.set('location', normalize_location(cluster.location))

        # storage_account is write-only, the service never returns the keys
        props = cluster.properties
        if props is not None:
            self._flatten_properties(data, props)

            monitor = await self._call(
                "reading monitor configuration for", cluster_id, 'read',
                self.client.extensions.get_monitoring_status(rg, name)
            )
            data.set('monitor', converters.flatten_monitor(monitor, data.get('monitor')))

            extension = await self._call(
                "reading extension configuration for", cluster_id, 'read',
                self.client.extensions.get_azure_monitor_status(rg, name)
            )
            data.set('extension', converters.flatten_extension(extension, data.get('extension')))

        data.set('tags', converters.flatten_tags(cluster.tags))
        return data

    def _flatten_properties(self, data: ResourceData, props: Any) -> None:
        data.set('tier', canonical_tier(getattr(props.tier, 'value', props.tier)))
        data.set('cluster_version', converters.flatten_cluster_version(props.cluster_version, data.get('cluster_version')))
        data.set('tls_min_version', props.min_supported_tls_version)

        definition = props.cluster_definition
        data.set('component_version', self.flatten_component_version(
            definition.component_version if definition is not None else None
        ))

        if props.encryption_in_transit_properties is not None:
            data.set(
                'encryption_in_transit_enabled',
                props.encryption_in_transit_properties.is_encryption_in_transit_enabled
            )
        if props.disk_encryption_properties is not None:
            data.set('disk_encryption', converters.flatten_disk_encryption(props.disk_encryption_properties))
        if props.network_properties is not None:
            data.set('network', converters.flatten_network(props.network_properties))
        if props.compute_isolation_properties is not None:
            data.set('compute_isolation', converters.flatten_compute_isolation(props.compute_isolation_properties))

        data.set('roles', flatten_roles(props.compute_profile, data.get('roles'), self.ROLE_DEFINITION))
        data.set('storage_account_gen2', converters.flatten_storage_accounts_gen2(
            props.storage_profile, data.get('storage_account_gen2')
        ))
        data.set('https_endpoint', converters.find_connectivity_endpoint(
            EndpointName.HTTPS.value, props.connectivity_endpoints
        ))
        data.set('ssh_endpoint', converters.find_connectivity_endpoint(
            EndpointName.SSH.value, props.connectivity_endpoints
        ))
        data.set('security_profile', converters.flatten_security_profile(
            props.security_profile, data.get('security_profile')
        ))

    # Update

    async def update(self, data: ResourceData) -> ResourceData:
        timeouts = self._timeouts(data)
        return await self._run('update', timeouts.update, self._update(data), resource_id=data.id)

    def _worker_changes(
        self,
        prior: Dict[str, Any],
        desired: Dict[str, Any]
    ) -> Tuple[Optional[AutoscaleConfigurationUpdateParameter], Optional[ClusterResizeParameters]]:
        definition = self.ROLE_DEFINITION.worker_node
        old = (prior.get('roles') or {}).get('worker_node') or {}
        new = desired['roles']['worker_node']

        autoscale = None
        if old.get('autoscale') != new.get('autoscale'):
            autoscale = AutoscaleConfigurationUpdateParameter(
                autoscale=expand_autoscale('roles.worker_node.autoscale', new.get('autoscale'), definition)
            )

        resize = None
        if old.get('target_instance_count') != new.get('target_instance_count'):
            resize = ClusterResizeParameters(target_instance_count=validate_instance_count(
                'roles.worker_node.target_instance_count', new.get('target_instance_count'), definition
            ))
        return autoscale, resize

    async def _update(self, data: ResourceData) -> ResourceData:
        cluster_id = ClusterId.parse(data.id)
        rg, name = cluster_id.resource_group_name, cluster_id.cluster_name
        desired = self.validate(data.attributes)
        prior = self._normalized(data.prior_attributes)

        replaced = force_new_changes(self.SCHEMA, prior, desired)
        if replaced:
            raise ResourceValidationError(
                f"changing {', '.join(replaced)} requires replacing {cluster_id}",
                field=replaced[0],
                resource_id=cluster_id.id()
            )

        def changed(key: str) -> bool:
            # Raw differences that vanish once normalised are not changes
            return data.has_change(key) and prior.get(key) != desired.get(key)

        # Everything is validated before the first request goes out
        expand_roles(desired['roles'], self.ROLE_DEFINITION)
        autoscale, resize = self._worker_changes(prior, desired) if changed('roles') else (None, None)

        logger.info(f"Updating {cluster_id}")
        if changed('tags'):
            await self._call(
                "updating tags for", cluster_id, 'update tags',
                self.client.clusters.update(rg, name, ClusterPatchParameters(tags=desired.get('tags') or {}))
            )

        if autoscale is not None:
            await self._call(
                "updating autoscale configuration for", cluster_id, 'update autoscale',
                wait_for_poller(
                    self.client.clusters.begin_update_auto_scale_configuration,
                    rg, name, NodeRole.WORKER.value, autoscale
                )
            )

        if resize is not None:
            await self._call(
                "resizing", cluster_id, 'resize',
                wait_for_poller(self.client.clusters.begin_resize, rg, name, NodeRole.WORKER.value, resize)
            )

        if changed('gateway'):
            await self._call(
                "updating gateway settings for", cluster_id, 'update gateway',
                wait_for_poller(
                    self.client.clusters.begin_update_gateway_settings,
                    rg, name,
                    UpdateGatewaySettingsParameters(
                        is_credential_enabled=True,
                        user_name=desired['gateway']['username'],
                        password=desired['gateway']['password'],
                    )
                )
            )

        if changed('monitor'):
            if desired.get('monitor'):
                await self._enable_monitor(cluster_id, desired['monitor'])
            else:
                await self._disable_monitor(cluster_id)

        if changed('extension'):
            if desired.get('extension'):
                await self._enable_extension(cluster_id, desired['extension'])
            else:
                await self._disable_extension(cluster_id)

        return await self._read(data)

    # Delete

    async def delete(self, data: ResourceData) -> None:
        timeouts = self._timeouts(data)
        await self._run('delete', timeouts.delete, self._delete(data), resource_id=data.id)

    async def _delete(self, data: ResourceData) -> None:
        cluster_id = ClusterId.parse(data.id)
        logger.info(f"Deleting {cluster_id}")
        try:
            await wait_for_poller(
                self.client.clusters.begin_delete,
                cluster_id.resource_group_name,
                cluster_id.cluster_name
            )
        except ResourceNotFoundError:
            logger.debug(f"{cluster_id} was already deleted")
        except AzureError as e:
            raise self._error("deleting", cluster_id, e, 'delete') from e
        data.set_id("")

    # Import

    async def import_state(self, resource_id: str) -> ResourceData:
        cluster_id = ClusterId.parse(resource_id)
        data = ResourceData(resource_id=cluster_id.id())
        await self._run('import', self.config.timeouts.read, self._read(data), resource_id=cluster_id.id())
        if not data.id:
            raise ProvisionerException(
                f"cannot import non-existent {cluster_id}",
                provider=self.provider,
                resource_id=cluster_id.id(),
                operation='import'
            )
        return data


def get_bigdata_provisioner(
    cluster_kind: str,
    config: Union[ProvisionerConfig, Dict[str, Any]],
    client: Optional[HDInsightManagementClient] = None
) -> BaseHDInsightProvisioner:
    """
    Factory function to instantiate the provisioner for an HDInsight cluster kind.

    Args:
        cluster_kind: Cluster kind (spark)
        config: ProvisionerConfig or a dictionary of its fields; a ``timeouts``
            entry may be a mapping of per-operation overrides
        client: Pre-built management client

    Returns:
        Instantiated provisioner implementation

    Raises:
        ProvisionerException: If cluster_kind is unknown

    Examples:
        >>> config = {'subscription_id': '...', 'credentials': {...}}
        >>> provisioner = get_bigdata_provisioner('spark', config)
        >>> data = await provisioner.create(ResourceData(attributes))
    """
    cluster_kind = cluster_kind.lower()

    if isinstance(config, ProvisionerConfig):
        provisioner_config = config
    else:
        config = dict(config)
        timeouts = config.pop('timeouts', None)
        provisioner_config = ProvisionerConfig(**config)
        if isinstance(timeouts, Timeouts):
            provisioner_config.timeouts = timeouts
        elif timeouts:
            provisioner_config.timeouts = Timeouts().merged(timeouts)

    # Import kinds lazily to avoid circular dependencies
    if cluster_kind == 'spark':
        from .spark import SparkClusterProvisioner
        return SparkClusterProvisioner(provisioner_config, client=client)
    else:
        raise ProvisionerException(
            f"Unknown cluster kind: {cluster_kind}",
            provider=provisioner_config.provider_type
        )
