"""
Base provisioner abstract class for declarative cloud resources.

This module defines the core interface that every resource provisioner
implements, the declarative state record exchanged with the calling engine,
and the error taxonomy shared by all provisioners.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Timeouts:
    """
    Per-operation timeout budget in seconds.

    Attributes:
        create: Budget for create, including post-create steps and read-back
        read: Budget for a read
        update: Budget for an update, including read-back
        delete: Budget for a delete
    """
    create: int = 60 * 60
    read: int = 5 * 60
    update: int = 60 * 60
    delete: int = 60 * 60

    def merged(self, overrides: Optional[Dict[str, Any]]) -> 'Timeouts':
        """Return a copy with any non-empty override applied."""
        if not overrides:
            return self
        changes = {
            f.name: int(overrides[f.name])
            for f in fields(self)
            if overrides.get(f.name)
        }
        return replace(self, **changes)


@dataclass
class ProvisionerConfig:
    """
    Common configuration for all provisioners.

    Attributes:
        provider_type: Type of provider (azure)
        subscription_id: Subscription new resources are created in
        credentials: Provider-specific credential dictionary
        polling_interval: Seconds between long-running operation polls
        timeouts: Default timeouts for each operation
    """
    provider_type: str = 'azure'
    subscription_id: str = ''
    credentials: Dict[str, Any] = field(default_factory=dict)
    polling_interval: int = 30
    timeouts: Timeouts = field(default_factory=Timeouts)


class ProvisionerException(Exception):
    """
    Base exception for provisioner errors.

    Attributes:
        message: Error message
        provider: Provider type where error occurred
        resource_id: Resource ID if applicable
        original_error: Original exception if wrapped
        operation: Failing sub-operation, e.g. ``create`` or ``enable monitoring``
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        resource_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
        operation: Optional[str] = None
    ):
        self.message = message
        self.provider = provider
        self.resource_id = resource_id
        self.original_error = original_error
        self.operation = operation
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.append(f"Provider: {self.provider}")
        if self.resource_id:
            parts.append(f"Resource: {self.resource_id}")
        if self.original_error:
            parts.append(f"Original error: {str(self.original_error)}")
        return " | ".join(parts)


class ResourceAlreadyExistsError(ProvisionerException):
    """Raised when a create targets an identifier that already exists remotely."""

    def __init__(self, resource_type: str, resource_id: str, provider: Optional[str] = None):
        self.resource_type = resource_type
        super().__init__(
            f"A resource with the ID {resource_id!r} already exists - to be managed "
            f"via this provisioner it needs to be imported into the state as a "
            f"{resource_type!r} resource",
            provider=provider,
            resource_id=resource_id,
            operation="create",
        )


class ResourceValidationError(ProvisionerException):
    """Raised when declarative attributes are malformed or contradictory.

    Always raised before any network call is made.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        resource_id: Optional[str] = None
    ):
        self.field = field
        super().__init__(message, resource_id=resource_id, operation="validate")


class OperationTimeoutError(ProvisionerException):
    """Raised when an operation exceeds its timeout budget."""


class PostCreateError(ProvisionerException):
    """Raised when the resource was created but a follow-up step failed.

    The state is already anchored to the new resource, nothing is rolled back.
    """


class ResourceData:
    """
    Declarative state record for a single resource.

    Attribute values are nested mappings and lists of primitives keyed by
    schema field names. An empty id means no remote resource is tracked.

    Attributes:
        id: Resource identifier, or empty string
    """

    def __init__(
        self,
        attributes: Optional[Dict[str, Any]] = None,
        resource_id: str = "",
        prior: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the record.

        Args:
            attributes: Desired (planned) attribute values
            resource_id: Identifier of the tracked remote resource
            prior: Last persisted attribute values, defaults to ``attributes``
        """
        self._id = resource_id or ""
        self._attributes: Dict[str, Any] = copy.deepcopy(attributes or {})
        if prior is None:
            prior = self._attributes
        self._prior: Dict[str, Any] = copy.deepcopy(prior)

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, resource_id: str) -> None:
        self._id = resource_id or ""

    def get(self, key: str, default: Any = None) -> Any:
        value = self._attributes.get(key)
        return default if value is None else value

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        """Return the value and whether it is set to a non-zero value."""
        value = self._attributes.get(key)
        return value, value not in (None, "", 0, False) and value != [] and value != {}

    def set(self, key: str, value: Any) -> None:
        self._attributes[key] = copy.deepcopy(value)

    def has_change(self, key: str) -> bool:
        return self._prior.get(key) != self._attributes.get(key)

    @property
    def attributes(self) -> Dict[str, Any]:
        return copy.deepcopy(self._attributes)

    @property
    def prior_attributes(self) -> Dict[str, Any]:
        return copy.deepcopy(self._prior)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self._id, **self.attributes}

    def __repr__(self) -> str:
        return f"ResourceData(id={self._id!r})"


class BaseProvisioner(ABC):
    """
    Abstract base class for declarative resource provisioners.

    All provisioner implementations must inherit from this class and
    implement the CRUD lifecycle plus import.
    """

    def __init__(self, config: ProvisionerConfig):
        """
        Initialize provisioner with configuration.

        Args:
            config: Provisioner configuration
        """
        self.config = config

    @abstractmethod
    async def create(self, data: ResourceData) -> ResourceData:
        """
        Create the remote resource described by ``data``.

        Args:
            data: Declarative state holding the desired attributes

        Returns:
            The same record, anchored to the new resource and refreshed

        Raises:
            ResourceValidationError: If attributes are invalid (no network call made)
            ResourceAlreadyExistsError: If the resource already exists
            PostCreateError: If the resource was created but a follow-up failed
            ProvisionerException: If a remote call fails
        """
        pass

    @abstractmethod
    async def read(self, data: ResourceData) -> ResourceData:
        """
        Refresh ``data`` from the remote resource.

        Clears the id when the remote resource no longer exists.

        Args:
            data: Declarative state anchored to a resource id

        Returns:
            The refreshed record

        Raises:
            ProvisionerException: If a remote call fails
        """
        pass

    @abstractmethod
    async def update(self, data: ResourceData) -> ResourceData:
        """
        Apply mutable attribute changes between prior and planned state.

        Args:
            data: Declarative state carrying both prior and planned values

        Returns:
            The refreshed record

        Raises:
            ResourceValidationError: If an immutable attribute changed
            ProvisionerException: If a remote call fails
        """
        pass

    @abstractmethod
    async def delete(self, data: ResourceData) -> None:
        """
        Delete the remote resource and clear the record's id.

        Args:
            data: Declarative state anchored to a resource id

        Raises:
            ProvisionerException: If the delete fails
        """
        pass

    @abstractmethod
    async def import_state(self, resource_id: str) -> ResourceData:
        """
        Build a declarative record for an existing remote resource.

        Args:
            resource_id: Identifier of the resource to import

        Returns:
            A record populated from the remote resource

        Raises:
            ResourceValidationError: If the identifier is malformed
            ProvisionerException: If the resource does not exist
        """
        pass
