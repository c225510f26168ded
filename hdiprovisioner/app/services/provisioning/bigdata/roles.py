"""
Node role definitions and the compute profile conversions.

Every HDInsight cluster kind is built from a head, worker and zookeeper
role. A ``NodeDefinition`` captures what the service allows for one role of
one cluster kind; the expand step checks user input against it before any
request is made.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from azure.mgmt.hdinsight.models import (
    Autoscale,
    AutoscaleCapacity,
    AutoscaleRecurrence,
    AutoscaleSchedule,
    AutoscaleTimeAndCapacity,
    ComputeProfile,
    DataDisksGroups,
    HardwareProfile,
    LinuxOperatingSystemProfile,
    OsProfile,
    Role,
    ScriptAction,
    SshProfile,
    SshPublicKey,
    VirtualNetworkProfile,
)

from hdiprovisioner.app.models.enums import NodeRole
from ..base import ResourceValidationError


@dataclass(frozen=True)
class NodeDefinition:
    """
    Service constraints for a single node role.

    Attributes:
        can_specify_instance_count: Users may set target_instance_count
        min_instance_count: Lower bound sent as the role's minimum
        max_instance_count: Upper bound, None when unbounded
        can_specify_disks: Users may attach data disks
        max_number_of_disks_per_node: Upper bound for data disks
        fixed_target_instance_count: Instance count for non-settable roles
        can_autoscale_by_capacity: Load based autoscale is allowed
        can_autoscale_on_schedule: Schedule based autoscale is allowed
    """
    can_specify_instance_count: bool
    min_instance_count: int
    max_instance_count: Optional[int] = None
    can_specify_disks: bool = False
    max_number_of_disks_per_node: Optional[int] = None
    fixed_target_instance_count: Optional[int] = None
    can_autoscale_by_capacity: bool = False
    can_autoscale_on_schedule: bool = False

    @property
    def can_autoscale(self) -> bool:
        return self.can_autoscale_by_capacity or self.can_autoscale_on_schedule


@dataclass(frozen=True)
class RoleDefinition:
    """The three node roles of one cluster kind."""
    head_node: NodeDefinition
    worker_node: NodeDefinition
    zookeeper_node: NodeDefinition

    def iter_roles(self) -> Iterator[Tuple[str, str, NodeDefinition]]:
        """Yield (attribute name, wire role name, definition) per role."""
        yield 'head_node', NodeRole.HEAD.value, self.head_node
        yield 'worker_node', NodeRole.WORKER.value, self.worker_node
        yield 'zookeeper_node', NodeRole.ZOOKEEPER.value, self.zookeeper_node


SPARK_HEAD_NODE = NodeDefinition(
    can_specify_instance_count=False,
    min_instance_count=2,
    max_instance_count=2,
    fixed_target_instance_count=2,
)

SPARK_WORKER_NODE = NodeDefinition(
    can_specify_instance_count=True,
    min_instance_count=1,
    can_autoscale_by_capacity=True,
    can_autoscale_on_schedule=True,
)

SPARK_ZOOKEEPER_NODE = NodeDefinition(
    can_specify_instance_count=False,
    min_instance_count=3,
    max_instance_count=3,
    fixed_target_instance_count=3,
)

SPARK_ROLES = RoleDefinition(
    head_node=SPARK_HEAD_NODE,
    worker_node=SPARK_WORKER_NODE,
    zookeeper_node=SPARK_ZOOKEEPER_NODE,
)


def validate_instance_count(field: str, count: Optional[int], definition: NodeDefinition) -> int:
    """
    Check a requested instance count against a role definition.

    Args:
        field: Attribute path used in error messages
        count: Requested count, None when omitted
        definition: Role constraints

    Returns:
        The instance count to send

    Raises:
        ResourceValidationError: If the count is outside the allowed range
    """
    if not definition.can_specify_instance_count:
        fixed = definition.fixed_target_instance_count
        if count is not None and count != fixed:
            raise ResourceValidationError(
                f"`target_instance_count` must be {fixed} for this role, got {count}",
                field=field
            )
        return fixed

    if count is None:
        raise ResourceValidationError("`target_instance_count` must be specified", field=field)
    if count < definition.min_instance_count:
        raise ResourceValidationError(
            f"`target_instance_count` must be at least {definition.min_instance_count}, got {count}",
            field=field
        )
    if definition.max_instance_count is not None and count > definition.max_instance_count:
        raise ResourceValidationError(
            f"`target_instance_count` must be at most {definition.max_instance_count}, got {count}",
            field=field
        )
    return count


def expand_autoscale(
    field: str,
    autoscale: Optional[Dict[str, Any]],
    definition: NodeDefinition
) -> Optional[Autoscale]:
    """Build the autoscale configuration of a role."""
    if not autoscale:
        return None

    capacity = autoscale.get('capacity')
    recurrence = autoscale.get('recurrence')
    if not definition.can_autoscale:
        raise ResourceValidationError("autoscale is not supported for this role", field=field)
    if bool(capacity) == bool(recurrence):
        raise ResourceValidationError(
            "exactly one of `capacity` or `recurrence` must be specified", field=field
        )

    if capacity:
        if not definition.can_autoscale_by_capacity:
            raise ResourceValidationError("capacity based autoscale is not supported for this role", field=field)
        minimum = capacity['min_instance_count']
        maximum = capacity['max_instance_count']
        if minimum > maximum:
            raise ResourceValidationError(
                f"`min_instance_count` ({minimum}) must not exceed `max_instance_count` ({maximum})",
                field=f"{field}.capacity"
            )
        return Autoscale(capacity=AutoscaleCapacity(min_instance_count=minimum, max_instance_count=maximum))

    if not definition.can_autoscale_on_schedule:
        raise ResourceValidationError("schedule based autoscale is not supported for this role", field=field)
    schedules = [
        AutoscaleSchedule(
            days=list(item['days']),
            time_and_capacity=AutoscaleTimeAndCapacity(
                time=item['time'],
                min_instance_count=item['target_instance_count'],
                max_instance_count=item['target_instance_count'],
            ),
        )
        for item in recurrence['schedule']
    ]
    return Autoscale(recurrence=AutoscaleRecurrence(time_zone=recurrence['timezone'], schedule=schedules))


def flatten_autoscale(autoscale: Optional[Autoscale]) -> Optional[Dict[str, Any]]:
    if autoscale is None:
        return None

    if autoscale.capacity is not None:
        return {
            'capacity': {
                'min_instance_count': autoscale.capacity.min_instance_count,
                'max_instance_count': autoscale.capacity.max_instance_count,
            },
            'recurrence': None,
        }

    if autoscale.recurrence is not None:
        schedule = []
        for item in autoscale.recurrence.schedule or []:
            capacity = item.time_and_capacity
            schedule.append({
                'days': [getattr(day, 'value', day) for day in item.days or []],
                'time': capacity.time if capacity else None,
                'target_instance_count': capacity.max_instance_count if capacity else None,
            })
        return {
            'capacity': None,
            'recurrence': {
                'timezone': autoscale.recurrence.time_zone,
                'schedule': schedule,
            },
        }

    return None


def expand_node(
    field: str,
    role_name: str,
    node: Dict[str, Any],
    definition: NodeDefinition
) -> Role:
    """
    Build the wire ``Role`` for one node block.

    Args:
        field: Attribute path used in error messages, e.g. ``roles.worker_node``
        role_name: Wire role name, e.g. ``workernode``
        node: Node block values
        definition: Role constraints

    Returns:
        The role to send in the compute profile

    Raises:
        ResourceValidationError: If the block breaks a role rule
    """
    password = node.get('password')
    ssh_keys = node.get('ssh_keys') or []
    linux_profile = LinuxOperatingSystemProfile(username=node['username'])
    if password:
        linux_profile.password = password
    elif ssh_keys:
        linux_profile.ssh_profile = SshProfile(
            public_keys=[SshPublicKey(certificate_data=key) for key in ssh_keys]
        )
    else:
        raise ResourceValidationError("either a `password` or `ssh_keys` must be specified", field=field)

    subnet_id = node.get('subnet_id') or ''
    virtual_network_id = node.get('virtual_network_id') or ''
    if bool(subnet_id) != bool(virtual_network_id):
        raise ResourceValidationError(
            "`subnet_id` and `virtual_network_id` must be specified together", field=field
        )

    role = Role(
        name=role_name,
        min_instance_count=definition.min_instance_count if not definition.can_specify_instance_count else None,
        target_instance_count=validate_instance_count(
            f"{field}.target_instance_count", node.get('target_instance_count'), definition
        ),
        hardware_profile=HardwareProfile(vm_size=node['vm_size']),
        os_profile=OsProfile(linux_operating_system_profile=linux_profile),
        script_actions=[
            ScriptAction(name=action['name'], uri=action['uri'], parameters=action.get('parameters') or '')
            for action in node.get('script_actions') or []
        ] or None,
    )

    if subnet_id:
        role.virtual_network_profile = VirtualNetworkProfile(id=virtual_network_id, subnet=subnet_id)

    disks = node.get('number_of_disks_per_node')
    if disks is not None:
        if not definition.can_specify_disks:
            raise ResourceValidationError(
                "`number_of_disks_per_node` is not supported for this role", field=field
            )
        maximum = definition.max_number_of_disks_per_node
        if disks < 1 or (maximum is not None and disks > maximum):
            raise ResourceValidationError(
                f"`number_of_disks_per_node` must be between 1 and {maximum}", field=field
            )
        role.data_disks_groups = [DataDisksGroups(disks_per_node=disks)]

    autoscale = node.get('autoscale')
    if autoscale and not definition.can_specify_instance_count:
        raise ResourceValidationError("autoscale is not supported for this role", field=f"{field}.autoscale")
    role.autoscale_configuration = expand_autoscale(f"{field}.autoscale", autoscale, definition)
    return role


def flatten_node(
    role: Optional[Role],
    existing: Optional[Dict[str, Any]],
    definition: NodeDefinition
) -> Optional[Dict[str, Any]]:
    """
    Turn a wire ``Role`` back into a node block.

    Secrets are never returned by the service, so password and ssh keys are
    carried over from ``existing``. ``vm_size`` keeps the configured casing
    when it matches the remote value case-insensitively.
    """
    if role is None:
        return None

    existing = existing or {}
    vm_size = role.hardware_profile.vm_size if role.hardware_profile else None
    configured_size = existing.get('vm_size')
    if vm_size and configured_size and vm_size.lower() == configured_size.lower():
        vm_size = configured_size

    username = existing.get('username')
    if role.os_profile and role.os_profile.linux_operating_system_profile:
        username = role.os_profile.linux_operating_system_profile.username or username

    subnet_id = None
    virtual_network_id = None
    if role.virtual_network_profile is not None:
        subnet_id = role.virtual_network_profile.subnet
        virtual_network_id = role.virtual_network_profile.id

    disks = None
    if role.data_disks_groups:
        disks = role.data_disks_groups[0].disks_per_node

    if definition.can_specify_instance_count:
        target_instance_count = role.target_instance_count
    else:
        target_instance_count = existing.get('target_instance_count')

    return {
        'vm_size': vm_size,
        'username': username,
        'password': existing.get('password'),
        'ssh_keys': list(existing.get('ssh_keys') or []),
        'subnet_id': subnet_id,
        'virtual_network_id': virtual_network_id,
        'script_actions': list(existing.get('script_actions') or []),
        'number_of_disks_per_node': disks,
        'target_instance_count': target_instance_count,
        'autoscale': flatten_autoscale(role.autoscale_configuration),
    }


def expand_roles(roles: Dict[str, Any], definitions: RoleDefinition) -> ComputeProfile:
    """Build the compute profile for every role of a cluster kind."""
    result: List[Role] = []
    for attr, role_name, definition in definitions.iter_roles():
        node = roles.get(attr)
        if not node:
            raise ResourceValidationError(f"`{attr}` must be specified", field=f"roles.{attr}")
        result.append(expand_node(f"roles.{attr}", role_name, node, definition))
    return ComputeProfile(roles=result)


def flatten_roles(
    compute_profile: Optional[ComputeProfile],
    existing: Optional[Dict[str, Any]],
    definitions: RoleDefinition
) -> Optional[Dict[str, Any]]:
    if compute_profile is None:
        return None

    existing = existing or {}
    by_name = {
        (role.name or '').lower(): role
        for role in compute_profile.roles or []
    }
    return {
        attr: flatten_node(by_name.get(role_name), existing.get(attr), definition)
        for attr, role_name, definition in definitions.iter_roles()
    }
