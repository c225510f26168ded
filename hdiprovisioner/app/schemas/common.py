"""Common Pydantic schemas for declarative resource attributes.

This module contains the field helper that records attribute mutability,
the shared ``timeouts`` block, tag validation, and the schema introspection
used to decide whether a change can be applied in place.
"""

import typing
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from hdiprovisioner.app.models.enums import ClusterTier

MAX_TAGS = 50
MAX_TAG_KEY_LENGTH = 512
MAX_TAG_VALUE_LENGTH = 256


def attribute(
    default: Any = ...,
    *,
    force_new: bool = False,
    computed: bool = False,
    sensitive: bool = False,
    write_only: bool = False,
    **kwargs: Any
) -> Any:
    """Declare a schema attribute together with its mutability flags.

    Args:
        default: Default value, ``...`` for required attributes
        force_new: Changing the value requires replacing the resource
        computed: The value may be filled in by the remote side
        sensitive: The value is a secret and never logged
        write_only: The value is sent on create but never read back
        **kwargs: Passed through to ``pydantic.Field``
    """
    flags = {
        'force_new': force_new,
        'computed': computed,
        'sensitive': sensitive,
        'write_only': write_only,
    }
    extra = {name: True for name, enabled in flags.items() if enabled}
    if 'default_factory' in kwargs:
        return Field(json_schema_extra=extra or None, **kwargs)
    return Field(default, json_schema_extra=extra or None, **kwargs)


class Block(BaseModel):
    """Base class for nested settings blocks."""

    model_config = ConfigDict(
        extra='forbid',
        use_enum_values=True,
        validate_default=True,
    )


@dataclass(frozen=True)
class FieldSpec:
    """Static description of one attribute.

    Attributes:
        name: Attribute name
        required: Must be supplied by the user
        force_new: Changing it requires replacement
        computed: May be populated remotely
        sensitive: Secret value
        write_only: Never read back from the remote side
        description: Human readable description
    """

    name: str
    required: bool
    force_new: bool = False
    computed: bool = False
    sensitive: bool = False
    write_only: bool = False
    description: Optional[str] = None


def _flags(info: Any) -> Dict[str, Any]:
    extra = info.json_schema_extra
    return extra if isinstance(extra, dict) else {}


def describe_fields(model: Type[BaseModel]) -> Dict[str, FieldSpec]:
    """Describe every top-level attribute of a schema model."""
    specs = {}
    for name, info in model.model_fields.items():
        flags = _flags(info)
        specs[name] = FieldSpec(
            name=name,
            required=info.is_required(),
            force_new=bool(flags.get('force_new')),
            computed=bool(flags.get('computed')),
            sensitive=bool(flags.get('sensitive')),
            write_only=bool(flags.get('write_only')),
            description=info.description,
        )
    return specs


def _block_type(annotation: Any) -> Optional[Type[BaseModel]]:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if typing.get_origin(annotation) is typing.Union:
        for arg in typing.get_args(annotation):
            found = _block_type(arg)
            if found is not None:
                return found
    return None


def force_new_changes(
    model: Type[BaseModel],
    prior: Optional[Dict[str, Any]],
    planned: Optional[Dict[str, Any]],
    prefix: str = ''
) -> List[str]:
    """List attribute paths whose change requires replacing the resource.

    Nested blocks are descended into so that mutable attributes inside an
    otherwise immutable block are allowed to change. Computed attributes left
    unset in the planned values are ignored, as are write-only attributes
    with no prior value (they are never read back, e.g. after an import).
    """
    prior = prior or {}
    planned = planned or {}
    changes = []
    for name, info in model.model_fields.items():
        old = prior.get(name)
        new = planned.get(name)
        if old == new:
            continue
        flags = _flags(info)
        if flags.get('computed') and new is None:
            continue
        if flags.get('write_only') and not old:
            continue
        path = f"{prefix}{name}"
        if flags.get('force_new'):
            changes.append(path)
            continue
        nested = _block_type(info.annotation)
        if nested is not None and isinstance(old, dict) and isinstance(new, dict):
            changes.extend(force_new_changes(nested, old, new, prefix=f"{path}."))
    return changes


class TimeoutsSchema(Block):
    """Per-operation timeout overrides in seconds."""

    create: Optional[int] = Field(None, gt=0, description="Create timeout")
    read: Optional[int] = Field(None, gt=0, description="Read timeout")
    update: Optional[int] = Field(None, gt=0, description="Update timeout")
    delete: Optional[int] = Field(None, gt=0, description="Delete timeout")


def validate_tags(tags: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Validate a tag mapping against Azure limits.

    Raises:
        ValueError: If a limit is exceeded
    """
    tags = tags or {}
    if len(tags) > MAX_TAGS:
        raise ValueError(f"a maximum of {MAX_TAGS} tags can be applied to each resource")
    for key, value in tags.items():
        if len(key) > MAX_TAG_KEY_LENGTH:
            raise ValueError(f"the maximum length for a tag key is {MAX_TAG_KEY_LENGTH} characters: {key!r}")
        if len(value) > MAX_TAG_VALUE_LENGTH:
            raise ValueError(
                f"the maximum length for a tag value is {MAX_TAG_VALUE_LENGTH} characters: {key!r}"
            )
    return tags


def canonical_tier(value: Optional[str]) -> str:
    """Rewrite a tier into its canonical casing, or ``""`` when unknown.

    The service is inconsistent about the casing it reports.
    """
    for tier in ClusterTier:
        if tier.value.lower() == (value or "").lower():
            return tier.value
    return ""


def normalize_location(value: Optional[str]) -> str:
    return (value or "").replace(" ", "").lower()

