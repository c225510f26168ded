"""
Azure resource identifiers for HDInsight clusters.

An identifier has the form::

    /subscriptions/{subscription}/resourceGroups/{group}/providers/Microsoft.HDInsight/clusters/{name}
"""

from dataclasses import dataclass
from typing import ClassVar

from .base import ResourceValidationError


@dataclass(frozen=True)
class ClusterId:
    """Composite identifier of an HDInsight cluster."""

    subscription_id: str
    resource_group_name: str
    cluster_name: str

    PROVIDER: ClassVar[str] = "Microsoft.HDInsight"
    RESOURCE_TYPE: ClassVar[str] = "clusters"

    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/"
            f"resourceGroups/{self.resource_group_name}/"
            f"providers/{self.PROVIDER}/{self.RESOURCE_TYPE}/{self.cluster_name}"
        )

    def __str__(self) -> str:
        return (
            f"HDInsight Cluster {self.cluster_name!r} "
            f"(Resource Group {self.resource_group_name!r} / "
            f"Subscription {self.subscription_id!r})"
        )

    @classmethod
    def parse(cls, value: str) -> 'ClusterId':
        """
        Parse a cluster resource identifier.

        Static segment names are compared case-insensitively.

        Args:
            value: Resource identifier string

        Returns:
            Parsed ClusterId

        Raises:
            ResourceValidationError: If the identifier is malformed
        """
        if not value or not value.startswith('/'):
            raise ResourceValidationError(
                f"parsing {value!r}: expected an ID beginning with '/subscriptions/'",
                field='id'
            )

        segments = value.strip('/').split('/')
        expected = [
            'subscriptions', None,
            'resourceGroups', None,
            'providers', cls.PROVIDER,
            cls.RESOURCE_TYPE, None,
        ]
        if len(segments) != len(expected):
            raise ResourceValidationError(
                f"parsing {value!r}: expected {len(expected)} segments, got {len(segments)}",
                field='id'
            )

        for position, (segment, static) in enumerate(zip(segments, expected)):
            if static is None:
                if not segment:
                    raise ResourceValidationError(
                        f"parsing {value!r}: segment {position} is empty",
                        field='id'
                    )
            elif segment.lower() != static.lower():
                raise ResourceValidationError(
                    f"parsing {value!r}: expected segment {static!r} but got {segment!r}",
                    field='id'
                )

        return cls(
            subscription_id=segments[1],
            resource_group_name=segments[3],
            cluster_name=segments[7],
        )
