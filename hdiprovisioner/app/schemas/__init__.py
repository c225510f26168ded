"""HDInsight Provisioner Schemas.

This package contains the Pydantic schema definitions describing every
declarative attribute of a cluster, used to validate user configuration
before any remote call is made.
"""

from hdiprovisioner.app.schemas.common import (
    FieldSpec,
    TimeoutsSchema,
    describe_fields,
    force_new_changes,
)
from hdiprovisioner.app.schemas.spark import (
    SparkClusterSchema,
    SparkComponentVersionSchema,
)

__all__ = [
    "FieldSpec",
    "SparkClusterSchema",
    "SparkComponentVersionSchema",
    "TimeoutsSchema",
    "describe_fields",
    "force_new_changes",
]
