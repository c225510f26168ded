"""
Big data provisioning module for HDInsight clusters.

This module provides the shared HDInsight provisioner, the per-kind
implementations and a factory to instantiate them.

Usage:
    >>> from hdiprovisioner.app.services.provisioning import ResourceData
    >>> from hdiprovisioner.app.services.provisioning.bigdata import get_bigdata_provisioner
    >>>
    >>> config = {
    ...     'subscription_id': '...',
    ...     'credentials': {...},
    ... }
    >>> provisioner = get_bigdata_provisioner('spark', config)
    >>> data = await provisioner.create(ResourceData(attributes))
    >>> data.id
    '/subscriptions/.../providers/Microsoft.HDInsight/clusters/spark-cluster-1'
"""

from .base import (
    BaseHDInsightProvisioner,
    get_bigdata_provisioner,
)
from .roles import (
    NodeDefinition,
    RoleDefinition,
    SPARK_ROLES,
)
from .spark import SparkClusterProvisioner

__all__ = [
    'BaseHDInsightProvisioner',
    'NodeDefinition',
    'RoleDefinition',
    'SPARK_ROLES',
    'SparkClusterProvisioner',
    'get_bigdata_provisioner',
]
