"""
HDInsight Spark cluster provisioner.

Spark clusters run two head nodes, three zookeeper nodes and a worker role
whose size and autoscale settings can change in place.
"""

from typing import Any, Dict, Optional

from hdiprovisioner.app.models.enums import ClusterKind
from hdiprovisioner.app.schemas.spark import SparkClusterSchema
from .base import BaseHDInsightProvisioner
from .roles import SPARK_ROLES

SPARK_COMPONENT = 'Spark'


def expand_spark_component_version(component_version: Dict[str, Any]) -> Dict[str, str]:
    return {SPARK_COMPONENT: component_version['spark']}


def flatten_spark_component_version(component_version: Optional[Dict[str, str]]) -> Dict[str, Any]:
    # The service does not guarantee the component key casing
    version = ''
    for component, value in (component_version or {}).items():
        if component.lower() == SPARK_COMPONENT.lower():
            version = value
    return {'spark': version}


class SparkClusterProvisioner(BaseHDInsightProvisioner):
    """Provisioner for ``hdinsight_spark_cluster`` resources."""

    CLUSTER_KIND = ClusterKind.SPARK.value
    RESOURCE_TYPE = 'hdinsight_spark_cluster'
    ROLE_DEFINITION = SPARK_ROLES
    SCHEMA = SparkClusterSchema

    def expand_component_version(self, component_version: Dict[str, Any]) -> Dict[str, str]:
        return expand_spark_component_version(component_version)

    def flatten_component_version(self, component_version: Optional[Dict[str, str]]) -> Dict[str, Any]:
        return flatten_spark_component_version(component_version)
