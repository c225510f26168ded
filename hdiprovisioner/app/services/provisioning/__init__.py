"""
Provisioning services for declarative HDInsight resources.

This package provides the abstract provisioner interface, the declarative
state record, resource identifiers and the error taxonomy. Cluster kind
implementations live in the ``bigdata`` subpackage.

Supported cluster kinds:
- Spark
"""

from .base import (
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
from .resource_id import ClusterId

__all__ = [
    'BaseProvisioner',
    'ClusterId',
    'OperationTimeoutError',
    'PostCreateError',
    'ProvisionerConfig',
    'ProvisionerException',
    'ResourceAlreadyExistsError',
    'ResourceData',
    'ResourceValidationError',
    'Timeouts',
]
