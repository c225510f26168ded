"""HDInsight Provisioner Factory

This module provides a provisioner factory that wires configuration,
logging and the Azure client together for a cluster kind.
"""

import logging
from typing import Optional

from hdiprovisioner.app.config import get_config
from hdiprovisioner.app.services.provisioning.base import ProvisionerConfig, Timeouts


def build_provisioner_config(config_class) -> ProvisionerConfig:
    """
    Build a ProvisionerConfig from a configuration class.

    Args:
        config_class: Configuration class as returned by get_config

    Returns:
        Provisioner configuration
    """
    return ProvisionerConfig(
        provider_type='azure',
        subscription_id=config_class.AZURE_SUBSCRIPTION_ID,
        credentials=config_class.get_credentials(),
        polling_interval=config_class.AZURE_POLLING_INTERVAL,
        timeouts=Timeouts(**config_class.get_timeouts()),
    )


def create_provisioner(config_name: Optional[str] = None, cluster_kind: str = 'spark', client=None):
    """
    Provisioner factory function for HDInsight clusters.

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        cluster_kind: Cluster kind to provision (spark)
        client: Pre-built management client, mostly for tests

    Returns:
        Configured provisioner instance
    """
    from hdiprovisioner.app.services.provisioning.bigdata import get_bigdata_provisioner

    config_class = get_config(config_name)

    logging.basicConfig(
        level=getattr(logging, str(config_class.LOG_LEVEL).upper(), logging.INFO),
        format=config_class.LOG_FORMAT,
    )
    logging.getLogger(__name__).info(
        f"Creating {cluster_kind} provisioner for subscription {config_class.AZURE_SUBSCRIPTION_ID!r}"
    )

    return get_bigdata_provisioner(cluster_kind, build_provisioner_config(config_class), client=client)
