"""Utility modules for the HDInsight provisioner."""

from hdiprovisioner.app.utils.async_utils import (
    timeout_wrapper,
    wait_for_poller,
)

__all__ = [
    "timeout_wrapper",
    "wait_for_poller",
]
