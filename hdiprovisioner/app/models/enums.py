"""HDInsight Provisioner Enumeration Types"""

from enum import Enum


class ClusterKind(Enum):
    """HDInsight cluster definition kinds"""
    SPARK = "Spark"


class ClusterTier(Enum):
    """HDInsight cluster tiers"""
    STANDARD = "Standard"
    PREMIUM = "Premium"


class TLSVersion(Enum):
    """Minimum TLS versions accepted by the cluster gateway"""
    TLS_1_2 = "1.2"


class ConnectionDirection(Enum):
    """Direction of the resource provider connection"""
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


class PrivateLinkState(Enum):
    """Private link states on the wire"""
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class DiskEncryptionAlgorithm(Enum):
    """Key wrapping algorithms for disk encryption"""
    RSA_OAEP = "RSA-OAEP"
    RSA_OAEP_256 = "RSA-OAEP-256"
    RSA1_5 = "RSA1_5"


class NodeRole(Enum):
    """Role names used by the HDInsight compute profile"""
    HEAD = "headnode"
    WORKER = "workernode"
    ZOOKEEPER = "zookeepernode"


class EndpointName(Enum):
    """Connectivity endpoints published by a cluster"""
    HTTPS = "HTTPS"
    SSH = "SSH"


class Weekday(Enum):
    """Days accepted by schedule based autoscaling"""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"
