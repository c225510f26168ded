"""HDInsight cluster provisioner.

Reconciles declarative HDInsight Spark cluster definitions against the
Azure HDInsight management API.
"""

__version__ = "0.1.0"
