"""Service layer for the HDInsight provisioner."""
