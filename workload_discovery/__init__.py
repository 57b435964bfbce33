"""Cluster workload discovery: base-image and FIPS posture metrics for Prometheus."""

__version__ = "0.1.0"
