"""Prometheus gauges for discovery results.

The gauges live on a ``CollectorRegistry`` owned by the ``MetricsSink``
rather than on the process-wide default registry, so each sink (and each
test) is isolated.
"""

from __future__ import annotations

import logging

from prometheus_client import CollectorRegistry, Gauge, start_http_server

from workload_discovery.models import AggregateSnapshot

logger = logging.getLogger(__name__)


class MetricsSink:
    """The four discovery gauges plus the HTTP endpoint that exposes them."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.pods_per_namespace = Gauge(
            "pods_per_namespace",
            "Number of pods running in each namespace",
            ["namespace"],
            registry=self.registry,
        )
        self.container_image_count = Gauge(
            "container_image_count",
            "Number of containers running each image",
            ["image"],
            registry=self.registry,
        )
        self.container_base_image_type = Gauge(
            "container_base_image_type",
            "Number of containers running each base image type based on /etc/os-release",
            ["base_type"],
            registry=self.registry,
        )
        self.containers_fips_compliant = Gauge(
            "containers_fips_compliant",
            "Total number of containers running in FIPS-compliant mode",
            registry=self.registry,
        )

    def reset(self) -> None:
        """Drop every label combination and zero the scalar gauge."""
        self.pods_per_namespace.clear()
        self.container_image_count.clear()
        self.container_base_image_type.clear()
        self.containers_fips_compliant.set(0)

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:
        """Start the ``/metrics`` HTTP server on a daemon thread."""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info("Serving metrics on %s:%d", addr, port)


def publish(sink: MetricsSink, snapshot: AggregateSnapshot) -> None:
    """Replace everything previously exported with *snapshot*.

    Clearing first means a label value seen in an earlier cycle (say a
    namespace that has since been deleted) cannot survive this call.
    """
    sink.reset()
    for ns, count in snapshot.namespaces.items():
        sink.pods_per_namespace.labels(namespace=ns).set(count)
    for image, count in snapshot.images.items():
        sink.container_image_count.labels(image=image).set(count)
    for base_type, count in snapshot.base_types.items():
        sink.container_base_image_type.labels(base_type=base_type).set(count)
    sink.containers_fips_compliant.set(snapshot.compliant)
