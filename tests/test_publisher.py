"""Tests for workload_discovery.publisher: reset-then-set gauge publication."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from workload_discovery.models import AggregateSnapshot
from workload_discovery.publisher import MetricsSink, publish


@pytest.fixture()
def sink() -> MetricsSink:
    return MetricsSink()


def _value(sink: MetricsSink, name: str, **labels: str) -> float | None:
    return sink.registry.get_sample_value(name, labels)


def _snapshot(**overrides) -> AggregateSnapshot:
    defaults = dict(
        namespaces={"prod": 3, "kube-system": 2},
        images={"nginx:1.25": 3, "coredns/coredns:1.11": 2},
        base_types={"Debian": 3, "Unknown": 2},
        compliant=1,
        workloads=5,
        containers=5,
    )
    defaults.update(overrides)
    return AggregateSnapshot(**defaults)


class TestPublish:
    def test_sets_all_gauges(self, sink) -> None:
        publish(sink, _snapshot())
        assert _value(sink, "pods_per_namespace", namespace="prod") == 3
        assert _value(sink, "pods_per_namespace", namespace="kube-system") == 2
        assert _value(sink, "container_image_count", image="nginx:1.25") == 3
        assert _value(sink, "container_base_image_type", base_type="Unknown") == 2
        assert _value(sink, "containers_fips_compliant") == 1

    def test_stale_labels_removed(self, sink) -> None:
        publish(sink, _snapshot())
        publish(
            sink,
            _snapshot(
                namespaces={"prod": 1},
                images={"nginx:1.26": 1},
                base_types={"Alpine": 1},
                compliant=0,
            ),
        )
        assert _value(sink, "pods_per_namespace", namespace="kube-system") is None
        assert _value(sink, "container_image_count", image="nginx:1.25") is None
        assert _value(sink, "container_base_image_type", base_type="Debian") is None
        assert _value(sink, "container_base_image_type", base_type="Alpine") == 1
        assert _value(sink, "containers_fips_compliant") == 0

    def test_empty_snapshot_clears_everything(self, sink) -> None:
        publish(sink, _snapshot())
        publish(sink, AggregateSnapshot())
        assert _value(sink, "pods_per_namespace", namespace="prod") is None
        assert _value(sink, "containers_fips_compliant") == 0


class TestMetricsSink:
    def test_sinks_are_isolated(self) -> None:
        a, b = MetricsSink(), MetricsSink()
        publish(a, _snapshot())
        assert _value(b, "pods_per_namespace", namespace="prod") is None

    def test_injected_registry_used(self) -> None:
        registry = CollectorRegistry()
        sink = MetricsSink(registry)
        publish(sink, _snapshot())
        assert registry.get_sample_value("containers_fips_compliant") == 1

    def test_reset(self, sink) -> None:
        publish(sink, _snapshot())
        sink.reset()
        assert _value(sink, "container_image_count", image="nginx:1.25") is None
        assert _value(sink, "containers_fips_compliant") == 0

    @patch("workload_discovery.publisher.start_http_server")
    def test_serve_uses_own_registry(self, mock_start, sink) -> None:
        sink.serve(9100, "127.0.0.1")
        mock_start.assert_called_once_with(9100, addr="127.0.0.1", registry=sink.registry)
