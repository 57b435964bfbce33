"""Tests for workload_discovery.aggregator."""

from __future__ import annotations

import pytest

from workload_discovery.aggregator import aggregate
from workload_discovery.models import (
    AggregateSnapshot,
    Classification,
    ContainerSpec,
    WorkloadObservation,
    WorkloadRecord,
)


def _obs(namespace: str, name: str, *containers: tuple[str, str, bool]) -> WorkloadObservation:
    """Build an observation from (image, base_type, compliant) triples."""
    return WorkloadObservation(
        workload=WorkloadRecord(
            namespace=namespace,
            name=name,
            containers=[ContainerSpec(name=f"c{i}", image=img) for i, (img, _, _) in enumerate(containers)],
        ),
        classifications=[Classification(base_type=bt, compliant=fips) for _, bt, fips in containers],
    )


@pytest.fixture()
def observations() -> list[WorkloadObservation]:
    return [
        _obs("prod", "web-1", ("nginx:1.25", "Debian", False), ("envoy:v1.28", "Other", False)),
        _obs("prod", "web-2", ("nginx:1.25", "Debian", False)),
        _obs("security", "vault-0", ("hashicorp/vault-fips:1.15", "Unknown", True)),
        _obs("batch", "empty-pod"),
    ]


class TestAggregate:
    def test_namespace_counted_per_workload(self, observations) -> None:
        snap = aggregate(observations)
        assert snap.namespaces == {"prod": 2, "security": 1, "batch": 1}

    def test_images_accumulate_across_workloads(self, observations) -> None:
        snap = aggregate(observations)
        assert snap.images == {"nginx:1.25": 2, "envoy:v1.28": 1, "hashicorp/vault-fips:1.15": 1}

    def test_base_types_and_compliance(self, observations) -> None:
        snap = aggregate(observations)
        assert snap.base_types == {"Debian": 2, "Other": 1, "Unknown": 1}
        assert snap.compliant == 1

    def test_invariants(self, observations) -> None:
        snap = aggregate(observations)
        assert snap.workloads == len(observations) == 4
        assert sum(snap.namespaces.values()) == snap.workloads
        assert sum(snap.base_types.values()) == sum(snap.images.values()) == snap.containers == 4

    def test_empty(self) -> None:
        assert aggregate([]) == AggregateSnapshot()

    def test_same_input_same_snapshot(self, observations) -> None:
        assert aggregate(observations) == aggregate(list(observations))

    def test_misaligned_classifications_rejected(self) -> None:
        obs = _obs("prod", "web-1", ("nginx:1.25", "Debian", False))
        obs.classifications.append(Classification(base_type="Alpine"))
        with pytest.raises(ValueError):
            aggregate([obs])
