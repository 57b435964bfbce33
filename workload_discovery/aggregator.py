"""Fold per-container classifications into per-cycle count tables."""

from __future__ import annotations

from collections import Counter

from workload_discovery.models import AggregateSnapshot, WorkloadObservation


def aggregate(observations: list[WorkloadObservation]) -> AggregateSnapshot:
    """Build a fresh snapshot from one cycle's observations.

    Namespaces are counted once per workload; images, base types and FIPS
    compliance once per container. Identical image references across
    workloads accumulate.
    """
    namespaces: Counter[str] = Counter()
    images: Counter[str] = Counter()
    base_types: Counter[str] = Counter()
    compliant = 0
    containers = 0

    for obs in observations:
        namespaces[obs.workload.namespace] += 1
        for spec, cls in zip(obs.workload.containers, obs.classifications, strict=True):
            containers += 1
            images[spec.image] += 1
            base_types[cls.base_type] += 1
            if cls.compliant:
                compliant += 1

    return AggregateSnapshot(
        namespaces=dict(namespaces),
        images=dict(images),
        base_types=dict(base_types),
        compliant=compliant,
        workloads=len(observations),
        containers=containers,
    )
