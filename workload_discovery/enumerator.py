"""List every pod in the cluster as a ``WorkloadRecord``."""

from __future__ import annotations

import json
import logging
from typing import Any

from workload_discovery.cluster import ClusterClient
from workload_discovery.models import ContainerSpec, WorkloadRecord

logger = logging.getLogger(__name__)


class EnumerationError(RuntimeError):
    """The pod listing could not be obtained; the cycle must be skipped."""


def _parse_pod(item: dict[str, Any]) -> WorkloadRecord:
    meta = item.get("metadata", {})
    containers = [
        ContainerSpec(name=c.get("name", ""), image=c.get("image", ""))
        for c in item.get("spec", {}).get("containers", [])
    ]
    return WorkloadRecord(
        namespace=meta.get("namespace", "default"),
        name=meta.get("name", ""),
        containers=containers,
    )


def list_workloads(
    client: ClusterClient,
    field_selector: str = "",
    timeout: float = 30,
) -> list[WorkloadRecord]:
    """Return all pods across all namespaces, in API order.

    Raises ``EnumerationError`` if kubectl fails or returns unusable output.
    """
    result = client.list_pods(field_selector=field_selector, timeout=timeout)
    if not result.ok:
        raise EnumerationError(f"Failed to list pods: {result.summary.strip()}")

    try:
        data = json.loads(result.stdout)
        items = data["items"]
    except (json.JSONDecodeError, KeyError, TypeError) as exc:
        raise EnumerationError(f"Unexpected pod list output: {exc}") from exc
    if not isinstance(items, list):
        raise EnumerationError(f"Unexpected pod list output: items is {type(items).__name__}")

    try:
        workloads = [_parse_pod(item) for item in items]
    except (AttributeError, TypeError, ValueError) as exc:
        raise EnumerationError(f"Malformed pod in listing: {exc}") from exc
    logger.debug("Enumerated %d pods", len(workloads))
    return workloads
