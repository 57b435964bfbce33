"""Read release metadata from inside running containers."""

from __future__ import annotations

import logging

from workload_discovery.cluster import ClusterClient
from workload_discovery.config import DEFAULT_RELEASE_COMMAND
from workload_discovery.models import ContainerSpec, InspectionResult, WorkloadRecord

logger = logging.getLogger(__name__)


def inspect_container(
    client: ClusterClient,
    workload: WorkloadRecord,
    container: ContainerSpec,
    *,
    command: list[str] | None = None,
    timeout: float = 10,
) -> InspectionResult:
    """Exec the diagnostic command in *container* and capture its stdout.

    Any failure (pod unreachable, file missing, timeout) yields a failure
    marker rather than an exception; stderr only ends up in the log and in
    ``InspectionResult.error``.
    """
    result = client.exec_in_container(
        workload.namespace,
        workload.name,
        container.name,
        command or DEFAULT_RELEASE_COMMAND,
        timeout=timeout,
    )
    if not result.ok:
        logger.debug(
            "Exec failed in %s container %s: %s",
            workload.qualified_name,
            container.name,
            result.summary.strip(),
        )
        return InspectionResult.failure(container.image, result.stderr.strip())

    return InspectionResult.success(container.image, result.stdout)
