"""Discovery cycle and the fixed-interval loop that drives it.

One cycle is: list pods → exec into every container → classify → aggregate
→ publish. Cycles never overlap. Inside a cycle, container inspections run
on a bounded thread pool; results are slotted back into their original
(workload, container) position before aggregation so the snapshot does not
depend on completion order.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time

from workload_discovery.aggregator import aggregate
from workload_discovery.classifier import Classifier
from workload_discovery.cluster import ClusterClient
from workload_discovery.config import Settings
from workload_discovery.enumerator import EnumerationError, list_workloads
from workload_discovery.inspector import inspect_container
from workload_discovery.models import (
    AggregateSnapshot,
    Classification,
    InspectionResult,
    WorkloadObservation,
    WorkloadRecord,
)
from workload_discovery.publisher import MetricsSink, publish

logger = logging.getLogger(__name__)


class CycleAborted(RuntimeError):
    """The cycle hit its deadline or a stop was requested before publishing."""


class StopRequested(CycleAborted):
    """The poller is shutting down; the in-flight cycle is dropped."""


def _result_or_failure(
    fut: concurrent.futures.Future[InspectionResult],
    workload: WorkloadRecord,
    index: int,
) -> InspectionResult:
    """Unwrap an inspection; an unexpected error counts as a failed read."""
    container = workload.containers[index]
    try:
        return fut.result()
    except Exception as exc:
        logger.warning(
            "Inspection of %s container %s raised: %s",
            workload.qualified_name,
            container.name,
            exc,
        )
        return InspectionResult.failure(container.image, str(exc))


def _inspect_all(
    client: ClusterClient,
    classifier: Classifier,
    workloads: list[WorkloadRecord],
    settings: Settings,
    deadline: float,
    stop: threading.Event | None,
) -> list[list[Classification]]:
    slots: list[list[Classification | None]] = [[None] * len(wl.containers) for wl in workloads]

    executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=settings.max_workers, thread_name_prefix="inspect"
    )
    try:
        futures = {
            executor.submit(
                inspect_container,
                client,
                wl,
                container,
                command=settings.release_command,
                timeout=settings.exec_timeout,
            ): (i, j)
            for i, wl in enumerate(workloads)
            for j, container in enumerate(wl.containers)
        }
        remaining = max(0.0, deadline - time.monotonic())
        try:
            for fut in concurrent.futures.as_completed(futures, timeout=remaining):
                if stop is not None and stop.is_set():
                    raise StopRequested("stop requested")
                i, j = futures[fut]
                slots[i][j] = classifier.classify(_result_or_failure(fut, workloads[i], j))
        except concurrent.futures.TimeoutError as exc:
            pending = sum(1 for f in futures if not f.done())
            raise CycleAborted(
                f"cycle deadline of {settings.cycle_timeout}s exceeded "
                f"with {pending} inspections outstanding"
            ) from exc
    finally:
        # Hung kubectl processes are bounded by exec_timeout; don't wait on them.
        executor.shutdown(wait=False, cancel_futures=True)

    return [[c for c in row if c is not None] for row in slots]


def run_cycle(
    client: ClusterClient,
    sink: MetricsSink,
    classifier: Classifier,
    settings: Settings,
    stop: threading.Event | None = None,
) -> AggregateSnapshot | None:
    """Run one discovery cycle and publish its snapshot.

    Returns ``None`` when the cycle was abandoned; the sink is left exactly as
    the previous successful cycle published it.
    """
    deadline = time.monotonic() + settings.cycle_timeout

    try:
        workloads = list_workloads(
            client, field_selector=settings.field_selector, timeout=settings.list_timeout
        )
    except EnumerationError as exc:
        logger.warning("%s; keeping previously published metrics", exc)
        return None

    try:
        classifications = _inspect_all(client, classifier, workloads, settings, deadline, stop)
    except StopRequested:
        logger.info("Stop requested; not publishing partial cycle")
        return None
    except CycleAborted as exc:
        logger.warning("Discovery cycle abandoned: %s", exc)
        return None

    if stop is not None and stop.is_set():
        logger.info("Stop requested; not publishing partial cycle")
        return None

    snapshot = aggregate(
        [
            WorkloadObservation(workload=wl, classifications=cls)
            for wl, cls in zip(workloads, classifications)
        ]
    )
    publish(sink, snapshot)
    logger.info(
        "Updated metrics for %d pods, %d containers, %d FIPS-compliant",
        snapshot.workloads,
        snapshot.containers,
        snapshot.compliant,
    )
    return snapshot


class Poller:
    """Runs ``run_cycle`` immediately and then every ``poll_interval`` seconds.

    The interval is measured between cycle starts. A cycle that overruns the
    interval makes the next one start as soon as it finishes.
    """

    def __init__(
        self,
        client: ClusterClient,
        sink: MetricsSink,
        settings: Settings,
        classifier: Classifier | None = None,
    ) -> None:
        self.client = client
        self.sink = sink
        self.settings = settings
        self.classifier = classifier or Classifier.from_settings(settings)
        self.cycles = 0
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_forever(self, max_cycles: int | None = None) -> None:
        logger.info(
            "Starting workload discovery (interval=%ss, workers=%d)",
            self.settings.poll_interval,
            self.settings.max_workers,
        )
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                run_cycle(self.client, self.sink, self.classifier, self.settings, stop=self._stop)
            except Exception:
                logger.exception("Discovery cycle failed; keeping previously published metrics")
            self.cycles += 1
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            delay = max(0.0, self.settings.poll_interval - (time.monotonic() - started))
            if self._stop.wait(delay):
                break
        logger.info("Workload discovery stopped after %d cycles", self.cycles)
