"""Pydantic models for discovered workloads, inspections, and aggregate snapshots."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ──────────────────────────── Workloads ───────────────────────────────────────


class ContainerSpec(BaseModel):
    """A container declared in a pod spec."""

    name: str
    image: str = ""


class WorkloadRecord(BaseModel):
    """A pod discovered during one cycle, with its containers in spec order."""

    namespace: str
    name: str
    containers: list[ContainerSpec] = Field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}/{self.name}"


# ──────────────────────────── Inspection / Classification ─────────────────────


class InspectionResult(BaseModel):
    """Output of reading the release-metadata file inside one container.

    ``content`` is ``None`` when the read failed; the image reference is kept
    either way so the image-name compliance heuristic can still be applied.
    """

    image: str = ""
    content: str | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.content is not None

    @classmethod
    def success(cls, image: str, content: str) -> InspectionResult:
        return cls(image=image, content=content)

    @classmethod
    def failure(cls, image: str, error: str = "") -> InspectionResult:
        return cls(image=image, content=None, error=error)


class Classification(BaseModel):
    """Base OS tag and FIPS posture for a single container."""

    model_config = {"frozen": True}

    base_type: str
    compliant: bool = False


class WorkloadObservation(BaseModel):
    """A workload plus one classification per container (same order)."""

    workload: WorkloadRecord
    classifications: list[Classification] = Field(default_factory=list)


# ──────────────────────────── Aggregation ─────────────────────────────────────


class AggregateSnapshot(BaseModel):
    """Per-cycle count tables, built from scratch every cycle."""

    namespaces: dict[str, int] = Field(
        default_factory=dict, description="Pods per namespace"
    )
    images: dict[str, int] = Field(
        default_factory=dict, description="Containers per image reference"
    )
    base_types: dict[str, int] = Field(
        default_factory=dict, description="Containers per base image type"
    )
    compliant: int = Field(default=0, description="Containers in FIPS mode")
    workloads: int = 0
    containers: int = 0
