"""Classify a container's base OS and FIPS posture from ``/etc/os-release``.

Classification is deterministic and case-insensitive. Two independent
signals feed the FIPS decision:

1. An explicit marker in the os-release content (e.g. ``FIPS_MODE=yes``).
2. A token in the image reference (e.g. ``registry/app-fips:2.0``).

Either one is enough. The image check runs even when the content was read
successfully, because plenty of FIPS builds ship a stock os-release.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from workload_discovery.config import BaseTypeRule, Settings
from workload_discovery.models import Classification, InspectionResult

BASE_TYPE_UNKNOWN = "Unknown"
BASE_TYPE_OTHER = "Other"

# os-release keys that identify the distribution.
_IDENTITY_KEYS = ("id", "name")

_QUOTES = "\"'"


def _identity_value(content: str) -> str | None:
    """Return the lower-cased value of the first ``ID=``/``NAME=`` line."""
    for line in content.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        if key.strip().lower() in _IDENTITY_KEYS:
            return value.strip().strip(_QUOTES).lower()
    return None


def parse_base_type(content: str, rules: list[BaseTypeRule]) -> str:
    """Map os-release *content* to a base image tag.

    The first identity line decides. Its value is checked against *rules* in
    order; the first rule with a matching substring wins. A distribution no
    rule knows becomes ``Other``; content without any identity line is
    ``Unknown``.
    """
    value = _identity_value(content)
    if value is None:
        return BASE_TYPE_UNKNOWN
    for rule in rules:
        if any(s.lower() in value for s in rule.match):
            return rule.tag
    return BASE_TYPE_OTHER


def has_compliance_marker(content: str, markers: list[str]) -> bool:
    lowered = content.lower()
    return any(m.lower() in lowered for m in markers)


def image_indicates_compliance(image: str, tokens: list[str]) -> bool:
    lowered = image.lower()
    return any(t.lower() in lowered for t in tokens)


@dataclass(frozen=True)
class Classifier:
    """Holds the rule tables and turns inspection results into classifications."""

    rules: list[BaseTypeRule] = field(default_factory=list)
    markers: list[str] = field(default_factory=list)
    image_tokens: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Settings) -> Classifier:
        return cls(
            rules=list(settings.base_type_rules),
            markers=list(settings.compliance_markers),
            image_tokens=list(settings.compliance_image_tokens),
        )

    def classify(self, result: InspectionResult) -> Classification:
        from_image = image_indicates_compliance(result.image, self.image_tokens)
        if not result.ok:
            return Classification(base_type=BASE_TYPE_UNKNOWN, compliant=from_image)

        content = result.content or ""
        return Classification(
            base_type=parse_base_type(content, self.rules),
            compliant=has_compliance_marker(content, self.markers) or from_image,
        )
