"""Application configuration and settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError


DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_METRICS_PORT = 8080
DEFAULT_RELEASE_COMMAND = ["cat", "/etc/os-release"]


class ConfigError(ValueError):
    """Raised when a rules file or setting value cannot be used."""


class BaseTypeRule(BaseModel):
    """Maps os-release identity substrings to a base image tag."""

    tag: str
    match: list[str] = Field(default_factory=list)


def _default_base_type_rules() -> list[BaseTypeRule]:
    # Order matters: first match wins.
    return [
        BaseTypeRule(tag="Ubuntu", match=["ubuntu"]),
        BaseTypeRule(tag="Debian", match=["debian"]),
        BaseTypeRule(tag="Alpine", match=["alpine"]),
        BaseTypeRule(tag="RHEL", match=["centos", "rhel", "red hat", "ubi"]),
        BaseTypeRule(tag="Fedora", match=["fedora"]),
        BaseTypeRule(tag="Chainguard", match=["wolfi", "chainguard"]),
    ]


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    return int(raw) if raw else default


class Settings(BaseModel):
    """Runtime settings resolved from env vars, CLI flags and the rules file."""

    # ── Cluster access ───────────────────────────────────────────────
    kubeconfig: str = Field(
        default_factory=lambda: os.environ.get("KUBECONFIG", ""),
        description="Path to kubeconfig file. Empty = in-cluster / default config.",
    )
    kube_context: str = Field(
        default="",
        description="Kubernetes context to use. Empty = current context.",
    )
    field_selector: str = Field(
        default="",
        description="Pod field selector (e.g. status.phase=Running). Empty = all pods.",
    )

    # ── Scheduling ───────────────────────────────────────────────────
    poll_interval: float = Field(
        default_factory=lambda: _env_float("DISCOVERY_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        gt=0,
        description="Seconds between the start of two discovery cycles.",
    )
    max_workers: int = Field(default=8, ge=1, description="Concurrent container inspections.")
    exec_timeout: float = Field(default=10.0, gt=0, description="Per-exec deadline in seconds.")
    list_timeout: float = Field(default=30.0, gt=0, description="Pod listing deadline in seconds.")
    cycle_timeout: float = Field(default=300.0, gt=0, description="Whole-cycle deadline in seconds.")

    # ── Metrics endpoint ─────────────────────────────────────────────
    metrics_port: int = Field(
        default_factory=lambda: _env_int("DISCOVERY_METRICS_PORT", DEFAULT_METRICS_PORT),
        ge=0,
        le=65535,
    )
    metrics_addr: str = "0.0.0.0"

    # ── Classification ───────────────────────────────────────────────
    release_command: list[str] = Field(default_factory=lambda: list(DEFAULT_RELEASE_COMMAND))
    base_type_rules: list[BaseTypeRule] = Field(default_factory=_default_base_type_rules)
    compliance_markers: list[str] = Field(
        default_factory=lambda: ["fips_mode=yes", "fips=1"],
        description="Case-insensitive substrings of os-release that indicate FIPS mode.",
    )
    compliance_image_tokens: list[str] = Field(
        default_factory=lambda: ["fips", "ubi8-fips", "debian:fips", "chainguard:fips"],
        description="Case-insensitive image-reference substrings that indicate FIPS builds.",
    )

    # Behaviour
    verbose: bool = False

    def with_rules_file(self, path: str | Path) -> Settings:
        """Return a copy with classification overrides loaded from *path*."""
        overrides = load_rules_file(path)
        try:
            return Settings(**{**self.model_dump(), **overrides})
        except ValidationError as exc:
            raise ConfigError(f"Invalid rules file {path}: {exc}") from exc


_RULE_KEYS = {
    "base_types": "base_type_rules",
    "compliance_markers": "compliance_markers",
    "compliance_image_tokens": "compliance_image_tokens",
    "release_command": "release_command",
}


def load_rules_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML rules file and map it onto ``Settings`` field names.

    Example::

        base_types:
          - tag: Ubuntu
            match: [ubuntu]
        compliance_markers: ["fips_mode=yes"]
        compliance_image_tokens: ["fips"]
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Rules file not found: {p}")
    try:
        data = yaml.safe_load(p.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse rules file {p}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Rules file {p} must contain a mapping at the top level")

    unknown = sorted(set(data) - set(_RULE_KEYS))
    if unknown:
        raise ConfigError(f"Unknown keys in rules file {p}: {', '.join(unknown)}")

    return {_RULE_KEYS[k]: v for k, v in data.items()}
