"""Shared type definitions for openshift_pipeline.

This module contains dataclasses, TypedDicts, and enums shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TypedDict


class DispatchState(str, Enum):
    """Scheduling state of a build definition entry."""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceType(str, Enum):
    """Build definition source types the deduplicator distinguishes."""

    BINARY = "Binary"
    GIT = "Git"
    DOCKERFILE = "Dockerfile"


class ImageReference(TypedDict, total=False):
    """Object reference to an image as found in a build definition."""

    kind: str
    name: str
    namespace: str


@dataclass
class DispatchOutcome:
    """Result of dispatching one build definition.

    Attributes:
        entry_key: Canonical key of the build definition.
        reused: True if an existing image matched the content hash.
        identifiers: Triggered build identifiers, or the originating build
            of the reused image.
        image: Canonical key of the reused image-stream image, if any.
        build_hash: Content hash computed for this dispatch.
    """

    entry_key: str
    reused: bool
    identifiers: list[str] = field(default_factory=list)
    image: str | None = None
    build_hash: str | None = None


@dataclass(frozen=True, order=True)
class RolloutTarget:
    """Projection of a deployment captured before and after apply."""

    name: str
    desired_replicas: int | None
    latest_revision: int | None


@dataclass(frozen=True)
class RolloutStatus:
    """One status record read from a deployment watch stream."""

    name: str
    replicas: int | None = None
    available_replicas: int | None = None
    unavailable_replicas: int | None = None
    latest_revision: int | None = None


@dataclass
class RolloutReport:
    """Outcome of applying a resource set and monitoring its rollout.

    Attributes:
        changed: False when the before/after snapshots were identical.
        converged: True when every pending target converged.
        pending: Targets still not converged when monitoring stopped.
        before: Snapshot captured before apply.
        after: Snapshot captured after apply.
    """

    changed: bool
    converged: bool
    pending: list[str] = field(default_factory=list)
    before: list[RolloutTarget] = field(default_factory=list)
    after: list[RolloutTarget] = field(default_factory=list)


__all__ = [
    "DispatchOutcome",
    "DispatchState",
    "ImageReference",
    "RolloutReport",
    "RolloutStatus",
    "RolloutTarget",
    "SourceType",
]
