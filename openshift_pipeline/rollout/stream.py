"""Parsing of newline-delimited deployment status streams.

Watch output arrives in chunks that may end anywhere, including in the
middle of a record. LineBuffer keeps the unconsumed tail between chunks so
that any chunking of a stream yields the same records as the whole stream.
"""

from __future__ import annotations

from openshift_pipeline.types import RolloutStatus, RolloutTarget

# One tab separated record per watch event
WATCH_TEMPLATE = (
    '{.metadata.name}{"\\t"}{.status.replicas}{"\\t"}{.status.availableReplicas}'
    '{"\\t"}{.status.unavailableReplicas}{"\\t"}{.status.latestVersion}{"\\n"}'
)

# One tab separated line per deployment: name, desired replicas, revision
SNAPSHOT_TEMPLATE = (
    '{range .items[*]}{.metadata.name}{"\\t"}{.spec.replicas}{"\\t"}'
    '{.status.latestVersion}{"\\n"}{end}'
)


class LineBuffer:
    """Accumulates text chunks and hands out complete lines."""

    def __init__(self) -> None:
        self.remainder = ""

    def feed(self, chunk: str) -> list[str]:
        """Append a chunk and return every line it completed.

        Args:
            chunk: Text of any length.

        Returns:
            Complete lines without their newline, in stream order.
        """
        self.remainder += chunk
        lines: list[str] = []
        while (index := self.remainder.find("\n")) >= 0:
            lines.append(self.remainder[:index])
            self.remainder = self.remainder[index + 1 :]
        return lines


def _to_int(value: str) -> int | None:
    value = value.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_status_line(line: str) -> RolloutStatus | None:
    """Parse one watch record; blank lines yield None.

    Fields are tab separated. A field missing from the object renders
    empty and parses as None.
    """
    if not line.strip():
        return None
    fields = [f.strip() for f in line.split("\t")]
    fields += [""] * (5 - len(fields))
    return RolloutStatus(
        name=fields[0],
        replicas=_to_int(fields[1]),
        available_replicas=_to_int(fields[2]),
        unavailable_replicas=_to_int(fields[3]),
        latest_revision=_to_int(fields[4]),
    )


def parse_snapshot(output: str) -> list[RolloutTarget]:
    """Parse snapshot output into a sorted list of rollout targets."""
    targets: list[RolloutTarget] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = [f.strip() for f in line.split("\t")]
        fields += [""] * (3 - len(fields))
        targets.append(
            RolloutTarget(
                name=fields[0],
                desired_replicas=_to_int(fields[1]),
                latest_revision=_to_int(fields[2]),
            )
        )
    return sorted(targets)


__all__ = [
    "SNAPSHOT_TEMPLATE",
    "WATCH_TEMPLATE",
    "LineBuffer",
    "parse_snapshot",
    "parse_status_line",
]
