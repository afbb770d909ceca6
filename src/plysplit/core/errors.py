"""Exception taxonomy for split/merge runs.

Head-level conditions (config, header, size budget, aggregate mismatch,
missing metadata) abort the whole run. Per-item failures are recorded in
the run result instead of being raised.
"""

from __future__ import annotations

from typing import Any


class PlySplitError(Exception):
    """Base class for every error raised by plysplit."""


class ConfigError(PlySplitError):
    """Invalid configuration detected before any I/O."""


class HeaderParseError(PlySplitError):
    """PLY header is missing its terminator or vertex-count line."""


class UnknownPropertyType(PlySplitError):
    """A schema type token has no known byte width."""

    def __init__(self, type_token: str, property_name: str | None = None):
        self.type_token = type_token
        self.property_name = property_name
        where = f" (property '{property_name}')" if property_name else ""
        super().__init__(f"Unknown PLY property type '{type_token}'{where}")


class SizeBudgetError(PlySplitError):
    """The header alone does not fit the target byte budget."""

    def __init__(self, target_size_bytes: int, header_size: int):
        self.target_size_bytes = target_size_bytes
        self.header_size = header_size
        super().__init__(
            f"Header is {header_size} bytes but the target size is "
            f"{target_size_bytes} bytes; no room left for vertex data"
        )


class ChunkVerificationMismatch(PlySplitError):
    """Sum of chunk vertex counts differs from the source vertex count."""

    def __init__(self, expected: int, actual: int, result: Any = None):
        self.expected = expected
        self.actual = actual
        self.delta = expected - actual
        self.result = result
        super().__init__(
            f"Vertex count mismatch: expected {expected}, got {actual} "
            f"(difference {abs(self.delta)})"
        )


class GroupVerificationFailure(PlySplitError):
    """A merged group failed structural validation."""

    def __init__(self, group_id: int, reason: str):
        self.group_id = group_id
        self.reason = reason
        super().__init__(reason)


class MissingHeaderMetadata(PlySplitError):
    """Merge was requested but no split metadata is available."""

    def __init__(self, path):
        self.path = path
        super().__init__(
            f"Header information not found at {path}. Please run split operation first."
        )


class RunCancelled(PlySplitError):
    """Cancellation was requested between two items of a run."""

    def __init__(self, stage: str, completed: int, total: int, result: Any = None):
        self.stage = stage
        self.completed = completed
        self.total = total
        self.result = result
        super().__init__(f"{stage} cancelled after {completed}/{total} items")
