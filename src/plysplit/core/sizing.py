"""Chunk sizing heuristic: byte budget -> vertices per chunk.

Chunks are later converted to a compact format and base64 encoded before
transport, so the raw payload budget is discounted by the base64 expansion
and a 10% margin. The result is best effort, not a hard bound on the
encoded size.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction

from .errors import ConfigError, HeaderParseError, SizeBudgetError
from .header import PropertySchema

logger = logging.getLogger(__name__)

# Exact ratios so budgets that divide evenly are not lost to float rounding
BASE64_EXPANSION = Fraction(4, 3)
PAYLOAD_MARGIN = Fraction(9, 10)


def compute_vertices_per_chunk(
    target_size_bytes: int, header_text: str, schema: PropertySchema
) -> int:
    """Number of vertices to place in each chunk (always >= 1)."""
    if target_size_bytes <= 0:
        raise ConfigError(f"targetSizeBytes must be positive, got {target_size_bytes}")

    bytes_per_vertex = schema.record_width()
    if bytes_per_vertex == 0:
        raise HeaderParseError("PLY header declares no vertex properties")
    header_size = len(header_text.encode("utf-8"))
    available_size = target_size_bytes - header_size
    if available_size <= 0:
        raise SizeBudgetError(target_size_bytes, header_size)

    effective_bytes_per_vertex = bytes_per_vertex * PAYLOAD_MARGIN * BASE64_EXPANSION
    raw = math.floor(available_size / effective_bytes_per_vertex)
    if raw < 1:
        logger.warning(
            f"Budget of {target_size_bytes} bytes leaves {available_size} bytes after the "
            f"{header_size}-byte header, less than one encoded vertex "
            f"({float(effective_bytes_per_vertex):.1f} bytes); using 1 vertex per chunk"
        )
    return max(1, raw)
