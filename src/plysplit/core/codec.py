"""Point-cloud loader used to check that merged files are well formed.

The compact transport format and base64 transcoding are handled outside
this package; only loading the source format is needed here.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Protocol, Union

from plyfile import PlyData

PlySource = Union[bytes, Path]


class PointCloudCodec(Protocol):
    def load(self, source: PlySource) -> Any:
        """Parse a PLY file; raise on malformed input."""
        ...

    def vertex_count(self, handle: Any) -> int:
        ...


class PlyfileCodec:
    """PointCloudCodec backed by the plyfile library."""

    def load(self, source: PlySource) -> PlyData:
        if isinstance(source, (bytes, bytearray)):
            return PlyData.read(io.BytesIO(source))
        return PlyData.read(str(source))

    def vertex_count(self, handle: PlyData) -> int:
        return len(handle["vertex"].data)
