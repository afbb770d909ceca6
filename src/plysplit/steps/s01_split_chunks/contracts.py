"""I/O contracts for Step 01: Split a PLY file into size-bounded chunks."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from plysplit.core.contracts import HeaderMetadata


class SplitChunksInput(BaseModel):
    ply_path: Path = Field(..., description="Source PLY file (ASCII header + binary vertices)")


class FailedChunk(BaseModel):
    index: int
    error: str


class ChunkInfo(BaseModel):
    """One chunk: vertex range [vertex_start, vertex_end) of the source payload."""

    index: int
    filename: str
    vertex_start: int
    vertex_end: int
    byte_start: int
    byte_end: int

    @property
    def vertex_count(self) -> int:
        return self.vertex_end - self.vertex_start


class SplitChunksOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    num_chunks: int = Field(..., alias="numChunks")
    total_vertices: int = Field(..., alias="totalVertices", description="Sum of verified chunk counts")
    processed_vertices: int = Field(..., alias="processedVertices")
    failed_chunks: list[FailedChunk] = Field(default_factory=list, alias="failedChunks")
    vertices_per_chunk: int
    chunks: list[ChunkInfo] = Field(default_factory=list)
    chunks_dir: Path
    header: HeaderMetadata
    header_info_path: Optional[Path] = None
    states: list[str] = Field(default_factory=list)
