"""Configuration for Step 01: Split a PLY file into size-bounded chunks."""

from pydantic import BaseModel, Field


class SplitChunksConfig(BaseModel):
    target_size_bytes: int = Field(
        566, gt=0, description="Per-message byte budget each encoded chunk should fit in"
    )
    chunks_dir: str = Field("plysplit/chunks", description="Chunk output dir, relative to data root")
    metadata_dir: str = Field(".", description="Directory for header_info.json, relative to data root")
    strict_sh_degree: bool = Field(
        False, description="Fail instead of warn when the f_rest_* count maps to no SH degree"
    )
