"""Configuration for Step 02: Merge chunk files into groups."""

from pydantic import BaseModel, Field, field_validator


class MergeGroupsConfig(BaseModel):
    group_size: int = Field(
        500, description="Chunks per group; -1 merges every chunk into a single group"
    )
    chunks_dir: str = Field("plysplit/chunks", description="Chunk input dir, relative to data root")
    groups_dir: str = Field(
        "plysplit/grouped_chunks", description="Group output dir, relative to data root"
    )
    metadata_dir: str = Field(
        ".", description="Directory holding header_info.json and chunks_metadata.json"
    )
    verify_groups: bool = Field(True, description="Load each merged group with plyfile to validate it")

    @field_validator("group_size")
    @classmethod
    def _check_group_size(cls, v: int) -> int:
        if v != -1 and v <= 0:
            raise ValueError("group_size must be -1 (merge all) or a positive number")
        return v
