"""I/O contracts for Step 02: Merge chunk files into groups."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from plysplit.core.contracts import FailedGroup, GroupRecord, HeaderMetadata


class MergeGroupsInput(BaseModel):
    header: Optional[HeaderMetadata] = Field(
        None, description="Header facts from a split in this invocation; loaded from disk if omitted"
    )
    chunks_dir: Optional[Path] = Field(None, description="Override the configured chunk directory")


class MergeStats(BaseModel):
    total: int
    success: int
    failed: int
    failed_groups: list[FailedGroup] = Field(default_factory=list)


class MergeGroupsOutput(BaseModel):
    groups: list[GroupRecord] = Field(default_factory=list, description="Groups that passed verification")
    metadata_path: Optional[Path] = Field(None, description="Unset when the run stopped before writing the manifest")
    stats: MergeStats
    groups_dir: Path
    states: list[str] = Field(default_factory=list)
