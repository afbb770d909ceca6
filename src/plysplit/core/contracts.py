"""Common Pydantic models shared across pipeline steps.

HeaderMetadata and GroupManifest are persisted as JSON sidecars; their
camelCase aliases are the on-disk field names and must stay stable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .header import PlyHeader, PropertySchema, ShDegree

# Persisted in place of an integer degree when the f_rest_* count is unknown
UNRESOLVED_SH_DEGREE = -1


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HeaderMetadata(_CamelModel):
    """Snapshot of the source header, handed from split to merge."""

    original_header: str = Field(..., alias="originalHeader")
    vertex_count: int = Field(..., ge=0, alias="vertexCount")
    property_types: list[tuple[str, str]] = Field(default_factory=list, alias="propertyTypes")
    max_sh_degree: int = Field(0, alias="maxShDegree")

    @classmethod
    def from_header(cls, header: PlyHeader) -> HeaderMetadata:
        if isinstance(header.sh_degree, ShDegree):
            degree = header.sh_degree.value
        else:
            degree = UNRESOLVED_SH_DEGREE
        return cls(
            original_header=header.text,
            vertex_count=header.vertex_count,
            property_types=list(header.schema),
            max_sh_degree=degree,
        )

    @property
    def property_schema(self) -> PropertySchema:
        return PropertySchema.from_pairs(self.property_types)

    @property
    def sh_degree_resolved(self) -> bool:
        return self.max_sh_degree != UNRESOLVED_SH_DEGREE


class ChunkRef(_CamelModel):
    index: int
    filename: str


class GroupRecord(_CamelModel):
    group_id: int = Field(..., alias="groupId")
    path: str
    vertex_count: int = Field(..., alias="vertexCount")
    chunks: list[ChunkRef] = Field(default_factory=list)


class FailedGroup(_CamelModel):
    group_id: int = Field(..., alias="groupId")
    error: str


class GroupManifest(_CamelModel):
    """Audit trail of one merge run."""

    original_node_count: int = Field(..., alias="originalNodeCount")
    total_groups: int = Field(..., alias="totalGroups")
    group_size: int = Field(..., alias="groupSize")
    nodes_per_group: int = Field(..., alias="nodesPerGroup")
    successful_groups: int = Field(0, alias="successfulGroups")
    failed_groups: list[FailedGroup] = Field(default_factory=list, alias="failedGroups")
    groups: list[GroupRecord] = Field(default_factory=list)


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration loaded from pipeline.yaml."""

    project_name: str = "plysplit_project"
    data_root: Path = Path("./outputs")
    operation: Literal["split", "merge", "all"] = "all"
    log_level: str = "INFO"
    steps: list[StepEntry] = Field(default_factory=list)


class StepEntry(BaseModel):
    """One entry in the pipeline step list."""

    name: str
    module: str
    config_file: str
    operation: Literal["split", "merge"]
    depends_on: list[str] = Field(default_factory=list)
    enabled: bool = True
    inputs: dict[str, Any] = Field(default_factory=dict)


# Fix forward reference
PipelineConfig.model_rebuild()
