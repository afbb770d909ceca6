"""Step 02: Merge ordered runs of chunk files back into larger PLY files."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import ClassVar, Optional

from plysplit.core.codec import PlyfileCodec, PointCloudCodec
from plysplit.core.contracts import ChunkRef, FailedGroup, GroupManifest, GroupRecord, HeaderMetadata
from plysplit.core.errors import (
    ConfigError,
    GroupVerificationFailure,
    HeaderParseError,
    PlySplitError,
    RunCancelled,
)
from plysplit.core.header import read_declared_vertex_count, rewrite_vertex_count, split_header_bytes
from plysplit.core.lifecycle import RunLifecycle, RunState
from plysplit.core.metadata import load_header, save_manifest
from plysplit.core.step_base import BaseStep
from .config import MergeGroupsConfig
from .contracts import MergeGroupsInput, MergeGroupsOutput, MergeStats

logger = logging.getLogger(__name__)

_INDEX_RE = re.compile(r"\d+")


def group_filename(group_id: int) -> str:
    return f"group_{group_id:06d}.ply"


def list_chunk_files(chunks_dir: Path) -> list[Path]:
    """All .ply files in chunks_dir, ordered by the first number in their name."""
    files = []
    for path in Path(chunks_dir).glob("*.ply"):
        match = _INDEX_RE.search(path.name)
        if match is None:
            logger.warning(f"Skipping {path.name}: no chunk index in filename")
            continue
        files.append((int(match.group()), path))
    files.sort(key=lambda item: item[0])
    return [path for _, path in files]


def effective_group_size(chunk_count: int, group_size: int) -> int:
    if group_size == -1:
        return chunk_count
    if group_size < 1:
        raise ConfigError(f"Invalid groupSize {group_size}: must be -1 (merge all) or a positive number")
    return group_size


def partition_groups(chunk_count: int, group_size: int) -> list[list[int]]:
    """Split chunk indices [0, chunk_count) into consecutive ascending runs.

    group_size == -1 yields a single group holding every chunk.
    """
    size = effective_group_size(chunk_count, group_size)
    return [list(range(i, min(i + size, chunk_count))) for i in range(0, chunk_count, size or 1)]


def merge_group(chunk_paths: list[Path], header_text: str, output_path: Path) -> int:
    """Concatenate chunk payloads in order under a rewritten header.

    Returns the summed vertex count written to output_path.
    """
    total_vertices = 0
    payloads = []
    for path in chunk_paths:
        data = path.read_bytes()
        count = read_declared_vertex_count(data)
        if count is None:
            raise HeaderParseError(f"No vertex count found in {path.name}")
        _, vertex_data = split_header_bytes(data)
        payloads.append(vertex_data)
        total_vertices += count

    merged_header = rewrite_vertex_count(header_text, total_vertices)
    with open(output_path, "wb") as f:
        f.write(merged_header.encode("utf-8"))
        for vertex_data in payloads:
            f.write(vertex_data)
    return total_vertices


def verify_group(codec: PointCloudCodec, group_id: int, path: Path, expected_vertices: int) -> None:
    """Raise GroupVerificationFailure if the merged file does not load cleanly."""
    try:
        handle = codec.load(path)
        loaded = codec.vertex_count(handle)
    except Exception as e:  # loader errors are arbitrary; they only mark this group
        raise GroupVerificationFailure(group_id, f"Failed verification after merge: {e}") from e
    if loaded != expected_vertices:
        raise GroupVerificationFailure(
            group_id,
            f"Failed verification after merge: loaded {loaded} vertices, expected {expected_vertices}",
        )


class MergeGroupsStep(BaseStep[MergeGroupsInput, MergeGroupsOutput, MergeGroupsConfig]):
    """Merge chunks into groups, verify each group, and write chunks_metadata.json.

    A group that fails to merge or verify is recorded in the manifest and the
    remaining groups are still processed.
    """

    name: ClassVar[str] = "merge_groups"
    input_type: ClassVar = MergeGroupsInput
    output_type: ClassVar = MergeGroupsOutput
    config_type: ClassVar = MergeGroupsConfig

    def __init__(self, *args, codec: Optional[PointCloudCodec] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.codec = codec or PlyfileCodec()

    def _chunks_dir(self, inputs: MergeGroupsInput) -> Path:
        return inputs.chunks_dir or self.data_root / self.config.chunks_dir

    def validate_inputs(self, inputs: MergeGroupsInput) -> bool:
        chunks_dir = self._chunks_dir(inputs)
        if not chunks_dir.is_dir():
            logger.error(f"Chunk directory not found: {chunks_dir}")
            return False
        return True

    def run(self, inputs: MergeGroupsInput) -> MergeGroupsOutput:
        lifecycle = RunLifecycle(self.name)
        try:
            return self._run(inputs, lifecycle)
        except Exception:
            lifecycle.fail()
            raise

    def _run(self, inputs: MergeGroupsInput, lifecycle: RunLifecycle) -> MergeGroupsOutput:
        metadata_dir = self.data_root / self.config.metadata_dir
        header: HeaderMetadata = inputs.header or self._load_header(metadata_dir)
        lifecycle.advance(RunState.HEADER_KNOWN)

        groups_dir = self.data_root / self.config.groups_dir
        groups_dir.mkdir(parents=True, exist_ok=True)

        files = list_chunk_files(self._chunks_dir(inputs))
        group_size = self.config.group_size
        nodes_per_group = effective_group_size(len(files), group_size)
        partitions = partition_groups(len(files), group_size)
        total_groups = len(partitions)

        logger.info(
            f"Group configuration: {len(files)} chunk files, group size {nodes_per_group}, "
            f"{total_groups} groups"
        )
        if not files:
            logger.warning(f"No chunk files found in {self._chunks_dir(inputs)}")

        groups: list[GroupRecord] = []
        failed_groups: list[FailedGroup] = []

        for group_id, indices in enumerate(partitions):
            if self.is_cancelled():
                logger.warning(f"Merge cancelled after {group_id}/{total_groups} groups")
                lifecycle.fail()
                partial = self._output(groups, failed_groups, groups_dir, None, lifecycle)
                raise RunCancelled("merge", group_id, total_groups, result=partial)
            lifecycle.advance(RunState.GROUPING)
            output_path = groups_dir / group_filename(group_id)
            chunk_paths = [files[i] for i in indices]
            try:
                vertex_count = merge_group(chunk_paths, header.original_header, output_path)
                lifecycle.advance(RunState.GROUP_VERIFYING)
                if self.config.verify_groups:
                    verify_group(self.codec, group_id, output_path, vertex_count)
            except (PlySplitError, OSError) as e:
                failed_groups.append(FailedGroup(group_id=group_id, error=str(e)))
                logger.warning(f"Group {group_id} failed: {e}")
            else:
                groups.append(GroupRecord(
                    group_id=group_id,
                    path=output_path.name,
                    vertex_count=vertex_count,
                    chunks=[ChunkRef(index=i, filename=files[i].name) for i in indices],
                ))
            self.report_progress(group_id + 1, total_groups, "merge")

        manifest = GroupManifest(
            original_node_count=len(files),
            total_groups=total_groups,
            group_size=group_size,
            nodes_per_group=nodes_per_group,
            successful_groups=len(groups),
            failed_groups=failed_groups,
            groups=groups,
        )
        self._log_summary(manifest, header.vertex_count)
        metadata_path = save_manifest(manifest, metadata_dir)

        lifecycle.advance(RunState.DONE)
        return self._output(groups, failed_groups, groups_dir, metadata_path, lifecycle)

    @staticmethod
    def _output(
        groups: list[GroupRecord],
        failed_groups: list[FailedGroup],
        groups_dir: Path,
        metadata_path: Optional[Path],
        lifecycle: RunLifecycle,
    ) -> MergeGroupsOutput:
        return MergeGroupsOutput(
            groups=list(groups),
            metadata_path=metadata_path,
            stats=MergeStats(
                total=len(groups) + len(failed_groups),
                success=len(groups),
                failed=len(failed_groups),
                failed_groups=list(failed_groups),
            ),
            groups_dir=groups_dir,
            states=[s.value for s in lifecycle.trace],
        )

    @staticmethod
    def _load_header(metadata_dir: Path) -> HeaderMetadata:
        header = load_header(metadata_dir)
        logger.info("Header information loaded successfully")
        return header

    @staticmethod
    def _log_summary(manifest: GroupManifest, source_vertices: int) -> None:
        logger.info(
            f"Group creation results: {manifest.total_groups} attempted, "
            f"{manifest.successful_groups} successful"
        )
        if manifest.failed_groups:
            logger.warning(f"Failed groups: {len(manifest.failed_groups)}")
            for failed in manifest.failed_groups:
                logger.warning(f"  Group {failed.group_id}: {failed.error}")
        else:
            merged = sum(g.vertex_count for g in manifest.groups)
            logger.info(
                f"All groups created and verified successfully ({merged}/{source_vertices} vertices)"
            )
