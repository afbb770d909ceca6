"""Step 01: Split a PLY file into chunk files small enough for one memo each."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from plysplit.core.contracts import HeaderMetadata
from plysplit.core.errors import ChunkVerificationMismatch, HeaderParseError, RunCancelled
from plysplit.core.header import (
    UnresolvedShDegree,
    parse_header,
    read_declared_vertex_count,
    rewrite_vertex_count,
    split_header_bytes,
)
from plysplit.core.lifecycle import RunLifecycle, RunState
from plysplit.core.metadata import save_header
from plysplit.core.sizing import compute_vertices_per_chunk
from plysplit.core.step_base import BaseStep
from .config import SplitChunksConfig
from .contracts import ChunkInfo, FailedChunk, SplitChunksInput, SplitChunksOutput

logger = logging.getLogger(__name__)


def chunk_filename(index: int) -> str:
    """Zero-padded so that lexical order equals chunk order."""
    return f"chunk_{index:06d}.ply"


def plan_chunks(total_vertices: int, vertices_per_chunk: int, record_width: int) -> list[ChunkInfo]:
    """Partition [0, total_vertices) into consecutive runs of vertices_per_chunk.

    The last chunk holds the remainder and may be smaller.
    """
    if vertices_per_chunk < 1:
        raise ValueError(f"vertices_per_chunk must be >= 1, got {vertices_per_chunk}")
    num_chunks = -(-total_vertices // vertices_per_chunk)
    chunks = []
    for i in range(num_chunks):
        start = i * vertices_per_chunk
        end = min((i + 1) * vertices_per_chunk, total_vertices)
        chunks.append(ChunkInfo(
            index=i,
            filename=chunk_filename(i),
            vertex_start=start,
            vertex_end=end,
            byte_start=start * record_width,
            byte_end=end * record_width,
        ))
    return chunks


def _write_chunk(path: Path, header_text: str, chunk_data: bytes, num_vertices: int) -> None:
    chunk_header = rewrite_vertex_count(header_text, num_vertices)
    with open(path, "wb") as f:
        f.write(chunk_header.encode("utf-8"))
        f.write(chunk_data)


def verify_chunk_file(path: Path) -> int | None:
    """Vertex count declared by a written chunk, None if it cannot be read."""
    return read_declared_vertex_count(path.read_bytes())


class SplitChunksStep(BaseStep[SplitChunksInput, SplitChunksOutput, SplitChunksConfig]):
    """Split a PLY file into ordered chunks, verify them, and save header_info.json.

    Per-chunk verification failures are reported in the output. Only a
    mismatch between the summed chunk counts and the source vertex count
    aborts the run.
    """

    name: ClassVar[str] = "split_chunks"
    input_type: ClassVar = SplitChunksInput
    output_type: ClassVar = SplitChunksOutput
    config_type: ClassVar = SplitChunksConfig

    def validate_inputs(self, inputs: SplitChunksInput) -> bool:
        if not inputs.ply_path.exists():
            logger.error(f"PLY file not found: {inputs.ply_path}")
            return False
        if inputs.ply_path.suffix.lower() != ".ply":
            logger.error(f"Expected .ply file, got: {inputs.ply_path.suffix}")
            return False
        return True

    @property
    def chunks_dir(self) -> Path:
        return self.data_root / self.config.chunks_dir

    @property
    def metadata_dir(self) -> Path:
        return self.data_root / self.config.metadata_dir

    def run(self, inputs: SplitChunksInput) -> SplitChunksOutput:
        lifecycle = RunLifecycle(self.name)
        try:
            return self._run(inputs, lifecycle)
        except Exception:
            lifecycle.fail()
            raise

    def _run(self, inputs: SplitChunksInput, lifecycle: RunLifecycle) -> SplitChunksOutput:
        # --- 1. Parse header ---
        raw = inputs.ply_path.read_bytes()
        header = parse_header(raw)
        _, vertex_data = split_header_bytes(raw)
        lifecycle.advance(RunState.HEADER_KNOWN)

        if isinstance(header.sh_degree, UnresolvedShDegree):
            msg = (
                f"{header.sh_degree.count} f_rest_* properties match no spherical-harmonics "
                f"degree (expected 0, 9, 24 or 45)"
            )
            if self.config.strict_sh_degree:
                raise HeaderParseError(msg)
            logger.warning(f"{msg}; header_info.json will record maxShDegree=-1")

        bytes_per_vertex = header.schema.record_width()
        expected_bytes = header.vertex_count * bytes_per_vertex
        if len(vertex_data) != expected_bytes:
            raise HeaderParseError(
                f"Vertex payload is {len(vertex_data)} bytes but the header declares "
                f"{header.vertex_count} x {bytes_per_vertex} = {expected_bytes} bytes"
            )

        # --- 2. Size chunks ---
        vertices_per_chunk = compute_vertices_per_chunk(
            self.config.target_size_bytes, header.text, header.schema
        )
        chunks = plan_chunks(header.vertex_count, vertices_per_chunk, bytes_per_vertex)
        num_chunks = len(chunks)

        logger.info(
            f"Split configuration: {header.vertex_count} vertices, "
            f"{bytes_per_vertex} bytes/vertex, header {header.size_bytes} bytes, "
            f"{vertices_per_chunk} vertices/chunk -> {num_chunks} chunks"
        )

        # --- 3. Emit chunks ---
        chunks_dir = self.chunks_dir
        chunks_dir.mkdir(parents=True, exist_ok=True)
        self._warn_stale_chunks(chunks_dir, num_chunks)

        header_meta = HeaderMetadata.from_header(header)

        def summarize(written: list[ChunkInfo], verified: int, failed: list[FailedChunk]) -> SplitChunksOutput:
            return SplitChunksOutput(
                num_chunks=len(written),
                total_vertices=verified,
                processed_vertices=sum(c.vertex_count for c in written),
                failed_chunks=failed,
                vertices_per_chunk=vertices_per_chunk,
                chunks=written,
                chunks_dir=chunks_dir,
                header=header_meta,
                states=[s.value for s in lifecycle.trace],
            )

        lifecycle.advance(RunState.SPLITTING)
        for chunk in chunks:
            if self.is_cancelled():
                logger.warning(f"Split cancelled after {chunk.index}/{num_chunks} chunks written")
                lifecycle.fail()
                raise RunCancelled(
                    "split", chunk.index, num_chunks, result=summarize(chunks[:chunk.index], 0, [])
                )
            _write_chunk(
                chunks_dir / chunk.filename,
                header.text,
                vertex_data[chunk.byte_start:chunk.byte_end],
                chunk.vertex_count,
            )
            self.report_progress(chunk.index + 1, num_chunks, "split")

        # --- 4. Verify ---
        lifecycle.advance(RunState.SPLIT_VERIFYING)
        verified_vertices = 0
        failed_chunks: list[FailedChunk] = []
        for chunk in chunks:
            if self.is_cancelled():
                logger.warning(f"Verification cancelled after {chunk.index}/{num_chunks} chunks checked")
                lifecycle.fail()
                raise RunCancelled(
                    "verify", chunk.index, num_chunks,
                    result=summarize(chunks, verified_vertices, failed_chunks),
                )
            try:
                count = verify_chunk_file(chunks_dir / chunk.filename)
            except OSError as e:
                failed_chunks.append(FailedChunk(index=chunk.index, error=str(e)))
            else:
                if count is None:
                    failed_chunks.append(FailedChunk(index=chunk.index, error="No vertex count found"))
                else:
                    verified_vertices += count
            self.report_progress(chunk.index + 1, num_chunks, "verify")

        output = summarize(chunks, verified_vertices, failed_chunks)
        self._log_summary(header.vertex_count, output)

        if verified_vertices != header.vertex_count:
            lifecycle.fail()
            output.states = [s.value for s in lifecycle.trace]
            raise ChunkVerificationMismatch(header.vertex_count, verified_vertices, result=output)

        # --- 5. Persist header facts for later merge runs ---
        output.header_info_path = save_header(header_meta, self.metadata_dir)
        lifecycle.advance(RunState.DONE)
        output.states = [s.value for s in lifecycle.trace]
        return output

    def _warn_stale_chunks(self, chunks_dir: Path, num_chunks: int) -> None:
        stale = [
            p for p in chunks_dir.glob("chunk_*.ply")
            if p.stem[len("chunk_"):].isdigit() and int(p.stem[len("chunk_"):]) >= num_chunks
        ]
        if stale:
            logger.warning(
                f"{len(stale)} chunk files from an earlier run remain in {chunks_dir} "
                f"beyond index {num_chunks - 1}; a later merge will include them"
            )

    @staticmethod
    def _log_summary(original_vertices: int, output: SplitChunksOutput) -> None:
        logger.info(
            f"Verification results: original {original_vertices}, "
            f"processed {output.processed_vertices}, verified {output.total_vertices}, "
            f"chunks {output.num_chunks}"
        )
        if output.failed_chunks:
            logger.warning(f"Failed chunks: {len(output.failed_chunks)}")
            for failed in output.failed_chunks:
                logger.warning(f"  Chunk {failed.index}: {failed.error}")
        diff = original_vertices - output.total_vertices
        if diff:
            logger.error(f"Vertex count mismatch detected! Difference: {abs(diff)} vertices")
        else:
            logger.info("Verification successful - all vertices accounted for")
