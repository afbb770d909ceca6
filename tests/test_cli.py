"""Tests for the typer CLI."""

from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from plysplit import cli
from plysplit.core.contracts import FailedGroup, GroupRecord
from plysplit.core.errors import RunCancelled
from plysplit.steps.s02_merge_groups.contracts import MergeGroupsOutput, MergeStats

PIPELINE_YAML = Path(__file__).resolve().parents[1] / "configs" / "pipeline.yaml"

runner = CliRunner()


class TestFail:
    def test_prints_partial_merge_summary(self, tmp_path: Path, capsys):
        partial = MergeGroupsOutput(
            groups=[GroupRecord(group_id=0, path="group_000000.ply", vertex_count=45)],
            stats=MergeStats(
                total=2,
                success=1,
                failed=1,
                failed_groups=[FailedGroup(group_id=1, error="No vertex count found in chunk_000007.ply")],
            ),
            groups_dir=tmp_path,
        )
        with pytest.raises(typer.Exit):
            cli._fail(RunCancelled("merge", 2, 5, result=partial))

        out = capsys.readouterr().out
        assert "Group Creation Results" in out
        assert "Groups attempted" in out
        assert "chunk_000007.ply" in out
        assert "merge cancelled after 2/5 items" in out

    def test_error_without_result(self, capsys):
        with pytest.raises(typer.Exit):
            cli._fail(RunCancelled("split", 0, 3))
        out = capsys.readouterr().out
        assert "Results" not in out
        assert "split cancelled after 0/3 items" in out


class TestInfo:
    def test_lists_steps(self):
        result = runner.invoke(cli.app, ["info", "--config", str(PIPELINE_YAML)])
        assert result.exit_code == 0
        assert "s01_split_chunks" in result.output
        assert "target_size_bytes" not in result.output

    def test_schemas(self):
        result = runner.invoke(cli.app, ["info", "--config", str(PIPELINE_YAML), "--schemas"])
        assert result.exit_code == 0
        assert "target_size_bytes" in result.output
        assert "ply_path" in result.output
        assert "group_size" in result.output
