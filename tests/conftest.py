"""Shared pytest fixtures for plysplit tests."""

from pathlib import Path

import numpy as np
import pytest
from plyfile import PlyData, PlyElement


def make_gaussian_ply(
    path: Path,
    n: int = 200,
    sh_rest: int = 0,
    seed: int = 42,
    comments: list[str] | None = None,
) -> Path:
    """Write a binary 3DGS-style PLY: xyz, f_dc, f_rest_*, opacity, scale, rot."""
    rng = np.random.default_rng(seed)
    names = ["x", "y", "z", "f_dc_0", "f_dc_1", "f_dc_2"]
    names += [f"f_rest_{i}" for i in range(sh_rest)]
    names += ["opacity", "scale_0", "scale_1", "scale_2", "rot_0", "rot_1", "rot_2", "rot_3"]

    vertex_data = np.empty(n, dtype=[(name, "f4") for name in names])
    for name in names:
        vertex_data[name] = rng.standard_normal(n).astype(np.float32)

    el = PlyElement.describe(vertex_data, "vertex")
    PlyData([el], text=False, byte_order="<", comments=comments or []).write(str(path))
    return path


def make_xyz_ply(path: Path, n: int, props: int = 8, seed: int = 7) -> Path:
    """Write a PLY whose records are `props` float32 values (4 * props bytes)."""
    rng = np.random.default_rng(seed)
    names = [chr(ord("a") + i) for i in range(props)]
    vertex_data = np.empty(n, dtype=[(name, "f4") for name in names])
    for name in names:
        vertex_data[name] = rng.uniform(-1, 1, n).astype(np.float32)
    PlyData([PlyElement.describe(vertex_data, "vertex")], byte_order="<").write(str(path))
    return path


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Temporary output root (chunks, groups and JSON sidecars go here)."""
    root = tmp_path / "outputs"
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def gaussian_ply(tmp_path: Path) -> Path:
    return make_gaussian_ply(tmp_path / "scene.ply")


@pytest.fixture
def gaussian_ply_sh1(tmp_path: Path) -> Path:
    return make_gaussian_ply(tmp_path / "scene_sh1.ply", n=120, sh_rest=9)


@pytest.fixture
def ply_factory(tmp_path: Path):
    """Build PLY files on demand: ply_factory(name, n=..., sh_rest=...)."""

    def _make(name: str = "custom.ply", **kwargs) -> Path:
        return make_gaussian_ply(tmp_path / name, **kwargs)

    return _make


@pytest.fixture
def xyz_ply_factory(tmp_path: Path):
    """Build fixed-width float PLY files: xyz_ply_factory(name, n, props=8)."""

    def _make(name: str, n: int, props: int = 8) -> Path:
        return make_xyz_ply(tmp_path / name, n, props=props)

    return _make
