"""JSON sidecars that let split and merge run as separate invocations."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from .contracts import GroupManifest, HeaderMetadata
from .errors import MissingHeaderMetadata, PlySplitError

logger = logging.getLogger(__name__)

HEADER_INFO_FILENAME = "header_info.json"
MANIFEST_FILENAME = "chunks_metadata.json"


def _write_json(path: Path, payload: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return path


def save_header(metadata: HeaderMetadata, metadata_dir: Path) -> Path:
    path = _write_json(
        Path(metadata_dir) / HEADER_INFO_FILENAME,
        metadata.model_dump(by_alias=True, mode="json"),
    )
    logger.info(f"Header information saved -> {path}")
    return path


def load_header(metadata_dir: Path) -> HeaderMetadata:
    """Load header_info.json; raises MissingHeaderMetadata if absent."""
    path = Path(metadata_dir) / HEADER_INFO_FILENAME
    if not path.exists():
        raise MissingHeaderMetadata(path)
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    try:
        return HeaderMetadata.model_validate(raw)
    except ValidationError as e:
        raise PlySplitError(f"Corrupt header metadata in {path}: {e}") from e


def save_manifest(manifest: GroupManifest, metadata_dir: Path) -> Path:
    path = _write_json(
        Path(metadata_dir) / MANIFEST_FILENAME,
        manifest.model_dump(by_alias=True, mode="json"),
    )
    logger.info(f"Metadata saved to: {path}")
    return path


def load_manifest(metadata_dir: Path) -> GroupManifest:
    path = Path(metadata_dir) / MANIFEST_FILENAME
    with open(path, encoding="utf-8") as f:
        return GroupManifest.model_validate(json.load(f))
