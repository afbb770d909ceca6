"""plysplit core: header codec, chunk sizing, metadata store, pipeline runner."""

from .step_base import BaseStep
from .contracts import GroupManifest, HeaderMetadata, PipelineConfig, StepEntry
from .errors import (
    ChunkVerificationMismatch,
    ConfigError,
    GroupVerificationFailure,
    HeaderParseError,
    MissingHeaderMetadata,
    PlySplitError,
    RunCancelled,
    SizeBudgetError,
    UnknownPropertyType,
)
from .pipeline_runner import run_pipeline, run_split, run_merge, load_pipeline_config
from .logging import setup_logging

__all__ = [
    "BaseStep",
    "GroupManifest",
    "HeaderMetadata",
    "PipelineConfig",
    "StepEntry",
    "ChunkVerificationMismatch",
    "ConfigError",
    "GroupVerificationFailure",
    "HeaderParseError",
    "MissingHeaderMetadata",
    "PlySplitError",
    "RunCancelled",
    "SizeBudgetError",
    "UnknownPropertyType",
    "run_pipeline",
    "run_split",
    "run_merge",
    "load_pipeline_config",
    "setup_logging",
]
