"""Pipeline orchestrator: reads pipeline.yaml and executes split/merge steps in order."""

from __future__ import annotations

import importlib
import logging
import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError

from .contracts import HeaderMetadata, PipelineConfig, StepEntry
from .errors import ConfigError
from .step_base import ProgressCallback

logger = logging.getLogger(__name__)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e


def load_pipeline_config(config_path: Path) -> PipelineConfig:
    """Load and validate pipeline.yaml."""
    raw = _read_yaml(config_path)
    try:
        return PipelineConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid pipeline config {config_path}:\n{e}") from e


def load_step_config(config_path: Path, config_class: type[BaseModel]) -> BaseModel:
    """Load a step-specific YAML config into its Pydantic model."""
    raw = _read_yaml(config_path)
    try:
        return config_class(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid step config {config_path}:\n{e}") from e


def import_step_class(module_path: str):
    """Dynamically import a step class from its module path.

    Expects module_path like 'plysplit.steps.s01_split_chunks'
    and looks for a class ending in 'Step' in that module's step.py.
    """
    step_module = importlib.import_module(f"{module_path}.step")
    for attr_name in dir(step_module):
        attr = getattr(step_module, attr_name)
        if (
            isinstance(attr, type)
            and hasattr(attr, "run")
            and attr_name.endswith("Step")
            and attr_name != "BaseStep"
        ):
            return attr
    raise ImportError(f"No Step class found in {module_path}.step")


def selected_steps(pipeline_cfg: PipelineConfig) -> list[StepEntry]:
    """Enabled steps that belong to the configured operation."""
    return [
        s for s in pipeline_cfg.steps
        if s.enabled and pipeline_cfg.operation in ("all", s.operation)
    ]


def run_pipeline(
    config_path: Path,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
) -> dict[str, BaseModel]:
    """Execute the configured operation from a config file.

    Returns each executed step's output keyed by step name.
    """
    pipeline_cfg = load_pipeline_config(config_path)
    data_root = pipeline_cfg.data_root
    results: dict[str, BaseModel] = {}

    steps = selected_steps(pipeline_cfg)
    logger.info(
        f"Pipeline '{pipeline_cfg.project_name}' operation '{pipeline_cfg.operation}' "
        f"with {len(steps)} steps"
    )

    for entry in steps:
        logger.info(f"--- Step: {entry.name} ---")

        step_cls = import_step_class(entry.module)
        step_config = load_step_config(Path(entry.config_file), step_cls.config_type)
        step_instance = step_cls(
            config=step_config, data_root=data_root, cancel_event=cancel_event, progress=progress
        )

        # Static inputs first, then outputs of steps run earlier in this invocation
        input_data = dict(entry.inputs)
        for dep in entry.depends_on:
            if dep in results:
                input_data.update(results[dep].model_dump())

        output = step_instance.execute(step_cls.input_type(**input_data))
        results[entry.name] = output

    logger.info("Pipeline complete.")
    return results


def run_split(
    ply_path: Path,
    target_size_bytes: int,
    data_root: Path,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
    **config_overrides,
):
    """Split ply_path into chunks under data_root. Returns SplitChunksOutput."""
    from plysplit.steps.s01_split_chunks.config import SplitChunksConfig
    from plysplit.steps.s01_split_chunks.contracts import SplitChunksInput
    from plysplit.steps.s01_split_chunks.step import SplitChunksStep

    try:
        config = SplitChunksConfig(target_size_bytes=target_size_bytes, **config_overrides)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
    step = SplitChunksStep(
        config=config, data_root=data_root, cancel_event=cancel_event, progress=progress
    )
    return step.execute(SplitChunksInput(ply_path=ply_path))


def run_merge(
    group_size: int,
    data_root: Path,
    header: Optional[HeaderMetadata] = None,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
    **config_overrides,
):
    """Merge the chunks under data_root into groups. Returns MergeGroupsOutput.

    Without ``header`` the header facts saved by a previous split are used.
    """
    from plysplit.steps.s02_merge_groups.config import MergeGroupsConfig
    from plysplit.steps.s02_merge_groups.contracts import MergeGroupsInput
    from plysplit.steps.s02_merge_groups.step import MergeGroupsStep

    try:
        config = MergeGroupsConfig(group_size=group_size, **config_overrides)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
    step = MergeGroupsStep(
        config=config, data_root=data_root, cancel_event=cancel_event, progress=progress
    )
    return step.execute(MergeGroupsInput(header=header))
