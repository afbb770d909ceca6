"""Run state machine shared by the split and merge steps.

    split: IDLE -> HEADER_KNOWN -> SPLITTING -> SPLIT_VERIFYING -> DONE
    merge: IDLE -> HEADER_KNOWN -> (GROUPING -> GROUP_VERIFYING)* -> DONE

Any state may move to FAILED. There is no resume: a failed run is retried
from scratch.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    HEADER_KNOWN = "header_known"
    SPLITTING = "splitting"
    SPLIT_VERIFYING = "split_verifying"
    GROUPING = "grouping"
    GROUP_VERIFYING = "group_verifying"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.HEADER_KNOWN},
    RunState.HEADER_KNOWN: {RunState.SPLITTING, RunState.GROUPING, RunState.DONE},
    RunState.SPLITTING: {RunState.SPLIT_VERIFYING},
    RunState.SPLIT_VERIFYING: {RunState.DONE},
    RunState.GROUPING: {RunState.GROUP_VERIFYING, RunState.GROUPING, RunState.DONE},
    RunState.GROUP_VERIFYING: {RunState.GROUPING, RunState.DONE},
    RunState.DONE: set(),
    RunState.FAILED: set(),
}


class InvalidTransition(RuntimeError):
    pass


class RunLifecycle:
    """Tracks the current state of one invocation and the path it took."""

    def __init__(self, name: str):
        self.name = name
        self.state = RunState.IDLE
        self.trace: list[RunState] = [RunState.IDLE]

    def advance(self, new_state: RunState) -> None:
        if new_state == RunState.FAILED:
            self.fail()
            return
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"[{self.name}] cannot move from {self.state.value} to {new_state.value}"
            )
        # Repeated GROUPING/GROUP_VERIFYING cycles are not logged per group
        if new_state not in (RunState.GROUPING, RunState.GROUP_VERIFYING):
            logger.debug(f"[{self.name}] {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.trace.append(new_state)

    def fail(self) -> None:
        if self.state in (RunState.DONE, RunState.FAILED):
            return
        logger.debug(f"[{self.name}] {self.state.value} -> failed")
        self.state = RunState.FAILED
        self.trace.append(RunState.FAILED)

    @property
    def finished(self) -> bool:
        return self.state in (RunState.DONE, RunState.FAILED)
