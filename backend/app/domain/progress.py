"""Stage advancement rules.

Pure functions with no external dependencies.
"""
from dataclasses import dataclass, field


@dataclass
class StageAdvance:
    """Result of a stage advancement check."""

    advanced: bool
    reason: str = ""
    stage: int = 1
    status: str = "active"
    response_count: int = 0
    completed_stages: list[int] = field(default_factory=list)


def merge_completed_stages(completed: list[int] | None, stage: int) -> list[int]:
    """Add ``stage`` to the completed set, returned sorted and de-duplicated."""
    return sorted(set(completed or []) | {stage})


def evaluate_stage_advance(
    stage: int,
    status: str,
    response_count: int,
    completed_stages: list[int] | None,
    contradiction_flag: bool,
    answers_per_stage: int,
    max_stage: int,
) -> StageAdvance:
    """Decide whether the user has finished the current stage.

    Rules:
        - A completed journey never advances again
        - A pending contradiction blocks advancement
        - Fewer than ``answers_per_stage`` answers in the stage blocks advancement
        - Otherwise the stage is marked completed, the answer count resets and
          the stage moves up by one, capped at ``max_stage``
        - Completing ``max_stage`` marks the journey completed
    """
    unchanged = StageAdvance(
        advanced=False,
        stage=stage,
        status=status,
        response_count=response_count,
        completed_stages=list(completed_stages or []),
    )

    if status == "completed":
        unchanged.reason = "All stages already completed"
        return unchanged

    if contradiction_flag:
        unchanged.reason = "Resolve the pending contradiction first"
        return unchanged

    if response_count < answers_per_stage:
        unchanged.reason = f"Answer {answers_per_stage - response_count} more question(s) in this stage"
        return unchanged

    completed = merge_completed_stages(completed_stages, stage)
    final = stage >= max_stage

    return StageAdvance(
        advanced=True,
        stage=stage if final else stage + 1,
        status="completed" if final else "active",
        response_count=0,
        completed_stages=completed,
    )
