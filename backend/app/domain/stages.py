"""Kohlberg stage catalog used to calibrate question difficulty.

Pure domain logic with no external dependencies. The catalog is immutable and
handed to services explicitly.
"""
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable

GENERIC_BASELINE_PROMPT = "What moral principle matters most to you, and why?"


@dataclass(frozen=True)
class StageDefinition:
    """One stage of moral development and its baseline prompt pool."""

    number: int
    level: str
    name: str
    description: str
    prompts: tuple[str, ...]


class StageCatalog:
    """Read-only mapping of stage number -> StageDefinition."""

    def __init__(self, stages: Iterable[StageDefinition]):
        by_number = {s.number: s for s in stages}
        if not by_number:
            raise ValueError("StageCatalog requires at least one stage")
        self._stages = MappingProxyType(by_number)

    def __contains__(self, number: object) -> bool:
        return number in self._stages

    def __len__(self) -> int:
        return len(self._stages)

    @property
    def first_stage(self) -> int:
        return min(self._stages)

    @property
    def max_stage(self) -> int:
        return max(self._stages)

    def get(self, number: int) -> StageDefinition | None:
        return self._stages.get(number)

    def baseline_prompt(self, number: int, rng: random.Random | None = None) -> str:
        """Pick a baseline question for the stage.

        Random among the stage's prompt pool when ``rng`` is given, otherwise
        the first prompt. Unknown stages get a generic prompt so callers always
        have something to show.
        """
        stage = self._stages.get(number)
        if stage is None or not stage.prompts:
            return GENERIC_BASELINE_PROMPT
        if rng is None:
            return stage.prompts[0]
        return rng.choice(stage.prompts)


KOHLBERG_STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(
        number=1,
        level="Preconventional",
        name="Obedience and Punishment Orientation",
        description="Focus on avoiding punishment. Moral rules are obeyed to escape negative consequences.",
        prompts=(
            "Imagine someone tells you not to enter a restricted area. Why would you obey?",
            "What if no one was watching—would you still follow the rule?",
        ),
    ),
    StageDefinition(
        number=2,
        level="Preconventional",
        name="Self-Interest Orientation",
        description=(
            "Focus on personal benefit or gain. 'Right' actions are those that serve "
            "one's own needs or interests."
        ),
        prompts=(
            "Why would you cooperate with someone if it benefits you both?",
            "Is breaking a rule ever acceptable if it helps you personally?",
        ),
    ),
    StageDefinition(
        number=3,
        level="Conventional",
        name="Interpersonal Accord and Conformity",
        description=(
            "Emphasis on social approval and 'being a good person.' Moral actions please "
            "or help others and gain approval."
        ),
        prompts=(
            "How do social expectations influence your moral choices?",
            "Would you lie to avoid hurting a friend's feelings?",
        ),
    ),
    StageDefinition(
        number=4,
        level="Conventional",
        name="Authority and Social-Order Maintaining Orientation",
        description=(
            "Upholding law, order, and societal rules is seen as morally correct. Focus on "
            "maintaining a functioning society."
        ),
        prompts=(
            "Should laws always be followed, even if they seem unfair?",
            "What would happen if everyone broke rules they disagreed with?",
        ),
    ),
    StageDefinition(
        number=5,
        level="Postconventional",
        name="Social Contract Orientation",
        description=(
            "Laws and rules are social contracts. They can be changed if they no longer "
            "serve the greatest good."
        ),
        prompts=(
            "Is it acceptable to disobey a law you believe is unjust?",
            "When should society update or change its rules?",
        ),
    ),
    StageDefinition(
        number=6,
        level="Postconventional",
        name="Universal Ethical Principles",
        description=(
            "Moral reasoning is based on abstract, universal principles like justice, "
            "dignity, and equality for all."
        ),
        prompts=(
            "Is there a higher moral law than society's laws?",
            "Do you believe certain rights are inalienable, regardless of law or opinion?",
        ),
    ),
)

DEFAULT_STAGE_CATALOG = StageCatalog(KOHLBERG_STAGES)
