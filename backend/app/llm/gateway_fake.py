"""GatewayFake: scenario-based test double for the LLMGateway protocol.

Scenarios:
- happy_path: questions are generated, no contradictions, resolutions accepted
- contradiction: every consistency check reports a contradiction
- unresolved: every resolution attempt is rejected
- empty: the model returns nothing
- llm_failure: every call raises GatewayError

Explicit ``replies`` take precedence over the scenario and are consumed in
order. Every prompt and temperature is recorded for assertions.
"""

from app.core.exceptions import GatewayError
from app.llm.parsing import (
    CONTRADICTION_MARKER,
    NO_CONTRADICTION_TOKEN,
    RESOLVED_TOKEN,
    UNRESOLVED_TOKEN,
)

FAKE_QUESTION = "Would you break a promise to a friend if keeping it meant someone else got hurt?"
FAKE_CLARIFYING_QUESTION = "How do you decide which of these values should guide you when they pull in different directions?"
FAKE_CONTRADICTION_DETAILS = "Statement 1 puts honesty above everything, while Statement 2 allows lying to spare feelings."
FAKE_EVALUATION = """1. Summary of Moral Reasoning Style
You weigh honesty and care for others together.

2. Connection to Kohlberg's Framework
Your answers mostly reflect conventional reasoning.

3. Key Themes & Principles
- Honesty

4. Strengths Observed
- Consistency

5. Areas for Growth
- Considering strangers as well as friends

6. Questions for Further Reflection
- When does kindness outweigh candor?"""


class GatewayFake:
    """Deterministic stand-in for a language model."""

    VALID_SCENARIOS = {"happy_path", "contradiction", "unresolved", "empty", "llm_failure"}

    def __init__(self, scenario: str = "happy_path", replies: list[str] | None = None):
        if scenario not in self.VALID_SCENARIOS:
            raise ValueError(
                f"Unknown scenario: {scenario}. Valid scenarios: {self.VALID_SCENARIOS}"
            )
        self.scenario = scenario
        self.replies = list(replies or [])
        self.prompts: list[str] = []
        self.temperatures: list[float | None] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)

        if self.replies:
            return self.replies.pop(0)

        if self.scenario == "llm_failure":
            raise GatewayError("Ollama API request failed with status 503")

        if self.scenario == "empty":
            return ""

        return self._scripted_reply(prompt)

    def _scripted_reply(self, prompt: str) -> str:
        if UNRESOLVED_TOKEN in prompt:
            return UNRESOLVED_TOKEN if self.scenario == "unresolved" else RESOLVED_TOKEN

        if CONTRADICTION_MARKER in prompt:
            if self.scenario == "contradiction":
                return f"{CONTRADICTION_MARKER} {FAKE_CONTRADICTION_DETAILS}"
            return NO_CONTRADICTION_TOKEN

        if "Questions for Further Reflection" in prompt:
            return FAKE_EVALUATION

        if "clarifying question" in prompt:
            return FAKE_CLARIFYING_QUESTION

        return FAKE_QUESTION
