"""Prompt templates for every language-model call.

Classification prompts pin the model to a tiny output grammar (see
``app.llm.parsing``); generation prompts ask for the question text only.
"""

from typing import Sequence

from app.db.models.response import Response
from app.domain.stages import StageDefinition
from app.llm.parsing import (
    CONTRADICTION_MARKER,
    NO_CONTRADICTION_TOKEN,
    RESOLVED_TOKEN,
    UNRESOLVED_TOKEN,
)

NO_STATEMENTS = "(No prior statements yet)"
NO_RESPONSES = "(No responses recorded)"


def render_statements(answers: Sequence[Response], label: str = "Statement", separator: str = "\n") -> str:
    """Enumerate answers as ``[Stage s] Statement i: text`` in the given order.

    Explanations returned by the model refer to statements by these positions,
    so callers must pass the active set in ``created_at`` order.
    """
    return separator.join(
        f"[Stage {a.stage}] {label} {i}: {a.answer}" for i, a in enumerate(answers, start=1)
    )


QUESTION_PROMPT = """SYSTEM:
You are a moral philosophy AI specializing in Lawrence Kohlberg's stages of moral development.
The user is currently at Stage {stage_number}: {stage_name}.

STAGE DESCRIPTION:
{stage_description}

BASELINE QUESTION FOR THIS STAGE:
"{baseline}"

USER'S PREVIOUS STATEMENTS:
{history}

INSTRUCTION:
Create a thoughtful, open-ended moral dilemma or question aligned with Stage {stage_number} thinking.
The question should:
1. Be appropriately challenging for the user's current moral development stage
2. Build on themes or principles from their prior responses when possible
3. Introduce new moral concepts appropriate for Stage {stage_number}
4. Encourage deeper reflection than previous questions
5. Avoid being too abstract or philosophical for lower stages (1-2)
6. For higher stages (5-6), explore universal principles and ethical reasoning

Return ONLY the adapted question with no extra text or explanation.
Aim for a question that is clear, concise (1-3 sentences), thought-provoking, and tailored to their demonstrated moral reasoning level.
"""

CUSTOM_QUESTION_PROMPT = """SYSTEM:
You are a moral philosophy AI specializing in creating thought-provoking ethical questions.
The user is at Stage {stage_number} of Kohlberg's moral development.

THEME REQUESTED:
"{theme}"

INSTRUCTION:
Create an engaging, open-ended moral question related to the requested theme.
The question should:
1. Be appropriate for someone at Stage {stage_number} of moral reasoning
2. Encourage reflection on values and principles
3. Be concise (1-2 sentences maximum)
4. Avoid political polarization or extremely controversial current events
5. Be accessible without specialized knowledge

For lower stages (1-2) focus on personal consequences and fairness; for middle stages (3-4)
emphasize social norms and responsibilities; for higher stages (5-6) explore universal
principles and complex ethical trade-offs.

Return ONLY the question without explanation or commentary.
"""

CONTRADICTION_PROMPT = """SYSTEM:
You are a contradiction-detection assistant specializing in moral reasoning analysis.
Your task is to carefully evaluate if a new statement contradicts previous moral statements.

PRIOR STATEMENTS:
{statements}

NEW STATEMENT:
"{candidate}"

INSTRUCTIONS:
1. Identify the key moral principle behind each statement and compare the principles, not the wording or the specific examples.
2. A contradiction occurs only when two statements cannot both be true at the same time within the same moral framework.
3. Evolution of thinking is NOT a contradiction.
4. A view that depends on context, or that covers different aspects of a complex position, is NOT a contradiction.
5. Minor inconsistencies or a different emphasis do NOT constitute a contradiction.

OUTPUT FORMAT (follow exactly, nothing before or after):
- If you find a DEFINITE contradiction, respond with: "{marker} <one sentence naming the conflicting statements by number>"
- If there is NO contradiction, respond with exactly: "{no_token}"
"""

RESOLUTION_QUESTION_PROMPT = """SYSTEM:
You are a moral philosophy AI facilitator. The user, currently at Stage {stage_number} of Kohlberg's moral development,
has made statements that appear to contain contradictions.
Your goal is to help them examine and clarify their moral reasoning.

USER'S STATEMENTS:
{statements}

INSTRUCTION:
Craft a single focused, non-judgmental clarifying question that will help the user:
1. Recognize the tension in their statements
2. Reflect on their true position
3. Reconcile or clarify their moral reasoning

Use neutral language that invites reflection rather than pushing them toward either side.
Focus on understanding their reasoning process, not on which position they "really" hold.

Return ONLY the question without preamble or explanation.
"""

RESOLUTION_CHECK_PROMPT = """SYSTEM:
You are an AI specializing in moral reasoning analysis. The user previously made statements with apparent contradictions.
They've now provided an explanation attempting to resolve these contradictions.

USER'S STATEMENTS:
{statements}

USER'S RESOLUTION ATTEMPT:
"{resolution_text}"

INSTRUCTIONS:
Evaluate whether the explanation coherently reconciles the tension between the statements.
A successful resolution should:
1. Acknowledge the tension between their earlier statements
2. Provide a coherent framework that reconciles the apparently conflicting views
3. Demonstrate a consistent moral reasoning process
Remember that people can hold nuanced views that only appear contradictory on the surface.

OUTPUT FORMAT (follow exactly, one word, nothing else):
- If the contradiction is resolved, respond with: "{resolved_token}"
- Otherwise respond with: "{unresolved_token}"
"""

EVALUATION_PROMPT = """SYSTEM:
You are an AI expert in moral philosophy and Kohlberg's stages of moral development.
Analyze the user's moral reasoning based on their responses to various moral questions.

USER'S RESPONSES:
{statements}

STAGES COMPLETED: {completed_stages}

INSTRUCTIONS:
Create a thoughtful, educational analysis of the user's moral reasoning framework.
Identify patterns in their reasoning, connect their responses to Kohlberg's stages where appropriate,
note any evolution or consistency in their thinking, and avoid simplified judgments about which stage is "better".

Format your response in these clear sections:
1. Summary of Moral Reasoning Style (1-2 paragraphs)
2. Connection to Kohlberg's Framework (1-2 paragraphs)
3. Key Themes & Principles (3-4 bullet points highlighting their core values)
4. Strengths Observed (3-4 bullet points)
5. Areas for Growth (2-3 bullet points, phrased constructively)
6. Questions for Further Reflection (3 thoughtful questions)

Keep your analysis respectful, nuanced, and educational rather than evaluative.
Emphasize that this is a snapshot of their current thinking, not a permanent assessment.
"""


def build_question_prompt(stage: StageDefinition | None, stage_number: int, baseline: str, history: str) -> str:
    return QUESTION_PROMPT.format(
        stage_number=stage_number,
        stage_name=stage.name if stage else "Unknown",
        stage_description=stage.description if stage else "",
        baseline=baseline,
        history=history or NO_STATEMENTS,
    )


def build_custom_question_prompt(stage_number: int, theme: str) -> str:
    return CUSTOM_QUESTION_PROMPT.format(stage_number=stage_number, theme=theme)


def build_contradiction_prompt(statements: str, candidate: str) -> str:
    return CONTRADICTION_PROMPT.format(
        statements=statements,
        candidate=candidate,
        marker=CONTRADICTION_MARKER,
        no_token=NO_CONTRADICTION_TOKEN,
    )


def build_resolution_question_prompt(statements: str, stage_number: int) -> str:
    return RESOLUTION_QUESTION_PROMPT.format(statements=statements or NO_STATEMENTS, stage_number=stage_number)


def build_resolution_check_prompt(statements: str, resolution_text: str) -> str:
    return RESOLUTION_CHECK_PROMPT.format(
        statements=statements or NO_STATEMENTS,
        resolution_text=resolution_text,
        resolved_token=RESOLVED_TOKEN,
        unresolved_token=UNRESOLVED_TOKEN,
    )


def build_evaluation_prompt(statements: str, completed_stages: Sequence[int]) -> str:
    return EVALUATION_PROMPT.format(
        statements=statements or NO_RESPONSES,
        completed_stages=", ".join(str(s) for s in completed_stages) or "None",
    )
