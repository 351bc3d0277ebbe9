"""Grounding prompt assembly."""

from collections.abc import Sequence

from .config import config
from .models import MemoryTurn

FALLBACK_PHRASE = "I will not be able to answer that question at the moment."
CHUNK_SEPARATOR = "\n---\n"
CONTEXT_HEADER = "CONTEXT:"
HISTORY_HEADER = "CONVERSATION HISTORY:"
QUESTION_LABEL = "QUESTION:"
ANSWER_CUE = "ANSWER:"

SYSTEM_INSTRUCTIONS = (
    "You are {persona}'s helpful AI assistant. Your primary goal is to answer "
    "questions based ONLY on the information provided in the 'CONTEXT' section, "
    "which is extracted from {persona}'s resume.\n\n"
    "Instructions:\n"
    '1. Refer to yourself as "I" (first person).\n'
    "2. Be respectful, professional, and concise.\n"
    "3. Do not deviate from the resume information. "
    "Stick strictly to what you find in the CONTEXT.\n"
    "4. Do not mix information from different parts of the context "
    "if it's not clearly related to the question.\n"
    "5. Do not give opinions on political or religious matters, or anything that "
    "could cause controversy. Do not use any offensive language.\n"
    "6. If the information to answer the question is not present in the CONTEXT, "
    f'you MUST respond with: "{FALLBACK_PHRASE}" '
    "Do not try to guess or use external knowledge."
)


def render_history(turns: Sequence[MemoryTurn]) -> str:
    """Render remembered turns as role-labeled lines, oldest first."""
    lines = []
    for turn in turns:
        lines.append(f"USER: {turn.question}")
        lines.append(f"ASSISTANT: {turn.answer}")
    return "\n".join(lines)


def build_prompt(
    chunk_texts: Sequence[str],
    question: str,
    turns: Sequence[MemoryTurn] = (),
    *,
    persona: str | None = None,
) -> str:
    """Build the grounding prompt sent to the generation service.

    Args:
        chunk_texts: Retrieved chunk texts, highest similarity first.
        question: The user's question, included verbatim.
        turns: Recent conversation turns, oldest first.
        persona: Name of the resume owner. Defaults to config.PERSONA_NAME.

    Returns:
        str: Instructions, context, optional history, question and answer cue.
    """
    instructions = SYSTEM_INSTRUCTIONS.format(persona=persona or config.PERSONA_NAME)
    sections = [
        instructions,
        f"{CONTEXT_HEADER}\n{CHUNK_SEPARATOR.join(chunk_texts)}",
    ]
    if turns:
        sections.append(f"{HISTORY_HEADER}\n{render_history(turns)}")
    sections.append(f"{QUESTION_LABEL} {question}")
    sections.append(ANSWER_CUE)
    return "\n\n".join(sections)
