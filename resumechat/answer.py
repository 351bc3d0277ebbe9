"""Final answer extraction from raw generation output."""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from .config import config
from .models import RankedChunk
from .prompting import ANSWER_CUE, CONTEXT_HEADER, HISTORY_HEADER, QUESTION_LABEL

NO_INFORMATION_ANSWER = "I have no relevant information to share."

REPEATED_TOKEN = re.compile(r"^\s*(\S+)(?:\s+\1){4,}\s*$", re.IGNORECASE)
HAS_WORD_CHARACTER = re.compile(r"[^\W_]")
SCAFFOLDING_MARKERS = (CONTEXT_HEADER, HISTORY_HEADER, QUESTION_LABEL)


@dataclass(frozen=True)
class ExtractedAnswer:
    text: str
    used_fallback: bool = False


def is_degenerate(text: str, min_length: int | None = None) -> bool:
    """Check whether extracted text is too broken to show to the user.

    Covers text below the minimum length, text without a single letter or
    digit, one token repeated over and over, and echoes of prompt scaffolding.
    """
    if min_length is None:
        min_length = config.MIN_ANSWER_LENGTH
    if len(text) < min_length:
        return True
    if not HAS_WORD_CHARACTER.search(text):
        return True
    if REPEATED_TOKEN.match(text):
        return True
    return any(marker in text for marker in SCAFFOLDING_MARKERS)


def extract_answer(
    raw_output: str,
    ranked_chunks: Sequence[RankedChunk],
    *,
    min_length: int | None = None,
) -> ExtractedAnswer:
    """Derive the final answer from the model's raw output.

    Args:
        raw_output: Full generated text (accumulated stream or single blob).
        ranked_chunks: Retrieved chunks, best first, used for the fallback.
        min_length: Shortest acceptable answer. Defaults to
            config.MIN_ANSWER_LENGTH.

    Returns:
        ExtractedAnswer: The answer and whether a fallback replaced the output.
    """
    if not raw_output or not raw_output.strip():
        return ExtractedAnswer(NO_INFORMATION_ANSWER, used_fallback=True)

    text = raw_output
    if ANSWER_CUE in text:
        text = text.rsplit(ANSWER_CUE, 1)[1]
    text = text.strip()

    if not is_degenerate(text, min_length):
        return ExtractedAnswer(text)

    if ranked_chunks:
        return ExtractedAnswer(ranked_chunks[0].text, used_fallback=True)
    return ExtractedAnswer(NO_INFORMATION_ANSWER, used_fallback=True)
