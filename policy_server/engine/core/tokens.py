"""Token estimation utilities.

Chunking only needs a rough size measure, so this uses the common
~4 characters per token heuristic instead of a real tokenizer.
"""

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate token count for a string.

    Args:
        text: Text to estimate tokens for

    Returns:
        ceil(len(text) / 4), 0 for empty text
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)
