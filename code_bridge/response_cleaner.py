"""
Cleanup of model responses before they are used as snippets.

Language models wrap the code they produce in markdown fences and prose.
clean_response() extracts the code and normalizes the characters models
like to substitute (smart quotes, ellipsis, dashes).
"""

from __future__ import annotations

import logging
import re
import textwrap

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[ \t]*(?P<tag>[\w+#.-]*)[^\n]*\n(?P<code>.*?)```", re.DOTALL)

# Fence tags accepted for each language name
LANGUAGE_TAGS = {
    "javascript": {"javascript", "js", "jsx", "mjs"},
    "typescript": {"typescript", "ts", "tsx"},
    "python": {"python", "py", "python3"},
    "rust": {"rust", "rs"},
    "css": {"css"},
    "html": {"html", "htm", "xml"},
}

EXPLANATION_PREFIXES = (
    "here is",
    "here's",
    "this is",
    "this code",
    "the following",
    "the updated",
    "the modified",
    "i've added",
    "i've updated",
    "i have",
    "sure",
    "certainly",
)

_CODE_LINE_PATTERNS = [
    re.compile(pattern)
    for pattern in (
        r"^(?:export\s+)?(?:async\s+)?function\s+\w+",
        r"^(?:async\s+)?#?\w+\s*\([^)]*\)\s*\{",
        r"^(?:export\s+)?(?:abstract\s+)?class\s+\w+",
        r"^(?:const|let|var)\s+\w+\s*=",
        r"^(?:async\s+)?def\s+\w+",
        r"^@\w+",
        r"^(?:pub(?:\([^)]*\))?\s+)?(?:async\s+|unsafe\s+|const\s+)*fn\s+\w+",
        r"^(?:impl|struct|enum|trait|mod|use)\b",
        r"^#\[",
        r"^(?:import|from)\s+\w+",
        r"^[.#]?[\w-]+(?:[\s>+~.#:\[\]=\"'\w-]*)\s*\{",
        r"^<[!A-Za-z]",
        r"^(?://|#|/\*+|<!--)\s*@\w+",
    )
]

_SPECIAL_CHARACTERS = {
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "…": "...",
    "–": "-",
    "—": "--",
    "\u00a0": " ",
}


def extract_code_block(text: str, language: str | None = None) -> str | None:
    """Longest fenced code block, preferring blocks tagged with language."""
    blocks = [(m.group("tag").lower(), m.group("code")) for m in _FENCE.finditer(text)]
    if not blocks:
        return None
    if language:
        tags = LANGUAGE_TAGS.get(language.lower(), {language.lower()})
        tagged = [block for block in blocks if block[0] in tags]
        if tagged:
            blocks = tagged
    return max(blocks, key=lambda block: len(block[1]))[1]


def is_code_line(line: str) -> bool:
    """Check if a stripped line looks like the start of code or a directive."""
    return any(pattern.match(line) for pattern in _CODE_LINE_PATTERNS)


def remove_explanations(text: str) -> str:
    """Drop prose lines before the first code line and after the code ends."""
    lines = text.split("\n")
    start = next((i for i, line in enumerate(lines) if is_code_line(line.strip())), None)
    if start is None:
        return text

    kept = lines[start:]
    # trailing prose after the code: a blank line followed by an explanation
    for i in range(1, len(kept)):
        if not kept[i - 1].strip() and kept[i].strip().lower().startswith(EXPLANATION_PREFIXES):
            kept = kept[: i - 1]
            break
    return "\n".join(kept)


def replace_special_characters(text: str) -> str:
    for character, replacement in _SPECIAL_CHARACTERS.items():
        text = text.replace(character, replacement)
    return text


def normalize_indentation(text: str) -> str:
    """Remove the common leading indentation and surrounding blank lines."""
    lines = [line if line.strip() else "" for line in text.split("\n")]
    return textwrap.dedent("\n".join(lines)).strip("\n")


def clean_response(text: str, language: str | None = None) -> str:
    """Extract a usable code snippet from a model response.

    Args:
        text: Raw response, possibly with markdown fences and prose
        language: Preferred fence language (javascript, python, rust, ...)

    Returns:
        The cleaned snippet, ending with a newline unless empty
    """
    code = extract_code_block(text, language)
    if code is None:
        logger.debug("No fenced code block found, stripping explanations")
        code = remove_explanations(text)
    code = normalize_indentation(replace_special_characters(code))
    return code + "\n" if code else ""
