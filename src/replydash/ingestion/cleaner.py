"""
Text cleaning for extracted document text.

Normalizes whitespace and strips control characters so that the chunker
sees a stable paragraph structure. Cleaning is deterministic and
idempotent: cleaning already-clean text returns it unchanged.
"""

import re

# Control characters except tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")

_WHITESPACE_RUN = re.compile(r"\s+")


def _collapse_run(match: "re.Match[str]") -> str:
    # A run spanning a paragraph break keeps exactly one blank line
    if match.group().count("\n") >= 2:
        return "\n\n"
    return " "


def collapse_whitespace(text: str) -> str:
    """
    Collapse whitespace runs.

    Runs containing two or more newlines become a single blank line
    (``"\\n\\n"``); every other run becomes a single space.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _WHITESPACE_RUN.sub(_collapse_run, text).strip()


def clean_text(text: str) -> str:
    """
    Clean raw extracted text.

    Args:
        text: Raw text from an extractor

    Returns:
        Text with control characters removed, whitespace collapsed,
        at most one blank line between paragraphs, and no leading or
        trailing whitespace
    """
    # Control characters go first so their removal cannot leave
    # uncollapsed whitespace behind
    text = _CONTROL_CHARS.sub("", text)
    return collapse_whitespace(text)
