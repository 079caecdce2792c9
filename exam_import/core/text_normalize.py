from __future__ import annotations

import re

_HORIZONTAL_SPACE = re.compile(r"[ \t]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_DOTS = re.compile(r"\.{3,}")

_TRANSLATION = str.maketrans(
    {
        "“": '"',
        "”": '"',
        "„": '"',
        "‘": "'",
        "’": "'",
        "‚": "'",
        "–": "-",
        "—": "-",
        "…": "...",
        "\r": "\n",
    }
)


def normalize_text(text: str | None) -> str:
    """Clean raw PDF text into a stable form for the AI extraction pass."""

    if not text:
        return ""
    value = text.replace("\r\n", "\n").translate(_TRANSLATION)
    value = _CONTROL_CHARS.sub("", value)
    value = _HORIZONTAL_SPACE.sub(" ", value)
    value = _EXCESS_NEWLINES.sub("\n\n", value)
    value = _DOTS.sub("...", value)
    return value.strip()
