"""
Section heading detection for the chunker.

A heading detector is any callable taking page text and returning the
heading it finds, or None. The chunker only depends on that shape, so a
layout-aware or model-based detector can replace the regex one.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

HeadingDetector = Callable[[str], Optional[str]]

MAX_HEADING_CHARS = 100

DEFAULT_HEADING_PATTERN = re.compile(
    r"^(?:Chapter|Section|Part|Article|§)\s*[\d.]+[:.\s].*$"
    r"|^[\d.]+\s+[A-Z][^.\n]{10,80}$",
    re.IGNORECASE | re.MULTILINE,
)


def truncate_heading(heading: str, limit: int = MAX_HEADING_CHARS) -> str:
    if len(heading) > limit:
        return heading[:limit] + "..."
    return heading


class RegexHeadingDetector:
    """
    Detects headings such as ``Chapter 3``, ``Section 4.2:``, ``§ 12.``
    or a numbered capitalized line (``1.2 Taxable income of residents``).

    The first match in the text wins. Matches are trimmed and truncated to
    100 characters plus an ellipsis.
    """

    def __init__(self, pattern: re.Pattern[str] = DEFAULT_HEADING_PATTERN) -> None:
        self.pattern = pattern

    def __call__(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        if match is None:
            return None
        heading = match.group(0).strip()
        if not heading:
            return None
        return truncate_heading(heading)
