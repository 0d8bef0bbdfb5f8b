"""Extraction router: link -> source kind. First matching pattern wins."""
import re

from postflow.extractors.base import SourceKind

_PATTERNS: tuple[tuple[SourceKind, re.Pattern[str]], ...] = (
    (
        SourceKind.GITHUB,
        re.compile(r"^(?:https?://)?(?:www\.)?github\.com/[\w.-]+/[\w.-]+(?:[/?#].*)?$", re.IGNORECASE),
    ),
    (
        SourceKind.YOUTUBE,
        re.compile(
            r"^(?:https?://)?(?:(?:www\.|m\.)?youtube\.com/(?:watch\?|shorts/|live/)|youtu\.be/)",
            re.IGNORECASE,
        ),
    ),
    (
        SourceKind.SOCIAL,
        re.compile(r"^(?:https?://)?(?:www\.|mobile\.)?(?:x|twitter)\.com/\w+/status/\d+", re.IGNORECASE),
    ),
)


def classify_link(link: str) -> SourceKind:
    """Return the source kind for a link; SourceKind.WEB when nothing matches."""
    candidate = (link or "").strip()
    for kind, pattern in _PATTERNS:
        if pattern.match(candidate):
            return kind
    return SourceKind.WEB
