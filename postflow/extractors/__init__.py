"""Extractor adapters per source kind, and the router that picks one."""
from postflow.config import Settings
from postflow.extractors.base import BaseExtractor, ExtractedContent, SourceKind
from postflow.extractors.github import GitHubExtractor
from postflow.extractors.router import classify_link
from postflow.extractors.social import SocialPostExtractor
from postflow.extractors.web import WebExtractor
from postflow.extractors.youtube import YouTubeExtractor


def default_extractors(settings: Settings) -> dict[str, BaseExtractor]:
    """Registry keyed by SourceKind value."""
    return {
        SourceKind.GITHUB.value: GitHubExtractor(settings),
        SourceKind.YOUTUBE.value: YouTubeExtractor(settings),
        SourceKind.SOCIAL.value: SocialPostExtractor(settings),
        SourceKind.WEB.value: WebExtractor(settings),
    }


__all__ = [
    "BaseExtractor",
    "ExtractedContent",
    "SourceKind",
    "classify_link",
    "default_extractors",
]
