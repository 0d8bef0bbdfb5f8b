"""Business logic services."""
from postflow.services.dedup_store import DedupStore
from postflow.services.gemini_service import ContentGenerator, GeminiGenerator
from postflow.services.instance_store import InstanceStore
from postflow.services.linkedin_service import LinkedInClient
from postflow.services.media_service import MediaService
from postflow.services.publisher import PublishService
from postflow.services.x_service import XClient

__all__ = [
    "ContentGenerator",
    "DedupStore",
    "GeminiGenerator",
    "InstanceStore",
    "LinkedInClient",
    "MediaService",
    "PublishService",
    "XClient",
]
