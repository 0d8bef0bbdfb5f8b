"""Collaborators handed to graph nodes through the run config."""
from dataclasses import dataclass, field

from langchain_core.runnables import RunnableConfig

from postflow.config import Settings
from postflow.extractors.base import BaseExtractor
from postflow.services.dedup_store import DedupStore
from postflow.services.gemini_service import ContentGenerator
from postflow.services.instance_store import InstanceStore
from postflow.services.media_service import MediaService
from postflow.services.publisher import PublishService


@dataclass
class WorkflowServices:
    settings: Settings
    generator: ContentGenerator
    dedup: DedupStore
    instances: InstanceStore
    publisher: PublishService
    media: MediaService
    extractors: dict[str, BaseExtractor] = field(default_factory=dict)


def get_services(config: RunnableConfig) -> WorkflowServices:
    return config["configurable"]["services"]


def run_config(services: WorkflowServices, instance_id: str) -> RunnableConfig:
    return {
        "configurable": {"services": services, "instance_id": instance_id},
        "recursion_limit": 50,
    }
