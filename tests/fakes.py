"""In-process fakes for every workflow collaborator."""
import asyncio
import json

from postflow.config import Settings
from postflow.extractors.base import ExtractedContent
from postflow.models.schemas import MediaRef, PlatformResult, PostContent
from postflow.workflow.errors import GenerationFailure


class FakeGenerator:
    """Answers by prompt kind. Queued drafts/condensed texts are consumed in order."""

    def __init__(self, drafts=None, condensed=None, irrelevant=(), fail=(), ranking=None):
        self.drafts = list(drafts or [])
        self.condensed = list(condensed or [])
        self.irrelevant = set(irrelevant)
        self.fail = set(fail)
        self.ranking = ranking
        self.calls: list[str] = []
        self.prompts: list[str] = []

    @staticmethod
    def kind(prompt: str) -> str:
        if prompt.startswith("You screen source material"):
            return "relevance"
        if prompt.startswith("Summarize the source material"):
            return "report"
        if prompt.startswith("Write one social media post"):
            return "draft"
        if prompt.startswith("The post that follows is"):
            return "condense"
        return "other"

    async def generate(self, prompt: str, context: str) -> str:
        kind = self.kind(prompt)
        self.calls.append(kind)
        self.prompts.append(prompt)
        if kind in self.fail:
            raise GenerationFailure(f"{kind} failed")
        if kind == "relevance":
            relevant = not any(marker in context for marker in self.irrelevant)
            return json.dumps({"relevant": relevant, "reason": "test"})
        if kind == "report":
            return "REPORT: " + context[:200]
        if kind == "draft":
            return self.drafts.pop(0) if self.drafts else "A short post about it https://a.example/post"
        if kind == "condense":
            return self.condensed.pop(0) if self.condensed else context
        return "stock query"

    async def rank(self, candidates: list[str], context: str) -> list[int]:
        self.calls.append("rank")
        if "rank" in self.fail:
            raise GenerationFailure("rank failed")
        return self.ranking or list(range(len(candidates)))


class FakeExtractor:
    """Per-link behaviour: content string, an exception instance, or (delay, content)."""

    def __init__(self, behaviours: dict | None = None, media: dict | None = None):
        self.behaviours = behaviours or {}
        self.media = media or {}
        self.calls: list[str] = []

    async def extract(self, link: str) -> ExtractedContent:
        self.calls.append(link)
        behaviour = self.behaviours.get(link, f"content of {link}")
        delay = 0.0
        if isinstance(behaviour, tuple):
            delay, behaviour = behaviour
        if delay:
            await asyncio.sleep(delay)
        if isinstance(behaviour, Exception):
            raise behaviour
        return ExtractedContent(content=behaviour, media=self.media.get(link, []))


class FakePublisher:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls: list[tuple[str, PostContent, object, str | None]] = []

    async def publish(self, platform, content, schedule, account=None, instance_id=None) -> PlatformResult:
        self.calls.append((platform, content, schedule, account))
        if platform in self.failing:
            return PlatformResult(platform=platform, success=False, status="failed", detail="boom")
        return PlatformResult(platform=platform, success=True, status="published", external_id=f"{platform}-1")


class FakeMedia:
    """validate() accepts every URL not listed in `invalid`."""

    def __init__(self, invalid=()):
        self.invalid = set(invalid)
        self.validated: list[str] = []

    async def validate(self, ref: MediaRef) -> MediaRef | None:
        self.validated.append(ref.url)
        if ref.url in self.invalid:
            return None
        return ref.model_copy(update={"mime_type": "image/png", "width": 800, "height": 600})

    async def search(self, query: str, count: int = 3) -> list[MediaRef]:
        return []


def make_settings(**overrides) -> Settings:
    values = {
        "gemini_api_key": "",
        "target_platforms": ["x", "linkedin"],
        "platform_char_limits": {"x": 280, "linkedin": 3000},
        "max_condense_attempts": 3,
        "extraction_timeout_seconds": 0.5,
        "auto_schedule": False,
        "unsplash_access_key": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)

