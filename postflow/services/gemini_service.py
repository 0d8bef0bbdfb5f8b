"""Gemini API: the generation/ranking collaborator used by the workflow nodes."""
import asyncio
from typing import Any, Protocol

from postflow.config import Settings
from postflow.services import prompts
from postflow.utils.helpers import parse_json_response
from postflow.utils.logging import get_logger
from postflow.workflow.errors import GenerationFailure

logger = get_logger(__name__)


class ContentGenerator(Protocol):
    """Text in, text/decision out. Implementations raise GenerationFailure, timeouts included."""

    async def generate(self, prompt: str, context: str) -> str:
        ...

    async def rank(self, candidates: list[str], context: str) -> list[int]:
        ...


def parse_ranking(text: str, count: int) -> list[int]:
    """
    Parse a ranking response into indices into the candidate list. Accepts a JSON list or
    {"ranking": [...]}; unknown or repeated indices are dropped, missing ones appended in order.
    """
    data = parse_json_response(text)
    if isinstance(data, dict):
        data = data.get("ranking") or data.get("order")
    if not isinstance(data, list) or not data:
        raise GenerationFailure(f"unparseable ranking: {(text or '')[:200]}")
    order: list[int] = []
    for value in data:
        try:
            idx = int(value)
        except (TypeError, ValueError):
            continue
        if 0 <= idx < count and idx not in order:
            order.append(idx)
    if not order:
        raise GenerationFailure("ranking contained no valid indices")
    order.extend(i for i in range(count) if i not in order)
    return order


class GeminiGenerator:
    """google-genai client wrapper. The SDK call is sync, so it runs in a thread under a timeout."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Any = None

    def _get_client(self):
        """Return Google GenAI client. Lazy so a missing key only fails on first use."""
        if self._client is None:
            if not self.settings.gemini_api_key:
                raise GenerationFailure("Gemini API key not configured")
            try:
                from google import genai

                self._client = genai.Client(api_key=self.settings.gemini_api_key)
            except Exception as e:
                logger.warning("gemini_client_init_failed", error=str(e))
                raise GenerationFailure("Gemini client could not be created") from e
        return self._client

    def _generate_sync(self, prompt: str, context: str) -> str:
        client = self._get_client()
        response = client.models.generate_content(
            model=self.settings.gemini_text_model,
            contents=[prompt, context] if context else [prompt],
        )
        return (response.text or "").strip()

    async def generate(self, prompt: str, context: str) -> str:
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._generate_sync, prompt, context),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning("gemini_timeout", timeout=self.settings.llm_timeout_seconds)
            raise GenerationFailure("generation timed out") from e
        except GenerationFailure:
            raise
        except Exception as e:
            logger.warning("gemini_generation_failed", error=str(e))
            raise GenerationFailure(str(e)) from e
        if not text:
            raise GenerationFailure("empty response")
        return text

    async def rank(self, candidates: list[str], context: str) -> list[int]:
        if len(candidates) <= 1:
            return list(range(len(candidates)))
        text = await self.generate(prompts.rank_prompt(candidates), context)
        return parse_ranking(text, len(candidates))
