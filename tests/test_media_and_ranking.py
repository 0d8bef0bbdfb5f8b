from io import BytesIO

import pytest
from PIL import Image

from postflow.models.schemas import MediaRef
from postflow.services.gemini_service import parse_ranking
from postflow.services.media_service import MediaService, inspect_image
from postflow.workflow.errors import GenerationFailure
from tests.fakes import make_settings


def _png(width: int, height: int) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color=(30, 120, 200)).save(buf, format="PNG")
    return buf.getvalue()


def test_inspect_image_accepts_valid_png():
    check = inspect_image(_png(400, 300), make_settings())
    assert check.ok is True
    assert check.mime_type == "image/png"
    assert (check.width, check.height) == (400, 300)


def test_inspect_image_rejects_small_garbage_and_oversized():
    settings = make_settings(min_image_dimension=200, max_image_bytes=10_000_000)
    assert inspect_image(_png(50, 50), settings).ok is False
    assert inspect_image(b"<html>not an image</html>", settings).ok is False
    assert inspect_image(b"", settings).ok is False
    assert inspect_image(_png(400, 300), make_settings(max_image_bytes=10)).ok is False


def test_inspect_image_rejects_disallowed_format():
    buf = BytesIO()
    Image.new("RGB", (400, 300)).save(buf, format="BMP")
    assert inspect_image(buf.getvalue(), make_settings()).ok is False


def test_parse_ranking_accepts_list_and_object():
    assert parse_ranking("[2, 0, 1]", 3) == [2, 0, 1]
    assert parse_ranking('```json\n{"ranking": [1]}\n```', 3) == [1, 0, 2]
    assert parse_ranking("[5, 1, 1, \"x\"]", 3) == [1, 0, 2]


def test_parse_ranking_rejects_garbage():
    with pytest.raises(GenerationFailure):
        parse_ranking("the second one", 3)
    with pytest.raises(GenerationFailure):
        parse_ranking("[7, 9]", 3)


@pytest.mark.asyncio
async def test_validate_rejects_url_httpx_cannot_parse():
    service = MediaService(make_settings())
    assert await service.validate(MediaRef(url="https://cdn.example/hero\x01.png")) is None
