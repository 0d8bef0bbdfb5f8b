import httpx
import pytest

from postflow.extractors import youtube
from postflow.extractors.web import WebExtractor, html_media, html_to_text
from postflow.extractors.youtube import YouTubeExtractor
from tests.fakes import make_settings

PAGE = """
<html>
  <head>
    <title>Fallback title</title>
    <meta property="og:title" content="Shipping faster with queues">
    <meta property="og:image" content="/static/hero.png">
    <script>var tracking = 1;</script>
  </head>
  <body>
    <nav><p>Home | Blog | About us and other navigation links here</p></nav>
    <article>
      <h2>Why</h2>
      <p>Background workers let the request path return before the slow work finishes.</p>
      <p>Short.</p>
      <img src="diagram.png" alt="Queue diagram">
      <img src="data:image/png;base64,AAAA">
      <img src="/static/hero.png">
    </article>
    <footer><p>Copyright notice that is long enough to count as a paragraph.</p></footer>
  </body>
</html>
"""


def test_html_to_text_prefers_og_title_and_article_body():
    title, text = html_to_text(PAGE)

    assert title == "Shipping faster with queues"
    assert "Why" in text
    assert "Background workers" in text
    assert "Short." not in text
    assert "navigation" not in text
    assert "Copyright" not in text
    assert "tracking" not in text


def test_html_to_text_falls_back_to_title_tag():
    title, text = html_to_text("<html><head><title>Plain</title></head><body>tiny</body></html>")
    assert title == "Plain"
    assert text == "tiny"


def test_html_media_resolves_and_dedups():
    media = html_media(PAGE, "https://blog.example/posts/queues")

    assert [m.url for m in media] == [
        "https://blog.example/static/hero.png",
        "https://blog.example/posts/diagram.png",
    ]
    assert media[1].alt == "Queue diagram"


BROKEN_HERO = """
<html>
  <head><meta property="og:image" content="http://[cdn/hero.png"></head>
  <body>
    <article>
      <p>The release notes cover the new scheduler and the migration path for old jobs.</p>
      <img src="chart.png">
    </article>
  </body>
</html>
"""


def test_html_media_skips_unparseable_urls():
    media = html_media(BROKEN_HERO, "https://a.example/post")
    assert [m.url for m in media] == ["https://a.example/chart.png"]


def test_html_media_without_images_is_empty():
    assert html_media('<meta property="og:image" content="">', "https://a.example/post") == []


@pytest.mark.asyncio
async def test_web_page_with_broken_image_keeps_its_text():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, html=BROKEN_HERO))
    extractor = WebExtractor(make_settings(), transport=transport)

    result = await extractor.extract("https://a.example/post")

    assert "release notes" in result.content
    assert [m.url for m in result.media] == ["https://a.example/chart.png"]


@pytest.mark.asyncio
async def test_transcript_errors_fall_back_to_title(monkeypatch):
    def oembed(request):
        return httpx.Response(200, json={"title": "Queues in practice", "author_name": "Infra Talks"})

    def unreachable(video_id):
        raise ConnectionError("transcript host unreachable")

    monkeypatch.setattr(youtube, "_fetch_transcript", unreachable)
    extractor = YouTubeExtractor(make_settings(), transport=httpx.MockTransport(oembed))

    result = await extractor.extract("https://www.youtube.com/watch?v=abc123")

    assert "Queues in practice" in result.content
    assert "(no transcript available)" in result.content
    assert result.media[-1].url == "https://i.ytimg.com/vi/abc123/maxresdefault.jpg"
