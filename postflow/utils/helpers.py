"""Shared helpers."""
import json
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit

_URL_RE = re.compile(r"https?://\S+")
_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

# Query parameters that never change what a link points at
_TRACKING_PARAMS = {"fbclid", "gclid", "igshid", "mc_cid", "mc_eid", "ref", "ref_src", "s", "si", "t"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_json_response(text: str | None) -> Any:
    """Parse a model response that should be JSON, tolerating a markdown code block. None if unparseable."""
    raw = (text or "").strip()
    if "```" in raw:
        match = _CODE_BLOCK_RE.search(raw)
        if match:
            raw = match.group(1).strip()
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None


def normalize_url(link: str) -> str:
    """
    Canonical identifier for a link: no scheme, no www., no fragment, no trailing slash,
    no tracking params. twitter.com folds into x.com and youtu.be/shorts links into watch?v=.
    """
    raw = (link or "").strip()
    if "://" not in raw:
        raw = "https://" + raw
    parts = urlsplit(raw)
    host = (parts.hostname or "").lower()
    for prefix in ("www.", "m.", "mobile."):
        if host.startswith(prefix):
            host = host[len(prefix):]
    if host == "twitter.com":
        host = "x.com"
    if parts.port and parts.port not in (80, 443):
        host = f"{host}:{parts.port}"

    path = parts.path.rstrip("/")
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query)
        if k.lower() not in _TRACKING_PARAMS and not k.lower().startswith("utm_")
    ]

    if host == "youtu.be":
        video_id = path.strip("/").split("/")[0]
        host, path, query = "youtube.com", "/watch", [("v", video_id)]
    elif host == "youtube.com" and path.startswith("/shorts/"):
        video_id = path[len("/shorts/"):].split("/")[0]
        path, query = "/watch", [("v", video_id)]
    elif host == "youtube.com" and path == "/watch":
        query = [(k, v) for k, v in query if k == "v"]

    result = host + path
    if query:
        result += "?" + urlencode(sorted(query))
    return result


def strip_links(text: str) -> str:
    return _URL_RE.sub("", text or "")


def post_length(text: str | None) -> int:
    """Length that counts against platform limits: characters with embedded links removed."""
    return len(strip_links(text or ""))


def parse_datetime(value: Any) -> datetime | None:
    """ISO-8601 string or datetime -> aware UTC datetime. None if missing or invalid."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
