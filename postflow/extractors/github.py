"""Code repository extractor: repository metadata + README from the GitHub API."""
import re

import httpx

from postflow.extractors.base import BaseExtractor, ExtractedContent, SourceKind
from postflow.models.schemas import MediaRef
from postflow.workflow.errors import ExtractionFailure

GITHUB_API_BASE = "https://api.github.com"
_REPO_RE = re.compile(r"github\.com/([\w.-]+)/([\w.-]+)", re.IGNORECASE)
_MD_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\((https?://[^)\s]+)\)")


def parse_repo(link: str) -> tuple[str, str] | None:
    match = _REPO_RE.search(link or "")
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    return owner, repo


class GitHubExtractor(BaseExtractor):
    kind = SourceKind.GITHUB

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json", "X-GitHub-Api-Version": "2022-11-28"}
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    async def extract(self, link: str) -> ExtractedContent:
        parsed = parse_repo(link)
        if not parsed:
            raise ExtractionFailure(link, "not a repository link")
        owner, repo = parsed
        try:
            async with self._client(headers=self._headers()) as client:
                meta = (await self._get(client, f"{GITHUB_API_BASE}/repos/{owner}/{repo}")).json()
                readme = ""
                try:
                    readme_resp = await self._get(
                        client,
                        f"{GITHUB_API_BASE}/repos/{owner}/{repo}/readme",
                        headers={"Accept": "application/vnd.github.raw+json"},
                    )
                    readme = readme_resp.text
                except httpx.HTTPStatusError as e:
                    if e.response.status_code != 404:
                        raise
        except httpx.HTTPError as e:
            raise ExtractionFailure(link, f"github api failed: {e}") from e

        lines = [
            f"Repository: {meta.get('full_name') or f'{owner}/{repo}'}",
            f"Description: {meta.get('description') or ''}",
            f"Stars: {meta.get('stargazers_count', 0)}  Language: {meta.get('language') or 'n/a'}",
        ]
        topics = meta.get("topics") or []
        if topics:
            lines.append("Topics: " + ", ".join(topics))
        if meta.get("homepage"):
            lines.append(f"Homepage: {meta['homepage']}")
        if readme:
            lines.append("README:\n" + readme)

        media = [MediaRef(url=url, alt=alt or None) for alt, url in _MD_IMAGE_RE.findall(readme)[:4]]
        # Social preview card, always available for public repositories
        media.append(MediaRef(url=f"https://opengraph.githubassets.com/1/{owner}/{repo}", alt=f"{owner}/{repo}"))
        return ExtractedContent(content=self._clip("\n".join(lines)), media=media)
