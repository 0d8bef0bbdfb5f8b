"""Prompt builders for the generation collaborator."""


def relevance_prompt(business_context: str) -> str:
    return f"""You screen source material for a company's social media account.

Company context:
{business_context}

Decide whether the source material that follows is relevant enough for this company to post about.
Return ONLY valid JSON (no markdown): {{"relevant": true|false, "reason": "<one sentence>"}}
"""


def report_prompt(business_context: str) -> str:
    return f"""Summarize the source material that follows into a short content report for a social media writer.

Company context:
{business_context}

Cover: what it is, why it matters to this audience, one or two concrete facts or numbers, and the
canonical link for each source. Plain text, no markdown headings.
"""


def draft_prompt(
    business_context: str,
    style: str,
    char_limit: int,
    links: list[str],
    feedback: str | None = None,
) -> str:
    prompt = f"""Write one social media post based on the content report that follows.

Company context:
{business_context}

Style: {style}
Hard limit: {char_limit} characters, not counting links.
Include this link at the end: {links[0] if links else "(none)"}
"""
    if feedback:
        prompt += f"\nReviewer feedback on the previous draft (apply it):\n{feedback}\n"
    prompt += "\nReturn ONLY the post text."
    return prompt


def condense_prompt(char_limit: int, current_length: int) -> str:
    return f"""The post that follows is {current_length} characters (links excluded); the limit is {char_limit}.
Rewrite it to fit under the limit. Keep the meaning, the link and the tone; cut filler first.
Return ONLY the rewritten post text."""


def image_query_prompt() -> str:
    return """Give a 2-4 word stock photo search query that would illustrate the post that follows.
Return ONLY the query."""


def rank_prompt(candidates: list[str]) -> str:
    listing = "\n".join(f"{i}: {c}" for i, c in enumerate(candidates))
    return f"""Rank these candidate images for the social media post that follows, best first.

Candidates:
{listing}

Return ONLY a JSON list of candidate indices, best first, e.g. [2, 0, 1]."""
