"""Ranker service: asks an OpenAI chat model to order candidate products"""

import json
import logging

from openai import APIError, OpenAI

from app.core.config import Settings
from app.core.exceptions import (
    AISearchParsingError,
    NoContentAISearchError,
    SearchServiceUnavailableError,
)
from app.schemas.pipeline import AICandidateDoc

logger = logging.getLogger(__name__)


RANKING_PROMPT_HEADER = """You are a product search ranking system.
Your task is to select the most relevant product IDs based strictly on the user query.

Rules:
- Consider product names only
- Do NOT invent products or IDs
- Return only IDs that appear in the candidate list below
- Order IDs from best to worst match
- If none are relevant, return an empty array []
- Return {max_ids} IDs or fewer
- Return a JSON array of ID strings and nothing else

User query:
"""

RANKING_PROMPT_FOOTER = """
Output format:
["id1","id2","id3"]
"""


def build_ranking_prompt(user_query: str, candidates: list[AICandidateDoc], max_ids: int = 20) -> str:
    lines = [RANKING_PROMPT_HEADER.format(max_ids=max_ids) + user_query, "", "Candidate products:"]
    lines.extend(f"- ID: {doc.id}, Name: {doc.name}" for doc in candidates)
    return "\n".join(lines) + "\n" + RANKING_PROMPT_FOOTER


def parse_ids(raw: str | None) -> list[str]:
    """
    Extract the JSON array of ids from a model reply.

    The reply may wrap the array in prose or a code fence, so the substring
    from the first "[" to the last "]" is decoded.

    Raises:
        AISearchParsingError: no array, invalid JSON, or non-string items
    """
    if raw is None:
        raise AISearchParsingError("AI response is null")

    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise AISearchParsingError(f"AI response does not contain a JSON array: {raw}")

    try:
        ids = json.loads(raw[start:end + 1])
    except json.JSONDecodeError as e:
        raise AISearchParsingError(f"Failed to parse AI response: {raw}") from e

    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise AISearchParsingError(f"AI response is not an array of id strings: {raw}")

    return ids


class RankerService:
    """Single-turn, no-retry relevance ranking over candidate names"""

    def __init__(self, client: OpenAI, settings: Settings):
        self.client = client
        self.settings = settings

    def rank_ids(self, user_query: str, candidates: list[AICandidateDoc]) -> list[str]:
        """
        Ask the model for the ids of the most relevant candidates.

        Ids outside the candidate set are dropped and the result is capped at
        AI_MAX_RANKED_IDS.

        Raises:
            SearchServiceUnavailableError: OpenAI call failed
            NoContentAISearchError: reply had no content
            AISearchParsingError: reply had no valid JSON id array
        """
        prompt = build_ranking_prompt(user_query, candidates, self.settings.AI_MAX_RANKED_IDS)

        try:
            completion = self.client.chat.completions.create(
                model=self.settings.AI_MODEL,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.settings.AI_TEMPERATURE,
                max_tokens=self.settings.AI_MAX_TOKENS,
            )
        except APIError as e:
            logger.error(f"❌ Ranking request failed: {e}")
            raise SearchServiceUnavailableError(f"Ranking model unavailable: {e}") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise NoContentAISearchError("No content found in AI response")

        ranked = parse_ids(completion.choices[0].message.content)

        known = {doc.id for doc in candidates}
        valid = []
        for doc_id in ranked:
            if doc_id in known and doc_id not in valid:
                valid.append(doc_id)
        if len(valid) < len(ranked):
            logger.warning(f"⚠️ Dropped {len(ranked) - len(valid)} unknown or duplicate ids from AI response")

        logger.info(f"✅ AI ranking returned {len(valid)} ids")
        return valid[:self.settings.AI_MAX_RANKED_IDS]
