"""Concept resolver: recognise brands, categories, colors and sizes in a query"""

import logging

from elasticsearch import ApiError, Elasticsearch, TransportError

from app.core.config import Settings
from app.core.exceptions import SearchServiceUnavailableError
from app.schemas.pipeline import ConceptMatch, ResolvedQuery

logger = logging.getLogger(__name__)


def tokenize(query_text: str) -> list[str]:
    """Lower-case and split on whitespace, keeping the original order"""
    return query_text.lower().split()


class ConceptResolver:
    """
    Looks query tokens up in the concept index.

    Each concept document carries the `search_terms` it is known by, the
    `original_term` as stored on products and the product field (`type`)
    it applies to. Tokens claimed by a concept are removed from the free text;
    the rest is kept, in order, for full-text matching on the product name.
    """

    def __init__(self, es_client: Elasticsearch, settings: Settings):
        self.es_client = es_client
        self.settings = settings

    def resolve(self, query_text: str) -> ResolvedQuery:
        tokens = tokenize(query_text)
        concepts = self.lookup_concepts(tokens)
        free_text = extract_free_text(tokens, concepts)

        logger.info(f"🔍 Tokens: {tokens}")
        logger.info(f"🔍 Concepts: {[(c.type, c.original_term) for c in concepts]}")
        logger.info(f"🔍 Free text: '{free_text}'")

        return ResolvedQuery(tokens=tuple(tokens), concepts=tuple(concepts), free_text=free_text)

    def lookup_concepts(self, tokens: list[str]) -> list[ConceptMatch]:
        """
        Exact-terms lookup of all tokens at once.

        Raises:
            SearchServiceUnavailableError: the concept index could not be read
        """
        if not tokens:
            return []

        query = {"terms": {self.settings.CONCEPT_SEARCH_TERMS_FIELD: tokens}}
        logger.debug(f"Concept query: {query}")

        try:
            response = self.es_client.search(
                index=self.settings.CONCEPT_INDEX,
                query=query,
                size=self.settings.CONCEPT_LOOKUP_SIZE,
            )
        except (ApiError, TransportError) as e:
            logger.error(f"❌ Concept lookup failed: {e}")
            raise SearchServiceUnavailableError(f"Concept index unavailable: {e}") from e

        body = getattr(response, "body", response)
        concepts = []
        for hit in body.get("hits", {}).get("hits", []):
            source = hit.get("_source")
            if not source:
                continue
            concepts.append(
                ConceptMatch(
                    type=source["type"],
                    original_term=source["original_term"],
                    search_terms=tuple(source.get("search_terms") or ()),
                )
            )
        return concepts


def extract_free_text(tokens: list[str], concepts: list[ConceptMatch]) -> str:
    """Join the tokens no concept claimed, in original order"""
    claimed = {term for concept in concepts for term in concept.search_terms}
    return " ".join(token for token in tokens if token not in claimed)
