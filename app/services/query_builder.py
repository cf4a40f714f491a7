"""Builds Elasticsearch clauses for each search stage"""

from typing import Any

from app.core.config import Settings
from app.schemas.pipeline import ConceptMatch, FilterClause, FilterKind, StageClauses


class QueryBuilder:
    """
    Turns resolved concepts and free text into filter/must/should clauses.

    Filter semantics:
    - Root concepts (brand, category, ...) are grouped by type. Terms of the
      same type are OR'd, different types are AND'd (one filter entry each).
    - Nested SKU concepts (skus.color, skus.size) go into a single nested
      clause so that one SKU has to satisfy them together. Within the nested
      clause terms of the same attribute are OR'd.

    Pure: no network calls, same input gives the same clauses.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def build(self, concepts: tuple[ConceptMatch, ...], free_text: str) -> StageClauses:
        return StageClauses(
            filters=tuple(self.build_filters(concepts)),
            must=tuple(self.build_must(free_text)),
            should=tuple(self.build_should(free_text)),
        )

    def is_nested(self, concept: ConceptMatch) -> bool:
        return concept.type.startswith(self.settings.NESTED_SKUS_PATH + ".")

    def build_filters(self, concepts: tuple[ConceptMatch, ...]) -> list[FilterClause]:
        filters = []

        root_groups = group_by_type(c for c in concepts if not self.is_nested(c))
        for concept_type, terms in root_groups.items():
            field = f"{concept_type}.{self.settings.KEYWORD_SUFFIX}"
            filters.append(
                FilterClause(
                    kind=FilterKind.ROOT,
                    field=concept_type,
                    query=any_of_terms(field, terms),
                )
            )

        nested_groups = group_by_type(c for c in concepts if self.is_nested(c))
        if nested_groups:
            sku_filters = [any_of_terms(field, terms) for field, terms in nested_groups.items()]
            filters.append(
                FilterClause(
                    kind=FilterKind.NESTED,
                    field=self.settings.NESTED_SKUS_PATH,
                    query={
                        "nested": {
                            "path": self.settings.NESTED_SKUS_PATH,
                            "query": {"bool": {"filter": sku_filters}},
                        }
                    },
                )
            )

        return filters

    def build_must(self, free_text: str) -> list[dict[str, Any]]:
        if not free_text.strip():
            return []
        return [
            {
                "match": {
                    self.settings.NAME_FIELD: {
                        "query": free_text,
                        "operator": "and",
                        "boost": self.settings.MUST_BOOST,
                    }
                }
            }
        ]

    def build_should(self, free_text: str) -> list[dict[str, Any]]:
        if not free_text.strip():
            return []
        return [
            {
                "match_phrase": {
                    self.settings.NAME_SHINGLES_FIELD: {
                        "query": free_text,
                        "boost": self.settings.SHOULD_BOOST,
                    }
                }
            }
        ]

    def category_only(self, clauses: StageClauses) -> StageClauses:
        """Same must/should, filters reduced to the category group"""
        return StageClauses(
            filters=tuple(
                f for f in clauses.filters
                if f.kind is FilterKind.ROOT and f.field == self.settings.CATEGORY_CONCEPT_TYPE
            ),
            must=clauses.must,
            should=clauses.should,
        )


def group_by_type(concepts) -> dict[str, list[str]]:
    """Original terms per concept type, first-seen order, duplicates dropped"""
    groups: dict[str, list[str]] = {}
    for concept in concepts:
        terms = groups.setdefault(concept.type, [])
        if concept.original_term not in terms:
            terms.append(concept.original_term)
    return groups


def any_of_terms(field: str, terms: list[str]) -> dict[str, Any]:
    return {"bool": {"should": [{"term": {field: term}} for term in terms], "minimum_should_match": 1}}


def to_query(clauses: StageClauses) -> dict[str, Any]:
    """Render stage clauses as a bool query; no clauses matches everything"""
    if not (clauses.filters or clauses.must or clauses.should):
        return {"match_all": {}}

    bool_query: dict[str, Any] = {}
    if clauses.filters:
        bool_query["filter"] = [f.query for f in clauses.filters]
    if clauses.must:
        bool_query["must"] = list(clauses.must)
    if clauses.should:
        bool_query["should"] = list(clauses.should)
    return {"bool": bool_query}


def ids_query(ids: list[str]) -> dict[str, Any]:
    return {"ids": {"values": ids}}
