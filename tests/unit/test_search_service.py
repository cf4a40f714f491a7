"""
Unit tests for the staged search orchestration.

Covers:
1. Short-circuit on missing query text
2. STRICT success without relaxation
3. CATEGORY_RELAXED fallback with category-only filters
4. AI_SEMANTIC fallback and the final EMPTY state
5. Infrastructure failures aborting the pipeline

Run with: python -m pytest tests/unit/test_search_service.py -v
"""

import pytest
from elasticsearch import ConnectionError as ESConnectionError

from app.core.exceptions import AISearchParsingError, SearchServiceUnavailableError
from app.schemas.search import SearchRequest
from app.services.search_service import SearchMessage, SearchStage


def _stage_queries(es_client, settings):
    """Queries sent to the product index, in order"""
    return [
        call.kwargs["query"]
        for call in es_client.search.call_args_list
        if call.kwargs["index"] == settings.PRODUCT_INDEX
    ]


class TestEmptyQuery:
    @pytest.mark.parametrize("query_text", [None, "", "   "])
    def test_no_query_text_returns_fixed_empty_outcome(self, search_service, es_client, openai_client, query_text):
        response = search_service.search(SearchRequest(query_text=query_text))

        assert response.total_hits == 0
        assert response.products == []
        assert response.facets == {}
        assert response.message == SearchMessage.NO_RESULTS.value
        es_client.search.assert_not_called()
        openai_client.chat.completions.create.assert_not_called()


class TestStrictStage:
    def test_puma_shorts_black_l(
        self, search_service, es_client, settings, concept_response, product_response, product_source
    ):
        strict_result = product_response(
            [("p1", product_source("nylon hiking shorts", skus=[{"color": "Black", "size": "L"}]))],
            brands={"Puma": 1},
            prices={"Cheap": 1, "Average": 0, "Expensive": 0},
        )
        es_client.search.side_effect = [
            concept_response([("skus.color", "Black", ["black"]), ("skus.size", "L", ["l"])]),
            strict_result,
        ]

        response = search_service.search(SearchRequest(query_text="puma shorts black L"))

        assert response.message == SearchMessage.STRICT_SUCCESS.value
        assert response.total_hits == 1
        assert [p.name for p in response.products] == ["nylon hiking shorts"]
        assert (response.products[0].skus[0].color, response.products[0].skus[0].size) == ("Black", "L")
        assert [b.value for b in response.facets["price_ranges"]] == ["Cheap", "Average", "Expensive"]

        (strict_query,) = _stage_queries(es_client, settings)
        assert strict_query["bool"]["must"] == [
            {"match": {"name": {"query": "puma shorts", "operator": "and", "boost": 2.0}}}
        ]
        nested = strict_query["bool"]["filter"][0]["nested"]
        assert nested["path"] == "skus"
        assert nested["query"]["bool"]["filter"] == [
            {"bool": {"should": [{"term": {"skus.color": "Black"}}], "minimum_should_match": 1}},
            {"bool": {"should": [{"term": {"skus.size": "L"}}], "minimum_should_match": 1}},
        ]

    def test_strict_success_stops_the_pipeline(
        self, search_service, es_client, openai_client, concept_response, product_response, product_source
    ):
        es_client.search.side_effect = [
            concept_response([]),
            product_response([("p1", product_source("denim jacket"))]),
        ]

        search_service.search(SearchRequest(query_text="jacket"))

        assert es_client.search.call_count == 2
        openai_client.chat.completions.create.assert_not_called()


class TestCategoryRelaxedStage:
    def test_puma_shorts_blue_l(
        self, search_service, es_client, settings, concept_response, product_response, product_source,
        empty_product_response,
    ):
        shorts = [
            ("p1", product_source("nylon hiking shorts")),
            ("p2", product_source("dri-fit running shorts", brand="Nike")),
            ("p3", product_source("cotton chino shorts", brand="Levi's")),
            ("p4", product_source("cotton sleep shorts", brand="Adidas")),
        ]
        es_client.search.side_effect = [
            concept_response([
                ("category", "Shorts", ["shorts"]),
                ("skus.color", "Blue", ["blue"]),
                ("skus.size", "L", ["l"]),
            ]),
            empty_product_response,
            product_response(shorts),
        ]

        response = search_service.search(SearchRequest(query_text="puma shorts blue L"))

        assert response.message == SearchMessage.CATEGORY_RELAXED_SUCCESS.value
        assert response.total_hits == 4
        assert len(response.products) == 4

        strict_query, relaxed_query = _stage_queries(es_client, settings)
        assert len(strict_query["bool"]["filter"]) == 2
        assert relaxed_query["bool"]["filter"] == [
            {"bool": {"should": [{"term": {"category.keyword": "Shorts"}}], "minimum_should_match": 1}}
        ]
        assert relaxed_query["bool"]["must"] == strict_query["bool"]["must"]
        assert relaxed_query["bool"]["should"] == strict_query["bool"]["should"]

    def test_concepts_resolved_once(
        self, search_service, es_client, settings, concept_response, product_response, product_source,
        empty_product_response,
    ):
        es_client.search.side_effect = [
            concept_response([("category", "Shorts", ["shorts"])]),
            empty_product_response,
            product_response([("p1", product_source("cotton chino shorts"))]),
        ]

        search_service.search(SearchRequest(query_text="shorts"))

        concept_calls = [
            c for c in es_client.search.call_args_list if c.kwargs["index"] == settings.CONCEPT_INDEX
        ]
        assert len(concept_calls) == 1


class TestSemanticAndEmptyStages:
    def test_ai_semantic_success(
        self, search_service, es_client, openai_client, concept_response, product_response,
        product_source, candidate_response, empty_product_response, completion,
    ):
        es_client.search.side_effect = [
            concept_response([]),
            empty_product_response,
            empty_product_response,
            candidate_response([("p1", "windrunner hooded jacket"), ("p2", "cotton sleep shorts")]),
            product_response([("p1", product_source("windrunner hooded jacket", brand="Nike"))]),
        ]
        openai_client.chat.completions.create.return_value = completion('["p1"]')

        response = search_service.search(
            SearchRequest(query_text="Warm outerwear with soft interior for cold weather")
        )

        assert response.message == SearchMessage.AI_SEMANTIC_SUCCESS.value
        assert [p.name for p in response.products] == ["windrunner hooded jacket"]
        assert len(response.facets["price_ranges"]) == 3

    def test_nothing_matches_returns_empty(
        self, search_service, es_client, openai_client, concept_response, candidate_response,
        empty_product_response, completion,
    ):
        es_client.search.side_effect = [
            concept_response([]),
            empty_product_response,
            empty_product_response,
            candidate_response([("p1", "wool coat")]),
        ]
        openai_client.chat.completions.create.return_value = completion("[]")

        response = search_service.search(SearchRequest(query_text="nonexistingbrand nonexistingproduct"))

        assert response.message == SearchMessage.NO_RESULTS.value
        assert response.total_hits == 0
        assert response.products == []

    def test_empty_candidate_pool_returns_empty(
        self, search_service, es_client, openai_client, concept_response, candidate_response,
        empty_product_response,
    ):
        es_client.search.side_effect = [
            concept_response([]),
            empty_product_response,
            empty_product_response,
            candidate_response([]),
        ]

        response = search_service.search(SearchRequest(query_text="anything"))

        assert response.message == SearchMessage.NO_RESULTS.value
        openai_client.chat.completions.create.assert_not_called()


class TestFailures:
    def test_concept_index_failure_aborts(self, search_service, es_client):
        es_client.search.side_effect = ESConnectionError("down")

        with pytest.raises(SearchServiceUnavailableError):
            search_service.search(SearchRequest(query_text="jacket"))
        assert es_client.search.call_count == 1

    def test_stage_failure_does_not_fall_through(self, search_service, es_client, concept_response):
        es_client.search.side_effect = [concept_response([]), ESConnectionError("down")]

        with pytest.raises(SearchServiceUnavailableError):
            search_service.search(SearchRequest(query_text="jacket"))
        assert es_client.search.call_count == 2

    def test_malformed_ai_reply_aborts(
        self, search_service, es_client, openai_client, concept_response, candidate_response,
        empty_product_response, completion,
    ):
        es_client.search.side_effect = [
            concept_response([]),
            empty_product_response,
            empty_product_response,
            candidate_response([("p1", "wool coat")]),
        ]
        openai_client.chat.completions.create.return_value = completion("nothing relevant")

        with pytest.raises(AISearchParsingError):
            search_service.search(SearchRequest(query_text="jacket"))


class TestRunStage:
    def test_empty_stage_runs_no_query(self, search_service, settings):
        clauses = search_service.query_builder.build((), "jacket")
        with pytest.raises(ValueError):
            search_service.run_stage(SearchStage.EMPTY, clauses, SearchRequest(query_text="jacket"))
