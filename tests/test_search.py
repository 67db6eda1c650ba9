"""
Tests for search orchestration (coffee_discovery/core/search.py).

Covers: step ordering, empty-query rejection, fail-open extraction,
best-effort query logging, the search screen state machine.
"""
from unittest.mock import MagicMock

import pytest

from conftest import openai_raising, openai_returning, product_row
from coffee_discovery.core.best_effort import BestEffortDispatcher
from coffee_discovery.core.errors import InvalidQuery, LoggingFailure, PersistenceFailure, SearchFailure
from coffee_discovery.core.search import (
    EMPTY_QUERY_MESSAGE,
    SEARCH_ERROR_MESSAGE,
    SearchOrchestrator,
    SearchPhase,
    SearchView,
)
from coffee_discovery.data.catalog_store import CatalogFilter, CatalogStore
from coffee_discovery.data.models import Product, QueryLogEntry, SearchPreference
from coffee_discovery.parsing.preference_extractor import PreferenceExtractor


def _products(n):
    return [Product.model_validate(product_row(id=f"p-{i}")) for i in range(n)]


@pytest.fixture
def dispatcher():
    d = BestEffortDispatcher(max_workers=1)
    yield d
    d.shutdown()


@pytest.fixture
def mock_store():
    store = MagicMock(spec=CatalogStore)
    store.list_products.return_value = _products(2)
    return store


@pytest.fixture
def mock_extractor():
    extractor = MagicMock(spec=PreferenceExtractor)
    extractor.extract.return_value = SearchPreference(roast_level="dark", origin="Colomb")
    return extractor


# ---------------------------------------------------------------------------
# SearchOrchestrator
# ---------------------------------------------------------------------------

class TestPerformSearch:

    def test_result_count_matches_results(self, mock_store, mock_extractor, dispatcher):
        outcome = SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("dark from Colombia")
        assert outcome.result_count == len(outcome.results) == 2

    def test_filter_comes_from_extracted_preferences(self, mock_store, mock_extractor, dispatcher):
        SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("dark from Colombia")

        catalog_filter = mock_store.list_products.call_args[0][0]
        assert catalog_filter == CatalogFilter(roast_level="dark", origin="Colomb")

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_empty_query_makes_no_calls(self, mock_store, mock_extractor, dispatcher, query):
        orchestrator = SearchOrchestrator(mock_store, mock_extractor, dispatcher)

        with pytest.raises(InvalidQuery, match=EMPTY_QUERY_MESSAGE):
            orchestrator.perform_search(query)

        mock_extractor.extract.assert_not_called()
        mock_store.list_products.assert_not_called()
        mock_store.log_query.assert_not_called()

    def test_extractor_failure_gives_unfiltered_search(self, mock_store, dispatcher, test_config):
        extractor = PreferenceExtractor(client=openai_raising(TimeoutError("slow")), config=test_config)

        outcome = SearchOrchestrator(mock_store, extractor, dispatcher).perform_search("anything")

        assert mock_store.list_products.call_args[0][0].is_empty()
        assert outcome.preferences.is_empty()
        assert outcome.result_count == 2

    def test_raising_extractor_substitute_is_tolerated(self, mock_store, mock_extractor, dispatcher):
        mock_extractor.extract.side_effect = RuntimeError("bad substitute")
        outcome = SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("anything")
        assert outcome.preferences.is_empty()

    def test_query_is_logged_after_listing(self, mock_store, mock_extractor, dispatcher):
        outcome = SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("dark from Colombia")

        assert outcome.log_task.result(timeout=5) is True
        entry = mock_store.log_query.call_args[0][0]
        assert isinstance(entry, QueryLogEntry)
        assert entry.query_text == "dark from Colombia"
        assert entry.result_count == 2
        assert entry.preferences.roast_level == "dark"

    def test_logging_failure_does_not_change_results(self, mock_store, mock_extractor):
        failures = []
        dispatcher = BestEffortDispatcher(max_workers=1, on_failure=lambda name, err: failures.append(err))
        mock_store.log_query.side_effect = PersistenceFailure("insert rejected")

        outcome = SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("dark")
        dispatcher.drain(timeout=5)
        dispatcher.shutdown()

        assert outcome.result_count == 2
        assert outcome.log_task.result() is False
        assert len(failures) == 1
        assert isinstance(failures[0], LoggingFailure)
        assert isinstance(failures[0].__cause__, PersistenceFailure)

    def test_search_after_dispatcher_shutdown_still_returns_results(self, mock_store, mock_extractor):
        failures = []
        dispatcher = BestEffortDispatcher(max_workers=1, on_failure=lambda name, err: failures.append(err))
        dispatcher.shutdown()

        outcome = SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("dark")

        assert outcome.result_count == 2
        assert outcome.log_task.done()
        assert outcome.log_task.result() is False
        mock_store.log_query.assert_not_called()
        assert len(failures) == 1
        assert isinstance(failures[0], LoggingFailure)
        assert isinstance(failures[0].__cause__, RuntimeError)

    def test_catalog_failure_raises_search_failure_and_skips_log(self, mock_store, mock_extractor, dispatcher):
        mock_store.list_products.side_effect = PersistenceFailure("connection refused")

        with pytest.raises(SearchFailure, match="Something went wrong"):
            SearchOrchestrator(mock_store, mock_extractor, dispatcher).perform_search("dark")

        mock_store.log_query.assert_not_called()

    def test_light_roast_from_ethiopia_zero_results(self, store, supabase, dispatcher, test_config):
        extractor = PreferenceExtractor(
            client=openai_returning('{"roastLevel": "light", "acidity": "", "origin": "Ethiopia", '
                                    '"flavorNotes": [], "otherPreferences": ""}'),
            config=test_config,
        )
        supabase.respond("GET", "/rest/v1/products", [])

        outcome = SearchOrchestrator(store, extractor, dispatcher).perform_search("light roast from Ethiopia")
        outcome.log_task.result(timeout=5)

        assert outcome.results == []
        assert outcome.result_count == 0
        params = supabase.last("GET", "/rest/v1/products").url.params
        assert params["roast_level"] == "eq.light"
        assert params["origin"] == "ilike.%Ethiopia%"
        logged = supabase.body(supabase.last("POST", "/rest/v1/user_queries"))
        assert logged["response_data"]["resultsCount"] == 0
        assert logged["response_data"]["preferences"]["origin"] == "Ethiopia"


# ---------------------------------------------------------------------------
# SearchView
# ---------------------------------------------------------------------------

class TestSearchView:

    def _view(self, orchestrator):
        view = SearchView(orchestrator)
        seen = []
        view.subscribe(lambda state: seen.append(state.phase))
        return view, seen

    def test_success_passes_through_loading(self, mock_store, mock_extractor, dispatcher):
        view, seen = self._view(SearchOrchestrator(mock_store, mock_extractor, dispatcher))

        state = view.submit("dark")

        assert seen == [SearchPhase.LOADING, SearchPhase.RESULTS]
        assert state.result_count == 2
        assert state.error is None

    def test_zero_results_is_results_not_idle(self, mock_store, mock_extractor, dispatcher):
        mock_store.list_products.return_value = []
        view, _ = self._view(SearchOrchestrator(mock_store, mock_extractor, dispatcher))

        state = view.submit("dark")

        assert state.phase == SearchPhase.RESULTS
        assert state.result_count == 0

    def test_empty_query_returns_to_idle_with_message(self, mock_store, mock_extractor, dispatcher):
        view, seen = self._view(SearchOrchestrator(mock_store, mock_extractor, dispatcher))

        state = view.submit("  ")

        assert seen == [SearchPhase.LOADING, SearchPhase.IDLE]
        assert state.error == EMPTY_QUERY_MESSAGE

    def test_failure_returns_to_idle_with_generic_message(self, mock_store, mock_extractor, dispatcher):
        mock_store.list_products.side_effect = PersistenceFailure("boom")
        view, _ = self._view(SearchOrchestrator(mock_store, mock_extractor, dispatcher))

        state = view.submit("dark")

        assert state.phase == SearchPhase.IDLE
        assert state.error == SEARCH_ERROR_MESSAGE

    def test_unsubscribe(self, mock_store, mock_extractor, dispatcher):
        view = SearchView(SearchOrchestrator(mock_store, mock_extractor, dispatcher))
        seen = []
        unsubscribe = view.subscribe(seen.append)
        unsubscribe()
        view.submit("dark")
        assert seen == []
