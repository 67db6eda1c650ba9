"""
Search orchestration.

Composes preference extraction, the catalog query and query logging into one
search operation:

    raw text -> SearchPreference -> CatalogFilter -> products (newest first)
                                                  -> query log (best effort)

Steps run strictly in that order. Only InvalidQuery and SearchFailure reach
the caller; extraction and logging problems degrade silently.
"""
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from coffee_discovery.core.best_effort import BestEffortDispatcher
from coffee_discovery.core.config import get_config
from coffee_discovery.core.errors import InvalidQuery, PersistenceFailure, SearchFailure
from coffee_discovery.data.catalog_store import CatalogFilter, CatalogStore
from coffee_discovery.data.models import Product, QueryLogEntry, SearchPreference
from coffee_discovery.parsing.preference_extractor import PreferenceExtractor
from coffee_discovery.utils.logger import get_logger

logger = get_logger("core.search")

EMPTY_QUERY_MESSAGE = "Please enter a search query"
SEARCH_ERROR_MESSAGE = "Something went wrong with your search. Please try again."


@dataclass
class SearchResult:
    """Outcome of one search."""
    results: List[Product]
    result_count: int
    preferences: SearchPreference
    catalog_filter: CatalogFilter
    # Resolves once the query-log write has been attempted
    log_task: Optional[Future] = None


class SearchOrchestrator:
    """Runs the preference-driven search pipeline."""

    def __init__(
        self,
        store: CatalogStore,
        extractor: PreferenceExtractor,
        dispatcher: Optional[BestEffortDispatcher] = None,
    ):
        self.store = store
        self.extractor = extractor
        self.dispatcher = dispatcher or BestEffortDispatcher(max_workers=get_config().log_workers)

    def perform_search(self, raw_query_text: str) -> SearchResult:
        """
        Search the catalog with a free-text query.

        Raises:
            InvalidQuery: the text is empty or whitespace only (no external call is made).
            SearchFailure: the catalog query failed.
        """
        if raw_query_text is None or not raw_query_text.strip():
            raise InvalidQuery(EMPTY_QUERY_MESSAGE)

        logger.info(f"Searching: {raw_query_text[:100]}")

        preference = self._extract(raw_query_text)
        catalog_filter = CatalogFilter.from_preference(preference)

        try:
            products = self.store.list_products(catalog_filter)
        except PersistenceFailure as e:
            logger.error(f"Search failed for {raw_query_text[:100]!r}: {e}")
            raise SearchFailure(SEARCH_ERROR_MESSAGE) from e

        entry = QueryLogEntry(
            query_text=raw_query_text,
            preferences=preference,
            result_count=len(products),
        )
        log_task = self.dispatcher.submit("query log", self.store.log_query, entry)

        logger.info(f"Search returned {len(products)} products (filter={catalog_filter.to_params()})")
        return SearchResult(
            results=products,
            result_count=len(products),
            preferences=preference,
            catalog_filter=catalog_filter,
            log_task=log_task,
        )

    def _extract(self, raw_query_text: str) -> SearchPreference:
        # The extractor is expected to fail open on its own; this also covers
        # substitutes that raise.
        try:
            return self.extractor.extract(raw_query_text)
        except Exception as e:
            logger.warning(f"Preference extractor raised, searching unfiltered: {e}")
            return SearchPreference.empty()


class SearchPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESULTS = "results"


@dataclass
class SearchViewState:
    """
    What a search screen shows.

    RESULTS with result_count 0 ("no coffees found") is distinct from IDLE
    ("no search yet" or a failed search carrying an error).
    """
    phase: SearchPhase = SearchPhase.IDLE
    query: str = ""
    results: List[Product] = field(default_factory=list)
    result_count: int = 0
    error: Optional[str] = None


StateListener = Callable[[SearchViewState], None]


class SearchView:
    """State machine a presentation layer drives with submit()."""

    def __init__(self, orchestrator: SearchOrchestrator):
        self.orchestrator = orchestrator
        self.state = SearchViewState()
        self._listeners: List[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def submit(self, query: str) -> SearchViewState:
        """Run a search from any state; always passes through LOADING."""
        self._transition(SearchViewState(phase=SearchPhase.LOADING, query=query))
        try:
            outcome = self.orchestrator.perform_search(query)
        except InvalidQuery as e:
            self._transition(SearchViewState(phase=SearchPhase.IDLE, query=query, error=str(e)))
        except PersistenceFailure:
            self._transition(SearchViewState(phase=SearchPhase.IDLE, query=query, error=SEARCH_ERROR_MESSAGE))
        else:
            self._transition(SearchViewState(
                phase=SearchPhase.RESULTS,
                query=query,
                results=outcome.results,
                result_count=outcome.result_count,
            ))
        return self.state

    def _transition(self, state: SearchViewState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)
