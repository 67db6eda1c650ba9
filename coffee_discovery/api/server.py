"""
FastAPI server for Coffee Discovery.

Provides REST endpoints for search, sign-in and the admin/merchant catalog
screens.

Usage:
    python -m coffee_discovery.api.server
    # or
    uvicorn coffee_discovery.api.server:app --reload --port 8000
"""
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coffee_discovery.api.models import (
    DescriptionRequest,
    DescriptionResponse,
    HealthResponse,
    MerchantProfileRequest,
    ProductRequest,
    ResetPasswordRequest,
    RestoreRequest,
    SearchRequest,
    SearchResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
    WebQueryRequest,
    WebQueryResponse,
)
from coffee_discovery.auth.registration import RegistrationForm, register_account, setup_merchant
from coffee_discovery.auth.roles import MerchantRole
from coffee_discovery.auth.session import AuthSession
from coffee_discovery.catalog.management import AdminCatalog, MerchantCatalog, catalog_for
from coffee_discovery.core.best_effort import BestEffortDispatcher
from coffee_discovery.core.config import get_config
from coffee_discovery.core.errors import (
    AuthenticationError,
    CoffeeDiscoveryError,
    FormValidationError,
    InvalidQuery,
    NotFound,
    PermissionDenied,
    PersistenceFailure,
)
from coffee_discovery.core.search import SearchOrchestrator
from coffee_discovery.data.catalog_store import CatalogStore
from coffee_discovery.data.models import Merchant, Product, QueryLogEntry
from coffee_discovery.generation.description_generator import DescriptionGenerator
from coffee_discovery.parsing.preference_extractor import PreferenceExtractor
from coffee_discovery.utils.logger import get_logger
from coffee_discovery.utils.supabase_auth import SupabaseAuth

logger = get_logger("api.server")

VERSION = "1.0.0"

# Checked in order; NotFound must precede its base PersistenceFailure
ERROR_STATUS = (
    (InvalidQuery, 400),
    (AuthenticationError, 401),
    (PermissionDenied, 403),
    (NotFound, 404),
    (FormValidationError, 422),
    (PersistenceFailure, 502),
)

SessionFactory = Callable[[], AuthSession]


# ----------------------------------------------------------------------
# Shared services (overridden in tests through app.dependency_overrides)
# ----------------------------------------------------------------------

_store: Optional[CatalogStore] = None
_extractor: Optional[PreferenceExtractor] = None
_generator: Optional[DescriptionGenerator] = None
_dispatcher: Optional[BestEffortDispatcher] = None

# Session storage: session_id -> AuthSession
sessions: Dict[str, AuthSession] = {}


def get_store() -> CatalogStore:
    global _store
    if _store is None:
        _store = CatalogStore()
    return _store


def get_extractor() -> PreferenceExtractor:
    global _extractor
    if _extractor is None:
        _extractor = PreferenceExtractor()
    return _extractor


def get_generator() -> DescriptionGenerator:
    global _generator
    if _generator is None:
        _generator = DescriptionGenerator()
    return _generator


def get_dispatcher() -> BestEffortDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = BestEffortDispatcher(max_workers=get_config().log_workers)
    return _dispatcher


def get_orchestrator(
    store: CatalogStore = Depends(get_store),
    extractor: PreferenceExtractor = Depends(get_extractor),
    dispatcher: BestEffortDispatcher = Depends(get_dispatcher),
) -> SearchOrchestrator:
    return SearchOrchestrator(store, extractor, dispatcher)


def get_session_factory(store: CatalogStore = Depends(get_store)) -> SessionFactory:
    """Each session gets its own auth client, so auth events never cross sessions."""
    config = get_config()

    def create() -> AuthSession:
        auth = SupabaseAuth(config.supabase_url, config.supabase_key, timeout=config.request_timeout)
        return AuthSession(auth, store).start()

    return create


def get_session(x_session_id: Optional[str] = Header(None, alias="X-Session-Id")) -> AuthSession:
    """Resolve the caller's authenticated session from the X-Session-Id header."""
    session = sessions.get(x_session_id) if x_session_id else None
    if session is None or not session.is_authenticated:
        raise AuthenticationError("Sign in required")
    return session


def get_admin_catalog(
    session: AuthSession = Depends(get_session),
    generator: DescriptionGenerator = Depends(get_generator),
) -> AdminCatalog:
    catalog = catalog_for(session, generator)
    if not isinstance(catalog, AdminCatalog):
        raise PermissionDenied("Admin access required")
    return catalog


def get_merchant_catalog(
    session: AuthSession = Depends(get_session),
    generator: DescriptionGenerator = Depends(get_generator),
) -> MerchantCatalog:
    catalog = catalog_for(session, generator)
    if not isinstance(catalog, MerchantCatalog):
        raise PermissionDenied("Merchant access required")
    return catalog


def session_response(session_id: str, session: AuthSession) -> SessionResponse:
    role = session.require_role()
    return SessionResponse(
        session_id=session_id,
        user_id=session.user.id,
        email=session.user.email,
        role=role.kind.value,
        merchant_id=role.merchant_id if isinstance(role, MerchantRole) else None,
    )


def end_session(session_id: str) -> None:
    session = sessions.pop(session_id, None)
    if session is None:
        return
    session.sign_out()
    session.close()
    session.auth.close()


# ----------------------------------------------------------------------
# App
# ----------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    global _dispatcher
    config = get_config()
    missing = config.missing_credentials()
    if missing:
        logger.warning(f"Missing credentials: {', '.join(missing)}. Catalog and AI features will degrade.")
    logger.info("Coffee Discovery API started")
    yield
    for session_id in list(sessions):
        end_session(session_id)
    if _dispatcher is not None:
        _dispatcher.shutdown()
        _dispatcher = None
    logger.info("Coffee Discovery API stopped")


app = FastAPI(
    title="Coffee Discovery API",
    description="Natural-language coffee search with admin and merchant catalog management",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CoffeeDiscoveryError)
async def coffee_error_handler(request: Request, exc: CoffeeDiscoveryError):
    """Translate domain errors into HTTP status codes."""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        status_code = 500
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "type": type(exc).__name__})


# ----------------------------------------------------------------------
# Health and search
# ----------------------------------------------------------------------

@app.get("/", response_model=HealthResponse)
def root(store: CatalogStore = Depends(get_store)):
    """Health check endpoint."""
    return HealthResponse(
        status="online",
        service="Coffee Discovery API",
        version=VERSION,
        supabase_connected=store.ping(),
        missing_credentials=get_config().missing_credentials(),
    )


@app.post("/search", response_model=SearchResponse)
def search(request: SearchRequest, orchestrator: SearchOrchestrator = Depends(get_orchestrator)):
    """Search the catalog with a free-text description."""
    outcome = orchestrator.perform_search(request.query)
    return SearchResponse(
        results=outcome.results,
        result_count=outcome.result_count,
        preferences=outcome.preferences.to_snapshot(),
    )


@app.post("/search/web-query", response_model=WebQueryResponse)
def web_query(request: WebQueryRequest, generator: DescriptionGenerator = Depends(get_generator)):
    """Turn extracted preferences into a web search query."""
    return WebQueryResponse(query=generator.generate_search_query(request.preferences))


@app.get("/products", response_model=List[Product])
def list_products(store: CatalogStore = Depends(get_store)):
    return store.list_products()


@app.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str, store: CatalogStore = Depends(get_store)):
    return store.get_product(product_id)


# ----------------------------------------------------------------------
# Auth
# ----------------------------------------------------------------------

@app.post("/auth/signup", response_model=SignUpResponse)
def sign_up(request: SignUpRequest, factory: SessionFactory = Depends(get_session_factory)):
    """Register a user or merchant account."""
    session = factory()
    form = RegistrationForm(
        name=request.name,
        email=request.email,
        password=request.password,
        confirm_password=request.confirm_password,
        account_type=request.account_type,
    )
    try:
        user = register_account(session, form)
    except CoffeeDiscoveryError:
        session.close()
        session.auth.close()
        raise

    session_id = None
    if session.is_authenticated:
        session_id = str(uuid.uuid4())
        sessions[session_id] = session
    else:
        session.close()
        session.auth.close()
    return SignUpResponse(user_id=user.id, email=user.email, session_id=session_id)


@app.post("/auth/signin", response_model=SessionResponse)
def sign_in(request: SignInRequest, factory: SessionFactory = Depends(get_session_factory)):
    session = factory()
    try:
        session.sign_in(request.email, request.password)
    except AuthenticationError:
        session.close()
        session.auth.close()
        raise
    session_id = str(uuid.uuid4())
    sessions[session_id] = session
    logger.info(f"Created session {session_id} for user {session.user.id}")
    return session_response(session_id, session)


@app.post("/auth/restore", response_model=SessionResponse)
def restore(request: RestoreRequest, factory: SessionFactory = Depends(get_session_factory)):
    """Resume a session from a stored refresh token."""
    session = factory()
    try:
        session.restore(request.refresh_token)
    except AuthenticationError:
        session.close()
        session.auth.close()
        raise
    session_id = str(uuid.uuid4())
    sessions[session_id] = session
    return session_response(session_id, session)


@app.post("/auth/signout")
def sign_out(x_session_id: Optional[str] = Header(None, alias="X-Session-Id")):
    if not x_session_id or x_session_id not in sessions:
        raise AuthenticationError("Sign in required")
    end_session(x_session_id)
    return {"status": "signed_out"}


@app.post("/auth/reset-password")
def reset_password(request: ResetPasswordRequest, factory: SessionFactory = Depends(get_session_factory)):
    session = factory()
    try:
        session.reset_password(request.email)
    finally:
        session.close()
        session.auth.close()
    return {"status": "sent"}


@app.get("/auth/me", response_model=SessionResponse)
def me(
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
    session: AuthSession = Depends(get_session),
):
    return session_response(x_session_id, session)


@app.post("/merchant/setup", response_model=Merchant)
def merchant_setup(request: MerchantProfileRequest, session: AuthSession = Depends(get_session)):
    """Create a merchant profile for the signed-in user."""
    return setup_merchant(
        session,
        name=request.name,
        description=request.description,
        website=request.website,
        logo_url=request.logo_url,
    )


# ----------------------------------------------------------------------
# Admin catalog
# ----------------------------------------------------------------------

@app.get("/admin/products", response_model=List[Product])
def admin_list_products(catalog: AdminCatalog = Depends(get_admin_catalog)):
    return catalog.list_products()


@app.post("/admin/products", response_model=Product)
def admin_add_product(request: ProductRequest, catalog: AdminCatalog = Depends(get_admin_catalog)):
    return catalog.add_product(request.to_form())


@app.put("/admin/products/{product_id}", response_model=Product)
def admin_update_product(product_id: str, request: ProductRequest,
                         catalog: AdminCatalog = Depends(get_admin_catalog)):
    return catalog.update_product(product_id, request.to_form())


@app.delete("/admin/products/{product_id}")
def admin_delete_product(product_id: str, catalog: AdminCatalog = Depends(get_admin_catalog)):
    catalog.delete_product(product_id)
    return {"status": "deleted", "id": product_id}


@app.get("/admin/queries", response_model=List[QueryLogEntry])
def admin_list_queries(catalog: AdminCatalog = Depends(get_admin_catalog)):
    return catalog.list_queries()


# ----------------------------------------------------------------------
# Merchant catalog
# ----------------------------------------------------------------------

@app.get("/merchant/products", response_model=List[Product])
def merchant_list_products(catalog: MerchantCatalog = Depends(get_merchant_catalog)):
    return catalog.list_products()


@app.post("/merchant/products", response_model=Product)
def merchant_add_product(request: ProductRequest, catalog: MerchantCatalog = Depends(get_merchant_catalog)):
    return catalog.add_product(request.to_form())


@app.put("/merchant/products/{product_id}", response_model=Product)
def merchant_update_product(product_id: str, request: ProductRequest,
                            catalog: MerchantCatalog = Depends(get_merchant_catalog)):
    return catalog.update_product(product_id, request.to_form())


@app.delete("/merchant/products/{product_id}")
def merchant_delete_product(product_id: str, catalog: MerchantCatalog = Depends(get_merchant_catalog)):
    catalog.delete_product(product_id)
    return {"status": "deleted", "id": product_id}


@app.get("/merchant/profile", response_model=Merchant)
def merchant_profile(catalog: MerchantCatalog = Depends(get_merchant_catalog)):
    return catalog.get_profile()


@app.put("/merchant/profile", response_model=Merchant)
def merchant_update_profile(request: MerchantProfileRequest,
                            catalog: MerchantCatalog = Depends(get_merchant_catalog)):
    return catalog.update_profile(
        name=request.name,
        description=request.description,
        website=request.website,
        logo_url=request.logo_url,
    )


@app.post("/descriptions/generate", response_model=DescriptionResponse)
def generate_description(
    request: DescriptionRequest,
    session: AuthSession = Depends(get_session),
    generator: DescriptionGenerator = Depends(get_generator),
):
    catalog = catalog_for(session, generator)
    return DescriptionResponse(description=catalog.generate_description(request.to_details()))


if __name__ == "__main__":
    import uvicorn

    print("=" * 60)
    print("Coffee Discovery API Server")
    print("=" * 60)
    print("API Documentation: http://localhost:8000/docs")
    print("")
    print("Environment variables:")
    print("  SUPABASE_URL, SUPABASE_KEY  - catalog and auth backend")
    print("  OPENAI_API_KEY              - preference extraction and descriptions")
    print("  LOG_LEVEL                   - logging level (default INFO)")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=8000)
