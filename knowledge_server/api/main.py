"""
HTTP binding for the knowledge server.

Thin dispatch over KnowledgeStore: every endpoint looks the store up on
app.state and calls one of its query or review operations. The lifespan
handler builds the store from configuration and runs the update scheduler
when AUTO_UPDATE_ENABLED is set.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request

from .schemas import (
    DetectRequest,
    DetectResponse,
    HealthResponse,
    KnowledgeEntryListResponse,
    KnowledgeEntryResponse,
    ReviewRequest,
    RuleListResponse,
    RuleResponse,
    ViolationMatchResponse,
)
from ..core import review
from ..core.config import VERSION, debug_enabled, ensure_store_directory, is_auto_update_enabled, require_valid_config
from ..core.detector import has_blocking
from ..core.schema import LAYERS, REVIEW_STATUSES
from ..core.store import KnowledgeStore
from ..core.updater import UpdateScheduler
from ..util.logging import logger


def create_app(store: KnowledgeStore = None, scheduler: UpdateScheduler = None,
               auto_update: Optional[bool] = None) -> FastAPI:
    """
    Build the application.

    Tests pass their own store (and optionally scheduler); production leaves
    both None and lets the lifespan handler build them from configuration.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            require_valid_config()
            ensure_store_directory()
            app.state.store = KnowledgeStore.from_config()

        run_updates = is_auto_update_enabled() if auto_update is None else auto_update
        if run_updates and app.state.scheduler is None:
            app.state.scheduler = UpdateScheduler(app.state.store)
        if run_updates:
            app.state.scheduler.start()

        logger.info(f"Knowledge server started (auto_update={run_updates})")
        try:
            yield
        finally:
            if app.state.scheduler is not None:
                app.state.scheduler.stop()
            logger.info("Knowledge server stopped")

    app = FastAPI(
        title="Knowledge Server API",
        version=VERSION,
        description="Framework architecture guidance with self-updating violation rules",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan
    )
    app.state.store = store
    app.state.scheduler = scheduler

    _register_routes(app)
    return app


def get_store(request: Request) -> KnowledgeStore:
    store = request.app.state.store
    if store is None:
        raise HTTPException(status_code=503, detail="Knowledge store not initialised")
    return store


def _register_routes(app: FastAPI):

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(request: Request, store: KnowledgeStore = Depends(get_store)):
        """Store counts plus update scheduler status."""
        scheduler = request.app.state.scheduler
        return HealthResponse(
            status="healthy",
            version=VERSION,
            store=store.snapshot(),
            updater=scheduler.get_status() if scheduler else {"status": "disabled"}
        )

    @app.post("/violations/detect", response_model=DetectResponse)
    def detect_violations_endpoint(req: DetectRequest, store: KnowledgeStore = Depends(get_store)):
        matches = store.detect_violations(req.code, req.file_path)
        return DetectResponse(
            violations=[ViolationMatchResponse.from_match(m) for m in matches],
            count=len(matches),
            blocking=has_blocking(matches)
        )

    @app.get("/entries", response_model=KnowledgeEntryListResponse)
    def list_entries_endpoint(layer: Optional[str] = None, store: KnowledgeStore = Depends(get_store)):
        if layer is not None and layer not in LAYERS:
            raise HTTPException(status_code=400, detail=f"Invalid layer: {layer}")

        entries = store.entries(layer) if layer else store.all_entries()
        entries = sorted(entries, key=lambda e: e.id)
        return KnowledgeEntryListResponse(entries=[KnowledgeEntryResponse.from_entry(e) for e in entries])

    @app.get("/entries/{entry_id}", response_model=KnowledgeEntryResponse)
    def get_entry_endpoint(entry_id: str, store: KnowledgeStore = Depends(get_store)):
        entry = store.entry(entry_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Entry not found")
        return KnowledgeEntryResponse.from_entry(entry)

    @app.get("/pitfalls", response_model=KnowledgeEntryListResponse)
    def list_pitfalls_endpoint(store: KnowledgeStore = Depends(get_store)):
        return KnowledgeEntryListResponse(entries=[KnowledgeEntryResponse.from_entry(e) for e in store.pitfalls()])

    @app.get("/rules", response_model=RuleListResponse)
    def list_rules_endpoint(status: Optional[str] = None, store: KnowledgeStore = Depends(get_store)):
        """Dynamic (generated) rules, optionally filtered by review status."""
        if status is not None and status not in REVIEW_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
        return RuleListResponse(rules=[RuleResponse.from_rule(r) for r in store.dynamic_rules(status)])

    @app.post("/rules/{rule_id}/review", response_model=RuleResponse)
    def review_rule_endpoint(rule_id: str, req: ReviewRequest, store: KnowledgeStore = Depends(get_store)):
        """Record a review decision. Approve/reject only apply to drafts; 'draft' reopens a decided rule."""
        if store.rule(rule_id) is None:
            raise HTTPException(status_code=404, detail="Rule not found")

        if req.decision == "approved":
            changed = review.approve_rule(store, rule_id, req.reviewer, req.note)
        elif req.decision == "rejected":
            changed = review.reject_rule(store, rule_id, req.reviewer, req.note)
        else:
            changed = review.reopen_rule(store, rule_id, req.reviewer, req.note)

        if not changed:
            raise HTTPException(status_code=409, detail="Rule is not in a state that allows this decision")
        return RuleResponse.from_rule(store.rule(rule_id))


app = create_app()
