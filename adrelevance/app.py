from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .catalog import item_from_record
from .config import BASE_DIR, Settings, load_settings
from .engine import RelevanceEngine
from .enhanced_engine import LLMEnhancedEngine
from .errors import InvalidInputError, UpstreamError
from .gemini_client import GeminiClient
from .llm_suggester import GeminiSuggestionProvider
from .models import (
    AddItemRequest,
    AdResponseRequest,
    AdResponseResponse,
    AnalyticsResponse,
    ClearConversationResponse,
    HealthResponse,
    ItemView,
    PreferencesRequest,
    ProcessMessageRequest,
    ProfileView,
    StatsResponse,
    SuggestionResponse,
)

logger = logging.getLogger("adrelevance.api")

ENV_PATH = BASE_DIR / ".env"


def configure_runtime() -> None:
    """Load .env overrides and set up root logging once per process."""
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH, override=True)
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    logging.getLogger("adrelevance").setLevel(log_level)


def create_app(
    engine: Optional[RelevanceEngine] = None,
    settings: Optional[Settings] = None,
    enhanced_engine: Optional[LLMEnhancedEngine] = None,
) -> FastAPI:
    """Purpose: Build the FastAPI application around a relevance engine.
    Inputs/Outputs: Optional engine, settings, and enhanced engine; returns a FastAPI app.
    Side Effects / State: Reads .env and configures logging; may configure the Gemini SDK
        when GEMINI_API_KEY is set and no enhanced engine is supplied.
    Dependencies: RelevanceEngine, LLMEnhancedEngine, pydantic models.
    Failure Modes: Invalid settings raise ValueError at startup.
    If Removed: The engine is reachable only in-process.
    Testing Notes: Pass a prepared engine and drive routes with fastapi.testclient.TestClient.
    """
    # Engines are built once per app; the enhanced engine shares the keyword engine's sessions.
    configure_runtime()
    if settings is None:
        settings = engine.settings if engine is not None else load_settings()
    if engine is None:
        engine = RelevanceEngine(settings=settings)
    if enhanced_engine is None and settings.llm_enabled:
        provider = GeminiSuggestionProvider(GeminiClient(settings), settings.prompts_dir)
        enhanced_engine = LLMEnhancedEngine(provider, settings=settings, store=engine.store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("api start catalog_size=%d llm_enabled=%s", len(engine.catalog), enhanced_engine is not None)
        yield
        engine.shutdown()
        if enhanced_engine is not None:
            enhanced_engine.shutdown()

    app = FastAPI(title="Ad Relevance Engine", lifespan=lifespan)

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(_request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(UpstreamError)
    async def upstream_handler(_request: Request, exc: UpstreamError) -> JSONResponse:
        logger.warning("upstream failure error=%s", exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.post("/api/process-message", response_model=SuggestionResponse)
    def process_message(request: ProcessMessageRequest) -> SuggestionResponse:
        suggestion = engine.process_message(request.conversation_id, request.user_id, request.message)
        return SuggestionResponse.from_suggestion(suggestion)

    @app.post("/api/ad-response", response_model=AdResponseResponse)
    def ad_response(request: AdResponseRequest) -> AdResponseResponse:
        reply = engine.process_ad_response(request.conversation_id, request.item_id, request.reply)
        return AdResponseResponse(response=reply)

    @app.post("/api/update-preferences", response_model=ProfileView)
    def update_preferences(request: PreferencesRequest) -> ProfileView:
        profile = engine.update_preferences(
            request.user_id,
            interests=request.interests,
            blocked_categories=request.blocked_categories,
            suggestions_enabled=request.suggestions_enabled,
        )
        return ProfileView.from_profile(profile)

    @app.post("/api/ads", response_model=ItemView, status_code=201)
    def add_item(request: AddItemRequest) -> ItemView:
        item = item_from_record(request.dict())
        engine.add_item(item)
        return ItemView.from_item(item)

    @app.delete("/api/conversations/{conversation_id}", response_model=ClearConversationResponse)
    def clear_conversation(conversation_id: str) -> ClearConversationResponse:
        removed = engine.clear_conversation(conversation_id)
        return ClearConversationResponse(conversation_id=conversation_id, removed=removed)

    @app.get("/api/analytics/{conversation_id}", response_model=AnalyticsResponse)
    def analytics(conversation_id: str) -> AnalyticsResponse:
        result = engine.get_analytics(conversation_id)
        if result is None:
            raise HTTPException(status_code=404, detail=f"unknown conversation: {conversation_id}")
        return AnalyticsResponse.from_analytics(result)

    @app.get("/api/stats", response_model=StatsResponse)
    def stats() -> StatsResponse:
        return StatsResponse.from_stats(engine.get_stats())

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", llm_enabled=enhanced_engine is not None)

    if enhanced_engine is not None:

        @app.post("/api/enhanced/process-message", response_model=SuggestionResponse)
        def enhanced_process_message(request: ProcessMessageRequest) -> SuggestionResponse:
            suggestion = enhanced_engine.process_message(
                request.conversation_id, request.user_id, request.message
            )
            return SuggestionResponse.from_suggestion(suggestion)

    return app


app = create_app()
