"""
NodeMesh Chat Router - FastAPI Application

Single chat operation plus health endpoints. Configuration is loaded once
when the app is created; the shared HTTP client and the dispatcher are built
in the lifespan and closed on shutdown.
"""

import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from nodemesh.config import RouterConfig
from nodemesh.dispatcher import ChatDispatcher, EmptyMessageError
from nodemesh.handlers import build_http_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
# httpx logs full request URLs at INFO, including the weatherapi.com key
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================

class ChatRequest(BaseModel):
    """Request model for a chat message"""
    message: Optional[str] = Field(None, description="Free-text user message")

    class Config:
        json_schema_extra = {
            "example": {"message": "What's the weather in Tokyo?"}
        }


class ChatResponse(BaseModel):
    """Reply plus the classification that produced it"""
    reply: str = Field(..., description="Display-ready reply text")
    intent: str = Field(..., description="weather, news or general")
    location: str = Field(default="", description="Location slot (weather)")
    topic: str = Field(default="", description="Topic slot (news)")

    class Config:
        json_schema_extra = {
            "example": {
                "reply": "**Weather for Tokyo, Tokyo, Japan**\n...",
                "intent": "weather",
                "location": "Tokyo",
                "topic": ""
            }
        }


class ErrorResponse(BaseModel):
    """Error body for rejected or failed requests"""
    error: str


class HealthResponse(BaseModel):
    """Health check response

    Status values:
        - healthy: dispatcher ready and the LLM path enabled
        - degraded: dispatcher ready, keyword fallbacks only
        - unhealthy: dispatcher not initialized
    """
    status: str
    dispatcher: str
    llm_enabled: bool
    models: list
    weather_configured: bool
    news_configured: bool


# ============================================================================
# Application Factory
# ============================================================================

def create_app(config: Optional[RouterConfig] = None, dispatcher: Optional[ChatDispatcher] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Router configuration (default: RouterConfig.from_env())
        dispatcher: Pre-built dispatcher; when given, no HTTP client is created
    """
    config = config or RouterConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage service lifecycle (startup/shutdown)
        """
        logger.info(" Starting NodeMesh chat router...")

        http_client = None
        if dispatcher is not None:
            app.state.dispatcher = dispatcher
        else:
            http_client = build_http_client(config.http_timeout)
            try:
                app.state.dispatcher = ChatDispatcher.from_config(config, http_client)
            except Exception as e:
                logger.error(f" Failed to initialize dispatcher: {e}")
                await http_client.aclose()
                raise

        logger.info(" NodeMesh chat router ready")

        yield

        logger.info(" Shutting down NodeMesh chat router...")
        if http_client is not None:
            await http_client.aclose()
            logger.info(" HTTP client closed")
        app.state.dispatcher = None
        logger.info(" Service stopped")

    app = FastAPI(
        title="NodeMesh Chat Router",
        description="Intent routing: Gemini classification → keyword fallback → weather/news/general handlers",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.dispatcher = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # ========================================================================
    # API Endpoints
    # ========================================================================

    @app.post(
        "/chat",
        response_model=ChatResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    async def chat_endpoint(body: ChatRequest, request: Request):
        """
        Classify a message and answer it.

        Returns:
            Reply text with intent, location and topic echoed back
        """
        chat_dispatcher: Optional[ChatDispatcher] = request.app.state.dispatcher
        if chat_dispatcher is None:
            return JSONResponse(status_code=503, content={"error": "Dispatcher not initialized"})

        try:
            reply = await chat_dispatcher.dispatch(body.message)
        except EmptyMessageError as e:
            logger.warning("/chat called without message")
            return JSONResponse(status_code=400, content={"error": str(e)})
        except Exception as e:
            logger.error(f" Error in /chat endpoint processing: {e}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"error": "Sorry, something went wrong while processing your request."},
            )

        return ChatResponse(**reply.to_dict())

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Health check endpoint.

        Reports which upstreams are configured and whether the LLM path is on.
        """
        chat_dispatcher = request.app.state.dispatcher
        if chat_dispatcher is None:
            status = "unhealthy"
        elif not config.llm_enabled:
            status = "degraded"
        else:
            status = "healthy"

        return HealthResponse(
            status=status,
            dispatcher="initialized" if chat_dispatcher is not None else "not_initialized",
            llm_enabled=config.llm_enabled,
            models=[config.gemini_model, *[m for m in config.fallback_models if m != config.gemini_model]],
            weather_configured=config.weather_configured,
            news_configured=config.news_configured,
        )

    @app.get("/healthz")
    async def healthz():
        """Connectivity probe"""
        return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Plain-text liveness response"""
        return "OK"

    return app


app = create_app()


if __name__ == "__main__":
    # Local development entry point: python -m nodemesh.app
    import uvicorn
    port = int(os.getenv("PORT", "3001"))

    uvicorn.run(
        "nodemesh.app:app",
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
