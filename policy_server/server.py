"""FastAPI application for the policy server (HTTP transport)."""

import logging
import time
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from . import __version__
from .api.deps import get_engine, sanitize_error_message
from .config import DocumentSetConfig, load_config, settings
from .mcp.transport import router as mcp_router
from .models import HealthResponse, MCPRequest, MCPResponse, UsageInfo
from .policy_engine import PolicyEngine

logger = logging.getLogger(__name__)

# ============ SENTRY INITIALIZATION ============


def init_error_tracking() -> bool:
    """Initialize Sentry when a DSN is configured. Returns whether it was enabled."""
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.environment == "production" else 1.0,
        integrations=[
            FastApiIntegration(),
            StarletteIntegration(),
        ],
    )
    logger.info("Sentry error tracking initialized")
    return True


def create_app(config: DocumentSetConfig | None = None, watch: bool | None = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config: Document set to serve; loaded from settings at startup when None
        watch: Override settings.watch_files
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        logger.info(f"Starting policy server v{__version__}")
        init_error_tracking()
        document_set = config or load_config()
        app.state.engine = PolicyEngine.create(
            document_set,
            debounce_ms=settings.rebuild_debounce_ms,
            watch=settings.watch_files if watch is None else watch,
        )
        try:
            yield
        finally:
            app.state.engine.close()
            app.state.engine = None

    app = FastAPI(
        title="Policy Section Server",
        description="MCP endpoint for fetching § sections from Markdown policy files",
        version=__version__,
        lifespan=lifespan,
    )

    # Mount MCP Streamable HTTP transport
    app.include_router(mcp_router)

    # ============ EXCEPTION HANDLERS ============

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with consistent response format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": exc.detail,
                "usage": {"latency_ms": 0},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with sanitized error messages."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "An internal server error occurred. Please try again.",
                "usage": {"latency_ms": 0},
            },
        )

    # ============ HEALTH ENDPOINTS ============

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(engine: PolicyEngine = Depends(get_engine)) -> HealthResponse:
        """Health check endpoint (does not trigger a rebuild)."""
        index = engine.state.index
        return HealthResponse(
            status="stale" if engine.state.stale else "healthy",
            version=__version__,
            files=index.file_count,
            sections=index.section_count,
            duplicates=len(index.duplicates),
            stale=engine.state.stale,
            last_indexed=index.last_indexed,
        )

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Policy Section Server",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "mcp": "/mcp",
        }

    # ============ MCP ENDPOINTS ============

    @app.post("/v1/mcp", response_model=MCPResponse, tags=["MCP"])
    async def mcp_endpoint(
        request: MCPRequest,
        engine: PolicyEngine = Depends(get_engine),
    ) -> MCPResponse:
        """
        Execute a policy tool.

        Args:
            request: The MCP request with tool and parameters

        Returns:
            MCPResponse with result or error
        """
        start_time = time.perf_counter()
        try:
            result = await engine.execute(request.tool, request.params)
        except Exception as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.info(f"Tool {request.tool} failed: {e}")
            return MCPResponse(
                success=False,
                tool=request.tool,
                error=sanitize_error_message(e),
                usage=UsageInfo(latency_ms=latency_ms),
            )

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        return MCPResponse(
            success=True,
            tool=request.tool,
            result=result.data,
            usage=UsageInfo(
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                latency_ms=latency_ms,
            ),
        )

    return app

