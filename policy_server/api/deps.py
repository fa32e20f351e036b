"""FastAPI dependency injection functions.

This module contains shared dependencies for API endpoints:
- Policy engine lookup from application state
- Error sanitization
"""

import logging

from fastapi import HTTPException, Request

from ..engine.core.errors import PolicyServerError
from ..policy_engine import PolicyEngine

logger = logging.getLogger(__name__)


# ============ ERROR SANITIZATION ============


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize error messages to prevent information disclosure.

    Policy engine errors are written for the caller and pass through
    unchanged. Anything else is logged with its traceback and replaced by
    a generic message.
    """
    if isinstance(error, PolicyServerError):
        return str(error)

    # Log the actual error for debugging
    logger.error(f"Tool execution error: {error}", exc_info=error)

    return "An error occurred processing your request. Please try again."


# ============ ENGINE DEPENDENCY ============


def get_engine(request: Request) -> PolicyEngine:
    """Return the engine created by the application lifespan."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Policy index not loaded")
    return engine
