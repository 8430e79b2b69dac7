# file: backend/main.py
"""
FastAPI Backend: Pension Calculation API v1.

Stateless: every request replays its own mutation list from the empty
situation. No in-memory state between requests apart from the scheme
rate cache.

Endpoints:
  POST /calculation-requests : process mutations, return the envelope
  GET  /health               : liveness
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pension_runtime.config import load_settings
from pension_runtime.observability import configure_logging
from pension_runtime.session import CalculationSession

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

_session = CalculationSession(settings)

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the scheme registry connections on shutdown."""
    yield
    logger.info("Shutting down Pension Calculation API")
    _session.close()


app = FastAPI(
    title="Pension Calculation API",
    version=API_VERSION,
    description="Deterministic pension mutation processor with forward/backward patches",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CalculationInstructions(BaseModel):
    mutations: Optional[List[Dict[str, Any]]] = None


class CalculationRequest(BaseModel):
    tenant_id: str = ""
    calculation_instructions: Optional[CalculationInstructions] = None


# ---------------------------------------------------------------------------
# Core helpers
# ---------------------------------------------------------------------------


def get_session() -> CalculationSession:
    return _session


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"status": status, "message": message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post("/calculation-requests")
def create_calculation(
    req: CalculationRequest,
    session: CalculationSession = Depends(get_session),
):
    instructions = req.calculation_instructions
    if instructions is None or not instructions.mutations:
        return _error(400, "Invalid request: mutations are required")

    try:
        body = session.run(req.tenant_id, instructions.mutations)
    except ValueError as exc:
        return _error(400, f"Invalid request: {exc}")
    except Exception:
        logger.exception("Error processing calculation request")
        return _error(500, "Internal server error")
    return JSONResponse(status_code=200, content=body)


@app.get("/health")
def health():
    return {"status": "ok", "version": API_VERSION}


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Pension Calculation API on port %d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
