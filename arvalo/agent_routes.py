"""Agent API routes.

POST /api/agents/price-check        Price Detective on one purchase or all of a user's purchases
POST /api/agents/receipt            Receipt Agent on receipt text or a base64 receipt image
POST /api/agents/analyze-purchase   parallel return-policy / price / recurrence analysis
GET  /api/agents/stats              execution monitor summary

Unsuccessful agent results map to 500 with the agent's error as detail.
"""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from arvalo.agent.types import AgentResult
from arvalo.bootstrap import AgentSuite
from arvalo.models import (
    AgentRunResponse,
    AnalyzePurchaseRequest,
    PriceCheckRequest,
    PurchaseAnalysisResponse,
    ReceiptRequest,
    StatsResponse,
    TaskErrorModel,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])


def get_suite(request: Request) -> AgentSuite:
    """Dependency: the agent suite built in the app lifespan."""
    suite = getattr(request.app.state, "suite", None)
    if suite is None:
        raise HTTPException(status_code=503, detail="Agents are not initialized")
    return suite


def _respond(result: AgentResult, failure: str) -> AgentRunResponse:
    if not result.success:
        logger.warning("%s (%s): %s", failure, result.error_code, result.error)
        raise HTTPException(status_code=500, detail=result.error or failure)
    return AgentRunResponse.from_result(result)


# ---------------------------------------------------------------------------
# POST /api/agents/price-check
# ---------------------------------------------------------------------------

@router.post("/price-check", response_model=AgentRunResponse)
async def price_check(request: PriceCheckRequest, suite: AgentSuite = Depends(get_suite)):
    """Check for price drops on a purchase, or monitor every purchase of the user."""
    if request.monitor_all:
        logger.info("Monitoring all purchases for price drops (user %s)", request.user_id)
        result = await suite.price_detective.monitor_all_purchases(request.user_id)
    elif request.purchase_id:
        logger.info("Checking price drops for purchase %s", request.purchase_id)
        result = await suite.price_detective.check_price_drops(request.purchase_id, request.user_id)
    else:
        raise HTTPException(status_code=400, detail="Missing required field: purchase_id or monitor_all")

    return _respond(result, "Price check failed")


# ---------------------------------------------------------------------------
# POST /api/agents/receipt
# ---------------------------------------------------------------------------

@router.post("/receipt", response_model=AgentRunResponse)
async def process_receipt(request: ReceiptRequest, suite: AgentSuite = Depends(get_suite)):
    """Analyze a receipt from its text, or OCR a base64-encoded receipt image first."""
    if request.receipt_text:
        result = await suite.receipt.analyze_receipt_text(request.receipt_text, request.user_id)
    elif request.image_data and request.mime_type:
        try:
            image_bytes = base64.b64decode(request.image_data, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="image_data is not valid base64")
        result = await suite.receipt.process_receipt(image_bytes, request.mime_type, request.user_id)
    else:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: receipt_text, or image_data and mime_type",
        )

    return _respond(result, "Receipt processing failed")


# ---------------------------------------------------------------------------
# POST /api/agents/analyze-purchase
# ---------------------------------------------------------------------------

@router.post("/analyze-purchase", response_model=PurchaseAnalysisResponse)
async def analyze_purchase(request: AnalyzePurchaseRequest, suite: AgentSuite = Depends(get_suite)):
    """Return policy, price drops and recurring pattern for one purchase."""
    if not request.purchase_id:
        raise HTTPException(status_code=400, detail="Missing required field: purchase_id")

    outcome = await suite.orchestrator.analyze_purchase(request.purchase_id, request.user_id)
    if not outcome.success and not outcome.analysis:
        detail = "; ".join(f"{e.agent}: {e.error}" for e in outcome.errors) or "Purchase analysis failed"
        raise HTTPException(status_code=500, detail=detail)

    return PurchaseAnalysisResponse(
        success=outcome.success,
        analysis=outcome.analysis,
        recommendations=outcome.recommendations,
        errors=[TaskErrorModel(agent=e.agent, error=e.error) for e in outcome.errors],
    )


# ---------------------------------------------------------------------------
# GET /api/agents/stats
# ---------------------------------------------------------------------------

@router.get("/stats", response_model=StatsResponse)
async def agent_stats(suite: AgentSuite = Depends(get_suite)):
    """Aggregate execution statistics for every agent since startup."""
    return StatsResponse(**suite.monitor.get_stats(), cache=suite.cache.get_stats())
