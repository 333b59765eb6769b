from fastapi import APIRouter, Depends, Request

from shared.config import settings
from shared.security import get_optional_user, limiter

from .schemas import PaymentRequest, SubmissionResponse
from .service import CheckoutOrchestrator, get_orchestrator

router = APIRouter()
public_router = APIRouter()

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/", response_model=SubmissionResponse)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def submit_payment(
    request: Request,
    payment: PaymentRequest,
    user_id: str | None = Depends(get_optional_user),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """Start a card payment. Always answers 'pending'; poll /orders/{id}/status for the outcome."""
    result = await orchestrator.submit_payment(payment, user_id=user_id)
    return SubmissionResponse(order_id=result.order_id, status=result.status, message=result.message)
