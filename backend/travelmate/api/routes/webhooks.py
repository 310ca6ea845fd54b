"""
Stripe Webhook Endpoint

Receives Stripe events and hands the raw body to the reconciler. The body
is read as bytes because the signature covers the exact bytes Stripe sent.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from travelmate.api.dependencies import get_webhook_reconciler
from travelmate.infrastructure.exceptions import InvalidSignatureError, MalformedEventError
from travelmate.infrastructure.services.webhook_reconciler import WebhookReconciler


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
):
    """
    Handle Stripe webhook events.

    Returns 200 once the signature checks out, except for a checkout
    completion without its metadata. A 400 tells Stripe not to retry.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        outcome = await reconciler.handle_event(payload, signature)
    except InvalidSignatureError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )
    except MalformedEventError as e:
        logger.error(f"Rejected malformed webhook event: {e} {e.details}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message
        )

    return {"received": True, "status": outcome.value}
