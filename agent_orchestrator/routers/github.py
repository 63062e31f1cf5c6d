"""
GitHub webhook receiver.
"""

import json
import logging

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import ORJSONResponse

from ..core.config import settings
from ..integrations.github import verify_webhook_signature

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/github", tags=["github"])


@router.post("/webhook", response_class=ORJSONResponse)
async def github_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(default=None),
    x_github_event: str | None = Header(default=None),
):
    """
    Receive a GitHub webhook event.

    The payload must be signed with GITHUB_WEBHOOK_SECRET.
    """
    secret = settings.GITHUB_WEBHOOK_SECRET
    if not secret:
        raise HTTPException(status_code=503, detail="GitHub webhook secret is not configured")

    payload = await request.body()
    if not verify_webhook_signature(payload, x_hub_signature_256, secret):
        logger.warning("Rejected GitHub webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(payload or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Webhook payload is not valid JSON")

    action = event.get("action") if isinstance(event, dict) else None
    logger.info(f"GitHub webhook event: {x_github_event or 'unknown'} - {action or 'n/a'}")
    return {"status": "accepted", "event": x_github_event, "action": action}
