from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from linebot.v3.exceptions import InvalidSignatureError

from .bootstrap import Services
from .schemas import WebhookResponse

router = APIRouter(tags=["webhook"])


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


@router.post("/webhook", response_model=WebhookResponse)
async def line_webhook(
    request: Request,
    x_line_signature: str | None = Header(default=None, alias="X-Line-Signature"),
    services: Services = Depends(get_services),
) -> WebhookResponse:
    if not services.settings.line_channel_secret:
        raise HTTPException(status_code=403, detail="LINE_CHANNEL_SECRET is not configured")

    body = (await request.body()).decode("utf-8")
    try:
        events = services.parser.parse(body, x_line_signature or "")
    except InvalidSignatureError:
        raise HTTPException(status_code=403, detail="Invalid signature")

    await services.handler.handle_events(events)
    return WebhookResponse(message="OK")
