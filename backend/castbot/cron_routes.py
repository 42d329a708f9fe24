from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from .bootstrap import Services
from .schemas import CronCheckResponse, PushResult
from .webhook_routes import get_services

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get("/check-schedules", response_model=CronCheckResponse)
async def check_schedules(
    key: str | None = Query(default=None),
    services: Services = Depends(get_services),
) -> CronCheckResponse:
    secret = services.settings.cron_secret
    if not secret or key != secret:
        raise HTTPException(status_code=401, detail="Unauthorized")

    results = await services.notifier.run_due_once()
    if not results:
        return CronCheckResponse(success=True, processed=0, message="No schedules found for this hour.")

    return CronCheckResponse(
        success=True,
        processed=len(results),
        results=[PushResult(**r) for r in results],
    )
