"""
Cron trigger for reminder dispatch.

An external scheduler hits this endpoint (GET or POST) with
`Authorization: Bearer <CRON_SECRET>`; each call runs one dispatch tick.
"""

import hmac

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.features.onboarding_reminders.jobs.send_reminders_job import run_send_reminders_job
from app.infrastructure.observability.logging import get_logger

router = APIRouter(prefix="/api/cron", tags=["cron"])
logger = get_logger(__name__)


def _is_authorized(request: Request) -> bool:
    if not settings.CRON_SECRET:
        return True
    header = request.headers.get("authorization", "")
    return hmac.compare_digest(header, f"Bearer {settings.CRON_SECRET}")


@router.api_route("/send-reminders", methods=["GET", "POST"])
async def send_reminders(request: Request):
    if not _is_authorized(request):
        logger.warning("Unauthorized cron request", path=request.url.path)
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Unauthorized"})

    try:
        return await run_send_reminders_job()
    except Exception as e:
        logger.error("Cron send reminders failed", error=str(e), error_type=type(e).__name__)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e)},
        )
