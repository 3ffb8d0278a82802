"""
Onboarding reminder routes.

Usage:
    1. POST /onboarding/reminders/{session_id}/schedule - Enable reminders (profile optional)
    2. PUT  /onboarding/reminders/{session_id}/schedule - Switch cadence profile
    3. POST /onboarding/reminders/{session_id}/cancel   - Disable reminders
    4. POST /onboarding/reminders/{session_id}/send     - Send a reminder now
    5. GET  /onboarding/reminders/{session_id}          - Ledger and timeline
    6. GET  /onboarding/reminders/analytics             - Platform-wide stats (platform admins)
    7. GET  /onboarding/reminders/track/{id}/open|click - Public email tracking
"""

import base64
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse

from app.auth.rbac import can_access_resource, can_edit_resource
from app.auth.verify import auth_dependency, is_platform_admin
from app.features.onboarding_reminders.api.schemas import (
    CancelRemindersResponse,
    ManualReminderRequest,
    ManualReminderResponse,
    ReminderAnalyticsResponse,
    ScheduleRemindersRequest,
    ScheduleRemindersResponse,
    SessionRemindersResponse,
)
from app.features.onboarding_reminders.domain.errors import (
    ReminderPolicyError,
    ReminderServiceError,
    SessionNotFoundError,
)
from app.features.onboarding_reminders.services import reminder_service
from app.infrastructure.observability.logging import get_logger

router = APIRouter(prefix="/onboarding/reminders", tags=["onboarding-reminders"])
logger = get_logger(__name__)

# 1x1 transparent GIF
_TRACKING_PIXEL = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")


def _raise_http(e: Exception) -> NoReturn:
    """Map service-layer errors to HTTP errors."""
    if isinstance(e, SessionNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    if isinstance(e, ReminderPolicyError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if isinstance(e, ReminderServiceError) and not e.recoverable:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e


def _require_user_id(claims: dict) -> str:
    user_id = claims.get("sub")
    if not user_id:
        logger.error("No user ID in JWT claims")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: missing user ID"
        )
    return user_id


async def _authorize_session(session_id: str, claims: dict, *, edit: bool) -> None:
    """Platform admins pass; otherwise the caller's org role decides."""
    user_id = _require_user_id(claims)

    try:
        session = await reminder_service.get_session(session_id)
        if is_platform_admin(claims):
            return
        role = await reminder_service.get_member_role(user_id, session.organization_id)
    except (ReminderServiceError, ReminderPolicyError) as e:
        _raise_http(e)

    check = can_edit_resource if edit else can_access_resource
    if not check(role, session.owner_id, user_id):
        logger.warning(
            "Reminder access denied",
            user_id=user_id,
            session_id=session_id,
            role=role,
            edit=edit,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.get("/analytics", response_model=ReminderAnalyticsResponse)
async def get_analytics(claims: dict = Depends(auth_dependency)):
    _require_user_id(claims)
    if not is_platform_admin(claims):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Platform admin access required"
        )

    try:
        stats = await reminder_service.get_reminder_analytics()
    except ReminderServiceError as e:
        _raise_http(e)

    return ReminderAnalyticsResponse(**stats)


@router.get("/track/{reminder_id}/open")
async def track_open(reminder_id: str):
    await reminder_service.track_reminder_open(reminder_id)
    return Response(
        content=_TRACKING_PIXEL,
        media_type="image/gif",
        headers={"Cache-Control": "no-store, max-age=0"},
    )


@router.get("/track/{reminder_id}/click")
async def track_click(reminder_id: str):
    target_url = await reminder_service.track_reminder_click(reminder_id)
    if target_url is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return RedirectResponse(url=target_url, status_code=status.HTTP_302_FOUND)


@router.post("/{session_id}/schedule", response_model=ScheduleRemindersResponse)
async def schedule(
    session_id: str,
    request: ScheduleRemindersRequest,
    claims: dict = Depends(auth_dependency),
):
    """
    Enable reminders for a session.

    Without a profile the cadence is recommended from the project's
    priority and budget.

    Raises:
        400: Unknown profile or unusable custom schedule
        403: Caller may not edit this session
        404: Session not found
    """
    await _authorize_session(session_id, claims, edit=True)

    try:
        plan = await reminder_service.schedule_reminders(
            session_id, request.profile, request.raw_custom_schedule()
        )
    except (ReminderServiceError, ReminderPolicyError) as e:
        _raise_http(e)

    return ScheduleRemindersResponse.from_plan(plan)


@router.put("/{session_id}/schedule", response_model=ScheduleRemindersResponse)
async def update_schedule(
    session_id: str,
    request: ScheduleRemindersRequest,
    claims: dict = Depends(auth_dependency),
):
    if request.profile is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="profile is required")

    await _authorize_session(session_id, claims, edit=True)

    try:
        plan = await reminder_service.update_reminder_schedule(
            session_id, request.profile, request.raw_custom_schedule()
        )
    except (ReminderServiceError, ReminderPolicyError) as e:
        _raise_http(e)

    return ScheduleRemindersResponse.from_plan(plan)


@router.post("/{session_id}/cancel", response_model=CancelRemindersResponse)
async def cancel(session_id: str, claims: dict = Depends(auth_dependency)):
    await _authorize_session(session_id, claims, edit=True)

    try:
        cancelled = await reminder_service.cancel_reminders(session_id)
    except (ReminderServiceError, ReminderPolicyError) as e:
        _raise_http(e)

    return CancelRemindersResponse(success=True, cancelled=cancelled)


@router.post("/{session_id}/send", response_model=ManualReminderResponse)
async def send_now(
    session_id: str,
    request: ManualReminderRequest,
    claims: dict = Depends(auth_dependency),
):
    """Send a reminder immediately; custom subject and message go together."""
    await _authorize_session(session_id, claims, edit=True)

    try:
        record = await reminder_service.send_manual_reminder(
            session_id, request.custom_subject, request.custom_message
        )
    except (ReminderServiceError, ReminderPolicyError) as e:
        _raise_http(e)

    logger.info("Manual reminder requested", session_id=session_id, user_id=claims.get("sub"))
    return ManualReminderResponse(success=True, message="Reminder sent", reminder=record)


@router.get("/{session_id}", response_model=SessionRemindersResponse)
async def get_reminders(session_id: str, claims: dict = Depends(auth_dependency)):
    await _authorize_session(session_id, claims, edit=False)

    try:
        history = await reminder_service.get_session_reminders(session_id)
    except (ReminderServiceError, ReminderPolicyError) as e:
        _raise_http(e)

    return SessionRemindersResponse.from_history(history)
