"""
Manual/external triggers for the slot maintenance jobs
"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import config
from ..services.slot_scheduler import SlotScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Cron"])

JOB_MESSAGES = {
    "daily_slot_refresh": "Daily slot refresh",
    "slot_cleanup": "Slot cleanup",
    "appointment_cleanup": "Appointment cleanup",
}


def verify_cron_request(request: Request) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` when a secret is configured"""
    cron_secret = config.CRON_SECRET
    if cron_secret and request.headers.get("authorization") != f"Bearer {cron_secret}":
        logger.warning(f"⚠️ Unauthorized cron request for {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorized cron request")


def get_slot_scheduler(request: Request) -> SlotScheduler:
    return request.app.state.slot_scheduler


async def _run(job_name: str, scheduler: SlotScheduler) -> JSONResponse:
    executed_at = datetime.now(scheduler.tz).isoformat()
    outcome = await scheduler.run_job(job_name)
    label = JOB_MESSAGES[job_name]

    if outcome["success"]:
        return JSONResponse(
            status_code=200,
            content={
                "success": True,
                "message": f"{label} completed successfully",
                "executedAt": executed_at,
                "duration": f"{outcome['duration_ms']}ms",
                "result": outcome["result"],
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": f"{label} failed",
            "error": outcome["error"],
            "executedAt": executed_at,
        },
    )


@router.post("/daily-slot-refresh", dependencies=[Depends(verify_cron_request)])
async def daily_slot_refresh(scheduler: SlotScheduler = Depends(get_slot_scheduler)):
    return await _run("daily_slot_refresh", scheduler)


@router.post("/slot-cleanup", dependencies=[Depends(verify_cron_request)])
async def slot_cleanup(scheduler: SlotScheduler = Depends(get_slot_scheduler)):
    return await _run("slot_cleanup", scheduler)


@router.post("/appointment-cleanup", dependencies=[Depends(verify_cron_request)])
async def appointment_cleanup(scheduler: SlotScheduler = Depends(get_slot_scheduler)):
    return await _run("appointment_cleanup", scheduler)


@router.get("/status")
async def cron_status(scheduler: SlotScheduler = Depends(get_slot_scheduler)):
    """Current civil time and the next execution of each recurring job"""
    now = datetime.now(scheduler.tz)
    next_executions = scheduler.next_executions(now)

    return {
        "success": True,
        "currentTime": now.isoformat(),
        "timezone": scheduler.tz.key,
        "nextExecutions": {name: when.isoformat() for name, when in next_executions.items()},
        "cronJobs": [
            {
                "name": recurrence.job_name,
                "timeOfDay": recurrence.time_of_day,
                "description": JOB_MESSAGES[recurrence.job_name],
            }
            for recurrence in scheduler.recurrences
        ],
    }


MAX_GENERATION_DAYS = 366


class SlotGenerationRequest(BaseModel):
    daysAhead: Optional[int] = Field(default=None, ge=1, le=MAX_GENERATION_DAYS)
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    monthsAhead: Optional[int] = Field(default=None, ge=1, le=24)


@router.post("/generate-slots", dependencies=[Depends(verify_cron_request)])
async def generate_slots(
    payload: SlotGenerationRequest, scheduler: SlotScheduler = Depends(get_slot_scheduler)
):
    """
    Operator trigger: create missing slots for the next daysAhead days,
    for startDate..endDate (inclusive), or for monthsAhead calendar months
    """
    has_range = payload.startDate is not None and payload.endDate is not None
    if payload.daysAhead is None and not has_range and payload.monthsAhead is None:
        raise HTTPException(
            status_code=400,
            detail="Please provide either daysAhead, startDate and endDate, or monthsAhead",
        )
    if has_range:
        if payload.endDate < payload.startDate:
            raise HTTPException(status_code=400, detail="endDate must not be before startDate")
        if (payload.endDate - payload.startDate).days >= MAX_GENERATION_DAYS:
            raise HTTPException(
                status_code=400, detail=f"Date range is limited to {MAX_GENERATION_DAYS} days"
            )

    maintainer = scheduler.maintainer
    executed_at = datetime.now(scheduler.tz).isoformat()
    skipped = False

    try:
        if payload.daysAhead is not None:
            summary = await maintainer.ensure_window(payload.daysAhead)
            if summary["error"]:
                raise RuntimeError(summary["error"])
            total_created = summary["created"]
            skipped = summary["skipped"]
        elif has_range:
            total_created = await maintainer.materialize_range(payload.startDate, payload.endDate)
        else:
            total_created = await maintainer.materialize_future(payload.monthsAhead)
    except Exception as e:
        logger.error(f"❌ Generate slots error: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Failed to generate slots",
                "error": str(e),
                "executedAt": executed_at,
            },
        )

    logger.info(f"✅ Manual slot generation created {total_created} slots")
    return {
        "success": True,
        "message": "Slot generation completed",
        "executedAt": executed_at,
        "data": {
            "totalCreated": total_created,
            "skipped": skipped,
            "daysAhead": payload.daysAhead,
            "startDate": payload.startDate.isoformat() if payload.startDate else None,
            "endDate": payload.endDate.isoformat() if payload.endDate else None,
            "monthsAhead": payload.monthsAhead,
        },
    }


@router.post("/reinitialize", dependencies=[Depends(verify_cron_request)])
async def reinitialize(scheduler: SlotScheduler = Depends(get_slot_scheduler)):
    """Rerun the startup pass: reclaim, retire, then fill the window"""
    logger.info("🔄 Manual slot service reinitialization requested...")
    result = await scheduler.initialize()

    return {
        "success": True,
        "message": "Slot service reinitialized successfully",
        "reinitializedAt": datetime.now(scheduler.tz).isoformat(),
        "result": result,
    }
