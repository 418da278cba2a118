"""
Trigger API Routes
Delivery point for boot, clock, locale, reminder and cleanup triggers.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from calendar_alerts.infrastructure.observability.logging import get_logger
from calendar_alerts.jobs.alert_worker import AlertWorker, AlertWorkerError
from calendar_alerts.models.api.trigger_request import TriggerRequest
from calendar_alerts.models.api.trigger_response import TriggerResponse
from calendar_alerts.models.domain import Trigger

logger = get_logger(__name__)

router = APIRouter(prefix="/triggers", tags=["triggers"])


def get_alert_worker(request: Request) -> AlertWorker:
    """Alert worker started by the application lifespan."""
    worker = getattr(request.app.state, "alert_worker", None)
    if worker is None or not worker.is_running:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Alert worker not running"
        )
    return worker


@router.post("", response_model=TriggerResponse, status_code=status.HTTP_202_ACCEPTED)
async def deliver_trigger(body: TriggerRequest, worker: AlertWorker = Depends(get_alert_worker)):
    """
    Queue a trigger for the alert worker.

    Unknown kinds are still queued; the worker logs and discards them.
    With ``wait`` the response is sent only after processing finished.
    """
    trigger = Trigger(kind=body.kind, quiet=body.quiet, alarm_time=body.alarm_time)

    try:
        done = worker.submit(trigger)
    except AlertWorkerError as e:
        logger.warning("Trigger rejected", kind=body.kind, error=str(e))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    queue_depth = worker.queue_depth

    if not body.wait:
        return TriggerResponse(accepted=True, kind=body.kind, queue_depth=queue_depth)

    result = await done
    return TriggerResponse(
        accepted=True,
        kind=body.kind,
        processed=True,
        result=result,
        queue_depth=queue_depth,
    )
