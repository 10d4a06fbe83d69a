"""
API endpoints for the daily reset and ledger synchronization.
"""

from fastapi import APIRouter, Depends, status

from ad_rewards.api.deps import ServiceContainer, get_services
from ad_rewards.schemas.common import IAcceptedResponseBase, IGetResponseBase, IPostResponseBase
from ad_rewards.schemas.system import LedgerSyncQueued, ResetStatus
from ad_rewards.services.reset_scheduler import ResetReport
from ad_rewards.tasks.ledger_sync import sync_ledger_task
from ad_rewards.utils.clock import format_countdown
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/reset",
    response_description="Last reset date and time until the next reset",
    response_model=IGetResponseBase[ResetStatus],
    summary="Daily reset status"
)
async def get_reset_status(
        services: ServiceContainer = Depends(get_services),
) -> IGetResponseBase[ResetStatus]:
    scheduler = services.scheduler
    seconds = scheduler.seconds_until_next_reset()
    return IGetResponseBase(data=ResetStatus(
        last_reset_date=await scheduler.last_reset_date(),
        state=scheduler.state.value,
        seconds_until_reset=seconds,
        time_until_reset=format_countdown(seconds),
    ))


@router.post(
    "/reset",
    response_description="Run the daily reset check now",
    response_model=IPostResponseBase[ResetReport],
    summary="Run daily reset"
)
async def run_reset(
        force: bool = False,
        services: ServiceContainer = Depends(get_services),
) -> IPostResponseBase[ResetReport]:
    logger.info(f"Daily reset requested through the API (force={force})")
    report = await services.scheduler.tick(force=force)
    message = "Counters reset" if report.performed else "Reset not due"
    return IPostResponseBase(message=message, data=report)


@router.post(
    "/ledger-sync",
    response_description="Queue ledger synchronization",
    response_model=IAcceptedResponseBase[LedgerSyncQueued],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue ledger sync"
)
async def queue_ledger_sync(dry_run: bool = False) -> IAcceptedResponseBase[LedgerSyncQueued]:
    result = sync_ledger_task.delay(dry_run=dry_run)
    logger.info(f"Ledger sync queued: {result.id}")
    return IAcceptedResponseBase(data=LedgerSyncQueued(task_id=result.id, dry_run=dry_run))
