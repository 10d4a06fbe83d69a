from typing import List

from fastapi import APIRouter, Depends, status
from fastapi_cache.decorator import cache

from ad_rewards.api.deps import ServiceContainer, get_orchestrator, get_services, get_signals
from ad_rewards.core.exceptions import ObjectNotFoundException
from ad_rewards.schemas.common import IAcceptedResponseBase, IGetResponseBase, IPostResponseBase
from ad_rewards.schemas.provider import ProviderConfig
from ad_rewards.schemas.watch import ClientFailure, DashboardStatus, Postback, WatchStarted
from ad_rewards.services.client_signals import ClientSignalHub
from ad_rewards.services.watch_orchestrator import WatchOrchestrator
from ad_rewards.utils.cache import PROVIDERS_NAMESPACE, providers_cache_key_builder
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/providers",
    response_description="Effective configuration of every ad provider",
    response_model=IGetResponseBase[List[ProviderConfig]],
    summary="List ad providers"
)
@cache(
    expire=30,
    namespace=PROVIDERS_NAMESPACE,
    key_builder=providers_cache_key_builder
)
async def get_providers(
        services: ServiceContainer = Depends(get_services),
) -> IGetResponseBase[List[ProviderConfig]]:
    return IGetResponseBase(data=services.providers.all())


@router.get(
    "/{account_id}/status",
    response_description="Per provider admission state for the dashboard",
    response_model=IGetResponseBase[DashboardStatus],
    summary="Ad dashboard status"
)
async def get_status(
        account_id: str,
        orchestrator: WatchOrchestrator = Depends(get_orchestrator),
) -> IGetResponseBase[DashboardStatus]:
    return IGetResponseBase(data=await orchestrator.status(account_id))


@router.post(
    "/{account_id}/{provider_id}/watch",
    response_description="Start watching an ad",
    response_model=IAcceptedResponseBase[WatchStarted],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start ad watch"
)
async def start_watch(
        account_id: str,
        provider_id: str,
        orchestrator: WatchOrchestrator = Depends(get_orchestrator),
) -> IAcceptedResponseBase[WatchStarted]:
    started = await orchestrator.start_watch(account_id, provider_id)
    return IAcceptedResponseBase(data=started)


@router.post(
    "/{account_id}/{provider_id}/complete",
    response_description="Client reports the ad was watched to the end",
    response_model=IPostResponseBase[bool],
    summary="Confirm ad completion"
)
async def complete_watch(
        account_id: str,
        provider_id: str,
        signals: ClientSignalHub = Depends(get_signals),
) -> IPostResponseBase[bool]:
    if not signals.confirm(account_id, provider_id):
        raise ObjectNotFoundException("No ad in progress for this provider")
    return IPostResponseBase(message="Completion received", data=True)


@router.post(
    "/{account_id}/{provider_id}/fail",
    response_description="Client reports the ad was skipped or failed",
    response_model=IPostResponseBase[bool],
    summary="Report ad failure"
)
async def fail_watch(
        account_id: str,
        provider_id: str,
        obj_in: ClientFailure = None,
        signals: ClientSignalHub = Depends(get_signals),
) -> IPostResponseBase[bool]:
    reason = obj_in.reason if obj_in else None
    if not signals.reject(account_id, provider_id, reason):
        raise ObjectNotFoundException("No ad in progress for this provider")
    return IPostResponseBase(message="Failure received", data=True)


@router.post(
    "/{account_id}/{provider_id}/postback",
    response_description="Ad network completion postback",
    response_model=IPostResponseBase[bool],
    summary="Ad network postback"
)
async def postback(
        account_id: str,
        provider_id: str,
        obj_in: Postback,
        signals: ClientSignalHub = Depends(get_signals),
) -> IPostResponseBase[bool]:
    logger.info(f"Postback for {account_id}/{provider_id}: success={obj_in.success}")
    if not signals.postback(account_id, provider_id, obj_in.success):
        raise ObjectNotFoundException("No ad in progress for this provider")
    return IPostResponseBase(message="Postback received", data=True)
