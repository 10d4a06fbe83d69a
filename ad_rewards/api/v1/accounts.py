from fastapi import APIRouter, Depends, status

from ad_rewards.api.deps import get_account_service
from ad_rewards.schemas.account import Account, AccountCreate
from ad_rewards.schemas.common import IGetResponseBase, IPostResponseBase
from ad_rewards.schemas.referral import ReferralRecord
from ad_rewards.services.account_service import AccountService
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "",
    response_description="Create new account",
    response_model=IPostResponseBase[Account],
    status_code=status.HTTP_201_CREATED,
    summary="Create new account"
)
async def create_account(
        obj_in: AccountCreate,
        accounts: AccountService = Depends(get_account_service),
) -> IPostResponseBase[Account]:
    logger.info(f"Creating account: {obj_in.model_dump()}")
    account = await accounts.register(obj_in)
    return IPostResponseBase(data=account)


@router.get(
    "/{account_id}",
    response_description="Get account by id",
    response_model=IGetResponseBase[Account],
    summary="Get account"
)
async def get_account(
        account_id: str,
        accounts: AccountService = Depends(get_account_service),
) -> IGetResponseBase[Account]:
    return IGetResponseBase(data=await accounts.get(account_id))


@router.get(
    "/{account_id}/referrals",
    response_description="Referral statistics of the account",
    response_model=IGetResponseBase[ReferralRecord],
    summary="Get referrals"
)
async def get_referrals(
        account_id: str,
        accounts: AccountService = Depends(get_account_service),
) -> IGetResponseBase[ReferralRecord]:
    await accounts.get(account_id)
    return IGetResponseBase(data=await accounts.referrals(account_id))
