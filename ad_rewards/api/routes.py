from fastapi import APIRouter, status
from fastapi.responses import PlainTextResponse, Response

from ad_rewards.api.v1 import accounts, ads, system

home_router = APIRouter()


@home_router.get("/", response_description="Homepage", include_in_schema=False)
async def home() -> Response:
    return PlainTextResponse("Ad Rewards API", status_code=status.HTTP_200_OK)


api_router = APIRouter()
api_router.include_router(ads.router, tags=["Ads"], prefix="/ads")
api_router.include_router(accounts.router, tags=["Accounts"], prefix="/accounts")
api_router.include_router(system.router, tags=["System"], prefix="/system")
