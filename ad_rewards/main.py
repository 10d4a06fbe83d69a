import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi_cache import FastAPICache
from fastapi_cache.backends.redis import RedisBackend
from starlette.responses import JSONResponse

from ad_rewards.api import routes
from ad_rewards.api.deps import ServiceContainer, get_redis_client
from ad_rewards.core.config import settings
from ad_rewards.core.exceptions import PersistenceFailure, StoreError
from ad_rewards.store.redis_store import RedisStore
from ad_rewards.utils.logger import init_logger, get_logger

# Инициализация loguru логирования
init_logger()
logger = get_logger(__name__)

app = FastAPI(
    title="Ad Rewards API",
    description="Rewarded ad watching: admission, completion, crediting and referral commission",
    version=settings.VERSION,
    openapi_url=f"/{settings.API_PREFIX}/openapi.json",
)


async def on_startup() -> None:
    # services can be preset (tests)
    if getattr(app.state, "services", None) is None:
        redis_client = await get_redis_client()
        FastAPICache.init(RedisBackend(redis_client), prefix="fastapi-cache")
        app.state.services = ServiceContainer(RedisStore(await get_redis_client()))
    await app.state.services.start(reset_loop=settings.RESET_LOOP_IN_API)
    logger.info("FastAPI app running...")


async def on_shutdown() -> None:
    services = getattr(app.state, "services", None)
    if services is not None:
        await services.stop()
    logger.info("FastAPI app stopped")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_event_handler("startup", on_startup)
app.add_event_handler("shutdown", on_shutdown)

app.include_router(routes.home_router)
app.include_router(routes.api_router, prefix=f"/{settings.API_PREFIX}")


# Error handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "message": exc.detail
        }
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Store failure on {request.url.path}: {exc}")
    return await http_exception_handler(request, PersistenceFailure())


if __name__ == "__main__":
    uvicorn.run("ad_rewards.main:app", reload=True)
