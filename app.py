from fastapi import FastAPI, HTTPException, Depends, Query, Body
from fastapi.responses import JSONResponse
from functools import lru_cache
from typing import Any, Optional
import logging
import traceback

from api_clients.errors import ServiceError
from api_clients.schedule_client import ScheduleClient
from api_clients.sendgrid_client import SendGridClient
from config import Settings
from coordinator.subscription_coordinator import SubscriptionCoordinator, WebhookAuthError
from models.subscription import ConfirmationRequest

# Configure logging to file and console
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
    handlers=[
        logging.FileHandler('subscriptions.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger("subscription_service")

logger.info("=" * 80)
logger.info("SUBSCRIPTION SERVICE STARTING")
logger.info("=" * 80)

app = FastAPI(title="Digest Subscription Service")


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache
def get_coordinator() -> SubscriptionCoordinator:
    settings = get_settings()
    provider = SendGridClient(
        api_key=settings.sendgrid_api_key,
        base_url=settings.sendgrid_api_url,
        user_agent=settings.user_agent,
        timeout=settings.request_timeout,
    )
    scheduler = ScheduleClient(
        base_url=settings.scheduler_url,
        api_key=settings.scheduler_api_key,
        timeout=settings.request_timeout,
    )
    return SubscriptionCoordinator(settings, provider, scheduler)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/confirm")
async def send_confirmation(
    request: ConfirmationRequest,
    coordinator: SubscriptionCoordinator = Depends(get_coordinator),
):
    logger.info("=" * 80)
    logger.info("RECEIVED CONFIRMATION REQUEST")
    logger.info(f"   Email: {request.email}")
    logger.info(f"   Frequency: {request.frequency.value}")
    logger.info(f"   Delegator: {request.delegator_address}")
    logger.info("=" * 80)

    try:
        response = await coordinator.send_confirmation(request)
    except ServiceError as e:
        logger.error(f"Confirmation email to {request.email} failed: {e}")
        return JSONResponse(status_code=400, content={"error": str(e), "body": e.body})
    except Exception as e:
        logger.error(f"Confirmation email to {request.email} failed: {e}")
        logger.error(traceback.format_exc())
        return JSONResponse(status_code=400, content={"error": str(e), "body": None})

    return JSONResponse(
        status_code=response.status_code,
        content={"statusCode": response.status_code, "body": response.body},
    )


@app.post("/webhook")
async def dispatch_webhook(
    events: Any = Body(default=None),
    access_token: Optional[str] = Query(default=None, alias="accessToken"),
    coordinator: SubscriptionCoordinator = Depends(get_coordinator),
):
    try:
        result = await coordinator.dispatch_webhook(access_token, events)
    except WebhookAuthError:
        logger.warning("Rejected webhook delivery with an invalid access token")
        raise HTTPException(status_code=401, detail="Unauthorized")

    logger.info("=" * 80)
    logger.info("WEBHOOK PROCESSED")
    logger.info(f"   Action: {result.action.value}")
    logger.info(f"   Email: {result.email}")
    logger.info(f"   Skipped: {result.skipped}")
    logger.info(f"   Failed steps: {result.failed_steps}")
    logger.info("=" * 80)

    return {"status": "ok", "result": result.model_dump(mode="json")}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8050)
