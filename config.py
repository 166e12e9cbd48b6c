import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger("subscription_service")


class Settings(BaseModel):
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com"
    sendgrid_template_id: Optional[str] = None
    webhook_secret: str = ""
    token_secret: str = ""
    public_url: str = "http://localhost:3000"
    from_email: str = "noreply@example.com"
    from_name: str = "Digest"
    user_agent: str = "digest-subscriptions/1.0.0"
    scheduler_url: str = "http://localhost:8010"
    scheduler_api_key: Optional[str] = None
    job_timezone: str = "UTC"
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        webhook_secret = os.getenv("WEBHOOK_SECRET", "")
        settings = cls(
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY", ""),
            sendgrid_api_url=os.getenv("SENDGRID_API_URL", "https://api.sendgrid.com"),
            sendgrid_template_id=os.getenv("SENDGRID_TEMPLATE_ID") or None,
            webhook_secret=webhook_secret,
            # Confirmation tokens are signed with the webhook secret unless a dedicated one is set
            token_secret=os.getenv("TOKEN_SECRET") or webhook_secret,
            public_url=os.getenv("URL", "http://localhost:3000"),
            from_email=os.getenv("FROM_EMAIL", "noreply@example.com"),
            from_name=os.getenv("FROM_NAME", "Digest"),
            scheduler_url=os.getenv("SCHEDULER_URL", "http://localhost:8010"),
            scheduler_api_key=os.getenv("SCHEDULER_API_KEY") or None,
            job_timezone=os.getenv("JOB_TIMEZONE", "UTC"),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
        )

        if not settings.sendgrid_api_key:
            logger.warning("SENDGRID_API_KEY is not set. Provider calls will be rejected.")
        if not settings.webhook_secret:
            logger.warning("WEBHOOK_SECRET is not set. All webhook deliveries will be refused.")
        return settings
