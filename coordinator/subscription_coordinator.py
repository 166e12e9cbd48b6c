import hmac
import logging
import time
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from api_clients.errors import ProviderError
from api_clients.schedule_client import ScheduleClient
from api_clients.sendgrid_client import SendGridClient
from config import Settings
from models.api_response import ApiResponse
from models.job import RecurringJob
from models.results import FlowAction, FlowResult, StepResult
from models.subscription import ConfirmationRequest, SubscriptionKey
from scheduler.recurrence import cron_for, next_run
from utils.time_utils import epoch_millis, utcnow
from utils.tokens import ConfirmationToken

from .confirmation_email import ConfirmationEmailBuilder
from .webhook_router import Route, event_fields, first_event, route_event

logger = logging.getLogger("subscription_service")

JOB_NAME = "email"


def _email_of(fields: Mapping[str, Any]) -> Optional[str]:
    email = fields.get("email")
    return str(email) if email is not None else None


class WebhookAuthError(Exception):
    """The webhook access token did not match the configured secret."""


class SubscriptionCoordinator:
    """
    Drives the subscription lifecycle across the provider's contact lists and
    the job scheduler. Holds no state between requests; the provider and the
    scheduler are the source of truth.
    """

    def __init__(
        self,
        settings: Settings,
        provider: SendGridClient,
        scheduler: ScheduleClient,
        email_builder: Optional[ConfirmationEmailBuilder] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.provider = provider
        self.scheduler = scheduler
        self.email_builder = email_builder or ConfirmationEmailBuilder(
            public_url=settings.public_url,
            from_email=settings.from_email,
            from_name=settings.from_name,
            template_id=settings.sendgrid_template_id,
        )
        self.tokens = ConfirmationToken(settings.token_secret)
        self.clock = clock

    # ── Confirmation ──────────────────────────────────────────────────────────

    async def send_confirmation(self, request: ConfirmationRequest) -> ApiResponse:
        """
        Emails a time-boxed confirmation link. Provider failures propagate as
        ProviderError; nothing is retried.
        """
        now_ms = epoch_millis(self.clock)
        token = self.tokens.issue(request, now_ms)
        payload = self.email_builder.build(request, token, utcnow())

        logger.info(f"Sending {request.frequency.value} confirmation to {request.email} "
                    f"for {request.delegator_address}")
        response = await self.provider.send_mail(payload)
        logger.info(f"Confirmation accepted by SendGrid with status {response.status_code}")
        return response

    # ── Webhook ───────────────────────────────────────────────────────────────

    def authorize(self, access_token: Optional[str]):
        secret = self.settings.webhook_secret
        if not secret or not access_token or not hmac.compare_digest(str(access_token).encode(), secret.encode()):
            raise WebhookAuthError("Invalid webhook access token")

    async def dispatch_webhook(self, access_token: Optional[str], events: Any) -> FlowResult:
        """
        Routes the first event of a provider webhook batch. Raises
        WebhookAuthError before any processing; flow failures are returned in
        the result, never raised.
        """
        self.authorize(access_token)

        event = first_event(events)
        if event is None:
            logger.warning("Webhook delivery carried no events. Ignoring.")
            return FlowResult(action=FlowAction.IGNORED)

        if isinstance(events, list) and len(events) > 1:
            logger.info(f"Webhook batch has {len(events)} events; only the first is processed")

        route, query = route_event(event)
        fields = event_fields(event, query)

        if route == Route.UNSUBSCRIBE:
            return await self.unsubscribe(fields)
        if route == Route.VERIFY:
            return await self.add_user(fields)

        logger.debug(f"Ignoring webhook event for url {event.get('url')!r}")
        return FlowResult(action=FlowAction.IGNORED, email=_email_of(event))

    # ── Flows ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _subscription_key(fields: Mapping[str, Any]) -> Optional[SubscriptionKey]:
        try:
            return SubscriptionKey.model_validate(fields)
        except ValidationError:
            return None

    async def add_user(self, fields: Mapping[str, Any]) -> FlowResult:
        """Confirm-and-enroll: contact, list membership, recurring job."""
        key = self._subscription_key(fields)
        if key is None or not self.tokens.is_valid(key, fields, epoch_millis(self.clock)):
            return FlowResult(action=FlowAction.ENROLL, email=_email_of(fields), skipped=True)

        result = FlowResult(action=FlowAction.ENROLL, email=key.email)
        logger.info(f"Enrolling {key.email} in '{key.list_name}'")

        try:
            contact_id = await self.provider.create_recipient(key.email)
            if not contact_id:
                result.steps.append(StepResult(step="create_recipient", ok=False, error="recipient not persisted"))
                return self._finish(result)
            result.steps.append(StepResult(step="create_recipient", ok=True, detail=str(contact_id)))

            list_id = await self._resolve_or_create_list(key.list_name)
            result.steps.append(StepResult(step="resolve_list", ok=True, detail=list_id))

            await self.provider.add_recipient_to_list(list_id, contact_id)
            result.steps.append(StepResult(step="add_to_list", ok=True))

            job = self._build_job(key)
            await self.scheduler.create_job(job)
            result.steps.append(StepResult(step="create_job", ok=True, detail=job.repeat_every))
        except Exception as e:
            logger.error(f"Enrollment failed for {key.email}: {e}")
            result.steps.append(StepResult(step=self._next_enroll_step(result), ok=False, error=str(e)))

        return self._finish(result)

    async def unsubscribe(self, fields: Mapping[str, Any]) -> FlowResult:
        """
        Removes list membership and cancels the recurring job. The job is
        cancelled even when the list side fails.
        """
        key = self._subscription_key(fields)
        if key is None:
            logger.warning(f"Unsubscribe event is missing subscription fields: {dict(fields)}")
            return FlowResult(action=FlowAction.UNSUBSCRIBE, email=_email_of(fields), skipped=True)

        result = FlowResult(action=FlowAction.UNSUBSCRIBE, email=key.email)
        logger.info(f"Unsubscribing {key.email} from '{key.list_name}'")

        result.steps.append(await self._remove_from_list(key))
        result.steps.append(await self._cancel_job(key))
        return self._finish(result)

    # ── Steps ─────────────────────────────────────────────────────────────────

    async def _resolve_or_create_list(self, name: str) -> str:
        existing = SendGridClient.find_list(await self.provider.get_lists(), name)
        if existing is None:
            existing = await self.provider.create_list(name)
        if existing.get("id") is None:
            raise ProviderError(f"List '{name}' has no id", body=existing)
        return str(existing["id"])

    async def _remove_from_list(self, key: SubscriptionKey) -> StepResult:
        try:
            recipient_id = await self.provider.search_recipient_id(key.email)
            if not recipient_id:
                return StepResult(step="remove_from_list", ok=False, error="recipient not found")

            lists = await self.provider.get_recipient_lists(recipient_id)
            found = SendGridClient.find_list(lists, key.list_name)
            if found is None:
                return StepResult(step="remove_from_list", ok=False, error=f"not a member of '{key.list_name}'")

            await self.provider.delete_recipient_from_list(str(found["id"]), recipient_id)
            return StepResult(step="remove_from_list", ok=True, detail=str(found["id"]))
        except Exception as e:
            logger.error(f"Removing {key.email} from '{key.list_name}' failed: {e}")
            return StepResult(step="remove_from_list", ok=False, error=str(e))

    async def _cancel_job(self, key: SubscriptionKey) -> StepResult:
        try:
            cancelled = await self.scheduler.cancel(ScheduleClient.job_filter(JOB_NAME, key))
            return StepResult(step="cancel_job", ok=True, detail=f"{cancelled} cancelled")
        except Exception as e:
            logger.error(f"Cancelling job for {key.email} failed: {e}")
            return StepResult(step="cancel_job", ok=False, error=str(e))

    def _build_job(self, key: SubscriptionKey) -> RecurringJob:
        cron = cron_for(key.frequency)
        data = key.job_data()
        return RecurringJob(
            name=JOB_NAME,
            data=data,
            unique=dict(data),
            repeat_every=cron,
            timezone=self.settings.job_timezone,
            next_run_at=next_run(cron, self.settings.job_timezone),
        )

    @staticmethod
    def _next_enroll_step(result: FlowResult) -> str:
        order = ["create_recipient", "resolve_list", "add_to_list", "create_job"]
        return order[min(len(result.steps), len(order) - 1)]

    @staticmethod
    def _finish(result: FlowResult) -> FlowResult:
        if result.ok:
            logger.info(f"{result.action.value} completed for {result.email}")
        else:
            logger.warning(f"{result.action.value} for {result.email} incomplete. Failed steps: {result.failed_steps}")
        return result
