from typing import Any, Dict
from api_clients.base_client import BaseClient
from api_clients.errors import SchedulerError
from models.job import RecurringJob
from models.subscription import SubscriptionKey
import logging

logger = logging.getLogger("subscription_service")

class ScheduleClient(BaseClient):
    """Recurring-job scheduler. Jobs are upserted on their `unique` fields."""

    error_class = SchedulerError

    def __init__(self, base_url: str, api_key: str = None, timeout: float = 30.0):
        headers = {"X-API-Key": api_key} if api_key else None
        super().__init__(base_url, headers=headers, timeout=timeout)

    async def create_job(self, job: RecurringJob) -> Dict[str, Any]:
        resp = await self._post("/jobs", json=job.model_dump(mode="json"))
        logger.info(f"Saved recurring job '{job.name}' for {job.data} ({job.repeat_every})")
        return resp.body or {}

    async def cancel(self, filters: Dict[str, str]) -> int:
        resp = await self._post("/jobs/cancel", json=filters)
        cancelled = (resp.body or {}).get("cancelled", 0)
        logger.info(f"Cancelled {cancelled} job(s) matching {filters}")
        return cancelled

    @staticmethod
    def job_filter(name: str, key: SubscriptionKey) -> Dict[str, str]:
        filters = {"name": name}
        for field, value in key.job_data().items():
            filters[f"data.{field}"] = value
        return filters
