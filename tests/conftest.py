import pytest
from typing import Any, Dict, List

from config import Settings
from coordinator.subscription_coordinator import SubscriptionCoordinator
from models.api_response import ApiResponse
from models.job import RecurringJob
from models.subscription import ConfirmationRequest

NOW = 1_760_000_000.0  # fixed epoch seconds for the coordinator clock


class FakeProvider:
    """In-memory stand-in for the SendGrid contact database."""

    def __init__(self):
        self.calls: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.recipients: Dict[str, str] = {}
        self.lists: Dict[str, Dict[str, Any]] = {}
        self.fail_on: Dict[str, Exception] = {}
        self._next_list_id = 100

    def _record(self, name: str):
        self.calls.append(name)
        if name in self.fail_on:
            raise self.fail_on[name]

    async def send_mail(self, payload):
        self._record("send_mail")
        self.sent.append(payload)
        return ApiResponse(status_code=202, body=None)

    async def search_recipient_id(self, email):
        self._record("search_recipient_id")
        return self.recipients.get(email)

    async def create_recipient(self, email):
        self._record("create_recipient")
        return self.recipients.setdefault(email, f"rid-{email}")

    async def get_lists(self):
        self._record("get_lists")
        return [{"id": list_id, "name": item["name"]} for list_id, item in self.lists.items()]

    async def get_recipient_lists(self, recipient_id):
        self._record("get_recipient_lists")
        return [
            {"id": list_id, "name": item["name"]}
            for list_id, item in self.lists.items()
            if recipient_id in item["members"]
        ]

    async def create_list(self, name):
        self._record("create_list")
        list_id = self._next_list_id
        self._next_list_id += 1
        self.lists[list_id] = {"name": name, "members": set()}
        return {"id": list_id, "name": name, "recipient_count": 0}

    async def add_recipient_to_list(self, list_id, recipient_id):
        self._record("add_recipient_to_list")
        self.lists[int(list_id)]["members"].add(recipient_id)
        return True

    async def delete_recipient_from_list(self, list_id, recipient_id):
        self._record("delete_recipient_from_list")
        self.lists[int(list_id)]["members"].discard(recipient_id)
        return True

    def members(self, name: str):
        for item in self.lists.values():
            if item["name"] == name:
                return item["members"]
        return set()


class FakeScheduler:
    """In-memory scheduler that upserts jobs on their `unique` fields."""

    def __init__(self):
        self.calls: List[str] = []
        self.jobs: List[RecurringJob] = []
        self.fail_on: Dict[str, Exception] = {}

    def _record(self, name: str):
        self.calls.append(name)
        if name in self.fail_on:
            raise self.fail_on[name]

    async def create_job(self, job: RecurringJob):
        self._record("create_job")
        self.jobs = [j for j in self.jobs if not (j.name == job.name and j.unique == job.unique)]
        self.jobs.append(job)
        return job.model_dump(mode="json")

    async def cancel(self, filters):
        self._record("cancel")
        def matches(job: RecurringJob) -> bool:
            for field, value in filters.items():
                actual = job.name if field == "name" else job.data.get(field.split(".", 1)[1])
                if actual != value:
                    return False
            return True
        before = len(self.jobs)
        self.jobs = [j for j in self.jobs if not matches(j)]
        return before - len(self.jobs)


@pytest.fixture
def settings():
    return Settings(
        sendgrid_api_key="SG.test",
        webhook_secret="hook-secret",
        token_secret="token-secret",
        public_url="https://digest.example.com/",
        from_email="noreply@example.com",
        from_name="Digest",
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clock():
    class Clock:
        def __init__(self):
            self.now = NOW

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def coordinator(settings, provider, scheduler, clock):
    return SubscriptionCoordinator(settings, provider, scheduler, clock=clock)


@pytest.fixture
def subscription():
    return {
        "email": "alice@example.com",
        "frequency": "weekly",
        "delegatorAddress": "0xDelegator",
    }


@pytest.fixture
def verify_event(coordinator, subscription):
    """Builds the click event the provider posts for a confirmation link."""

    async def build(**overrides) -> Dict[str, Any]:
        await coordinator.send_confirmation(ConfirmationRequest(**subscription))
        custom_args = dict(coordinator.provider.sent[-1]["personalizations"][0]["custom_args"])
        event = {
            "event": "click",
            "email": subscription["email"],
            "url": f"https://digest.example.com/?verify=true&frequency={subscription['frequency']}",
            **custom_args,
        }
        event.update(overrides)
        return event

    return build
