from typing import Any, Dict, List, Optional
from api_clients.base_client import BaseClient
from api_clients.errors import ProviderError
from models.api_response import ApiResponse
import logging

logger = logging.getLogger("subscription_service")

class SendGridClient(BaseClient):
    """
    SendGrid v3 client covering the transactional send endpoint and the
    legacy Marketing Campaigns contact database (recipients and lists).
    """

    error_class = ProviderError

    def __init__(self, api_key: str, base_url: str = "https://api.sendgrid.com",
                 user_agent: str = "digest-subscriptions/1.0.0", timeout: float = 30.0):
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        super().__init__(base_url, headers=headers, timeout=timeout)

    async def send_mail(self, payload: Dict[str, Any]) -> ApiResponse:
        return await self._post("/v3/mail/send", json=payload)

    async def search_recipient_id(self, email: str) -> Optional[str]:
        resp = await self._get("/v3/contactdb/recipients/search", params={"email": email})
        recipients = (resp.body or {}).get("recipients") or []
        return recipients[0]["id"] if recipients else None

    async def create_recipient(self, email: str) -> Optional[str]:
        """Creates the recipient, or returns the existing one's id."""
        resp = await self._post("/v3/contactdb/recipients", json=[{"email": email}])
        persisted = (resp.body or {}).get("persisted_recipients") or []
        if not persisted:
            logger.warning(f"SendGrid did not persist recipient {email}: {resp.body}")
            return None
        return persisted[0]

    async def get_lists(self) -> List[Dict[str, Any]]:
        resp = await self._get("/v3/contactdb/lists")
        return (resp.body or {}).get("lists") or []

    async def get_recipient_lists(self, recipient_id: str) -> List[Dict[str, Any]]:
        resp = await self._get(f"/v3/contactdb/recipients/{recipient_id}/lists")
        return (resp.body or {}).get("lists") or []

    async def create_list(self, name: str) -> Dict[str, Any]:
        resp = await self._post("/v3/contactdb/lists", json={"name": name})
        logger.info(f"Created contact list '{name}' (id={(resp.body or {}).get('id')})")
        return resp.body or {}

    async def add_recipient_to_list(self, list_id: str, recipient_id: str) -> bool:
        await self._post(f"/v3/contactdb/lists/{list_id}/recipients/{recipient_id}")
        return True

    async def delete_recipient_from_list(self, list_id: str, recipient_id: str) -> bool:
        await self._delete(f"/v3/contactdb/lists/{list_id}/recipients/{recipient_id}")
        return True

    @staticmethod
    def find_list(lists: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
        """Exact, case-sensitive name match."""
        return next((item for item in lists if item.get("name") == name), None)
