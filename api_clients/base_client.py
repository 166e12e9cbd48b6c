import asyncio
import logging
from typing import Any, Dict, Type

import requests

from api_clients.errors import ServiceError
from models.api_response import ApiResponse

logger = logging.getLogger("subscription_service")


class BaseClient:
    error_class: Type[ServiceError] = ServiceError

    def __init__(self, base_url: str, headers: Dict[str, str] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        if headers:
            self.session.headers.update(headers)

    def _request(self, method: str, endpoint: str, params: Dict = None, json: Any = None) -> ApiResponse:
        try:
            resp = self.session.request(
                method,
                f"{self.base_url}{endpoint}",
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise self.error_class(str(e)) from e

        body = self._parse_body(resp)
        if not resp.ok:
            logger.error(f"{method} {endpoint} returned {resp.status_code}: {resp.text}")
            raise self.error_class(resp.reason or "request failed", status_code=resp.status_code, body=body)

        return ApiResponse(status_code=resp.status_code, body=body, headers=dict(resp.headers))

    @staticmethod
    def _parse_body(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # Blocking HTTP runs in a worker thread so only the calling request waits on it
    async def _get(self, endpoint: str, params: Dict = None) -> ApiResponse:
        return await asyncio.to_thread(self._request, "GET", endpoint, params)

    async def _post(self, endpoint: str, json: Any = None) -> ApiResponse:
        return await asyncio.to_thread(self._request, "POST", endpoint, None, json)

    async def _delete(self, endpoint: str) -> ApiResponse:
        return await asyncio.to_thread(self._request, "DELETE", endpoint)

    def close(self):
        self.session.close()
