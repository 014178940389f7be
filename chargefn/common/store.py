"""Realtime Database REST client plus the two path-scoped views on top of it.

Layout owned by this service:

    stripe_customers/{uid}          -> payment customer id (Customer Directory)
    users/{uid}/charges/{id}        -> charge request / result (Charge Record Store)
"""

from typing import Any
from urllib.parse import quote

import httpx

from chargefn.common.logging import logger


CUSTOMERS_ROOT = "stripe_customers"


class DatabaseError(Exception):
    """Non-2xx answer from the database REST endpoint."""

    def __init__(self, method: str, path: str, status_code: int, detail: str) -> None:
        super().__init__(f"{method} {path} failed status={status_code} detail={detail}")
        self.method = method
        self.path = path
        self.status_code = status_code


class RealtimeDatabase:
    """Thin async wrapper over `GET/PUT/DELETE {base_url}/{path}.json`."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, auth_token: str | None = None) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token

    def _url(self, path: str) -> str:
        # Keys are opaque; `?`, `%` and `#` must not leave the path.
        segments = "/".join(quote(part, safe="") for part in path.strip("/").split("/"))
        return f"{self.base_url}/{segments}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        resp = await self.client.request(method, self._url(path), params=self._params(), **kwargs)
        if resp.status_code >= 400:
            logger.error("database request failed method=%s path=%s status=%s", method, path, resp.status_code)
            raise DatabaseError(method, path, resp.status_code, resp.text)
        return resp

    async def get(self, path: str) -> Any:
        """Return the stored value, or `None` when nothing is stored."""

        resp = await self._request("GET", path)
        return resp.json()

    async def set(self, path: str, value: Any) -> None:
        await self._request("PUT", path, json=value)

    async def remove(self, path: str) -> None:
        await self._request("DELETE", path)


class CustomerDirectory:
    """Mapping from internal user id to payment customer id."""

    def __init__(self, db: RealtimeDatabase) -> None:
        self.db = db

    @staticmethod
    def path(user_id: str) -> str:
        return f"{CUSTOMERS_ROOT}/{user_id}"

    async def get(self, user_id: str) -> str | None:
        return await self.db.get(self.path(user_id))

    async def set(self, user_id: str, customer_id: str) -> None:
        await self.db.set(self.path(user_id), customer_id)

    async def remove(self, user_id: str) -> None:
        await self.db.remove(self.path(user_id))


class ChargeRecordStore:
    """Per-user charge requests; both the trigger source and the result sink."""

    def __init__(self, db: RealtimeDatabase) -> None:
        self.db = db

    @staticmethod
    def path(user_id: str, charge_id: str) -> str:
        return f"users/{user_id}/charges/{charge_id}"

    async def get(self, user_id: str, charge_id: str) -> Any:
        return await self.db.get(self.path(user_id, charge_id))

    async def write_result(self, user_id: str, charge_id: str, record: dict) -> None:
        """Replace the charge record with its settled form."""

        await self.db.set(self.path(user_id, charge_id), record)

    async def write_error(self, user_id: str, charge_id: str, message: str) -> None:
        await self.db.set(f"{self.path(user_id, charge_id)}/error", message)
