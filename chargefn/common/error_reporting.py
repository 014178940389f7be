"""Forward exceptions to the centralized error log stream.

Entries go to Cloud Logging `entries:write`. The log name must contain
"err" for Error Reporting to pick the entry up.
"""

import traceback
from typing import Any

import httpx

from chargefn.common.logging import logger


LOG_NAME = "errors"
RESOURCE_TYPE = "cloud_function"


class LogSinkError(Exception):
    """The log sink rejected or never acknowledged an error entry."""


class ErrorReporter:
    """Builds error events and writes them to the log sink."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        project_id: str,
        function_name: str,
        api_url: str = "https://logging.googleapis.com/v2",
        access_token: str | None = None,
        metadata_url: str = "http://metadata.google.internal/computeMetadata/v1",
    ) -> None:
        self.client = client
        self.project_id = project_id
        self.function_name = function_name
        self.api_url = api_url.rstrip("/")
        self.access_token = access_token
        self.metadata_url = metadata_url.rstrip("/")

    @property
    def log_name(self) -> str:
        return f"projects/{self.project_id}/logs/{LOG_NAME}"

    def build_entry(self, exc: BaseException, context: dict[str, Any] | None = None) -> dict[str, Any]:
        """Format one error event with resource metadata attached."""

        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        error_event = {
            "message": stack,
            "serviceContext": {
                "service": self.function_name,
                "resourceType": RESOURCE_TYPE,
            },
            "context": context or {},
        }
        return {
            "logName": self.log_name,
            "resource": {
                "type": RESOURCE_TYPE,
                "labels": {"function_name": self.function_name},
            },
            "severity": "ERROR",
            "jsonPayload": error_event,
        }

    async def _bearer_token(self) -> str:
        if self.access_token:
            return self.access_token
        resp = await self.client.get(
            f"{self.metadata_url}/instance/service-accounts/default/token",
            headers={"Metadata-Flavor": "Google"},
        )
        if resp.status_code >= 400:
            raise LogSinkError(f"metadata token request failed status={resp.status_code}")
        return resp.json()["access_token"]

    async def report(self, exc: BaseException, context: dict[str, Any] | None = None) -> None:
        """Write one error entry; resolves once the sink acknowledges it."""

        entry = self.build_entry(exc, context)
        try:
            token = await self._bearer_token()
            resp = await self.client.post(
                f"{self.api_url}/entries:write",
                headers={"Authorization": f"Bearer {token}"},
                json={"entries": [entry]},
            )
        except httpx.HTTPError as http_exc:
            raise LogSinkError(f"log sink unreachable: {http_exc}") from http_exc
        if resp.status_code >= 400:
            logger.error("error report rejected status=%s body=%s", resp.status_code, resp.text)
            raise LogSinkError(f"log sink write failed status={resp.status_code}")
