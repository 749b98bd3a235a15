"""HTTP client for the relay API.

Every call returns an ``ApiResult`` instead of raising, so UI state machines
can branch on ``ok`` and ``error_kind`` (``Offline``, ``NotFound``, ...).
"""

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from dashlink.client.constants import HTTP_TIMEOUT_SECONDS

TRANSIENT = "Transient"


@dataclass
class ApiResult:
    """Result-or-error value of one API call."""

    ok: bool
    data: Any = None
    error_kind: str | None = None
    message: str = ""
    status_code: int | None = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiResult":
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            return cls(ok=True, data=body, status_code=response.status_code)

        kind = None
        message = response.reason_phrase
        if isinstance(body, dict):
            kind = body.get("Error")
            message = body.get("Message") or body.get("detail") or message
            if not isinstance(message, str):
                message = str(message)
        if kind is None:
            kind = {401: "Unauthorized", 403: "Unauthorized", 404: "NotFound"}.get(
                response.status_code,
                "InvalidArgument" if response.status_code in (400, 422) else TRANSIENT,
            )
        return cls(ok=False, error_kind=kind, message=message, status_code=response.status_code)


class DashlinkClient:
    """Async client for both the owner (phone) and device sides of the API."""

    def __init__(
        self,
        base_url: str = "",
        token: str | None = None,
        device_id: str | None = None,
        device_secret: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.token = token
        self.device_id = device_id
        self.device_secret = device_secret
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "DashlinkClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.device_id:
            headers["X-Device-Id"] = self.device_id
        if self.device_secret:
            headers["X-Device-Secret"] = self.device_secret
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> ApiResult:
        try:
            response = await self._client.request(
                method, f"/api/v2{path}", headers=self._headers(), **kwargs
            )
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            return ApiResult(ok=False, error_kind=TRANSIENT, message=str(e))
        return ApiResult.from_response(response)

    # ------------------------------------------------------------------
    # Owner side
    # ------------------------------------------------------------------

    async def bind_device(self, device_id: str, device_name: str | None = None) -> ApiResult:
        return await self._request(
            "POST", "/devices/bind", json={"deviceId": device_id, "deviceName": device_name}
        )

    async def unbind_device(self, device_id: str) -> ApiResult:
        return await self._request("POST", f"/devices/{device_id}/unbind")

    async def list_devices(self, page: int = 1, page_size: int = 20) -> ApiResult:
        return await self._request(
            "GET", "/devices", params={"page": page, "pageSize": page_size}
        )

    async def get_device_status(self, device_id: str) -> ApiResult:
        return await self._request("GET", f"/devices/{device_id}/status")

    async def get_preview_frame(self, device_id: str) -> ApiResult:
        return await self._request("GET", f"/devices/{device_id}/preview")

    async def send_command(
        self, device_id: str, command: str, params: dict[str, Any] | None = None
    ) -> ApiResult:
        return await self._request(
            "POST",
            "/commands",
            json={"deviceId": device_id, "command": command, "params": params or {}},
        )

    async def get_command(self, command_id: str) -> ApiResult:
        return await self._request("GET", f"/commands/{command_id}")

    async def list_files(
        self,
        device_id: str,
        file_type: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ApiResult:
        params: dict[str, Any] = {"deviceId": device_id, "page": page, "pageSize": page_size}
        if file_type:
            params["fileType"] = file_type
        return await self._request("GET", "/files", params=params)

    async def delete_file(self, record_id: str) -> ApiResult:
        return await self._request("DELETE", f"/files/{record_id}")

    # ------------------------------------------------------------------
    # Device side
    # ------------------------------------------------------------------

    async def register(
        self,
        device_name: str | None = None,
        device_model: str | None = None,
        app_version: str | None = None,
    ) -> ApiResult:
        """Register this device; stores the returned secret on success."""
        result = await self._request(
            "POST",
            "/edge/register",
            json={
                "deviceId": self.device_id,
                "deviceName": device_name,
                "deviceModel": device_model,
                "appVersion": app_version,
            },
        )
        if result.ok and result.data:
            self.device_secret = result.data.get("deviceSecret") or self.device_secret
        return result

    async def heartbeat(
        self, status_info: str | None = None, recording: bool | None = None
    ) -> ApiResult:
        return await self._request(
            "POST", "/edge/heartbeat", json={"statusInfo": status_info, "recording": recording}
        )

    async def poll(self, limit: int | None = None) -> ApiResult:
        return await self._request("POST", "/edge/poll", json={"limit": limit})

    async def report_result(
        self,
        command_id: str,
        success: bool,
        result: Any = None,
        error_message: str | None = None,
    ) -> ApiResult:
        return await self._request(
            "POST",
            "/edge/result",
            json={
                "commandId": command_id,
                "success": success,
                "result": result,
                "errorMessage": error_message,
            },
        )

    async def upload_blob(self, blob_id: str, data: bytes) -> ApiResult:
        return await self._request("PUT", f"/edge/blobs/{blob_id}", content=data)

    async def create_file_record(self, **fields: Any) -> ApiResult:
        """Report file metadata; keyword names use the API's camelCase keys."""
        return await self._request("POST", "/edge/files", json=fields)
