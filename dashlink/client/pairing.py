"""Pairing payload carried by the device's QR code."""

import json

from pydantic import BaseModel, Field, ValidationError

from dashlink.client.constants import DEFAULT_DEVICE_NAME, PAIRING_PAYLOAD_TYPE
from dashlink.client.session import BoundDevice
from dashlink.core.errors import InvalidArgumentError


class PairingPayload(BaseModel):
    type: str
    device_id: str = Field(..., min_length=1, alias="deviceId")
    device_name: str | None = Field(None, alias="deviceName")
    server_url: str | None = Field(None, alias="serverUrl")

    model_config = {"populate_by_name": True}

    def to_bound_device(self) -> BoundDevice:
        return BoundDevice(
            device_id=self.device_id,
            device_name=self.device_name or DEFAULT_DEVICE_NAME,
            server_url=self.server_url,
        )


def parse_pairing_payload(raw: str) -> PairingPayload:
    """Decode a scanned pairing code.

    Example: ``{"type": "evcam_bind", "deviceId": "cam-1", "deviceName": "Car"}``
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidArgumentError("pairing code is not valid JSON") from e

    if not isinstance(data, dict) or data.get("type") != PAIRING_PAYLOAD_TYPE:
        raise InvalidArgumentError("not a device pairing code")

    try:
        payload = PairingPayload.model_validate(data)
    except ValidationError as e:
        raise InvalidArgumentError(f"invalid pairing code: {e.errors()[0]['msg']}") from e

    if not payload.device_name:
        payload.device_name = DEFAULT_DEVICE_NAME
    return payload
