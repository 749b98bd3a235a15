"""Bound-device session context persisted on the phone."""

import json
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, ValidationError


class BoundDevice(BaseModel):
    """Device the phone currently controls."""

    device_id: str = Field(..., alias="deviceId")
    device_name: str = Field(..., alias="deviceName")
    server_url: str | None = Field(None, alias="serverUrl")

    model_config = {"populate_by_name": True}


class SessionContext:
    """Explicit replacement for app-global bound-device state.

    Loaded on start, saved on bind, cleared on unbind. UI state machines take
    the context as an argument instead of reading globals.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.bound_device: BoundDevice | None = None

    @property
    def is_bound(self) -> bool:
        return self.bound_device is not None

    @property
    def device_id(self) -> str | None:
        return self.bound_device.device_id if self.bound_device else None

    def load(self) -> BoundDevice | None:
        """Read the persisted device; a corrupt file counts as unbound."""
        if not self.path.exists():
            self.bound_device = None
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.bound_device = BoundDevice.model_validate(data) if data else None
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable session file {self.path}: {e}")
            self.bound_device = None
        return self.bound_device

    def bind(self, device: BoundDevice) -> None:
        self.bound_device = device
        self.save()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = self.bound_device.model_dump(by_alias=True) if self.bound_device else None
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        self.bound_device = None
        self.path.unlink(missing_ok=True)
