"""Client library for the phone (owner) and the camera (device)."""

from dashlink.client.api_client import ApiResult, DashlinkClient
from dashlink.client.device_agent import CommandOutcome, DeviceAgent
from dashlink.client.dispatch import (
    ActivePollTracker,
    CommandRunner,
    CountdownTracker,
    Strategy,
    Surface,
    TrackerState,
    select_strategy,
)
from dashlink.client.pairing import PairingPayload, parse_pairing_payload
from dashlink.client.preview import PreviewSession, PreviewState
from dashlink.client.session import BoundDevice, SessionContext

__all__ = [
    "ActivePollTracker",
    "ApiResult",
    "BoundDevice",
    "CommandOutcome",
    "CommandRunner",
    "CountdownTracker",
    "DashlinkClient",
    "DeviceAgent",
    "PairingPayload",
    "PreviewSession",
    "PreviewState",
    "SessionContext",
    "Strategy",
    "Surface",
    "TrackerState",
    "parse_pairing_payload",
    "select_strategy",
]
