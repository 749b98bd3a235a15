"""Client-side timing constants (seconds unless noted)."""

# Active-poll strategy
POLL_INTERVAL_SECONDS = 1.0
POLL_MAX_TICKS = 60

# Fixed-countdown strategy
COUNTDOWN_TICK_SECONDS = 1.0
RECORD_PROCESSING_MARGIN_SECONDS = 30
PHOTO_COUNTDOWN_SECONDS = 30

DEFAULT_RECORD_DURATION = 60
RECORD_DURATION_OPTIONS = (30, 60, 120, 180, 300)

# Preview refresh loop
PREVIEW_WARMUP_SECONDS = 1.0
PREVIEW_REFRESH_INTERVAL_SECONDS = 2.0
PREVIEW_GRACE_SECONDS = 10.0

# Device agent
HEARTBEAT_INTERVAL_SECONDS = 15.0
AGENT_POLL_INTERVAL_SECONDS = 5.0
AGENT_FAST_POLL_INTERVAL_SECONDS = 2.0
RESULT_REPORT_ATTEMPTS = 3
RECENT_COMMAND_MEMORY = 200
ACTIVE_POLL_WINDOW_SECONDS = 60.0
COMMAND_EXECUTION_TIMEOUT_SECONDS = 60.0
MAX_CONSECUTIVE_ERRORS = 10
ERROR_BACKOFF_SECONDS = 60.0

# Pairing
PAIRING_PAYLOAD_TYPE = "evcam_bind"
DEFAULT_DEVICE_NAME = "EVCam device"

HTTP_TIMEOUT_SECONDS = 30.0
