"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000

EVENT_PLAYERS: str = "quiz:players"
EVENT_JOINED: str = "quiz:joined"
EVENT_STARTED: str = "quiz:started"
EVENT_ENDED: str = "quiz:ended"
EVENT_ERROR: str = "quiz:error"

CLIENT_EVENT_START: str = "quiz:start"
CLIENT_EVENT_END: str = "quiz:end"
