"""Quiz-related constants shared across the engine and its adapters."""

NO_ANSWER: int = -1
MIN_OPTIONS_PER_QUESTION: int = 2
ANSWER_ENCODING_SEPARATOR: str = ","
POINTS_PER_CORRECT_ANSWER: int = 1000
DEFAULT_LEADERBOARD_SIZE: int = 3

SCORING_POLICY_SIMPLE: str = "simple"
SCORING_POLICY_SPEED_WEIGHTED: str = "speed_weighted"

SETTLEMENT_MODE_LOCAL: str = "local"
SETTLEMENT_MODE_LEDGER: str = "ledger"
