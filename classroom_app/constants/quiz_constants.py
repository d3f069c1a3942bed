"""Quiz-related constants shared across the core and server layers."""

MIN_OPTIONS_PER_QUESTION: int = 2
MAX_OPTIONS_PER_QUESTION: int = 4
SECONDS_PER_MINUTE: int = 60
COUNTDOWN_TICK_SECONDS: float = 1.0
