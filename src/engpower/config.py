import os


class Settings:
    PROJECT_NAME: str = "engpower"
    DEBUG: bool = os.environ.get("DEBUG", "0") == "1"
    LOG_DIR: str = "log"
    LOG_FILE: str = "engpower.log"
    LOG_TO_DB: bool = os.environ.get("LOG_TO_DB", "0") == "1"
    DB_DIR: str = "db"
    DB_FILE: str = "engpower.db"
    REDIS_URL: str = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    STORE_BACKEND: str = os.environ.get("STORE_BACKEND", "sqlite")
    BANK_FILE: str = os.environ.get("BANK_FILE", "vocabulary/review_items.csv")

    # Question generation
    REVIEW_PROBABILITY: float = 0.4
    DISTRACTOR_COUNT: int = 3
    GENERATOR_MODE: str = "adaptive"

    # Scoring
    BASE_POINTS: int = 10
    STREAK_STEP: int = 3
    STREAK_BONUS: int = 5

    # Persistence keys
    LEADERBOARD_KEY: str = "engpower-leaderboard"
    MISTAKES_KEY: str = "engpower-mistakes"
    LEADERBOARD_SIZE: int = 10

    SESSION_COOKIE_NAME: str = "engpower_session_id"
    SESSION_TIMEOUT_MINUTES: int = 120

    # Audio
    TTS_ENGINE: str = os.environ.get("TTS_ENGINE", "none")
    TTS_LANG: str = "en"
    AUDIO_DIR: str = "audio"

    ROOT_PATH: str = os.environ.get("ROOT_PATH", "")


settings = Settings()
