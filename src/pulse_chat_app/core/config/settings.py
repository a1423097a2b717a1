import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


class Settings:
    MONGODB_URL: str = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "pulse_chat")

    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)

    # Empty means local-only fan-out
    REDIS_URL: str = os.getenv("REDIS_URL", "")

    CORS_ORIGINS: list = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3002").split(",")
        if o.strip()
    ]

    TYPING_TIMEOUT_SECONDS: int = _int_env("TYPING_TIMEOUT_SECONDS", 10)
    TYPING_SWEEP_INTERVAL_SECONDS: int = _int_env("TYPING_SWEEP_INTERVAL_SECONDS", 10)
    HEARTBEAT_INTERVAL_SECONDS: int = _int_env("HEARTBEAT_INTERVAL_SECONDS", 30)
    DELETE_FOR_EVERYONE_WINDOW_MINUTES: int = _int_env("DELETE_FOR_EVERYONE_WINDOW_MINUTES", 10)

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
