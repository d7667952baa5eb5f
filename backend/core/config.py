# backend/core/config.py
import os
from typing import List
from dotenv import load_dotenv

DEEPL_FREE_API_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_API_URL = "https://api.deepl.com/v2/translate"
DEFAULT_TARGET_LANGUAGES = "EN-US,IT,CS"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def normalize_target_languages(codes: List[str]) -> List[str]:
    """Upper-case and de-duplicate target codes, keeping the first occurrence."""
    seen: List[str] = []
    for code in codes:
        upper = code.strip().upper()
        if upper and upper not in seen:
            seen.append(upper)
    return seen


class Settings:
    """
    Setup environment variables.
        - ROOM_CREATION_ADMIN_SECRET the secret required to create new rooms (empty disables creation)
        - DEEPL_AUTH_KEY the translation credential (empty leaves the gateway unconfigured)
        - TARGET_LANGUAGES ordered, comma-separated list of target language codes
        - DELETE_ROOM_ON_SPEAKER_LEAVE delete the room instead of vacating it when the speaker leaves
    """

    def __init__(self) -> None:
        # Load environment variables from the .env file
        load_dotenv()

        self.ROOM_CREATION_ADMIN_SECRET: str = os.getenv("ROOM_CREATION_ADMIN_SECRET", "")

        self.DEEPL_AUTH_KEY: str = os.getenv("DEEPL_AUTH_KEY", "")
        self.DEEPL_API_URL: str = os.getenv("DEEPL_API_URL", "") or (
            DEEPL_FREE_API_URL if self.DEEPL_AUTH_KEY.endswith(":fx") else DEEPL_PRO_API_URL
        )
        self.TARGET_LANGUAGES: List[str] = normalize_target_languages(
            _env_list("TARGET_LANGUAGES", DEFAULT_TARGET_LANGUAGES)
        )
        self.TRANSLATION_TIMEOUT_SECONDS: float = float(os.getenv("TRANSLATION_TIMEOUT_SECONDS", "10"))

        self.DELETE_ROOM_ON_SPEAKER_LEAVE: bool = _env_bool("DELETE_ROOM_ON_SPEAKER_LEAVE")

        self.CORS_ORIGINS: List[str] = _env_list("CORS_ORIGINS", "*")
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8080"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
