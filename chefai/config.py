"""
Environment configuration for the ChefAI backend
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the environment (and an optional .env file)."""
    google_api_key: Optional[str] = None
    text_model: str = "googleai/gemini-2.5-flash"
    image_model: str = "googleai/gemini-2.0-flash-preview-image-generation"
    tts_model: str = "googleai/gemini-2.5-flash-preview-tts"
    tts_voice: str = "Algenib"
    firebase_service_account_path: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None
    official_account_uid: str = "D0U6N4IEPaYKfDwy2"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:9002"]
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        cors = os.getenv("CORS_ORIGINS")
        return cls(
            google_api_key=os.getenv("GOOGLE_API_KEY"),
            text_model=os.getenv("CHEFAI_TEXT_MODEL", defaults.text_model),
            image_model=os.getenv("CHEFAI_IMAGE_MODEL", defaults.image_model),
            tts_model=os.getenv("CHEFAI_TTS_MODEL", defaults.tts_model),
            tts_voice=os.getenv("CHEFAI_TTS_VOICE", defaults.tts_voice),
            firebase_service_account_path=os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
            firebase_storage_bucket=os.getenv("FIREBASE_STORAGE_BUCKET"),
            official_account_uid=os.getenv(
                "CHEFAI_OFFICIAL_ACCOUNT_UID", defaults.official_account_uid
            ),
            api_host=os.getenv("API_HOST", defaults.api_host),
            api_port=int(os.getenv("API_PORT", str(defaults.api_port))),
            cors_origins=_split_origins(cors) if cors else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )


@lru_cache
def get_settings() -> Settings:
    """Get the cached Settings instance."""
    return Settings.from_env()
