"""
Configuration for the LifeTea mood service.

Settings are read from ``LIFETEA_*`` environment variables or a ``.env``
file in the working directory.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

HUGGINGFACE_EMOTION_URL = (
    "https://api-inference.huggingface.co/models/"
    "j-hartmann/emotion-english-distilroberta-base"
)


class Settings(BaseSettings):
    """Runtime settings for the classifier, aggregator and server."""

    model_config = SettingsConfigDict(
        env_prefix="LIFETEA_",
        env_file=".env",
        extra="ignore",
    )

    # An empty URL runs the classifier offline against a static backend
    inference_url: str = HUGGINGFACE_EMOTION_URL
    inference_token: str | None = None
    inference_timeout: float = 10.0

    min_classify_length: int = 20
    mood_ring_window: int = 100

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"


@lru_cache
def get_settings() -> Settings:
    return Settings()
