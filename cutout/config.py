from functools import lru_cache

from pydantic_settings import BaseSettings

PLACEHOLDER_API_KEY = "your_api_key_here"


class Settings(BaseSettings):
    REMOVE_BG_API_KEY: str = ""
    REMOVE_BG_URL: str = "https://api.remove.bg/v1.0/removebg"
    REMOVE_BG_TIMEOUT_SECONDS: float = 60.0
    MOCK_DELAY_SECONDS: float = 1.5
    MAX_FILE_SIZE_MB: int = 10
    LOCALE: str = "zh"  # "zh" or "en"
    FALLBACK_PROMPT_TIMEOUT_SECONDS: float = 300.0
    DB_PATH: str = "./cutout.db"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def max_file_size_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
