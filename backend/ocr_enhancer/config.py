from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Receipt OCR Enhancer"
    DEBUG: bool = False

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    LICENSE_TABLE: str = "licenses"
    MAX_LICENSES_PER_REQUEST: int = 500

    # Cohere
    COHERE_API_KEY: str = ""
    COHERE_API_URL: str = "https://api.cohere.com"
    COHERE_MODEL: str = "command"
    COHERE_MAX_TOKENS: int = 600
    COHERE_TEMPERATURE: float = 0.3
    COHERE_TIMEOUT_SECONDS: float = 20.0

    # Repair pipeline
    REPAIR_DECIMAL_FALLBACK: bool = False

    # Admin gate (salted scrypt hex digest)
    ADMIN_PASSWORD_HASH: str = ""
    ADMIN_PASSWORD_SALT: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
