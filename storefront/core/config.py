from pydantic import BaseModel
import os

class Settings(BaseModel):
    API_BASE: str = os.getenv("STOREFRONT_API_BASE", "http://localhost:8000")
    SIGN_IN_URL: str = os.getenv("STOREFRONT_SIGN_IN_URL", "/signin")
    HTTP_TIMEOUT: float = float(os.getenv("STOREFRONT_HTTP_TIMEOUT", "10"))
    TOAST_LIMIT: int = int(os.getenv("STOREFRONT_TOAST_LIMIT", "5"))
    LOG_LEVEL: str = os.getenv("STOREFRONT_LOG_LEVEL", "INFO")

settings = Settings()
