from pydantic import BaseModel
import os

class Settings(BaseModel):
    JWT_SECRET: str = os.getenv("MOCKAPI_JWT_SECRET", "mock-retailer-dev-secret-change-me-0123456789")
    JWT_ALGORITHM: str = os.getenv("MOCKAPI_JWT_ALGORITHM", "HS256")
    SESSION_COOKIE: str = os.getenv("MOCKAPI_SESSION_COOKIE", "session")
    SESSION_EXPIRES_SECONDS: int = int(os.getenv("MOCKAPI_SESSION_EXPIRES_SECONDS", "3600"))
    RETAILER_EMAIL: str = os.getenv("MOCKAPI_RETAILER_EMAIL", "retailer@example.com")
    RETAILER_PASSWORD: str = os.getenv("MOCKAPI_RETAILER_PASSWORD", "P@ssw0rd!")

settings = Settings()
