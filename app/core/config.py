from typing import List, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "Trackaro"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    FRONTEND_URL: str = Field(default="http://localhost:3000")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # DynamoDB
    DYNAMO_REGION: str = Field(default="ap-south-1")
    DYNAMO_USERS_TABLE: str = Field(default="trackaro-users")
    DYNAMO_EXPENSES_TABLE: str = Field(default="trackaro-expenses")
    DYNAMO_MESSAGES_TABLE: str = Field(default="trackaro-messages")
    DYNAMO_STATE_TABLE: str = Field(default="trackaro-conversation-state")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production", validation_alias="JWT_SECRET")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # External NLU service
    AI_SERVICE_URL: str = Field(default="http://localhost:8001/process")
    AI_SERVICE_TIMEOUT: float = 30.0
    AI_SERVICE_PROBE_TIMEOUT: float = 10.0

    # Recommendations
    WINDOW_DAYS: int = 30
    ANNUAL_RETURN_RATE: float = 0.12
    REDUCTION_PERCENTAGES: Tuple[int, ...] = (5, 10, 15)
    SIP_HORIZON_YEARS: Tuple[int, ...] = (5, 10)
    ASSUMED_SAVINGS_RATE: float = 0.10
    ACHIEVABLE_WITHIN_MONTHS: int = 60
    EMERGENCY_FUND_DAYS: int = 90
    CURRENCY_SYMBOL: str = "₹"


settings = Settings()
