from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import validator

class Settings(BaseSettings):
    PROJECT_NAME: str = "FICA Onboarding API"
    VERSION: str = "0.1.0"
    DESCRIPTION: str = "Client onboarding (FICA/KYC) case management, messaging and administration"
    API_V1_STR: str = "/api/v1"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",  # Frontend development
        "http://localhost:9002",  # Frontend dev server
        "http://localhost:8000",  # Backend development
    ]

    # Database (in-memory by default, state is lost on restart)
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
    SQL_ECHO: bool = False

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 60 * 60 * 8

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Performance
    ENABLE_RESPONSE_COMPRESSION: bool = True

    # Onboarding
    MAX_UPLOAD_SIZE_BYTES: int = 5 * 1024 * 1024  # 5MB
    SEED_MOCK_DATA: bool = True

    # Chat
    TYPING_INDICATOR_TTL_SECONDS: float = 3.0

    # AI risk assessment
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    RISK_ASSESSMENT_TEMPERATURE: float = 0.1

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
