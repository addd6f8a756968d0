from pydantic_settings import BaseSettings, NoDecode
from pydantic import field_validator
from typing import Annotated, Optional, List, Union


class Settings(BaseSettings):
    # Database
    database_url: str

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_password: Optional[str] = None
    redis_db: int = 0

    # Firebase
    firebase_project_id: str
    firebase_credentials_path: str

    # API
    api_v1_str: str = "/api/v1"

    # Environment
    environment: str = "development"
    debug: bool = True

    # CORS
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:5173"]

    # Accounts workflow
    admin_emails: Annotated[List[str], NoDecode] = []
    grace_period_days: int = 7
    notification_cap: int = 200  # 0 = unlimited
    workflow_lock_timeout_seconds: int = 10
    workflow_lock_block_seconds: int = 5

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator('cors_origins', 'admin_emails', mode='before')
    @classmethod
    def parse_comma_separated(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse list settings from environment variable (comma-separated) or use default list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(',') if item.strip()]
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from environment


settings = Settings()
