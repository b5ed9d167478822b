from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Teamdo"
    app_version: str = "0.1.0"

    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_key: str = ""

    allowed_origins: List[str] = ["http://localhost:5173"]

    default_max_members: int = 10
    max_members_limit: int = 100

    log_level: str = "INFO"
    log_dir: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
