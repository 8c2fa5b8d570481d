import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="PLANNER_DATABASE_URL")
    database_pool_size: int = Field(10, alias="PLANNER_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="PLANNER_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="PLANNER_DATABASE_ECHO")
    checklist_concurrency: int = Field(4, ge=1, alias="PLANNER_CHECKLIST_CONCURRENCY")
    checklist_retries: int = Field(1, ge=0, alias="PLANNER_CHECKLIST_RETRIES")
    task_list_path: Optional[str] = Field(None, alias="PLANNER_TASK_LIST_PATH")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
