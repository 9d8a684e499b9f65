from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Workbench settings. Every field can be overridden with a WORKBENCH_*
    environment variable or a .env file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKBENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # type inference
    inference_sample_size: int = Field(default=1000, ge=1)
    numeric_threshold: float = 0.8
    categorical_max_distinct: int = 50
    categorical_unique_ratio: float = 0.2

    # profiling report
    chi_square_max_levels: int = 12
    report_zscore_threshold: float = 3.0
    top_k: int = 5

    # http layer only; the executor itself never caps rows
    preview_row_limit: int = 100

    # en-IN short date, e.g. 5/1/2024
    export_date_format: str = "{day}/{month}/{year}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
