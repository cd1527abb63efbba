"""
Centralized application configuration implementing the 12-Factor App methodology.
Allocation policy knobs are read from the environment alongside service metadata.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable configuration schema backed by environment variables."""

    APP_NAME: str = "Debt Waterfall Simulator"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    LOG_LEVEL: str = "INFO"

    # Month-0 lump sums clear these accounts first, in order (JSON list in env)
    FORCED_TARGETS: List[str] = ["DCU1", "DCU2"]
    FORCED_TARGET_CAP: float = 5000.0

    # Safety valve for scenarios that never converge
    MAX_SIMULATION_MONTHS: int = 600

    DEFAULT_MONTHLY_BUDGET: float = 3500.0
    DEFAULT_LUMP_SUM: float = 30000.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, frozen=True)


settings = Settings()
