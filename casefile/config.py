from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration for the casefile service."""

    repo_root: Path = Path(__file__).resolve().parent.parent
    state_dir: str = "state"

    # Case engine
    engine_latency: float = 0.4
    resume_placeholder: str = "..."
    strict_resume: bool = False

    # Resource economy
    initial_max_energy: int = 10
    daily_energy_allowance: int = 3
    daily_hint_allowance: int = 1
    hint_energy_cost: int = 1
    economy_timezone: str = "UTC"

    class Config:
        env_prefix = "CASEFILE_"

    @property
    def state_path(self) -> Path:
        return self.repo_root / self.state_dir

    @property
    def timezone(self) -> tzinfo:
        return ZoneInfo(self.economy_timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
