from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPERATORS = ["Chien-Yu", "Shu-Wei", "Yu-Hsuan", "Yi-Hsuan"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="RL_", extra="ignore")

    app_name: str = "Resale Ledger"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./resale_ledger.db"
    exports_root: Path = Path("/tmp/resale-ledger/exports")

    home_currency: str = "TWD"
    default_currency: str = "KRW"

    # fallback_one | reject
    missing_rate_policy: Literal["fallback_one", "reject"] = "fallback_one"
    # any | last
    batch_merge_scope: Literal["any", "last"] = "any"
    include_shipping_in_landed_cost: bool = True
    rates_snapshot_limit: int = Field(default=100, ge=1)

    operators: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OPERATORS),
        description="Operator roster shown when saving orders",
    )
    default_operator: str | None = None

    def model_post_init(self, __context) -> None:
        if self.default_operator and self.default_operator not in self.operators:
            raise ValueError(f"default_operator {self.default_operator!r} is not in the operator roster")

        if self.env.lower() == "dev":
            return

        if not self.operators:
            raise ValueError("an empty operator roster is not allowed outside dev mode; set RL_OPERATORS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
