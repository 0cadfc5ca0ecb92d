from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Sbanken (banking provider)
    sbanken_client_id: str
    sbanken_client_secret: str
    sbanken_customer_id: Optional[str] = None  # Required header for the v1 API only
    sbanken_account_id: str
    sbanken_api_version: Literal["v1", "v2"] = "v2"
    sbanken_discovery_endpoint: str = "https://auth.sbanken.no/identityserver"
    sbanken_api_base_url: Optional[str] = None  # Defaults depend on sbanken_api_version
    sbanken_transaction_page_length: int = 250

    # Card number fragments Sbanken embeds in transaction texts, e.g. "*7424"
    masked_card_tokens: List[str] = ["*7424", "*4137"]

    # YNAB (budgeting system)
    ynab_access_token: str
    ynab_budget_name: str
    ynab_account_name: str
    ynab_api_base_url: str = "https://api.ynab.com/v1"

    # Local dedup store
    database_path: Path = Path.home() / ".sbanken_ynab" / "sbanken_ynab.db"

    log_level: str = "INFO"
    http_timeout_seconds: float = 30.0

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()
