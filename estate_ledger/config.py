"""Application configuration"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Estate Ledger API"
    app_version: str = "0.1.0"
    debug: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    # Database
    database_url: str = "sqlite+aiosqlite:///./estate_ledger.db"
    database_pool_size: int = 10

    # Roles and system accounts
    admin_address: str = "0xAdmin"
    registry_account: str = "0xPropertyRegistry"
    insurance_fund_account: str = "0xInsuranceFund"
    pool_account: str = "0xPoolTreasury"
    wrap_vault_account: str = "0xWrappedVault"

    # Utility token
    token_name: str = "Estate Utility Token"
    token_symbol: str = "EUT"
    token_decimals: int = 0
    token_cap: int = 1_000_000_000

    # Platform parameters (seed values, admin-adjustable at runtime)
    fee_bps: int = 250  # 2.5%
    max_fee_bps: int = 1000  # 10%
    fee_recipient: str = "0xFeeRecipient"
    min_investment: int = 100

    # Order book
    max_order_duration_days: int = 90

    # Governance
    voting_period_seconds: int = 7 * 24 * 60 * 60
    proposal_threshold: int = 1000
    vote_threshold: int = 1
    quorum_bps: int = 1000  # 10% of total supply

    # Faucet (demo networks only)
    faucet_enabled: bool = False
    faucet_amount: int = 10_000
    faucet_cooldown_seconds: int = 24 * 60 * 60

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
