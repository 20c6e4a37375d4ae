"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+pysqlite:///:memory:"

    # Attestation domain. Signatures made for one deployment never verify on another.
    domain_name: str = "GenerationLedger"
    domain_version: str = "1"
    chain_id: int = 1
    verifying_entity: str = "generation-ledger-local"

    # Ledger rules
    expected_sample_count: int = 96  # one sample every 15 minutes
    max_revision: int = 2**32 - 1

    # Initial role assignments, supplied by deployment
    admin_principal: str = "admin"
    snapshot_submitters: list[str] = []
    settlement_submitters: list[str] = []

    # principal -> raw API key
    bootstrap_api_keys: dict[str, str] = {}

    event_hash_algorithm: str = "sha256"

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
