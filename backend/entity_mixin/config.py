"""
Application configuration loaded from environment variables.
"""
import secrets
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Runtime mode
    environment: str = "development"
    test_integration: bool = False
    test_e2e: bool = False
    only_generate: bool = False

    # ID obfuscation
    hashid_salt: Optional[str] = None
    hashid_min_length: int = 0

    # Storage
    mongo_uri: str = "mongodb://localhost/data"
    local_store_dir: Optional[str] = None
    corrupt_alert_threshold: float = 0.5

    # Entity services mounted by the application
    entity_collections: list[str] = []

    # JWT Configuration
    jwt_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    jwt_algorithm: str = "HS256"

    # Logging
    log_level: str = "INFO"

    @property
    def testing(self) -> bool:
        """True when running under the unit test suite."""
        return self.environment == "test"

    @property
    def use_memory_store(self) -> bool:
        """Unit tests and generate-only runs never touch a real store."""
        return (self.testing and not self.test_integration) or self.only_generate

    @property
    def clear_on_start(self) -> bool:
        """End-to-end and integration runs start from an empty collection."""
        return self.test_e2e or self.test_integration

    def resolve_hashid_salt(self) -> Optional[str]:
        """
        Return the configured salt.

        Test and e2e runs without a configured salt get a random one so the
        codec can still be built. The generated value is kept on the
        settings instance, so every service sharing it agrees on ids.
        """
        if not self.hashid_salt and (self.testing or self.test_e2e):
            self.hashid_salt = secrets.token_hex(32)
        return self.hashid_salt


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
