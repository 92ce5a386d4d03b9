import sys
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Remote estimator (Alchemy JSON-RPC)
    ALCHEMY_API_KEY: SecretStr | None = None
    ALCHEMY_BASE_URL: str = "https://eth-mainnet.g.alchemy.com/v2"
    RPC_TIMEOUT_SECONDS: float = 10.0

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Identity cache, 0 disables the LRU bound
    CACHE_MAX_ENTRIES: int = 100_000

    # Operational Settings
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: SecretStr | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def alchemy_url(self) -> str | None:
        """Full Alchemy endpoint, ``None`` when no key is configured."""
        if self.ALCHEMY_API_KEY is None:
            return None
        return f"{self.ALCHEMY_BASE_URL.rstrip('/')}/{self.ALCHEMY_API_KEY.get_secret_value()}"


try:
    settings = Settings()
except Exception as e:
    # Late import to avoid circular dependency only for logging the failure
    try:
        from gastimator.core.logger import get_logger, configure_logging
        configure_logging()
        log = get_logger("Gastimator.Config")
        log.critical("FAILED_TO_LOAD_SETTINGS", error=str(e))
    except Exception:
        print("FAILED_TO_LOAD_SETTINGS", e)
    sys.exit(1)
