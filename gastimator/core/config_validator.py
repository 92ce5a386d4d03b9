# Run at startup to validate all configs and secrets.
from gastimator.core.config import settings
from gastimator.core.logger import log

def validate():
    log.info("--- CONFIG VALIDATION START ---")
    errors = []

    if not settings.ALCHEMY_API_KEY or not settings.ALCHEMY_API_KEY.get_secret_value():
        errors.append(
            "Missing required configuration: ALCHEMY_API_KEY "
            "(export ALCHEMY_API_KEY=your_key or pass --key)"
        )
    if settings.RPC_TIMEOUT_SECONDS <= 0:
        errors.append(f"RPC_TIMEOUT_SECONDS must be positive, got {settings.RPC_TIMEOUT_SECONDS}")
    if settings.CACHE_MAX_ENTRIES < 0:
        errors.append(f"CACHE_MAX_ENTRIES must be >= 0, got {settings.CACHE_MAX_ENTRIES}")
    if not 0 <= settings.PORT <= 65535:
        errors.append(f"PORT must be within 0-65535, got {settings.PORT}")

    if errors:
        for error in errors:
            log.critical(error)
        raise ValueError("System configuration is incomplete. Halting.")

    log.info("--- CONFIG VALIDATION PASSED ---")

if __name__ == "__main__":
    validate()
