import re

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "development"

    # LMS session token settings
    AUTH_TOKEN_SECRET: str
    AUTH_COOKIE_NAME: str = "auth-token"

    # Role allowed to inspect and clear tracked connections
    PRIVILEGED_ROLE: str = "profesor"

    # Connection registry settings
    CONNECTION_STALE_AFTER_SECONDS: int = 60 * 60
    CONNECTION_SWEEP_EVERY: int = 10
    # 0 disables the periodic sweep; lazy eviction still applies
    CONNECTION_BACKGROUND_SWEEP_SECONDS: int = 0

    # IP geolocation lookup (ip-api.com compatible)
    GEOLOOKUP_URL: str = "http://ip-api.com/json"
    GEOLOOKUP_FIELDS: str = (
        "status,message,country,countryCode,region,regionName,city,"
        "lat,lon,timezone,isp,org,as,query,proxy,hosting"
    )
    GEOLOOKUP_TIMEOUT_SECONDS: float = 5.0

    EXCLUDED_PATHS: re.Pattern = re.compile(
        r"^(/docs|/openapi.json|/health|/metrics)$"
    )

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/errors.log"
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"


app_settings = Settings()
