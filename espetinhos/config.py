from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Espetinhos PDV"
    DATABASE_URL: str = "sqlite:///./espetinhos.db"

    # Timestamps are stored and reported in this zone
    TIMEZONE: str = "America/Sao_Paulo"

    LOG_LEVEL: str = "INFO"

    # Unit for inventory items created together with a product
    DEFAULT_UNIT: str = "un"

    REPORT_TOP_LIMIT: int = 5

    # Webhook: list of callback URLs notified after settlements (comma-separated)
    WEBHOOK_URLS: str = ""
    WEBHOOK_TIMEOUT: float = 10.0

    model_config = {"env_file": ".env"}


settings = Settings()
