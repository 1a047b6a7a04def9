from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    DEFAULT_PER_PAGE: int = 10
    MAX_PER_PAGE: int = 100  # enforced by the request adapter only
    DEFAULT_ORDER_BY: str = "id"
    DEFAULT_ORDER_DIRECTION: str = "asc"

    SEARCH_CASE_INSENSITIVE: bool = True
    LOG_QUERY_PLAN: bool = False

settings = Settings()
