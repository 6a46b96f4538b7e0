from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    habits_api_key: str | None = None
    log_level: str = "INFO"

    # Content source: GET {content_api_url}/habits/{content_dataset}-{lang}.json
    content_api_url: str = "http://localhost:3002"
    content_dataset: str = "multilingual-science-habits"
    content_timeout_seconds: float = 5.0  # Overall bound per document fetch

    primary_language: str = "en"
    supported_languages: list[str] = ["en", "de"]

    # Catalog cache, keyed by language set, invalidated wholesale
    catalog_cache_ttl_seconds: float = 300.0
    catalog_static_fallback: bool = True  # Serve the built-in sample when the primary fetch fails

    # Research strength policy for category rankings (average effectiveness, 0–10)
    ranking_high_strength_threshold: float = 8.5  # >= high
    ranking_low_strength_threshold: float = 7.5  # < low

    # Recommendation policy: always show this many primaries across the selected goals
    recommendations_total: int = 3
    recommendations_alternates_per_goal: int = 2
    global_ranking_default_limit: int = 10

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
