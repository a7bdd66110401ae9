from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    # JSON lines on stdout; set to false for human-readable local output.
    LOG_JSON: bool = True

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # Origin used to build shareable challenge links.
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Viral-loop throttling
    DAILY_INVITE_CAP: int = 3
    LOOP_COOLDOWN_SECONDS: int = 2 * 60 * 60

    # Observability sinks (ring sizes, oldest dropped)
    DECISION_LOG_SIZE: int = 100
    FUNNEL_EVENT_LIMIT: int = 1000

    # OpenAI-compatible chat completions endpoint used for copy generation.
    LLM_API_BASE: str = "https://api.openai.com/v1"
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT_SECONDS: float = 10.0

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
