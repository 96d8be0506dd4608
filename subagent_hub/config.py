from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "SH_", "env_file": ".env", "env_file_encoding": "utf-8"}

    jwt_secret: str = Field(min_length=32)
    jwt_audience: str = Field(default="authenticated")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    db_path: str = Field(default="subagent_hub.db")
    cors_origins: str = Field(default="http://localhost:3000")

    # GitHub
    github_token: str = Field(default="")
    github_api_url: str = Field(default="https://api.github.com")
    github_timeout_seconds: float = Field(default=10.0, gt=0)
    github_fetch_concurrency: int = Field(default=4, ge=1, le=32)

    # Import pipeline
    import_concurrency: int = Field(default=3, ge=1, le=16)

    rate_limit_enabled: bool = Field(default=True)


settings = Settings()
