"""Runtime configuration for Roadside Narrator."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix="ROADSIDE_NARRATOR_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "roadside-narrator"
    log_level: str = "INFO"

    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ROADSIDE_NARRATOR_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="Enables the OpenAI generation backend when set; the mock backend is used otherwise.",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("ROADSIDE_NARRATOR_OPENAI_MODEL", "OPENAI_MODEL"),
    )

    poi_radius_meters: int = 5_000
    poi_max_results: int = 10
    poi_fixture_path: str | None = Field(
        default=None,
        description="JSON file of points of interest served by the static POI provider.",
    )

    significance_threshold: float = 0.3
    max_ranked_pois: int = 3
    similarity_threshold: float = 0.6
    default_target_duration: int = 180
    generation_timeout_seconds: float = 60.0
    parallel_seed_generation: bool = True

    host: str = "127.0.0.1"
    port: int = 8000


settings = Settings()
