from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field
from typing import Optional
import os


class InsightThresholds(BaseModel):
    """Thresholds consulted by the insight and recommendation rules."""

    # Team insights
    low_participation_standups: float = 5
    high_participation_standups: float = 20
    high_task_load: float = 8
    high_pr_load: float = 5
    recurring_blocker_count: int = 3
    high_blocker_frequency_pct: float = 50

    # Team recommendations
    min_active_members: int = 5
    task_rebalance_load: float = 6
    pr_review_load: float = 3
    blocker_sessions_count: int = 2

    # Submission insights
    open_reviews_warning: int = 3
    review_comment_warning: int = 10

    # Member insights / blocker analysis
    member_blocker_frequency_pct: float = 50
    frequent_blockers_count: int = 5


class ScoringWeights(BaseModel):
    """Coefficients and buckets of the productivity score."""

    task_weight: float = 2.0
    pr_weight: float = 1.5
    blocker_penalty: float = 10.0
    high_threshold: float = 6.0
    medium_threshold: float = 3.0

    # Team buckets by average tasks per member
    team_high_task_load: float = 5.0
    team_medium_task_load: float = 3.0


class TrendPolicy(BaseModel):
    """Fixed ratios used to classify a trend direction."""

    min_records: int = Field(default=6, ge=2)
    window_size: int = Field(default=3, ge=1)
    increase_ratio: float = 1.2
    decrease_ratio: float = 0.8


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore"
    )
    # Application
    app_name: str = "Standup Tracker"
    app_version: str = "1.0.0"
    debug: bool = False

    # Generative text
    llm_provider: str = "auto"  # auto, openai, groq or ollama
    openai_api_key: str = "not-needed"
    openai_model: str = "gpt-4"
    openai_api_base: Optional[str] = None
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    enable_ai_suggestions: bool = True
    question_timeout_seconds: float = Field(default=30.0, gt=0)

    # Issue tracker (Jira)
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None

    # Code review (GitHub)
    github_token: Optional[str] = None
    github_base_url: str = "https://api.github.com"

    integration_timeout_seconds: float = Field(default=10.0, gt=0)

    # Record store
    database_url: Optional[str] = None
    database_echo: bool = False
    store_batch_size: int = Field(default=25, ge=1)
    previous_updates_limit: int = Field(default=10, ge=1)

    # Logging
    log_level: str = "INFO"

    # Analytics
    thresholds: InsightThresholds = Field(default_factory=InsightThresholds)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    trend_policy: TrendPolicy = Field(default_factory=TrendPolicy)


# Environment-specific configurations
class DevelopmentConfig(Settings):
    debug: bool = True
    database_echo: bool = True
    log_level: str = "DEBUG"


class ProductionConfig(Settings):
    debug: bool = False
    database_echo: bool = False
    log_level: str = "WARNING"


class TestingConfig(Settings):
    database_url: Optional[str] = None
    enable_ai_suggestions: bool = False
    question_timeout_seconds: float = 1.0
    integration_timeout_seconds: float = 1.0


def get_settings() -> Settings:
    """Factory function to get settings based on environment"""
    env = os.getenv("ENVIRONMENT", "development").lower()

    if env == "production":
        return ProductionConfig()
    elif env == "testing":
        return TestingConfig()
    else:
        return DevelopmentConfig()
