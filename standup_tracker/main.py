from typing import Optional

from .agents.pattern_agent import PatternAnalysisAgent
from .agents.question_agent import QuestionGenerator
from .config import Settings, get_settings
from .database import create_session_factory, init_models
from .integrations import (
    GitHubClient,
    GitHubConfig,
    InMemoryRecordStore,
    JiraClient,
    JiraConfig,
    RecordStore,
    SQLRecordStore,
)
from .services.insight_engine import InsightEngine
from .services.llm_provider import LLMProvider
from .services.standup_service import StandupService
from .services.storage_service import RecordRepository
from .utils.logging import get_logger, setup_logging


async def create_record_store(settings: Settings) -> RecordStore:
    """SQL-backed store when a database URL is configured, in-memory otherwise"""
    if not settings.database_url:
        return InMemoryRecordStore()

    engine, session_factory = create_session_factory(
        settings.database_url,
        echo=settings.database_echo
    )
    await init_models(engine)
    return SQLRecordStore(session_factory)


async def create_standup_service(settings: Optional[Settings] = None) -> StandupService:
    """Wire a StandupService from settings"""
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    logger = get_logger(__name__)
    logger.info(f"Starting {settings.app_name} {settings.app_version}")

    store = await create_record_store(settings)
    text_adapter = LLMProvider(settings)

    jira = JiraClient(JiraConfig(
        base_url=settings.jira_base_url or "",
        email=settings.jira_email,
        api_token=settings.jira_api_token,
        timeout=settings.integration_timeout_seconds
    ))
    github = GitHubClient(GitHubConfig(
        base_url=settings.github_base_url,
        token=settings.github_token,
        timeout=settings.integration_timeout_seconds
    ))

    return StandupService(
        repository=RecordRepository(store, settings.store_batch_size),
        question_generator=QuestionGenerator(text_adapter, settings),
        settings=settings,
        issue_tracker=jira,
        code_review=github,
        insight_engine=InsightEngine(settings.thresholds),
        pattern_agent=PatternAnalysisAgent(text_adapter, settings)
    )
