"""
Builds the analysis services once at startup. Credentials are read here and nowhere else;
the orchestrator gets its gateway injected and lives on app.state.
"""
import logging

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.errors import ConfigurationError
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.api_usage import ApiUsageRecorder
from app.services.gemini_provider import GeminiProvider
from app.services.model_gateway import ModelGateway
from app.services.plan_resolver import PlanResolver
from app.services.redis_analysis_cache import RedisAnalysisCache
from app.services.result_cache import ResultCache
from app.services.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings, session_factory: sessionmaker) -> ModelGateway:
    if not settings.gemini_api_key:
        raise ConfigurationError("GEMINI_API_KEY is missing")
    primary = GeminiProvider(settings.gemini_api_key, name="gemini-primary")
    backup = None
    if settings.gemini_backup_api_key:
        backup = GeminiProvider(settings.gemini_backup_api_key, name="gemini-backup")
    else:
        logger.warning("GEMINI_BACKUP_API_KEY not set; upstream failures will not be retried")
    return ModelGateway(
        primary,
        backup,
        economy_model=settings.gemini_model_economy,
        premium_model=settings.gemini_model_premium,
        timeout_seconds=settings.model_timeout_seconds,
        recorder=ApiUsageRecorder(session_factory),
    )


def build_orchestrator(
    settings: Settings,
    session_factory: sessionmaker,
    gateway: ModelGateway,
    redis_cache: RedisAnalysisCache | None = None,
    ledger: UsageLedger | None = None,
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        cache=ResultCache(session_factory, settings.analysis_prompt_version, redis_cache=redis_cache),
        plans=PlanResolver(session_factory, settings),
        ledger=ledger or UsageLedger(session_factory),
        gateway=gateway,
        hand_deck_context_limit=settings.hand_deck_context_limit,
    )


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    """FastAPI dependency: the orchestrator built in the app lifespan."""
    return request.app.state.orchestrator
