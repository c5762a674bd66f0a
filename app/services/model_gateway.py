"""
Model gateway: one Gemini call per analysis, with timeout, backup key and strict JSON parsing.

- Model choice: premium deck analyses use the premium model; card and hand always use
  the economy model, whatever the plan.
- Each attempt is bounded by timeout_seconds (asyncio.wait_for cancels the attempt).
- Primary error or timeout -> one retry on the backup provider, if configured.
- Unparseable output -> MalformedResponse, not retried (contract problem, not availability).
- Token usage goes to api_usage in a background task; failures there are logged only.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import ValidationError

from app.errors import ConfigurationError, MalformedResponse, UpstreamFailure
from app.models.user_subscription import PlanTier
from app.schemas.analysis import RESULT_MODELS, AnalysisKind
from app.services.api_usage import ApiUsageRecorder
from app.services.prompts import Prompt

logger = logging.getLogger(__name__)


@dataclass
class ProviderResponse:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class ModelProvider(ABC):
    """Anything that turns a prompt into model text. Gemini in production, fakes in tests."""

    name: str = "provider"

    @abstractmethod
    async def generate(self, model: str, prompt: Prompt) -> ProviderResponse:
        ...


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` wrappers the model sometimes adds despite instructions."""
    return text.replace("```json", "").replace("```", "").strip()


def parse_structured(kind: AnalysisKind, text: str) -> dict:
    clean = strip_code_fences(text or "")
    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        logger.error("JSON parse error for %s analysis. Raw text: %.500s", kind.value, text)
        raise MalformedResponse("Failed to process AI response", raw_text=text) from e
    if not isinstance(data, dict):
        raise MalformedResponse("AI response is not a JSON object", raw_text=text)
    try:
        result = RESULT_MODELS[kind].model_validate(data)
    except ValidationError as e:
        logger.error("AI %s response does not match expected shape: %s", kind.value, e)
        raise MalformedResponse("AI response has an unexpected shape", raw_text=text) from e
    return result.model_dump()


class ModelGateway:
    def __init__(
        self,
        primary: ModelProvider | None,
        backup: ModelProvider | None = None,
        *,
        economy_model: str,
        premium_model: str,
        timeout_seconds: float,
        recorder: ApiUsageRecorder | None = None,
    ):
        if primary is None:
            raise ConfigurationError("GEMINI_API_KEY is missing")
        self._primary = primary
        self._backup = backup
        self._economy_model = economy_model
        self._premium_model = premium_model
        self._timeout = timeout_seconds
        self._recorder = recorder
        self._pending: set[asyncio.Task] = set()

    def select_model(self, tier: PlanTier, kind: AnalysisKind) -> str:
        if kind == AnalysisKind.DECK and tier == PlanTier.PREMIUM:
            return self._premium_model
        return self._economy_model

    async def invoke(self, tier: PlanTier, kind: AnalysisKind, prompt: Prompt) -> dict:
        model = self.select_model(tier, kind)
        response = await self._call_with_fallback(model, kind, prompt)
        self._schedule_accounting(model, kind, response)
        return parse_structured(kind, response.text)

    async def _attempt(self, provider: ModelProvider, model: str, prompt: Prompt) -> ProviderResponse:
        return await asyncio.wait_for(provider.generate(model, prompt), timeout=self._timeout)

    async def _call_with_fallback(self, model: str, kind: AnalysisKind, prompt: Prompt) -> ProviderResponse:
        try:
            return await self._attempt(self._primary, model, prompt)
        except Exception as e:
            reason = "timeout" if isinstance(e, asyncio.TimeoutError) else repr(e)
            if self._backup is None:
                logger.error("Gemini %s call failed on %s (%s); no backup configured", kind.value, self._primary.name, reason)
                raise UpstreamFailure("AI service temporarily unavailable. Please try again later.") from e
            logger.warning("Gemini %s call failed on %s (%s); retrying on %s", kind.value, self._primary.name, reason, self._backup.name)

        try:
            return await self._attempt(self._backup, model, prompt)
        except Exception as e:
            logger.exception("Gemini %s call failed on backup %s", kind.value, self._backup.name)
            raise UpstreamFailure("AI service temporarily unavailable. Please try again later.") from e

    def _schedule_accounting(self, model: str, kind: AnalysisKind, response: ProviderResponse) -> None:
        if self._recorder is None:
            return
        task = asyncio.create_task(
            self._record_usage(model, kind.value, response.input_tokens, response.output_tokens)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_usage(self, model: str, operation: str, input_tokens: int, output_tokens: int) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._recorder.record, model, operation, input_tokens, output_tokens)
        except Exception as e:
            logger.warning("api_usage write failed (analysis already returned): %s", e)

    async def drain(self) -> None:
        """Wait for pending accounting writes (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
