"""AI evaluation of normalized items with model fallback.

The evaluator walks an ordered list of model attempts. The first attempt whose
response parses and validates wins. When every attempt fails the item gets a
deterministic degraded result and a warning alert is emitted; evaluation
failure never propagates to the caller.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import ValidationError

from signal_intake.alerts import AlertEmitter
from signal_intake.config.models import EvaluationConfig
from signal_intake.domain.models import (
    AlertSeverity,
    EvaluationProvenance,
    EvaluationResult,
    NormalizedItem,
    SourceType,
)
from signal_intake.logging import get_logger

from .client import ChatCompletionClient
from .exceptions import AIEvaluationError
from .prompts import COMPANY_SCORING_PROMPT, JOB_EVALUATION_PROMPT, EvaluationPrompt

logger = get_logger(__name__, component="evaluator")

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


@dataclass(frozen=True)
class ModelAttempt:
    """One model to try, in order."""

    model: str
    client: ChatCompletionClient
    provenance: EvaluationProvenance = EvaluationProvenance.PRIMARY


def build_model_attempts(
    primary_model: str,
    fallback_model: Optional[str],
    client: ChatCompletionClient,
) -> List[ModelAttempt]:
    """Primary attempt first, then the fallback when one is configured and differs."""
    attempts = [ModelAttempt(primary_model, client, EvaluationProvenance.PRIMARY)]
    if fallback_model and fallback_model != primary_model:
        attempts.append(ModelAttempt(fallback_model, client, EvaluationProvenance.FALLBACK))
    return attempts


def strip_code_fences(content: str) -> str:
    """Remove a leading ```json (or ```) fence and a trailing ``` fence."""
    text = content.strip()
    text = _FENCE_START.sub("", text)
    text = _FENCE_END.sub("", text)
    return text.strip()


def parse_response(content: str, prompt: EvaluationPrompt, model: str) -> EvaluationResult:
    """Parse and strictly validate one model response.

    Raises:
        AIEvaluationError: If the content is not a JSON object of the expected shape
    """
    text = strip_code_fences(content)
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise AIEvaluationError(f"Response was not valid JSON: {e}", model=model) from e

    if not isinstance(data, dict):
        raise AIEvaluationError(
            f"Expected a JSON object, got {type(data).__name__}", model=model
        )

    try:
        response = prompt.response_schema.model_validate(data)
    except ValidationError as e:
        raise AIEvaluationError(
            f"Response failed validation ({e.error_count()} errors): {e}", model=model
        ) from e

    return prompt.to_result(response, model)


class Evaluator:
    """Scores items with the job prompt or, for place leads, the company prompt.

    Args:
        job_attempts: Ordered attempts for job postings
        company_attempts: Ordered attempts for place leads (defaults to job_attempts)
        alert_emitter: Receives a warning when an item falls back to the degraded result
        temperature: Sampling temperature for every attempt
        attempt_timeout: Upper bound in seconds for a single attempt, or None
    """

    def __init__(
        self,
        job_attempts: List[ModelAttempt],
        company_attempts: Optional[List[ModelAttempt]] = None,
        alert_emitter: Optional[AlertEmitter] = None,
        temperature: float = 0.3,
        attempt_timeout: Optional[float] = None,
    ) -> None:
        if not job_attempts:
            raise ValueError("At least one model attempt is required")
        self.job_attempts = list(job_attempts)
        self.company_attempts = list(company_attempts or job_attempts)
        self.alert_emitter = alert_emitter
        self.temperature = temperature
        self.attempt_timeout = attempt_timeout

    @classmethod
    def from_config(
        cls,
        config: EvaluationConfig,
        client: ChatCompletionClient,
        alert_emitter: Optional[AlertEmitter] = None,
    ) -> "Evaluator":
        return cls(
            job_attempts=build_model_attempts(config.primary_model, config.fallback_model, client),
            company_attempts=build_model_attempts(
                config.company_primary_model, config.company_fallback_model, client
            ),
            alert_emitter=alert_emitter,
            temperature=config.temperature,
            attempt_timeout=config.request_timeout_seconds,
        )

    def _plan(self, item: NormalizedItem):
        if item.source == SourceType.GOOGLE_MAPS:
            return COMPANY_SCORING_PROMPT, self.company_attempts
        return JOB_EVALUATION_PROMPT, self.job_attempts

    async def evaluate(self, item: NormalizedItem) -> EvaluationResult:
        """Evaluate one item. Never raises for AI failures."""
        prompt, attempts = self._plan(item)
        user_prompt = prompt.render(item)
        errors: List[str] = []

        for attempt in attempts:
            try:
                result = await self._attempt(attempt, prompt, user_prompt)
            except AIEvaluationError as e:
                errors.append(f"{attempt.model}: {e}")
                logger.warning(
                    f"Model {attempt.model} failed for item {item.external_id}: {e}",
                    extra={
                        "event": "evaluation.attempt.failed",
                        "model": attempt.model,
                        "attempt": attempt.provenance.value,
                        "external_id": item.external_id,
                    },
                )
                continue

            logger.debug(
                f"Evaluated {item.external_id} with {attempt.model}",
                extra={
                    "event": "evaluation.attempt.succeeded",
                    "model": attempt.model,
                    "attempt": attempt.provenance.value,
                    "external_id": item.external_id,
                    "score": result.score,
                    "is_valid": result.is_valid,
                },
            )
            return result

        return self._degrade(item, errors)

    async def _attempt(
        self, attempt: ModelAttempt, prompt: EvaluationPrompt, user_prompt: str
    ) -> EvaluationResult:
        call = attempt.client.complete(
            system_prompt=prompt.system_prompt,
            user_prompt=user_prompt,
            model=attempt.model,
            temperature=self.temperature,
        )
        try:
            if self.attempt_timeout:
                content = await asyncio.wait_for(call, timeout=self.attempt_timeout)
            else:
                content = await call
        except asyncio.TimeoutError as e:
            raise AIEvaluationError(
                f"Timed out after {self.attempt_timeout} seconds", model=attempt.model
            ) from e
        except AIEvaluationError:
            raise
        except Exception as e:
            raise AIEvaluationError(f"{type(e).__name__}: {e}", model=attempt.model) from e

        if not content or not content.strip():
            raise AIEvaluationError("Response content was empty", model=attempt.model)

        result = parse_response(content, prompt, attempt.model)
        return result.model_copy(update={"provenance": attempt.provenance})

    def _degrade(self, item: NormalizedItem, errors: List[str]) -> EvaluationResult:
        message = "; ".join(errors) or "AI evaluation failed"
        logger.error(
            f"All model attempts failed for item {item.external_id}",
            extra={
                "event": "evaluation.degraded",
                "external_id": item.external_id,
                "attempts": len(errors),
            },
        )

        if self.alert_emitter is not None:
            self.alert_emitter.emit(
                source=item.source.value,
                stage="ai_evaluation",
                severity=AlertSeverity.WARNING,
                title="AI evaluation failed",
                message=f"Item {item.external_id} ({item.title}) received a degraded evaluation",
                metadata={
                    "external_id": item.external_id,
                    "company": item.company,
                    "errors": errors,
                },
            )

        return EvaluationResult.degraded(message)
