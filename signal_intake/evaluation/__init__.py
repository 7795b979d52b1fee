"""AI evaluation: prompts, the chat client and the fallback-aware evaluator."""

from .client import ChatCompletionClient, OpenAIChatClient
from .evaluator import (
    Evaluator,
    ModelAttempt,
    build_model_attempts,
    parse_response,
    strip_code_fences,
)
from .exceptions import AIEvaluationError
from .prompts import (
    COMPANY_SCORING_PROMPT,
    JOB_EVALUATION_PROMPT,
    CompanyScoringResponse,
    EvaluationPrompt,
    JobEvaluationResponse,
)

__all__ = [
    "ChatCompletionClient",
    "OpenAIChatClient",
    "Evaluator",
    "ModelAttempt",
    "build_model_attempts",
    "parse_response",
    "strip_code_fences",
    "AIEvaluationError",
    "EvaluationPrompt",
    "JOB_EVALUATION_PROMPT",
    "COMPANY_SCORING_PROMPT",
    "JobEvaluationResponse",
    "CompanyScoringResponse",
]
