"""Analysis pipeline: Gemini completions with backoff, cost tracking and shape validation."""

from .backoff import RetriesExhaustedError, RetryConfig, TransientCompletionError, retry_with_backoff
from .completion import Completion, CompletionError, GeminiCompletionClient, calculate_cost
from .media_analysis import (
    AnalysisConfig,
    AnalysisRequest,
    AnalysisResult,
    AnalysisValidationError,
    ImageInput,
    MediaAnalysisService,
    VideoInput,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisValidationError",
    "Completion",
    "CompletionError",
    "GeminiCompletionClient",
    "ImageInput",
    "MediaAnalysisService",
    "RetriesExhaustedError",
    "RetryConfig",
    "TransientCompletionError",
    "VideoInput",
    "calculate_cost",
    "retry_with_backoff",
]
