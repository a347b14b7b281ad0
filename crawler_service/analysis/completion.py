"""
Generative-AI completion capability backed by Gemini (`google-genai`).

Supports prompting with text, an inline image, or a video stored in Cloud
Storage. Each call is wrapped in `retry_with_backoff`; overload responses and
unparseable JSON are reported as transient so they get retried.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from google import genai
from google.genai import errors, types

from ..mobile.env import ensure_dotenv_loaded
from .backoff import RetryConfig, TransientCompletionError, retry_with_backoff

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    pass


@dataclass(frozen=True)
class ModelPricing:
    input_cost_per_1m: float
    output_cost_per_1m: float


MODEL_PRICING: dict[str, ModelPricing] = {
    "gemini-2.5-flash": ModelPricing(input_cost_per_1m=0.30, output_cost_per_1m=2.50),
    "gemini-2.5-flash-lite": ModelPricing(input_cost_per_1m=0.10, output_cost_per_1m=0.40),
}

_OVERLOADED_STATUS = 503

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")


@dataclass(frozen=True)
class Completion:
    response: Any
    cost: float


def calculate_cost(usage: Any, pricing: ModelPricing) -> float:
    """USD cost of one call, rounded to 6 decimals. Missing token counts count as zero."""
    input_tokens = getattr(usage, "prompt_token_count", None) or 0
    output_tokens = getattr(usage, "candidates_token_count", None) or 0
    input_cost = input_tokens / 1_000_000 * pricing.input_cost_per_1m
    output_cost = output_tokens / 1_000_000 * pricing.output_cost_per_1m
    return round(input_cost + output_cost, 6)


def strip_json_fencing(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_json_response(text: str) -> Any:
    try:
        return json.loads(strip_json_fencing(text))
    except json.JSONDecodeError as e:
        raise TransientCompletionError(f"Model returned malformed JSON: {e}") from e


def _client_from_env() -> genai.Client:
    ensure_dotenv_loaded()
    project = os.environ.get("GCP_PROJECT_ID", "").strip()
    if project:
        location = os.environ.get("GCP_PROJECT_REGION", "").strip() or "us-central1"
        return genai.Client(vertexai=True, project=project, location=location)
    api_key = os.environ.get("GEMINI_API_KEY", "").strip()
    if not api_key:
        raise CompletionError("Set GCP_PROJECT_ID (Vertex AI) or GEMINI_API_KEY to use Gemini")
    return genai.Client(api_key=api_key)


class GeminiCompletionClient:
    def __init__(
        self,
        model_name: str = "gemini-2.5-flash",
        *,
        client: Optional[genai.Client] = None,
        retry_config: RetryConfig = RetryConfig(),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if model_name not in MODEL_PRICING:
            raise ValueError(f"Unsupported model {model_name!r}; expected one of {sorted(MODEL_PRICING)}")
        self.model_name = model_name
        self.pricing = MODEL_PRICING[model_name]
        self.retry_config = retry_config
        self._sleep = sleep
        self._client = client if client is not None else _client_from_env()
        self.total_cost = 0.0

    def _generate(self, parts: list[Any], *, json_mode: bool, temperature: Optional[float]) -> Completion:
        def operation() -> Completion:
            try:
                result = self._client.models.generate_content(
                    model=self.model_name,
                    contents=parts,
                    config=types.GenerateContentConfig(
                        temperature=temperature,
                        response_mime_type="application/json" if json_mode else None,
                    ),
                )
            except errors.APIError as e:
                if e.code == _OVERLOADED_STATUS:
                    raise TransientCompletionError(f"Model overloaded: {e}") from e
                raise

            text = result.text
            if not text:
                raise CompletionError("Model did not return text")

            response = parse_json_response(text) if json_mode else text
            return Completion(response=response, cost=calculate_cost(result.usage_metadata, self.pricing))

        completion = retry_with_backoff(operation, self.retry_config, sleep=self._sleep)
        self.total_cost += completion.cost
        logger.debug("[completion] %s call cost $%.6f", self.model_name, completion.cost)
        return completion

    def prompt(self, prompt: str, *, json_mode: bool = False, temperature: Optional[float] = None) -> Completion:
        return self._generate([prompt], json_mode=json_mode, temperature=temperature)

    def prompt_with_image(
        self,
        prompt: str,
        image_path: str | Path,
        *,
        json_mode: bool = False,
        temperature: Optional[float] = None,
    ) -> Optional[Completion]:
        try:
            image_bytes = Path(image_path).read_bytes()
        except OSError as e:
            logger.error("[completion] could not read image %s: %s", image_path, e)
            return None
        parts = [types.Part.from_bytes(data=image_bytes, mime_type="image/png"), prompt]
        return self._generate(parts, json_mode=json_mode, temperature=temperature)

    def prompt_with_video(
        self,
        prompt: str,
        video_uri: str,
        *,
        mime_type: str = "video/mp4",
        json_mode: bool = False,
        temperature: Optional[float] = None,
    ) -> Optional[Completion]:
        parts = [types.Part.from_uri(file_uri=video_uri, mime_type=mime_type), prompt]
        return self._generate(parts, json_mode=json_mode, temperature=temperature)
