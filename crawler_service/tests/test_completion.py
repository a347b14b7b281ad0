"""Tests for the Gemini completion client and cost model."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.genai import errors

from crawler_service.analysis.backoff import RetriesExhaustedError, RetryConfig
from crawler_service.analysis.completion import (
    MODEL_PRICING,
    CompletionError,
    GeminiCompletionClient,
    ModelPricing,
    calculate_cost,
    strip_json_fencing,
)


def _usage(prompt_tokens, output_tokens):
    return SimpleNamespace(prompt_token_count=prompt_tokens, candidates_token_count=output_tokens)


def _response(text, prompt_tokens=1000, output_tokens=500):
    return SimpleNamespace(text=text, usage_metadata=_usage(prompt_tokens, output_tokens))


def _overloaded():
    payload = {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}
    return errors.ServerError(503, payload)


@pytest.fixture
def genai_client():
    return MagicMock()


@pytest.fixture
def completion_client(genai_client):
    sleeps = []
    client = GeminiCompletionClient(
        "gemini-2.5-flash",
        client=genai_client,
        retry_config=RetryConfig(max_attempts=3),
        sleep=sleeps.append,
    )
    client.sleeps = sleeps
    return client


def test_cost_matches_pricing_table():
    """Cost is tokens per million times the model's rates."""
    pricing = MODEL_PRICING["gemini-2.5-flash"]
    assert calculate_cost(_usage(1_000_000, 1_000_000), pricing) == pytest.approx(2.8)
    lite = MODEL_PRICING["gemini-2.5-flash-lite"]
    assert calculate_cost(_usage(1_000_000, 1_000_000), lite) == pytest.approx(0.5)


def test_cost_is_linear():
    """Doubling token counts doubles the cost."""
    pricing = ModelPricing(input_cost_per_1m=0.3, output_cost_per_1m=2.5)
    single = calculate_cost(_usage(40_000, 2_000), pricing)
    double = calculate_cost(_usage(80_000, 4_000), pricing)
    assert double == pytest.approx(2 * single)


def test_cost_is_rounded_to_six_decimals():
    """Sub-micro-dollar precision is rounded away."""
    pricing = ModelPricing(input_cost_per_1m=0.3, output_cost_per_1m=2.5)
    cost = calculate_cost(_usage(1, 1), pricing)
    assert cost == round(cost, 6)
    assert cost == pytest.approx(0.000003)


def test_missing_usage_counts_as_zero():
    """Absent usage metadata costs nothing."""
    pricing = MODEL_PRICING["gemini-2.5-flash"]
    assert calculate_cost(None, pricing) == 0
    assert calculate_cost(SimpleNamespace(prompt_token_count=None), pricing) == 0


@pytest.mark.parametrize(
    "raw",
    [
        '```json\n{"a": 1}\n```',
        "```\n{\"a\": 1}\n```",
        '  {"a": 1}  ',
        '```JSON {"a": 1}```',
    ],
)
def test_strip_json_fencing(raw):
    """Code fences and language tags are removed before parsing."""
    assert strip_json_fencing(raw) == '{"a": 1}'


def test_prompt_with_image_sends_png_and_parses_json(tmp_path, genai_client, completion_client):
    """Image prompts read the file, parse fenced JSON and report cost."""
    image = tmp_path / "shot.png"
    image.write_bytes(b"\x89PNG")
    genai_client.models.generate_content.return_value = _response('```json\n{"username": "alice"}\n```')

    completion = completion_client.prompt_with_image("describe", image, json_mode=True, temperature=0)

    assert completion.response == {"username": "alice"}
    assert completion.cost == pytest.approx(0.00155)
    assert completion_client.total_cost == pytest.approx(0.00155)
    kwargs = genai_client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-2.5-flash"
    assert kwargs["contents"][-1] == "describe"
    assert kwargs["config"].temperature == 0


def test_prompt_with_missing_image_returns_none(tmp_path, genai_client, completion_client):
    """An unreadable image yields no completion and no model call."""
    assert completion_client.prompt_with_image("describe", tmp_path / "missing.png") is None
    genai_client.models.generate_content.assert_not_called()


def test_prompt_with_video_retries_malformed_json(genai_client, completion_client):
    """Malformed JSON is retried with backoff until the model answers properly."""
    genai_client.models.generate_content.side_effect = [
        _response("not json"),
        _response('{"comments": []}'),
    ]
    completion = completion_client.prompt_with_video("comments", "gs://bucket/a.mp4", json_mode=True)
    assert completion.response == {"comments": []}
    assert genai_client.models.generate_content.call_count == 2
    assert completion_client.sleeps == [1.0]


def test_overloaded_model_is_retried_then_exhausted(genai_client, completion_client):
    """503 responses are transient; three of them exhaust the retries."""
    genai_client.models.generate_content.side_effect = [_overloaded(), _overloaded(), _overloaded()]
    with pytest.raises(RetriesExhaustedError):
        completion_client.prompt("hello")
    assert genai_client.models.generate_content.call_count == 3
    assert completion_client.sleeps == [1.0, 2.0]


def test_empty_text_is_fatal(genai_client, completion_client):
    """A response without text fails immediately."""
    genai_client.models.generate_content.return_value = _response("")
    with pytest.raises(CompletionError):
        completion_client.prompt("hello")
    assert genai_client.models.generate_content.call_count == 1


def test_plain_text_prompt(genai_client, completion_client):
    """Without JSON mode the raw text comes back."""
    genai_client.models.generate_content.return_value = _response("hi there")
    assert completion_client.prompt("hello").response == "hi there"


def test_unknown_model_is_rejected(genai_client):
    """Only priced models can be used."""
    with pytest.raises(ValueError):
        GeminiCompletionClient("gpt-4", client=genai_client)
