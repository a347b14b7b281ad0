from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .completion import Completion

logger = logging.getLogger(__name__)

ShapeT = TypeVar("ShapeT", bound=BaseModel)

DEFAULT_MAX_APP_RETRIES = 3


@dataclass(frozen=True)
class ImageInput:
    path: Path


@dataclass(frozen=True)
class VideoInput:
    uri: str
    mime_type: str = "video/mp4"


MediaInput = Union[ImageInput, VideoInput]


@dataclass(frozen=True)
class AnalysisConfig(Generic[ShapeT]):
    prompt: str
    shape: type[ShapeT]


@dataclass(frozen=True)
class AnalysisRequest(Generic[ShapeT]):
    media: MediaInput
    config: AnalysisConfig[ShapeT]


@dataclass(frozen=True)
class AnalysisResult(Generic[ShapeT]):
    completion: Completion
    parsed: ShapeT


class AnalysisValidationError(RuntimeError):
    def __init__(self, *, attempts: int, completion: Optional[Completion], detail: str) -> None:
        super().__init__(f"Model output failed validation after {attempts} attempt(s): {detail}")
        self.attempts = attempts
        self.completion = completion
        self.detail = detail


class MediaAnalysisService:
    """
    Runs one extraction call per captured artifact and validates its shape.

    Two retry layers are stacked: the completion client retries transient
    provider failures with backoff, and `analyze` re-asks the model when a
    successful response does not match the requested shape.
    """

    def __init__(self, completion_client: Any, *, max_app_retries: int = DEFAULT_MAX_APP_RETRIES) -> None:
        self.completion_client = completion_client
        self.max_app_retries = max_app_retries

    def _complete(self, request: AnalysisRequest[Any], *, temperature: float) -> Optional[Completion]:
        prompt = request.config.prompt
        match request.media:
            case ImageInput(path=path):
                return self.completion_client.prompt_with_image(
                    prompt,
                    path,
                    json_mode=True,
                    temperature=temperature,
                )
            case VideoInput(uri=uri, mime_type=mime_type):
                return self.completion_client.prompt_with_video(
                    prompt,
                    uri,
                    mime_type=mime_type,
                    json_mode=True,
                    temperature=temperature,
                )
            case _:
                raise TypeError(f"Unsupported media input: {request.media!r}")

    def analyze(
        self,
        request: AnalysisRequest[ShapeT],
        *,
        temperature: float = 0,
        app_retry_count: int = 0,
        max_app_retries: Optional[int] = None,
    ) -> AnalysisResult[ShapeT]:
        limit = self.max_app_retries if max_app_retries is None else max_app_retries
        shape = request.config.shape

        completion: Optional[Completion] = None
        detail = "no attempts made"
        attempts = 0
        for retry_count in range(app_retry_count, limit + 1):
            attempts += 1
            completion = self._complete(request, temperature=temperature)
            if completion is None:
                detail = "completion client returned no completion"
            else:
                try:
                    parsed = shape.model_validate(completion.response)
                except ValidationError as e:
                    detail = str(e)
                else:
                    return AnalysisResult(completion=completion, parsed=parsed)

            if retry_count < limit:
                logger.warning(
                    "[analysis] %s validation failed (retry %d/%d): %s",
                    shape.__name__,
                    retry_count + 1,
                    limit,
                    detail,
                )

        raise AnalysisValidationError(attempts=attempts, completion=completion, detail=detail)
