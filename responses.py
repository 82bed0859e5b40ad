"""
OpenAI Responses API helpers
Builds image generation requests and picks image results out of responses
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from openai import OpenAI

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4.1-mini"
IMAGE_GENERATION_TOOL = {"type": "image_generation"}


@dataclass(frozen=True)
class FreshRequest:
    prompt: str


@dataclass(frozen=True)
class RefinementRequest:
    prompt: str
    prior_call_id: str


ImageRequest = Union[FreshRequest, RefinementRequest]


def get_model_name() -> str:
    """Model used for Responses API image generation, overridable from the environment."""
    return os.getenv("ASSET_GENERATOR_MODEL") or DEFAULT_MODEL


def _format_request_input(request: ImageRequest) -> Union[str, List[Dict[str, Any]]]:
    """Convert an image request into the Responses API input format."""
    if isinstance(request, RefinementRequest):
        return [
            {
                "role": "user",
                "content": [{"type": "input_text", "text": request.prompt}],
            },
            {
                "type": "image_generation_call",
                "id": request.prior_call_id,
            },
        ]
    return request.prompt


def _extract_image_calls(response: Any) -> List[Any]:
    """Safely collect the image_generation_call items from a Responses API payload."""
    return [
        item for item in getattr(response, "output", []) or []
        if getattr(item, "type", None) == "image_generation_call"
    ]


def create_image_response(client: OpenAI, request: ImageRequest) -> List[Any]:
    """
    Send an image request to the Responses API.

    Args:
        client: OpenAI client to call with
        request: A fresh prompt or a refinement of an earlier generation

    Returns:
        The image_generation_call output items, possibly empty
    """
    model = get_model_name()
    logger.debug(f"Calling OpenAI Responses API with model: {model} ({type(request).__name__})")
    response = client.responses.create(
        model=model,
        input=_format_request_input(request),
        tools=[IMAGE_GENERATION_TOOL],
    )

    image_calls = _extract_image_calls(response)
    logger.debug(f"Received {len(image_calls)} image generation call(s)")
    return image_calls
