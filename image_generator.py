import os
import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from openai import OpenAI, OpenAIError

from assets import assets_dir, name_for
from menu import console
from prompt_config import PromptConfig, compose_prompt, load_prompt_config
from responses import FreshRequest, RefinementRequest, create_image_response

logger = logging.getLogger(__name__)

DEFAULT_LEGACY_MODEL = "dall-e-3"
SQUARE_SIZE = "1024x1024"
MAX_SIZE_ORIENTATIONS = {
    "Landscape (1792x1024)": "1792x1024",
    "Portrait (1024x1792)": "1024x1792",
}


class GenerationError(Exception):
    """Base class for failures of a single generation attempt."""


class EmptyResponse(GenerationError):
    pass


class MissingImageData(GenerationError):
    pass


class RemoteServiceError(GenerationError):
    pass


class AssetWriteError(GenerationError):
    """Raised when a generated image cannot be written to the assets directory."""


@dataclass(frozen=True)
class GenerationResult:
    filename: str
    image_call_id: Optional[str] = None

    @property
    def filepath(self) -> str:
        return os.path.join(assets_dir(), self.filename)


def _timestamp_millis() -> int:
    return int(time.time() * 1000)


def _legacy_model_name() -> str:
    return os.getenv("ASSET_GENERATOR_LEGACY_MODEL") or DEFAULT_LEGACY_MODEL


def _prepare_prompt(prompt: str, config: PromptConfig) -> str:
    """Compose the effective prompt and echo what will be sent."""
    final_prompt = compose_prompt(prompt, config)

    console.print("\n[bold]Your prompt:[/bold]")
    console.print(prompt, markup=False)
    if final_prompt != prompt:
        console.print("\n📝 [bold]System prompt applied:[/bold]")
        console.print(config.system_prompt, markup=False)
    return final_prompt


def _save_image(image_base64: str, call_id: Optional[str] = None) -> GenerationResult:
    """Decode and write an image into the assets directory."""
    try:
        image_bytes = base64.b64decode(image_base64)
    except ValueError as e:
        raise MissingImageData(f"Image data from OpenAI is not valid base64: {e}") from e
    result = GenerationResult(filename=name_for(_timestamp_millis(), call_id), image_call_id=call_id)

    try:
        os.makedirs(assets_dir(), exist_ok=True)
        with open(result.filepath, "wb") as f:
            f.write(image_bytes)
    except OSError as e:
        logger.error(f"Error writing {result.filepath}: {str(e)}")
        if os.path.isfile(result.filepath):
            os.remove(result.filepath)
        raise AssetWriteError(f"Could not save {result.filepath}: {e}") from e

    logger.info(f"Wrote {len(image_bytes)} bytes to {result.filepath}")
    console.print("\n✅ [green]Image generated successfully![/green]")
    console.print(f"📁 Saved as: {result.filename}")
    console.print(f"📍 Full path: {result.filepath}")
    if call_id:
        console.print(f"🔗 Image Call ID: {call_id}")
    return result


def generate_stateful(
    prompt: str,
    prior_call_id: Optional[str] = None,
    client: Optional[OpenAI] = None,
    config: Optional[PromptConfig] = None,
) -> GenerationResult:
    """
    Generate an image with the Responses API image_generation tool.

    Args:
        prompt: The operator's prompt or refinement instructions
        prior_call_id: Call id of an earlier image to refine
        client: OpenAI client, created from the environment when omitted
        config: Prompt config, loaded from disk when omitted

    Returns:
        The saved image, including the call id needed to refine it later
    """
    config = config or load_prompt_config()
    final_prompt = _prepare_prompt(prompt, config)

    if prior_call_id:
        request = RefinementRequest(prompt=final_prompt, prior_call_id=prior_call_id)
    else:
        request = FreshRequest(prompt=final_prompt)

    console.print("\n🚀 Processing with AI (Responses API)...")
    try:
        image_calls = create_image_response(client or OpenAI(), request)
    except OpenAIError as e:
        logger.error(f"Error in OpenAI API call: {str(e)}")
        raise RemoteServiceError(str(e)) from e

    if not image_calls:
        raise EmptyResponse("No image generation calls found in response")

    first_call = image_calls[0]
    image_base64 = getattr(first_call, "result", None)
    if not image_base64:
        raise MissingImageData("No base64 image data received from OpenAI")

    return _save_image(image_base64, getattr(first_call, "id", None))


def _choose_size(config: PromptConfig, menu: Any) -> str:
    if not config.max_size:
        return SQUARE_SIZE
    orientation = menu.choose_one("Choose maximum size orientation:", list(MAX_SIZE_ORIENTATIONS))
    return MAX_SIZE_ORIENTATIONS[orientation]


def generate_legacy(
    prompt: str,
    menu: Any,
    client: Optional[OpenAI] = None,
    config: Optional[PromptConfig] = None,
) -> GenerationResult:
    """Generate an image with the Images API (dall-e-3, hd quality)."""
    config = config or load_prompt_config()
    final_prompt = _prepare_prompt(prompt, config)

    size_text = " (Maximum Size)" if config.max_size else ""
    console.print(f"\n🚀 Processing with AI (Legacy API){size_text}...")
    size = _choose_size(config, menu)

    model = _legacy_model_name()
    logger.debug(f"Calling OpenAI Images API with model: {model}, size: {size}")
    try:
        response = (client or OpenAI()).images.generate(
            model=model,
            prompt=final_prompt,
            size=size,
            quality="hd",
            response_format="b64_json",
        )
    except OpenAIError as e:
        logger.error(f"Error in OpenAI API call: {str(e)}")
        raise RemoteServiceError(str(e)) from e

    data = getattr(response, "data", None)
    if not data:
        raise EmptyResponse("No image data received from OpenAI")

    image_base64 = getattr(data[0], "b64_json", None)
    if not image_base64:
        raise MissingImageData("No base64 image data received from OpenAI")

    return _save_image(image_base64)
