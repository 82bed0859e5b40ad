import os
from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

import image_generator
from assets import ASSETS_DIRNAME
from conftest import (
    PNG_BASE64,
    PNG_BYTES,
    FakeMenu,
    image_call,
    images_payload,
    responses_payload,
)
from image_generator import (
    AssetWriteError,
    EmptyResponse,
    MissingImageData,
    RemoteServiceError,
    generate_legacy,
    generate_stateful,
)
from prompt_config import PromptConfig

T = 1717171717171


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch):
    monkeypatch.setattr(image_generator, "_timestamp_millis", lambda: T)


def stateful_client(*items):
    client = MagicMock()
    client.responses.create.return_value = responses_payload(*items)
    return client


def legacy_client(*b64_values):
    client = MagicMock()
    client.images.generate.return_value = images_payload(*b64_values)
    return client


def test_stateful_success_writes_decoded_bytes(workdir):
    client = stateful_client(image_call(call_id="abc123"))

    result = generate_stateful("draw a cat", client=client, config=PromptConfig())

    expected = workdir / ASSETS_DIRNAME / f"generated_{T}_abc123.png"
    assert expected.read_bytes() == PNG_BYTES
    assert result.filename == expected.name
    assert os.path.samefile(result.filepath, expected)
    assert result.image_call_id == "abc123"


def test_stateful_fresh_request_sends_composed_prompt(workdir):
    client = stateful_client(image_call())
    config = PromptConfig(system_prompt="vivid colors", enabled=True)

    generate_stateful("draw a cat", client=client, config=config)

    kwargs = client.responses.create.call_args.kwargs
    assert kwargs["input"] == "vivid colors\n\ndraw a cat"
    assert kwargs["tools"] == [{"type": "image_generation"}]
    assert kwargs["model"] == "gpt-4.1-mini"


def test_stateful_refinement_continues_prior_call(workdir):
    client = stateful_client(image_call(call_id="def456"))

    result = generate_stateful("make it blue", prior_call_id="abc123", client=client, config=PromptConfig())

    assert client.responses.create.call_args.kwargs["input"] == [
        {"role": "user", "content": [{"type": "input_text", "text": "make it blue"}]},
        {"type": "image_generation_call", "id": "abc123"},
    ]
    assert result.image_call_id == "def456"


def test_stateful_uses_model_from_environment(workdir, monkeypatch):
    monkeypatch.setenv("ASSET_GENERATOR_MODEL", "gpt-4.1")
    client = stateful_client(image_call())

    generate_stateful("draw a cat", client=client, config=PromptConfig())

    assert client.responses.create.call_args.kwargs["model"] == "gpt-4.1"


def test_stateful_ignores_non_image_output(workdir):
    message = MagicMock(type="message")
    client = stateful_client(message, image_call(call_id="abc123"))

    result = generate_stateful("draw a cat", client=client, config=PromptConfig())

    assert result.image_call_id == "abc123"


def test_stateful_empty_response_writes_nothing(workdir):
    client = stateful_client()

    with pytest.raises(EmptyResponse):
        generate_stateful("draw a cat", client=client, config=PromptConfig())

    assert not (workdir / ASSETS_DIRNAME).exists()


def test_stateful_missing_image_data(workdir):
    client = stateful_client(image_call(result=None))

    with pytest.raises(MissingImageData):
        generate_stateful("draw a cat", client=client, config=PromptConfig())

    assert not (workdir / ASSETS_DIRNAME).exists()


def test_stateful_remote_error_keeps_message(workdir):
    client = MagicMock()
    client.responses.create.side_effect = OpenAIError("Incorrect API key provided")

    with pytest.raises(RemoteServiceError, match="Incorrect API key provided"):
        generate_stateful("draw a cat", client=client, config=PromptConfig())


def test_stateful_loads_config_when_not_given(workdir):
    (workdir / ".asset-generator-config.json").write_text(
        '{"systemPrompt": "watercolor", "enabled": true, "maxSize": false}', encoding="utf-8"
    )
    client = stateful_client(image_call())

    generate_stateful("a lighthouse", client=client)

    assert client.responses.create.call_args.kwargs["input"] == "watercolor\n\na lighthouse"


def test_legacy_square_canvas_without_max_size(workdir):
    client = legacy_client(PNG_BASE64)
    menu = FakeMenu()

    result = generate_legacy("draw a cat", menu, client=client, config=PromptConfig())

    client.images.generate.assert_called_once_with(
        model="dall-e-3",
        prompt="draw a cat",
        size="1024x1024",
        quality="hd",
        response_format="b64_json",
    )
    assert menu.menus == []
    assert result.filename == f"generated_{T}.png"
    assert result.image_call_id is None
    assert (workdir / ASSETS_DIRNAME / result.filename).read_bytes() == PNG_BYTES


@pytest.mark.parametrize(
    "orientation, size",
    [("Landscape (1792x1024)", "1792x1024"), ("Portrait (1024x1792)", "1024x1792")],
)
def test_legacy_max_size_asks_for_orientation(workdir, orientation, size):
    client = legacy_client(PNG_BASE64)
    menu = FakeMenu(choices=[orientation])

    generate_legacy("draw a cat", menu, client=client, config=PromptConfig(max_size=True))

    assert client.images.generate.call_args.kwargs["size"] == size


def test_legacy_empty_data(workdir):
    client = legacy_client()

    with pytest.raises(EmptyResponse):
        generate_legacy("draw a cat", FakeMenu(), client=client, config=PromptConfig())

    assert not (workdir / ASSETS_DIRNAME).exists()


def test_legacy_missing_b64(workdir):
    client = legacy_client(None)

    with pytest.raises(MissingImageData):
        generate_legacy("draw a cat", FakeMenu(), client=client, config=PromptConfig())


def test_legacy_remote_error(workdir):
    client = MagicMock()
    client.images.generate.side_effect = OpenAIError("Rate limit reached")

    with pytest.raises(RemoteServiceError, match="Rate limit reached"):
        generate_legacy("draw a cat", FakeMenu(), client=client, config=PromptConfig())


def test_invalid_base64_is_missing_image_data(workdir):
    client = stateful_client(image_call(result="abc"))

    with pytest.raises(MissingImageData, match="not valid base64"):
        generate_stateful("draw a cat", client=client, config=PromptConfig())

    assert not (workdir / ASSETS_DIRNAME).exists()


def test_assets_path_taken_by_file_raises_asset_write_error(workdir):
    (workdir / ASSETS_DIRNAME).write_bytes(b"")

    with pytest.raises(AssetWriteError):
        generate_legacy("draw a cat", FakeMenu(), client=legacy_client(PNG_BASE64), config=PromptConfig())


class FullDiskFile:
    """File handle that is created on disk but fails every write."""

    def __init__(self, path, mode):
        self.handle = open(path, mode)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.handle.close()
        return False

    def write(self, data):
        raise OSError(28, "No space left on device")


def test_partial_file_removed_after_write_error(workdir, monkeypatch):
    monkeypatch.setattr(image_generator, "open", FullDiskFile, raising=False)

    with pytest.raises(AssetWriteError, match="No space left on device"):
        generate_stateful("draw a cat", client=stateful_client(image_call()), config=PromptConfig())

    assert list((workdir / ASSETS_DIRNAME).iterdir()) == []
