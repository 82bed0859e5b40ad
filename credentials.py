"""
OpenAI API key setup

Reads OPENAI_API_KEY from the environment and, when it is missing, asks
the operator for one, checks it against the API and stores it in .env.
"""

import os
import logging
from typing import Any, Callable, Optional

from dotenv import set_key
from openai import OpenAI, OpenAIError

from menu import console

logger = logging.getLogger(__name__)

API_KEY_VAR = "OPENAI_API_KEY"
API_KEY_PREFIX = "sk-"
ENV_FILENAME = ".env"


class CredentialInvalid(ValueError):
    """Raised for keys that are empty or have the wrong shape."""


class CredentialValidationFailed(Exception):
    """Raised when the API rejects a key."""


def env_path() -> str:
    return os.path.join(os.getcwd(), ENV_FILENAME)


def check_api_key_format(api_key: str) -> str:
    """Return the stripped key, or raise CredentialInvalid."""
    api_key = api_key.strip()
    if not api_key:
        raise CredentialInvalid("API key is required")
    if not api_key.startswith(API_KEY_PREFIX):
        raise CredentialInvalid(f'OpenAI API keys should start with "{API_KEY_PREFIX}"')
    return api_key


def _format_problem(api_key: str) -> Optional[str]:
    try:
        check_api_key_format(api_key)
    except CredentialInvalid as e:
        return str(e)
    return None


def prompt_for_api_key(menu: Any) -> str:
    console.print("\n🔑 [bold]OpenAI API Key Setup[/bold]")
    console.print("Your API key is required to generate images.")
    console.print("You can find your API key at: https://platform.openai.com/api-keys\n")

    answer = menu.read_text("Enter your OpenAI API key", validator=_format_problem, password=True)
    return check_api_key_format(answer)


def validate_api_key(api_key: str, client_factory: Callable[..., OpenAI] = OpenAI) -> None:
    """Make a read-only call with the key, raising CredentialValidationFailed if it is rejected."""
    console.print("\n🔍 Validating API key...")
    try:
        client_factory(api_key=api_key).models.list()
    except OpenAIError as e:
        logger.error(f"API key validation failed: {str(e)}")
        raise CredentialValidationFailed(str(e)) from e
    console.print("✅ [green]API key is valid![/green]")


def write_env_file(api_key: str) -> None:
    """Store the key in .env, replacing an existing assignment."""
    path = env_path()
    try:
        set_key(path, API_KEY_VAR, api_key, quote_mode="never")
    except OSError as e:
        logger.error(f"Error writing to {path}: {str(e)}")
        raise
    os.environ[API_KEY_VAR] = api_key
    console.print(f"✅ API key saved to {ENV_FILENAME} file")


def ensure_api_key(menu: Any, client_factory: Callable[..., OpenAI] = OpenAI) -> str:
    """
    Make sure OPENAI_API_KEY is available for the rest of the session.

    Raises:
        CredentialValidationFailed: The key was rejected and the operator
            chose not to try again
    """
    api_key = os.getenv(API_KEY_VAR)
    while not api_key:
        candidate = prompt_for_api_key(menu)
        try:
            validate_api_key(candidate, client_factory)
        except CredentialValidationFailed as e:
            console.print("❌ [red]API key validation failed.[/red]")
            console.print(f"Error: {e}", markup=False)
            if not menu.confirm("Try again with a different API key?", default=True):
                raise
            continue

        write_env_file(candidate)
        api_key = candidate
        console.print("\n🎉 Setup complete! You can now generate images.\n")
    return api_key
