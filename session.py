"""
Interactive asset generation session

Each step of the session is a method that takes the current SessionState
and returns the next step together with the updated state.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from openai import OpenAI, OpenAIError
from rich.markup import escape

import assets
import credentials
import image_generator
from image_generator import GenerationError, GenerationResult
from menu import console
from prompt_config import (
    ConfigWriteError,
    PromptConfig,
    describe_status,
    load_prompt_config,
    save_prompt_config,
)

logger = logging.getLogger(__name__)

GENERATE_NEW = "Generate new image"
REFINE_LAST = "Refine last image"
REFINE_EXISTING = "Refine existing image"
USE_LEGACY = "Use legacy API"
MANAGE_PREFIX = "Manage system prompt"
QUIT = "Quit"

SET_PROMPT = "Set system prompt"
VIEW_PROMPT = "View current system prompt"
ENABLE_PROMPT = "Enable system prompt"
DISABLE_PROMPT = "Disable system prompt"
ENABLE_MAX_SIZE = "Enable max size mode"
DISABLE_MAX_SIZE = "Disable max size mode"
CLEAR_PROMPT = "Clear system prompt"
BACK = "Back to main menu"


class SessionStep(Enum):
    AWAITING_CREDENTIAL = "awaiting_credential"
    MAIN_MENU = "main_menu"
    SYSTEM_PROMPT_MENU = "system_prompt_menu"
    SELECTING_IMAGE_TO_REFINE = "selecting_image_to_refine"
    AWAITING_PROMPT_TEXT = "awaiting_prompt_text"
    GENERATING = "generating"
    AWAITING_CONTINUE = "awaiting_continue"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class SessionState:
    config: PromptConfig
    last_result: Optional[GenerationResult] = None
    mode: Optional[str] = None
    call_id: Optional[str] = None
    prompt_text: Optional[str] = None

    def clear_pending(self) -> "SessionState":
        return replace(self, mode=None, call_id=None, prompt_text=None)


Transition = Tuple[SessionStep, SessionState]


def manage_label(config: PromptConfig) -> str:
    return f"{MANAGE_PREFIX} ({describe_status(config)})"


def build_main_menu(state: SessionState, refinable_entries: Sequence[Tuple[str, str]]) -> List[str]:
    """Main menu choices for the current config and history; Quit is always last."""
    choices = [GENERATE_NEW]
    if state.last_result and state.last_result.image_call_id:
        choices.append(REFINE_LAST)
    if refinable_entries:
        choices.append(REFINE_EXISTING)
    choices.append(USE_LEGACY)
    choices.append(manage_label(state.config))
    choices.append(QUIT)
    return choices


def build_system_prompt_menu(config: PromptConfig) -> List[str]:
    return [
        SET_PROMPT,
        VIEW_PROMPT,
        DISABLE_PROMPT if config.enabled else ENABLE_PROMPT,
        DISABLE_MAX_SIZE if config.max_size else ENABLE_MAX_SIZE,
        CLEAR_PROMPT,
        BACK,
    ]


def _require_text(text: str) -> Optional[str]:
    if not text.strip():
        return "Please enter a prompt"
    return None


class AssetGeneratorSession:
    """Drives the interactive menu loop until the operator quits."""

    def __init__(
        self,
        menu: Any,
        client_factory: Callable[..., OpenAI] = OpenAI,
    ):
        self.menu = menu
        self.client_factory = client_factory
        self._handlers: Dict[SessionStep, Callable[[SessionState], Transition]] = {
            SessionStep.AWAITING_CREDENTIAL: self.awaiting_credential,
            SessionStep.MAIN_MENU: self.main_menu,
            SessionStep.SYSTEM_PROMPT_MENU: self.system_prompt_menu,
            SessionStep.SELECTING_IMAGE_TO_REFINE: self.selecting_image_to_refine,
            SessionStep.AWAITING_PROMPT_TEXT: self.awaiting_prompt_text,
            SessionStep.GENERATING: self.generating,
            SessionStep.AWAITING_CONTINUE: self.awaiting_continue,
        }

    def run(self, step: SessionStep = SessionStep.AWAITING_CREDENTIAL) -> int:
        """Run the session and return the process exit code."""
        console.print("🎨 [bold]Welcome to AI Asset Generator![/bold]")
        console.print("Generate stunning images with AI-powered prompts.\n")

        state = SessionState(config=load_prompt_config())
        while step is not SessionStep.TERMINATED:
            logger.debug(f"Entering step {step.value}")
            step, state = self._handlers[step](state)

        console.print("\n👋 Thanks for using AI Asset Generator!")
        return 0

    def awaiting_credential(self, state: SessionState) -> Transition:
        credentials.ensure_api_key(self.menu, self.client_factory)
        return SessionStep.MAIN_MENU, state

    def main_menu(self, state: SessionState) -> Transition:
        state = replace(state.clear_pending(), config=load_prompt_config())
        choice = self.menu.choose_one(
            "What would you like to do?",
            build_main_menu(state, assets.refinable()),
        )

        if choice == QUIT:
            return SessionStep.TERMINATED, state
        if choice.startswith(MANAGE_PREFIX):
            return SessionStep.SYSTEM_PROMPT_MENU, state
        if choice == REFINE_EXISTING:
            return SessionStep.SELECTING_IMAGE_TO_REFINE, state
        if choice == REFINE_LAST:
            call_id = state.last_result.image_call_id if state.last_result else None
            return SessionStep.AWAITING_PROMPT_TEXT, replace(state, mode=choice, call_id=call_id)
        return SessionStep.AWAITING_PROMPT_TEXT, replace(state, mode=choice)

    def system_prompt_menu(self, state: SessionState) -> Transition:
        config = load_prompt_config()
        action = self.menu.choose_one("System Prompt Management:", build_system_prompt_menu(config))
        if action == BACK:
            return SessionStep.MAIN_MENU, replace(state, config=config)

        try:
            config = self._apply_system_prompt_action(action, config)
        except ConfigWriteError as e:
            console.print(f"❌ [red]Could not save settings:[/red] {escape(str(e))}")
        return SessionStep.SYSTEM_PROMPT_MENU, replace(state, config=config)

    def _apply_system_prompt_action(self, action: str, config: PromptConfig) -> PromptConfig:
        """Apply one system prompt menu action and return the saved config."""
        if action == SET_PROMPT:
            text = self.menu.read_text("Enter your system prompt", default=config.system_prompt)
            updated = PromptConfig(system_prompt=text, enabled=True, max_size=config.max_size)
            save_prompt_config(updated)
            console.print("✅ System prompt saved and enabled!")
            return updated

        if action == VIEW_PROMPT:
            if config.system_prompt:
                status = "enabled" if config.enabled else "disabled"
                console.print(f"\n📝 Current system prompt ({status}):")
                console.print(config.system_prompt, markup=False)
            else:
                console.print("\n❌ No system prompt set")
            return config

        if action == ENABLE_PROMPT:
            if not config.system_prompt:
                console.print("❌ No system prompt to enable. Set one first.")
                return config
            updated = replace(config, enabled=True)
            save_prompt_config(updated)
            console.print("✅ System prompt enabled!")
            return updated

        if action == DISABLE_PROMPT:
            updated = replace(config, enabled=False)
            save_prompt_config(updated)
            console.print("✅ System prompt disabled!")
            return updated

        if action == ENABLE_MAX_SIZE:
            updated = replace(config, max_size=True)
            save_prompt_config(updated)
            console.print("✅ Max size mode enabled! (Legacy API will use 1792x1024 or 1024x1792)")
            return updated

        if action == DISABLE_MAX_SIZE:
            updated = replace(config, max_size=False)
            save_prompt_config(updated)
            console.print("✅ Max size mode disabled!")
            return updated

        if action == CLEAR_PROMPT:
            updated = PromptConfig()
            save_prompt_config(updated)
            console.print("✅ System prompt cleared!")
            return updated

        raise ValueError(f"Unknown system prompt action: {action}")

    def selecting_image_to_refine(self, state: SessionState) -> Transition:
        entries = assets.refinable()
        if not entries:
            console.print("\n❌ No images with refinement capability found.")
            return SessionStep.MAIN_MENU, state

        labels = {f"{filename} (ID: {call_id})": call_id for filename, call_id in entries}
        choice = self.menu.choose_one("Select an image to refine:", list(labels))
        return SessionStep.AWAITING_PROMPT_TEXT, replace(state, mode=REFINE_EXISTING, call_id=labels[choice])

    def awaiting_prompt_text(self, state: SessionState) -> Transition:
        message = "Enter refinement instructions" if state.call_id else "Enter your AI prompt"
        text = self.menu.read_text(message, validator=_require_text)
        return SessionStep.GENERATING, replace(state, prompt_text=text)

    def generating(self, state: SessionState) -> Transition:
        try:
            if state.mode == USE_LEGACY:
                result = image_generator.generate_legacy(
                    state.prompt_text,
                    self.menu,
                    client=self.client_factory(),
                    config=state.config,
                )
            else:
                result = image_generator.generate_stateful(
                    state.prompt_text,
                    prior_call_id=state.call_id,
                    client=self.client_factory(),
                    config=state.config,
                )
        except (GenerationError, OpenAIError) as e:
            console.print(f"\n❌ [red]Error generating image:[/red] {escape(str(e))}")
            console.print("❌ Failed to generate image. Please try again.")
            return SessionStep.MAIN_MENU, state.clear_pending()

        if result.image_call_id:
            state = replace(state, last_result=result)
        return SessionStep.AWAITING_CONTINUE, state.clear_pending()

    def awaiting_continue(self, state: SessionState) -> Transition:
        if not self.menu.confirm("Continue?", default=True):
            return SessionStep.TERMINATED, state
        console.print("")
        return SessionStep.MAIN_MENU, state
