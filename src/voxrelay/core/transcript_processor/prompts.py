"""
Prompt steps used by the enhancement pipeline.

Two built-in steps ship with the package in ``default_prompts.json``; users add
their own steps, which are stored in ``Settings.enhancement.custom_prompts``.
"""

import json
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...utils.logger import get_logger

if TYPE_CHECKING:
    from ..settings.settings import Settings

logger = get_logger(__name__)

DEFAULT_CLEAN_TRANSCRIPTION_ID = "default_clean_transcription"
DEFAULT_CONTEXTUAL_FORMATTING_ID = "default_contextual_formatting"
DEFAULT_CHAIN = (DEFAULT_CLEAN_TRANSCRIPTION_ID, DEFAULT_CONTEXTUAL_FORMATTING_ID)

CUSTOM_PROMPT_TEMPERATURE = 0.7


class PromptStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    template: str
    temperature: float = Field(default=CUSTOM_PROMPT_TEMPERATURE, ge=0.0, le=2.0)


def load_default_prompts() -> List[PromptStep]:
    json_path = Path(__file__).parent / "default_prompts.json"

    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [PromptStep.model_validate(item) for item in data]


_default_prompts: Optional[List[PromptStep]] = None


def get_default_prompts() -> List[PromptStep]:
    global _default_prompts
    if _default_prompts is None:
        _default_prompts = load_default_prompts()
    return _default_prompts


def is_builtin(step_id: str) -> bool:
    return step_id in DEFAULT_CHAIN


class PromptLibrary:
    """Lookup of built-in and custom steps by ID. Built-ins win on an ID clash."""

    def __init__(self, custom_steps: Iterable = ()):
        self._steps: Dict[str, PromptStep] = {
            step.id: step for step in get_default_prompts()
        }
        for raw in custom_steps:
            try:
                step = raw if isinstance(raw, PromptStep) else PromptStep.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed custom prompt {raw!r}: {e}")
                continue
            if step.id in self._steps:
                logger.warning(f"Custom prompt '{step.id}' clashes with a built-in, ignoring")
                continue
            self._steps[step.id] = step

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PromptLibrary":
        return cls(settings.enhancement.custom_prompts)

    def resolve(self, step_id: str) -> Optional[PromptStep]:
        return self._steps.get(step_id)

    def all_steps(self) -> List[PromptStep]:
        return list(self._steps.values())


def _new_prompt_id() -> str:
    return f"custom_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def add_custom_prompt(
    settings: "Settings",
    name: str,
    template: str,
    temperature: float = CUSTOM_PROMPT_TEMPERATURE,
) -> PromptStep:
    step = PromptStep(
        id=_new_prompt_id(), name=name, template=template, temperature=temperature
    )
    settings.enhancement.custom_prompts.append(step.model_dump())
    logger.info(f"Added custom prompt '{name}' ({step.id})")
    return step


def edit_custom_prompt(
    settings: "Settings",
    step_id: str,
    *,
    name: Optional[str] = None,
    template: Optional[str] = None,
    temperature: Optional[float] = None,
) -> PromptStep:
    if is_builtin(step_id):
        raise ValueError(f"Built-in prompt '{step_id}' cannot be edited")

    prompts = settings.enhancement.custom_prompts
    for index, raw in enumerate(prompts):
        if raw.get("id") != step_id:
            continue
        current = PromptStep.model_validate(raw)
        updates = {
            key: value
            for key, value in (
                ("name", name),
                ("template", template),
                ("temperature", temperature),
            )
            if value is not None
        }
        step = PromptStep.model_validate({**current.model_dump(), **updates})
        prompts[index] = step.model_dump()
        return step

    raise KeyError(f"Unknown custom prompt: {step_id}")


def delete_custom_prompt(settings: "Settings", step_id: str) -> bool:
    """
    Remove a custom step and drop it from the active chain.

    An emptied chain falls back to the built-in defaults.
    """
    if is_builtin(step_id):
        raise ValueError(f"Built-in prompt '{step_id}' cannot be deleted")

    enhancement = settings.enhancement
    before = len(enhancement.custom_prompts)
    enhancement.custom_prompts = [
        raw for raw in enhancement.custom_prompts if raw.get("id") != step_id
    ]
    if len(enhancement.custom_prompts) == before:
        return False

    chain = [sid for sid in enhancement.active_prompt_chain if sid != step_id]
    enhancement.active_prompt_chain = chain or list(DEFAULT_CHAIN)
    logger.info(f"Deleted custom prompt {step_id}")
    return True
