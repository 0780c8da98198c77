from .context import ContextSources, ContextVariables, gather_context
from .llm_processor import PROVIDERS, LLMProcessor, LLMResponse
from .pipeline import EnhancementPipeline, EnhancementRun, PromptStepResult
from .prompts import (
    DEFAULT_CHAIN,
    PromptLibrary,
    PromptStep,
    add_custom_prompt,
    delete_custom_prompt,
    edit_custom_prompt,
)
from .templating import PromptTemplate, render_prompt

__all__ = [
    "ContextSources",
    "ContextVariables",
    "gather_context",
    "PROVIDERS",
    "LLMProcessor",
    "LLMResponse",
    "EnhancementPipeline",
    "EnhancementRun",
    "PromptStepResult",
    "DEFAULT_CHAIN",
    "PromptLibrary",
    "PromptStep",
    "add_custom_prompt",
    "delete_custom_prompt",
    "edit_custom_prompt",
    "PromptTemplate",
    "render_prompt",
]
