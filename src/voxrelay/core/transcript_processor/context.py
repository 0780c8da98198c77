"""Optional context fed into prompt templates: screen, focused field, clipboard, dictionary."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ...utils.logger import get_logger
from ...utils.platform import read_clipboard, read_focused_input_text
from ..settings.settings import Settings

logger = get_logger(__name__)

TextSource = Callable[[], Optional[str]]


@dataclass(frozen=True)
class ContextVariables:
    screen_text: Optional[str] = None
    input_field_text: Optional[str] = None
    clipboard_text: Optional[str] = None
    dictionary_words: List[str] = field(default_factory=list)

    def as_template_variables(self) -> Dict[str, Optional[str]]:
        return {
            "context_screen": self.screen_text,
            "context_input_field": self.input_field_text,
            "context_clipboard": self.clipboard_text,
            "dictionary_word_list": ", ".join(self.dictionary_words) or None,
        }


@dataclass
class ContextSources:
    screen: Optional[TextSource] = None
    input_field: Optional[TextSource] = read_focused_input_text
    clipboard: Optional[TextSource] = read_clipboard


def _read(source: Optional[TextSource], label: str) -> Optional[str]:
    if source is None:
        return None
    try:
        return source()
    except Exception as e:
        logger.warning(f"Failed to read {label} context: {e}", exc_info=True)
        return None


def gather_context(
    settings: Settings, sources: Optional[ContextSources] = None
) -> ContextVariables:
    """Collect only the context sources enabled in the enhancement settings."""
    sources = sources or ContextSources()
    enhancement = settings.enhancement

    return ContextVariables(
        screen_text=(
            _read(sources.screen, "screen") if enhancement.use_context_screen else None
        ),
        input_field_text=(
            _read(sources.input_field, "input field")
            if enhancement.use_context_input_field
            else None
        ),
        clipboard_text=(
            _read(sources.clipboard, "clipboard")
            if enhancement.use_context_clipboard
            else None
        ),
        dictionary_words=(
            list(settings.dictionary_words)
            if enhancement.use_dictionary_word_list
            else []
        ),
    )
