import string
from typing import Dict, Mapping, Optional

TEMPLATE_KEYS = (
    "transcription",
    "previous_output",
    "context_screen",
    "context_input_field",
    "context_clipboard",
    "dictionary_word_list",
)


class _BlankMissing(dict):
    def __missing__(self, key):
        return ""


class PromptTemplate(string.Template):
    """
    ``string.Template`` with ``{{ name }}`` placeholders.

    Placeholders that have no value render as empty strings. A ``{{`` that
    does not open a valid placeholder is left as-is.
    """

    delimiter = "{{"
    pattern = r"""
    \{\{(?:
      (?P<escaped>(?!)) |
      \s*(?P<named>[_a-z][_a-z0-9]*)\s*\}\} |
      (?P<braced>(?!)) |
      (?P<invalid>)
    )
    """

    def render(self, variables: Mapping[str, Optional[str]]) -> str:
        values = _BlankMissing(
            {key: value for key, value in variables.items() if value is not None}
        )
        return self.safe_substitute(values)


def render_prompt(template: str, variables: Mapping[str, Optional[str]]) -> str:
    return PromptTemplate(template).render(variables)


def build_template_variables(
    transcription: str,
    previous_output: str,
    context=None,
) -> Dict[str, Optional[str]]:
    variables: Dict[str, Optional[str]] = {
        "transcription": transcription,
        "previous_output": previous_output,
    }
    if context is not None:
        variables.update(context.as_template_variables())
    return variables
