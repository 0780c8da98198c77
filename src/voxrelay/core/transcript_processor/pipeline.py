"""
Sequential prompt-chain enhancement.

The chain is folded over the transcript: each step sees the untouched
original transcription plus the output of the step before it.
"""

from dataclasses import dataclass
from functools import partial, reduce
from typing import Callable, List, Optional, Sequence, Tuple

from ...utils.logger import get_logger
from ..errors import EnhancementError, ProcessingCancelled
from .context import ContextVariables
from .llm_processor import LLMProcessor
from .prompts import DEFAULT_CHAIN, PromptLibrary, PromptStep
from .templating import build_template_variables, render_prompt

logger = get_logger(__name__)


@dataclass(frozen=True)
class PromptStepResult:
    step_id: str
    step_name: str
    rendered_prompt: str
    output_text: str


@dataclass(frozen=True)
class EnhancementRun:
    original_text: str
    final_text: str
    steps: Tuple[PromptStepResult, ...] = ()


class EnhancementPipeline:

    def __init__(self, processor: LLMProcessor, library: PromptLibrary):
        self._processor = processor
        self._library = library

    def resolve_chain(self, chain: Sequence[str]) -> List[PromptStep]:
        chain = tuple(chain) or DEFAULT_CHAIN

        steps = []
        for step_id in chain:
            step = self._library.resolve(step_id)
            if step is None:
                logger.warning(f"Prompt '{step_id}' not found, skipping")
                continue
            steps.append(step)
        return steps

    def run(
        self,
        original_text: str,
        chain: Sequence[str],
        context: Optional[ContextVariables] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> EnhancementRun:
        """
        Run every resolvable step of ``chain`` in order.

        The chain is snapshotted up front, so changes to the settings during
        the run do not affect it. An empty chain runs the built-in defaults.

        Raises:
            EnhancementError: a step failed or returned empty text. The error
                carries the failing step and the results completed before it.
            ProcessingCancelled: ``should_cancel`` returned True before a step.
        """
        steps = self.resolve_chain(chain)
        initial = EnhancementRun(original_text=original_text, final_text=original_text)

        if not steps:
            logger.warning("No resolvable prompts in chain, returning transcription")
            return initial

        logger.info(f"Running enhancement chain of {len(steps)} step(s)")
        apply = partial(self._apply_step, context=context, should_cancel=should_cancel)
        return reduce(apply, steps, initial)

    def _apply_step(
        self,
        run: EnhancementRun,
        step: PromptStep,
        context: Optional[ContextVariables],
        should_cancel: Optional[Callable[[], bool]],
    ) -> EnhancementRun:
        if should_cancel is not None and should_cancel():
            raise ProcessingCancelled()

        variables = build_template_variables(run.original_text, run.final_text, context)
        prompt = render_prompt(step.template, variables)
        logger.debug(f"Rendered prompt for '{step.id}': {prompt[:100]}...")

        try:
            response = self._processor.complete(prompt, step.temperature)
        except EnhancementError as e:
            raise EnhancementError(
                f"Step '{step.name}' failed: {e}", step=step, completed=run.steps
            ) from e

        result = PromptStepResult(
            step_id=step.id,
            step_name=step.name,
            rendered_prompt=prompt,
            output_text=response.content,
        )
        return EnhancementRun(
            original_text=run.original_text,
            final_text=response.content,
            steps=run.steps + (result,),
        )
