"""Summarization transform and its memoizer."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from frontpage.errors import SummarizeError
from frontpage.llm import LLMError, call_claude
from frontpage.models import SummaryKind
from frontpage.prompts import get_summary_prompt

logger = logging.getLogger(__name__)

DEFAULT_EXACT_COMPARE_LIMIT = 200_000


class Summarizer(ABC):
    """Turns a page or discussion text into a short summary.

    Implementations may be slow and costly; callers go through
    :class:`SummaryMemo` so unchanged text is never summarized twice.
    """

    @abstractmethod
    async def summarize(
        self,
        kind: SummaryKind,
        text: str,
        *,
        title: str = "",
        context: str | None = None,
    ) -> str:
        """Return the summary of ``text``.

        Raises:
            SummarizeError: If the summary could not be produced.
        """


class ClaudeSummarizer(Summarizer):
    """Summarizes via Claude using the per-kind prompts."""

    def __init__(self, *, model: str | None = None, timeout: int = 120) -> None:
        self._model = model
        self._timeout = timeout

    async def summarize(
        self,
        kind: SummaryKind,
        text: str,
        *,
        title: str = "",
        context: str | None = None,
    ) -> str:
        system_prompt = get_summary_prompt(kind, title=title, context=context)
        try:
            return await call_claude(
                system_prompt,
                text,
                model=self._model,
                timeout=self._timeout,
                label=f"{kind.value} summary",
            )
        except LLMError as exc:
            raise SummarizeError(str(exc)) from exc


def sources_match(
    current: str,
    prior: str | None,
    exact_compare_limit: int = DEFAULT_EXACT_COMPARE_LIMIT,
) -> bool:
    """Whether ``current`` is the same input a prior summary was made from.

    Texts longer than ``exact_compare_limit`` on both sides are compared
    by length only.
    """
    if prior is None:
        return False
    if len(current) > exact_compare_limit and len(prior) > exact_compare_limit:
        return len(current) == len(prior)
    return current == prior


class SummaryMemo:
    """Memoizes a :class:`Summarizer` against its recorded input text."""

    def __init__(
        self,
        summarizer: Summarizer,
        *,
        exact_compare_limit: int = DEFAULT_EXACT_COMPARE_LIMIT,
    ) -> None:
        self._summarizer = summarizer
        self._exact_compare_limit = exact_compare_limit
        self.calls = 0

    def is_current(self, source_text: str, prior_source_text: str | None) -> bool:
        """Whether a summary of ``prior_source_text`` still describes ``source_text``."""
        return sources_match(source_text, prior_source_text, self._exact_compare_limit)

    async def derive(
        self,
        kind: SummaryKind,
        source_text: str,
        prior_output: str | None,
        prior_source_text: str | None,
        force: bool = False,
        *,
        title: str = "",
        context: str | None = None,
    ) -> str:
        """Return a summary of ``source_text``, reusing ``prior_output`` when possible.

        Args:
            kind: Which prompt to use.
            source_text: Text to summarize.
            prior_output: Summary cached from a previous run, if any.
            prior_source_text: The text ``prior_output`` was made from.
            force: Re-summarize even if the text is unchanged.
            title: Story title passed to the prompt.
            context: Auxiliary context (the page summary, for comments).

        Returns:
            The summary; empty when ``source_text`` is empty.

        Raises:
            SummarizeError: If the summarizer had to run and failed.
        """
        if not source_text:
            return ""

        if prior_output and not force and self.is_current(source_text, prior_source_text):
            return prior_output

        self.calls += 1
        logger.debug("Summarizing %s (%d chars)", kind.value, len(source_text))
        return await self._summarizer.summarize(
            kind, source_text, title=title, context=context
        )
