"""LLM prompts for story summarization."""

from __future__ import annotations

from frontpage.models import SummaryKind


def get_page_summary_prompt(title: str = "") -> str:
    """Build the system prompt for summarizing a linked article."""
    about = f' titled "{title}"' if title else ""
    return f"""You are summarizing a web page{about} for a reader
skimming the Hacker News front page.

## Task

Summarize the page in 3-6 short bullet points. Lead with what the page
is actually about, then the most interesting specifics: numbers, names,
claims, results.

## Rules

- Plain text only. Start each bullet with "- ".
- No preamble, no closing remarks, no headings.
- If the input is navigation chrome, a login wall, or otherwise has no
  real content, reply with a single line saying so.
"""


def get_comments_summary_prompt(title: str = "", page_summary: str | None = None) -> str:
    """Build the system prompt for summarizing a discussion thread."""
    about = f' about "{title}"' if title else ""
    page_section = ""
    if page_summary:
        page_section = f"""

## The linked page

For context, the page under discussion was summarized as:

{page_summary.strip()}
"""

    return f"""You are summarizing a Hacker News discussion{about}.{page_section}

## Task

Summarize the main threads of discussion in 3-6 short bullet points.
Prefer points of disagreement, first-hand experience, and corrections
to the article over restatements of it.

## Rules

- Plain text only. Start each bullet with "- ".
- No preamble, no closing remarks, no headings.
- Do not attribute points to usernames.
"""


def get_summary_prompt(kind: SummaryKind, title: str = "", context: str | None = None) -> str:
    """Return the system prompt for the given summary kind."""
    if kind == SummaryKind.PAGE:
        return get_page_summary_prompt(title)
    return get_comments_summary_prompt(title, page_summary=context)
