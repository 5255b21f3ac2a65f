"""frontpage - cached, summarized Hacker News front page."""

__version__ = "0.1.0"
