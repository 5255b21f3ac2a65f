"""Async Claude calling utilities.

Centralizes all Claude invocations with two backends:
1. Anthropic API (preferred, uses ANTHROPIC_API_KEY)
2. Subprocess ``claude -p`` (fallback)
"""

from __future__ import annotations

import asyncio
import logging
import os

import anthropic

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base error for LLM calls."""


# ---------------------------------------------------------------------------
# Model name mapping
# ---------------------------------------------------------------------------

_MODEL_MAP: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-6",
}

# Per-story summaries run on Haiku unless overridden.
_DEFAULT_MODEL = "claude-haiku-4-5-20251001"


def _resolve_model(model: str | None) -> str:
    """Resolve a short model name to an API model ID."""
    if model is None:
        return _DEFAULT_MODEL
    return _MODEL_MAP.get(model, model)


# ---------------------------------------------------------------------------
# Internal: Anthropic API
# ---------------------------------------------------------------------------


async def _call_anthropic_api(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None = None,
    timeout: int = 120,
    label: str = "summary",
) -> str:
    """Call Claude via the async Anthropic client."""
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise LLMError("ANTHROPIC_API_KEY not set")

    client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)
    resolved_model = _resolve_model(model)

    logger.debug("Calling Anthropic API model=%s (%s)", resolved_model, label)

    kwargs: dict[str, object] = {
        "model": resolved_model,
        "max_tokens": 2048,
        "messages": [{"role": "user", "content": user_prompt}],
    }
    if system_prompt.strip():
        kwargs["system"] = system_prompt

    response = await client.messages.create(**kwargs)  # type: ignore[arg-type]

    text_parts: list[str] = []
    for block in response.content:
        if block.type == "text":
            text_parts.append(block.text)

    result = "".join(text_parts).strip()
    if not result:
        raise LLMError(f"Anthropic API returned empty response (label={label})")
    return result


# ---------------------------------------------------------------------------
# Internal: subprocess fallback
# ---------------------------------------------------------------------------


async def _call_subprocess(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None = None,
    timeout: int = 120,
    label: str = "summary",
) -> str:
    """Call Claude via an ``asyncio`` subprocess (``claude -p``)."""
    cmd = ["claude", "-p"]
    if model:
        cmd.extend(["--model", model])

    full_prompt = f"{system_prompt}\n\n{user_prompt}"

    # Filter CLAUDECODE env var to prevent recursive Claude invocations
    env = {k: v for k, v in os.environ.items() if k != "CLAUDECODE"}

    logger.debug("Calling Claude CLI subprocess (%s)", label)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except FileNotFoundError as exc:
        raise LLMError(
            f"Claude CLI not found, is 'claude' on the PATH? (label={label})"
        ) from exc
    except OSError as exc:
        raise LLMError(f"Could not start Claude CLI (label={label}): {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(full_prompt.encode("utf-8")), timeout=timeout
        )
    except TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise LLMError(f"Claude CLI timed out after {timeout}s (label={label})") from exc
    except OSError as exc:
        raise LLMError(f"Claude CLI pipe failed (label={label}): {exc}") from exc

    if proc.returncode != 0:
        err = stderr.decode("utf-8", errors="replace")[:500]
        raise LLMError(f"Claude CLI failed (exit {proc.returncode}, label={label}): {err}")

    return stdout.decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def call_claude(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None = None,
    timeout: int = 120,
    label: str = "summary",
) -> str:
    """Call Claude and return the response text.

    Priority order:
    1. Anthropic API (if ANTHROPIC_API_KEY is set, unless FRONTPAGE_USE_CLI=1)
    2. Subprocess ``claude -p``

    Args:
        system_prompt: System prompt for the LLM.
        user_prompt: User/content prompt.
        model: Optional model override (e.g. "sonnet", "haiku", "opus").
        timeout: Timeout in seconds.
        label: Label for logging.

    Returns:
        The LLM response text (stripped).

    Raises:
        LLMError: On any failure.
    """
    use_cli = os.environ.get("FRONTPAGE_USE_CLI", "").strip() == "1"
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()

    if api_key and not use_cli:
        try:
            return await _call_anthropic_api(
                system_prompt,
                user_prompt,
                model=model,
                timeout=timeout,
                label=label,
            )
        except LLMError:
            raise
        except anthropic.AnthropicError as exc:
            raise LLMError(f"Anthropic API failed (label={label}): {exc}") from exc

    return await _call_subprocess(
        system_prompt,
        user_prompt,
        model=model,
        timeout=timeout,
        label=label,
    )
