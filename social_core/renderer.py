"""Phrase renderer: turns a decided response into display text.

The orchestrator injects a renderer callable matching the protocol:

    async def __call__(self, request: RenderRequest) -> str: ...

Two implementations are provided:

    HttpPhraseRenderer    real HTTP client, KoboldCpp or OpenAI-compatible.
                          The prompt is a Handlebars template (pybars).
    StaticPhraseRenderer  returns a fixed string. No network calls.

Rendering is the only asynchronous, fallible step in the core. Callers go
through render_with_fallback(), which never raises:

    renderer  ->  rule-based template line  ->  strategy summary  ->  fixed line
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Literal, Protocol

import httpx
import pybars
from pydantic import BaseModel, Field

from social_core.config import SimConfig
from social_core.models import Personality, Tone
from social_core.templates import TemplateError

logger = logging.getLogger(__name__)

FIXED_LINE = "They give you a long look and say nothing."

RenderTier = Literal["renderer", "template", "summary", "fixed"]


class RenderRequest(BaseModel):
    npc_name: str
    personality: Personality = Field(default_factory=Personality)
    tone: Tone = "neutral"
    strategy_summary: str = ""
    player_text: str = ""
    player_name: str = "Player"
    history: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class PhraseRenderer(Protocol):
    async def __call__(self, request: RenderRequest) -> str: ...


class RenderError(RuntimeError):
    """Raised when the renderer backend cannot be reached or returns garbage."""


# ---------------------------------------------------------------------------
# Handlebars prompt
# ---------------------------------------------------------------------------

DEFAULT_PROMPT = """You are {{npc.name}}, a contestant in a reality competition.
Personality: aggression {{npc.aggressiveness}}, charisma {{npc.charisma}}, paranoia {{npc.paranoia}}.
Tone: {{tone}}.
Plan: {{summary}}
{{#if history}}
Recent conversation:
{{#last history 6}}{{this}}
{{/last}}{{/if}}
{{player}} says: "{{message}}"
Reply in character with one or two sentences. No narration.
{{npc.name}}:"""

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}} iterates over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {"last": _helper_last}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile (cached by source) and render a Handlebars prompt."""
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise TemplateError(f"Prompt template error: {e}") from e


def prompt_context(request: RenderRequest) -> dict[str, Any]:
    npc = request.personality.model_dump()
    npc["name"] = request.npc_name
    return {
        "npc": npc,
        "tone": request.tone,
        "summary": request.strategy_summary,
        "player": request.player_name,
        "message": request.player_text,
        "history": list(request.history),
    }


# ---------------------------------------------------------------------------
# HttpPhraseRenderer
# ---------------------------------------------------------------------------

ProviderFormat = Literal["koboldcpp", "openai"]


class HttpPhraseRenderer:
    """Async HTTP client for text-completion backends.

    Supported formats:
      "koboldcpp"  POST /api/v1/generate  {"prompt": ...}
                   Response: {"results": [{"text": "..."}]}
      "openai"     POST /v1/completions   {"model": ..., "prompt": ...}
                   Response: {"choices": [{"text": "..."}]}
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 30.0,
        prompt_template: str = DEFAULT_PROMPT,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._template = prompt_template

    @classmethod
    def from_config(cls, config: SimConfig) -> HttpPhraseRenderer:
        return cls(
            config.renderer_url,
            api_key=config.renderer_api_key,
            provider_format=config.renderer_format,
            model=config.renderer_model,
            timeout=config.render_timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "openai":
            body: dict = {"prompt": prompt, "max_tokens": 80, "stop": ["\n\n"]}
            if self._model:
                body["model"] = self._model
            return f"{self._base_url}/v1/completions", body

        return f"{self._base_url}/api/v1/generate", {"prompt": prompt, "max_length": 80}

    def _parse_response(self, data: dict) -> str:
        if self._format == "openai":
            choices = data.get("choices")
            if not choices or "text" not in choices[0]:
                raise RenderError("Unexpected response format from OpenAI-compatible backend")
            return choices[0]["text"]

        results = data.get("results")
        if not results or "text" not in results[0]:
            raise RenderError("Unexpected response format from KoboldCpp backend")
        return results[0]["text"]

    async def __call__(self, request: RenderRequest) -> str:
        prompt = render_prompt(self._template, prompt_context(request))
        url, body = self._build_request(prompt)
        logger.debug("render npc=%s url=%s prompt_len=%d", request.npc_name, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise RenderError(f"Cannot connect to renderer at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise RenderError(f"Renderer returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise RenderError(f"Renderer timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise RenderError(f"Renderer request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise RenderError("Renderer returned a non-JSON body") from e
        text = self._parse_response(data).strip()
        if not text:
            raise RenderError("Renderer returned empty text")
        logger.debug("render npc=%s len=%d", request.npc_name, len(text))
        return text


# ---------------------------------------------------------------------------
# StaticPhraseRenderer
# ---------------------------------------------------------------------------

class StaticPhraseRenderer:
    """Returns the same text for every request."""

    def __init__(self, text: str) -> None:
        self._text = text

    async def __call__(self, request: RenderRequest) -> str:
        return self._text


# ---------------------------------------------------------------------------
# Fallback chain
# ---------------------------------------------------------------------------

async def render_with_fallback(
    renderer: PhraseRenderer | None,
    request: RenderRequest,
    template_line: Callable[[], str] | str | None = None,
    timeout: float = 8.0,
) -> tuple[str, RenderTier]:
    """Render text for a response; never raises.

    Returns (text, tier) where tier names the source that produced it.
    """
    if renderer is not None:
        try:
            text = await asyncio.wait_for(renderer(request), timeout=timeout)
            if text and text.strip():
                return text.strip(), "renderer"
            logger.warning("Renderer returned empty text for %s", request.npc_name)
        except asyncio.TimeoutError:
            logger.warning("Renderer timed out after %.1fs for %s", timeout, request.npc_name)
        except (RenderError, TemplateError) as e:
            logger.warning("Renderer failed for %s: %s", request.npc_name, e)
        except Exception:
            logger.exception("Renderer crashed for %s", request.npc_name)

    try:
        line = template_line() if callable(template_line) else template_line
    except TemplateError as e:
        logger.warning("Template line failed for %s: %s", request.npc_name, e)
        line = None
    if line:
        return line, "template"
    if request.strategy_summary:
        return request.strategy_summary, "summary"
    return FIXED_LINE, "fixed"
