"""Tests for social_core.renderer — HttpPhraseRenderer and the fallback chain."""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from social_core.config import SimConfig
from social_core.renderer import (
    DEFAULT_PROMPT,
    FIXED_LINE,
    HttpPhraseRenderer,
    RenderError,
    RenderRequest,
    StaticPhraseRenderer,
    prompt_context,
    render_prompt,
    render_with_fallback,
)
from social_core.templates import TemplateError


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _request(**kwargs) -> RenderRequest:
    return RenderRequest(npc_name="Mara", player_text="hey", player_name="Sam", **kwargs)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

class TestPrompt:
    def test_default_prompt_fills_context(self) -> None:
        text = render_prompt(DEFAULT_PROMPT, prompt_context(_request(tone="friendly")))
        assert text.startswith("You are Mara,")
        assert "Tone: friendly." in text
        assert "Sam says:" in text
        assert "Recent conversation" not in text

    def test_history_keeps_last_six(self) -> None:
        history = [f"h{i}" for i in range(8)]
        text = render_prompt(DEFAULT_PROMPT, prompt_context(_request(history=history)))
        assert "Recent conversation" in text
        assert "h7" in text and "h2" in text
        assert "h1" not in text

    def test_broken_template_raises(self) -> None:
        with pytest.raises(TemplateError):
            render_prompt("{{#if x}}unclosed", {})


# ---------------------------------------------------------------------------
# HttpPhraseRenderer — KoboldCpp format
# ---------------------------------------------------------------------------

class TestHttpKoboldCpp:
    @pytest.fixture
    def renderer(self) -> HttpPhraseRenderer:
        return HttpPhraseRenderer(provider_url="http://localhost:5001/")

    async def test_happy_path(self, renderer: HttpPhraseRenderer) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": " Sure. "}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await renderer(_request())
        assert result == "Sure."
        assert mock_post.call_args[0][0] == "http://localhost:5001/api/v1/generate"
        sent = mock_post.call_args.kwargs["json"]
        assert sent["max_length"] == 80
        assert "Mara" in sent["prompt"]
        assert "Authorization" not in mock_post.call_args.kwargs["headers"]

    async def test_bad_shape_raises(self, renderer: HttpPhraseRenderer) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": []}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(RenderError):
                await renderer(_request())

    async def test_empty_text_raises(self, renderer: HttpPhraseRenderer) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "   "}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(RenderError, match="empty"):
                await renderer(_request())

    async def test_http_error_raises(self, renderer: HttpPhraseRenderer) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=500))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(RenderError, match="500"):
                await renderer(_request())

    async def test_connect_error_raises(self, renderer: HttpPhraseRenderer) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(RenderError, match="connect"):
                await renderer(_request())

    async def test_transport_error_raises(self, renderer: HttpPhraseRenderer) -> None:
        mock_post = AsyncMock(side_effect=httpx.ReadError("reset"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(RenderError, match="reset"):
                await renderer(_request())

    async def test_non_json_raises(self, renderer: HttpPhraseRenderer) -> None:
        resp = _mock_response({})
        resp.json.side_effect = ValueError("no json")
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            with pytest.raises(RenderError, match="non-JSON"):
                await renderer(_request())


# ---------------------------------------------------------------------------
# HttpPhraseRenderer — OpenAI-compatible format
# ---------------------------------------------------------------------------

class TestHttpOpenAI:
    async def test_happy_path(self) -> None:
        renderer = HttpPhraseRenderer(
            provider_url="http://localhost:8080",
            api_key="secret",
            provider_format="openai",
            model="tiny",
        )
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "Fine."}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await renderer(_request())
        assert result == "Fine."
        assert mock_post.call_args[0][0] == "http://localhost:8080/v1/completions"
        assert mock_post.call_args.kwargs["json"]["model"] == "tiny"
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"

    async def test_from_config(self) -> None:
        config = SimConfig(
            renderer_url="http://host:1", renderer_format="openai", renderer_api_key="k"
        )
        renderer = HttpPhraseRenderer.from_config(config)
        mock_post = AsyncMock(return_value=_mock_response({"choices": [{"text": "ok"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            await renderer(_request())
        assert mock_post.call_args[0][0] == "http://host:1/v1/completions"
        assert "model" not in mock_post.call_args.kwargs["json"]


# ---------------------------------------------------------------------------
# render_with_fallback
# ---------------------------------------------------------------------------

class _Failing:
    async def __call__(self, request: RenderRequest) -> str:
        raise RenderError("down")


class _Crashing:
    async def __call__(self, request: RenderRequest) -> str:
        raise RuntimeError("boom")


class _Slow:
    async def __call__(self, request: RenderRequest) -> str:
        await asyncio.sleep(1)
        return "too late"


class TestFallback:
    async def test_renderer_tier(self) -> None:
        text, tier = await render_with_fallback(StaticPhraseRenderer("  hi  "), _request(), "line")
        assert (text, tier) == ("hi", "renderer")

    async def test_empty_renderer_text_falls_to_template(self) -> None:
        assert await render_with_fallback(StaticPhraseRenderer(""), _request(), "line") == (
            "line",
            "template",
        )

    async def test_failure_falls_to_template(self) -> None:
        assert await render_with_fallback(_Failing(), _request(), lambda: "line") == (
            "line",
            "template",
        )

    async def test_timeout_falls_to_template(self) -> None:
        result = await render_with_fallback(_Slow(), _request(), "line", timeout=0.01)
        assert result == ("line", "template")

    async def test_summary_tier(self) -> None:
        request = _request(strategy_summary="Stay polite.")
        assert await render_with_fallback(None, request) == ("Stay polite.", "summary")

    async def test_broken_template_falls_to_summary(self) -> None:
        def broken() -> str:
            raise TemplateError("bad slot")

        request = _request(strategy_summary="Stay polite.")
        assert await render_with_fallback(None, request, broken) == ("Stay polite.", "summary")

    async def test_fixed_tier(self) -> None:
        assert await render_with_fallback(None, _request()) == (FIXED_LINE, "fixed")

    async def test_unexpected_error_falls_to_template(self) -> None:
        assert await render_with_fallback(_Crashing(), _request(), "line") == ("line", "template")

    async def test_transport_error_falls_to_template(self) -> None:
        renderer = HttpPhraseRenderer(provider_url="http://localhost:5001")
        with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ReadError("reset"))):
            result = await render_with_fallback(renderer, _request(), "line")
        assert result == ("line", "template")
