"""Unit tests for LLMGateway – the LiteLLM-backed completion interface.

All LiteLLM calls are mocked so tests run without API keys or network access.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from prdforge.llm.exceptions import ConfigurationError, RetryExhaustedError
from prdforge.llm.gateway import (
    LLM_ERRORS,
    LLMGateway,
    _estimate_cost,
    _truncate,
    _truncate_messages,
)
from prdforge.llm.models import GatewayConfig

_MESSAGES = [{"role": "user", "content": "hi"}]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_response(
    text: str | None = "Hello!",
    finish_reason: str | None = "stop",
    prompt_tokens: int = 10,
    completion_tokens: int = 5,
    total_tokens: int = 15,
) -> MagicMock:
    """Build a mock LiteLLM response object."""
    choice = SimpleNamespace(
        message=SimpleNamespace(content=text),
        finish_reason=finish_reason,
    )
    usage = SimpleNamespace(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
    )
    resp = MagicMock()
    resp.choices = [choice]
    resp.usage = usage
    return resp


# ---------------------------------------------------------------------------
# Tests for helper functions
# ---------------------------------------------------------------------------


class TestTruncate:
    """Tests for _truncate helper."""

    def test_short_text_unchanged(self) -> None:
        assert _truncate("hello", max_len=10) == "hello"

    def test_long_text_truncated(self) -> None:
        assert _truncate("abcdefghij", max_len=5) == "abcde…"

    def test_default_max_len(self) -> None:
        assert _truncate("x" * 1000) == "x" * 1000
        assert _truncate("x" * 1001).endswith("…")


class TestTruncateMessages:
    def test_truncates_long_content(self) -> None:
        result = _truncate_messages([{"role": "user", "content": "x" * 2000}])
        assert len(result[0]["content"]) < 2000

    def test_preserves_non_string_content(self) -> None:
        assert _truncate_messages([{"role": "user", "content": 42}])[0]["content"] == 42

    def test_does_not_mutate_original(self) -> None:
        msgs = [{"role": "user", "content": "x" * 2000}]
        _truncate_messages(msgs)
        assert len(msgs[0]["content"]) == 2000


class TestEstimateCost:
    def test_known_model(self) -> None:
        assert abs(_estimate_cost("gpt-4o-mini", 1_000_000, 1_000_000) - 0.75) < 0.01

    def test_unknown_model_is_zero(self) -> None:
        assert _estimate_cost("unknown-model", 100, 100) == 0.0


# ---------------------------------------------------------------------------
# Initialisation and model selection
# ---------------------------------------------------------------------------


class TestGatewayInit:
    def test_default_config(self) -> None:
        gw = LLMGateway()
        assert gw.config.default_provider == "openai"
        assert gw.logs == []

    def test_custom_config(self) -> None:
        gw = LLMGateway(config=GatewayConfig(max_retries=2, base_retry_delay=0.5))
        assert gw.config.max_retries == 2


class TestSelectModel:
    """Tests for provider-based model selection."""

    def test_default_provider(self) -> None:
        assert LLMGateway().select_model() == "gpt-4o-mini"

    def test_named_provider(self) -> None:
        assert "claude" in LLMGateway().select_model("anthropic")

    def test_configured_default_provider(self) -> None:
        gw = LLMGateway(GatewayConfig(default_provider="gemini"))
        assert gw.select_model() == "gemini/gemini-1.5-flash"

    def test_unknown_provider_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="prdforge.llm.gateway"):
            model = LLMGateway().select_model("nonexistent")
        assert model == "gpt-4o-mini"
        assert "falling back" in caplog.text

    def test_fallback_follows_priority(self) -> None:
        gw = LLMGateway(GatewayConfig(provider_models={"gemini": "gemini/x", "anthropic": "claude-x"}))
        assert gw.select_model("openai") == "claude-x"

    def test_no_models_raises(self) -> None:
        gw = LLMGateway(GatewayConfig(provider_models={}))
        with pytest.raises(ConfigurationError, match="No model configured"):
            gw.select_model()


# ---------------------------------------------------------------------------
# complete()
# ---------------------------------------------------------------------------


class TestComplete:
    """Tests for the complete method."""

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_basic_completion(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response(text="Hi there!")
        result = LLMGateway().complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert result == "Hi there!"
        mock_completion.assert_called_once()

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_default_model_selected(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response()
        LLMGateway(GatewayConfig(default_provider="anthropic")).complete(messages=_MESSAGES)
        assert mock_completion.call_args.kwargs["model"] == "claude-3-5-haiku-20241022"

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_forwards_kwargs(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response()
        LLMGateway().complete(messages=_MESSAGES, model="gpt-4o", temperature=0.3, max_tokens=50)
        kwargs = mock_completion.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 50
        assert kwargs["messages"] == _MESSAGES

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_creates_log_entry(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response(text="logged")
        gw = LLMGateway()
        gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert len(gw.logs) == 1
        log = gw.logs[0]
        assert log.model == "gpt-4o-mini"
        assert log.response == "logged"
        assert log.finish_reason == "stop"
        assert log.tokens_total == 15
        assert log.truncated is False
        assert log.latency_ms >= 0

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_handles_none_content(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response(text=None)
        assert LLMGateway().complete(messages=_MESSAGES, model="gpt-4o-mini") == ""

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_handles_none_usage(self, mock_completion: MagicMock) -> None:
        resp = _mock_response()
        resp.usage = None
        mock_completion.return_value = resp
        gw = LLMGateway()
        gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert gw.logs[0].tokens_total == 0

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_length_finish_reason_warns(
        self, mock_completion: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        mock_completion.return_value = _mock_response(text='[{"a": 1}, {"b":', finish_reason="length")
        gw = LLMGateway()
        with caplog.at_level(logging.WARNING, logger="prdforge.llm.gateway"):
            text = gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert text == '[{"a": 1}, {"b":'
        assert gw.logs[0].truncated is True
        assert "likely truncated" in caplog.text


# ---------------------------------------------------------------------------
# Retry logic
# ---------------------------------------------------------------------------


class TestRetryLogic:
    """Tests for exponential backoff retry behaviour."""

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_retries_on_rate_limit(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        from litellm.exceptions import RateLimitError

        mock_completion.side_effect = [
            RateLimitError(message="rate limited", llm_provider="openai", model="gpt-4o-mini"),
            _mock_response(text="success after retry"),
        ]
        gw = LLMGateway(GatewayConfig(max_retries=2, base_retry_delay=0.01))
        assert gw.complete(messages=_MESSAGES, model="gpt-4o-mini") == "success after retry"
        assert mock_sleep.call_count == 1

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_retries_on_timeout(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        mock_completion.side_effect = [TimeoutError("timed out"), _mock_response(text="recovered")]
        gw = LLMGateway(GatewayConfig(max_retries=2, base_retry_delay=0.01))
        assert gw.complete(messages=_MESSAGES, model="gpt-4o-mini") == "recovered"

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_retry_exhausted_raises(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        mock_completion.side_effect = TimeoutError("always fails")
        gw = LLMGateway(GatewayConfig(max_retries=2, base_retry_delay=0.01))
        with pytest.raises(RetryExhaustedError) as exc_info:
            gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, TimeoutError)
        assert exc_info.value.model == "gpt-4o-mini"
        assert "gpt-4o-mini" in str(exc_info.value)

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_no_retry_on_auth_error(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        from litellm.exceptions import AuthenticationError

        mock_completion.side_effect = AuthenticationError(
            message="invalid key", llm_provider="openai", model="gpt-4o-mini"
        )
        with pytest.raises(AuthenticationError):
            LLMGateway().complete(messages=_MESSAGES, model="gpt-4o-mini")
        mock_sleep.assert_not_called()

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_no_retry_on_bad_request(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        from litellm.exceptions import BadRequestError

        mock_completion.side_effect = BadRequestError(
            message="invalid params", llm_provider="openai", model="gpt-4o-mini"
        )
        with pytest.raises(BadRequestError):
            LLMGateway().complete(messages=_MESSAGES, model="gpt-4o-mini")
        mock_sleep.assert_not_called()

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_exponential_backoff_delays(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        mock_completion.side_effect = TimeoutError("fail")
        gw = LLMGateway(GatewayConfig(max_retries=3, base_retry_delay=1.0))
        with pytest.raises(RetryExhaustedError):
            gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]

    @patch("prdforge.llm.gateway.time.sleep")
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_zero_retries_fails_immediately(self, mock_completion: MagicMock, mock_sleep: MagicMock) -> None:
        mock_completion.side_effect = TimeoutError("fail")
        gw = LLMGateway(GatewayConfig(max_retries=0, base_retry_delay=0.01))
        with pytest.raises(RetryExhaustedError) as exc_info:
            gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        assert exc_info.value.attempts == 1
        mock_sleep.assert_not_called()

    def test_llm_errors_tuple(self) -> None:
        from litellm.exceptions import AuthenticationError, RateLimitError

        assert any(issubclass(RetryExhaustedError, e) for e in LLM_ERRORS)
        assert RateLimitError in LLM_ERRORS
        assert AuthenticationError in LLM_ERRORS
        assert TimeoutError in LLM_ERRORS


# ---------------------------------------------------------------------------
# Log retrieval
# ---------------------------------------------------------------------------


class TestGetLogs:
    @patch("prdforge.llm.gateway.litellm_completion")
    def test_time_filter(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response()
        gw = LLMGateway()
        gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        now = datetime.now(timezone.utc)
        assert len(gw.get_logs()) == 1
        assert len(gw.get_logs(start_time=now - timedelta(minutes=1))) == 1
        assert gw.get_logs(start_time=now + timedelta(minutes=1)) == []
        assert gw.get_logs(end_time=now - timedelta(minutes=1)) == []

    @patch("prdforge.llm.gateway.litellm_completion")
    def test_logs_property_returns_copy(self, mock_completion: MagicMock) -> None:
        mock_completion.return_value = _mock_response()
        gw = LLMGateway()
        gw.complete(messages=_MESSAGES, model="gpt-4o-mini")
        gw.logs.clear()
        assert len(gw.logs) == 1
