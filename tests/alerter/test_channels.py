"""Tests for console, Telegram and webhook channels."""

import hashlib
import hmac
import io
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from genesis_alerts.alerter.channels.console import ConsoleChannel
from genesis_alerts.alerter.channels.errors import ChannelError, ChannelNotConfiguredError
from genesis_alerts.alerter.channels.telegram import TelegramChannel
from genesis_alerts.alerter.channels.webhook import SIGNATURE_HEADER, WebhookChannel
from genesis_alerts.alerter.models import Alert, AlertEvent, AlertType

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def sample_alert() -> Alert:
    """Create a sample single alert."""
    return Alert(
        id="alert-1",
        alert_type=AlertType.SINGLE,
        rule_name="Large USDC transfer",
        event=AlertEvent(event_id="E1", event_name="Transfer", block_number=19000000),
        severity="high",
        chain="ethereum",
    )


def mock_async_client(mock_client_class: MagicMock) -> AsyncMock:
    """Wire a patched httpx.AsyncClient class to return an async context manager."""
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    mock_client_class.return_value = mock_client
    return mock_client


# ============================================================================
# ConsoleChannel Tests
# ============================================================================


class TestConsoleChannel:
    """Tests for console channel."""

    @pytest.mark.asyncio
    async def test_send_writes_summary(self, sample_alert: Alert) -> None:
        """Test the alert summary is written to the stream."""
        stream = io.StringIO()
        channel = ConsoleChannel(stream=stream)

        result = await channel.send(sample_alert)

        assert result["channel"] == "console"
        output = stream.getvalue()
        assert "#1" in output
        assert "[HIGH] Large USDC transfer" in output
        assert "block 19000000" in output

    @pytest.mark.asyncio
    async def test_send_disabled_raises(self, sample_alert: Alert) -> None:
        """Test sending through a disabled console raises."""
        channel = ConsoleChannel(enabled=False, stream=io.StringIO())
        with pytest.raises(ChannelNotConfiguredError):
            await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_test(self) -> None:
        """Test connectivity check."""
        assert (await ConsoleChannel().test()).success is True
        assert (await ConsoleChannel(enabled=False).test()).success is False


# ============================================================================
# TelegramChannel Tests
# ============================================================================


class TestTelegramChannel:
    """Tests for Telegram channel."""

    def test_init(self) -> None:
        """Test channel initialization."""
        channel = TelegramChannel(bot_token="123456:ABC-DEF", chat_id="-1001234567890")
        assert channel.bot_token == "123456:ABC-DEF"
        assert channel.chat_id == "-1001234567890"
        assert channel.name == "telegram"
        assert channel.enabled is True

    def test_disabled_without_credentials(self) -> None:
        """Test the channel is disabled when a credential is missing."""
        assert TelegramChannel(bot_token=None, chat_id="1").enabled is False
        assert TelegramChannel(bot_token="t", chat_id=None).enabled is False

    @pytest.mark.asyncio
    async def test_send_success(self, sample_alert: Alert) -> None:
        """Test successful Telegram message send."""
        channel = TelegramChannel(bot_token="123456:ABC-DEF", chat_id="-100")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.json.return_value = {"ok": True, "result": {"message_id": 42}}
            mock_client = mock_async_client(mock_client_class)
            mock_client.post.return_value = mock_response

            result = await channel.send(sample_alert)

        assert result["channel"] == "telegram"
        assert result["message_id"] == 42
        url = mock_client.post.call_args.args[0]
        assert url == "https://api.telegram.org/bot123456:ABC-DEF/sendMessage"
        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["chat_id"] == "-100"
        assert "Large USDC transfer" in payload["text"]

    @pytest.mark.asyncio
    async def test_send_api_error_raises(self, sample_alert: Alert) -> None:
        """Test a Bot API error is raised as ChannelError."""
        channel = TelegramChannel(bot_token="123456:ABC-DEF", chat_id="-100")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.json.return_value = {
                "ok": False,
                "error_code": 400,
                "description": "Bad Request",
            }
            mock_async_client(mock_client_class).post.return_value = mock_response

            with pytest.raises(ChannelError, match="400 - Bad Request"):
                await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_send_rate_limited_raises(self, sample_alert: Alert) -> None:
        """Test a 429 answer is raised so the retry engine can back off."""
        channel = TelegramChannel(bot_token="123456:ABC-DEF", chat_id="-100")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.json.return_value = {
                "ok": False,
                "error_code": 429,
                "parameters": {"retry_after": 3},
            }
            mock_async_client(mock_client_class).post.return_value = mock_response

            with pytest.raises(ChannelError, match="429"):
                await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_send_timeout_raises(self, sample_alert: Alert) -> None:
        """Test transport timeouts are raised as ChannelError."""
        channel = TelegramChannel(bot_token="123456:ABC-DEF", chat_id="-100")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_async_client(mock_client_class).post.side_effect = httpx.ReadTimeout("slow")

            with pytest.raises(ChannelError, match="timeout"):
                await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_send_disabled_raises(self, sample_alert: Alert) -> None:
        """Test sending without credentials raises."""
        channel = TelegramChannel(bot_token=None, chat_id=None)
        with pytest.raises(ChannelNotConfiguredError):
            await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_test_calls_get_me(self) -> None:
        """Test the connectivity check uses getMe."""
        channel = TelegramChannel(bot_token="123456:ABC-DEF", chat_id="-100")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.json.return_value = {"ok": True, "result": {"id": 1}}
            mock_client = mock_async_client(mock_client_class)
            mock_client.post.return_value = mock_response

            result = await channel.test()

        assert result.success is True
        assert mock_client.post.call_args.args[0].endswith("/getMe")

    @pytest.mark.asyncio
    async def test_test_reports_failure(self) -> None:
        """Test a rejected token is reported, not raised."""
        channel = TelegramChannel(bot_token="bad", chat_id="-100")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.json.return_value = {
                "ok": False,
                "error_code": 401,
                "description": "Unauthorized",
            }
            mock_async_client(mock_client_class).post.return_value = mock_response

            result = await channel.test()

        assert result.success is False
        assert result.error is not None
        assert "Unauthorized" in result.error

    @pytest.mark.asyncio
    async def test_test_not_configured(self) -> None:
        """Test the check fails without credentials."""
        result = await TelegramChannel(bot_token=None, chat_id=None).test()
        assert result.success is False
        assert result.error == "Not configured"


# ============================================================================
# WebhookChannel Tests
# ============================================================================


class TestWebhookChannel:
    """Tests for webhook channel."""

    def test_init(self) -> None:
        """Test channel initialization."""
        channel = WebhookChannel("https://hooks.example.com/genesis", secret="s3cret")
        assert channel.name == "webhook"
        assert channel.enabled is True
        assert WebhookChannel(None).enabled is False

    @pytest.mark.asyncio
    async def test_send_success_signed(self, sample_alert: Alert) -> None:
        """Test the body is posted with a matching HMAC signature."""
        channel = WebhookChannel("https://hooks.example.com/genesis", secret="s3cret")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.status_code = 200
            mock_client = mock_async_client(mock_client_class)
            mock_client.post.return_value = mock_response

            result = await channel.send(sample_alert)

        assert result["channel"] == "webhook"
        assert result["status"] == 200

        kwargs = mock_client.post.call_args.kwargs
        body = kwargs["content"]
        expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        assert kwargs["headers"][SIGNATURE_HEADER] == expected
        assert kwargs["headers"]["Content-Type"] == "application/json"

        payload = json.loads(body)
        assert payload["id"] == "alert-1"
        assert payload["alert_type"] == "single"
        assert payload["event"]["event_id"] == "E1"

    @pytest.mark.asyncio
    async def test_send_unsigned_without_secret(self, sample_alert: Alert) -> None:
        """Test no signature header is sent without a secret."""
        channel = WebhookChannel("https://hooks.example.com/genesis")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.status_code = 204
            mock_client = mock_async_client(mock_client_class)
            mock_client.post.return_value = mock_response

            await channel.send(sample_alert)

        assert SIGNATURE_HEADER not in mock_client.post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_send_http_error_raises(self, sample_alert: Alert) -> None:
        """Test non-2xx responses raise ChannelError."""
        channel = WebhookChannel("https://hooks.example.com/genesis")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.status_code = 500
            mock_response.text = "Internal Server Error"
            mock_async_client(mock_client_class).post.return_value = mock_response

            with pytest.raises(ChannelError, match="500"):
                await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_send_connect_error_raises(self, sample_alert: Alert) -> None:
        """Test transport errors raise ChannelError."""
        channel = WebhookChannel("https://hooks.example.com/genesis")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_async_client(mock_client_class).post.side_effect = httpx.ConnectError(
                "refused"
            )

            with pytest.raises(ChannelError, match="refused"):
                await channel.send(sample_alert)

    @pytest.mark.asyncio
    async def test_send_disabled_raises(self, sample_alert: Alert) -> None:
        """Test sending without a URL raises."""
        with pytest.raises(ChannelNotConfiguredError):
            await WebhookChannel(None).send(sample_alert)

    @pytest.mark.asyncio
    async def test_post_without_url_raises(self) -> None:
        """Test the transport refuses to post without a URL."""
        with pytest.raises(ChannelNotConfiguredError):
            await WebhookChannel(None)._post({"type": "test"}, timeout=1.0)

    @pytest.mark.asyncio
    async def test_test_posts_test_payload(self) -> None:
        """Test the connectivity check posts a test payload."""
        channel = WebhookChannel("https://hooks.example.com/genesis")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.status_code = 200
            mock_client = mock_async_client(mock_client_class)
            mock_client.post.return_value = mock_response

            result = await channel.test()

        assert result.success is True
        payload = json.loads(mock_client.post.call_args.kwargs["content"])
        assert payload["type"] == "test"
        mock_client_class.assert_called_once_with(timeout=5.0)

    @pytest.mark.asyncio
    async def test_test_reports_failure(self) -> None:
        """Test failures are reported, not raised."""
        channel = WebhookChannel("https://hooks.example.com/genesis")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_response = MagicMock()
            mock_response.status_code = 404
            mock_response.text = "Not Found"
            mock_async_client(mock_client_class).post.return_value = mock_response

            result = await channel.test()

        assert result.success is False
        assert result.error is not None
        assert "404" in result.error
