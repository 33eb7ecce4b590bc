"""Tests for Pydantic configuration models.

These tests verify:
1. Default values
2. Timeout validation (must be positive)
3. URL validation for RemoteClientConfig
4. Port and path validation for WebSocketChannelConfig
"""

import pytest
from pydantic import ValidationError

from framebridge.config import (
    DEFAULT_FRAME_ID,
    BridgeConfig,
    RemoteClientConfig,
    WebSocketChannelConfig,
)


class TestBridgeConfig:
    """Tests for BridgeConfig."""

    def test_default_values(self) -> None:
        """Test default configuration."""
        config = BridgeConfig()
        assert config.default_timeout == 5.0
        assert config.default_frame_id == DEFAULT_FRAME_ID
        assert config.on_send_error is None

    def test_with_callback(self) -> None:
        """Test with error callback."""
        def redact_error(e: Exception) -> Exception:
            return Exception("redacted")

        config = BridgeConfig(on_send_error=redact_error)
        assert config.on_send_error is not None
        assert str(config.on_send_error(ValueError("secret"))) == "redacted"

    def test_invalid_timeout(self) -> None:
        """Test zero and negative timeouts are rejected."""
        with pytest.raises(ValidationError):
            BridgeConfig(default_timeout=0)
        with pytest.raises(ValidationError):
            BridgeConfig(default_timeout=-1)

    def test_empty_frame_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BridgeConfig(default_frame_id="")


class TestRemoteClientConfig:
    """Tests for RemoteClientConfig."""

    def test_valid_url(self) -> None:
        """Test valid HTTP URLs."""
        config = RemoteClientConfig(base_url="http://localhost:3000/poto")
        assert config.base_url == "http://localhost:3000/poto"
        assert config.timeout == 30.0  # default
        assert config.login_path == "poto-login"
        assert config.token is None

    def test_trailing_slash_stripped(self) -> None:
        config = RemoteClientConfig(base_url="https://api.example.com/poto/")
        assert config.base_url == "https://api.example.com/poto"

    def test_invalid_url_scheme(self) -> None:
        """Test invalid URL schemes are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            RemoteClientConfig(base_url="ws://example.com")
        assert "URL must start with" in str(exc_info.value)

    def test_empty_url_rejected(self) -> None:
        """Test empty URL is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            RemoteClientConfig(base_url="")
        assert "URL cannot be empty" in str(exc_info.value)

    def test_url_required(self) -> None:
        with pytest.raises(ValidationError):
            RemoteClientConfig()

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ValidationError):
            RemoteClientConfig(base_url="http://localhost", timeout=0)


class TestWebSocketChannelConfig:
    """Tests for WebSocketChannelConfig."""

    def test_default_values(self) -> None:
        config = WebSocketChannelConfig()
        assert config.host == "localhost"
        assert config.port == 8080
        assert config.path == "/bridge"

    def test_any_free_port(self) -> None:
        assert WebSocketChannelConfig(port=0).port == 0

    def test_invalid_port(self) -> None:
        """Test ports outside 0-65535 are rejected."""
        with pytest.raises(ValidationError):
            WebSocketChannelConfig(port=-1)
        with pytest.raises(ValidationError):
            WebSocketChannelConfig(port=70000)

    def test_path_validation(self) -> None:
        assert WebSocketChannelConfig(path="/frames/").path == "/frames"
        with pytest.raises(ValidationError) as exc_info:
            WebSocketChannelConfig(path="frames")
        assert "Path must start with '/'" in str(exc_info.value)
