"""Pydantic configuration models for framebridge.

These models are only used at construction time (bridges, remote clients,
WebSocket channels). Wire messages stay plain frozen dataclasses.
"""

from __future__ import annotations

from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FRAME_ID = "default-frame"


class BridgeConfig(BaseModel):
    """Configuration for a Bridge.

    Attributes:
        default_timeout: Seconds a call waits for its reply before failing
        default_frame_id: Identity used when a frame handler is registered
            without an explicit identity
        on_send_error: Optional callback to transform errors before they are
            sent back to a caller. Returning None keeps the original error.
    """

    model_config = ConfigDict(
        frozen=False,
        arbitrary_types_allowed=True,
    )

    default_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Call timeout in seconds",
    )
    default_frame_id: str = Field(
        default=DEFAULT_FRAME_ID,
        min_length=1,
        description="Identity for frame handlers registered without one",
    )
    on_send_error: Callable[[Exception], Exception | None] | None = None


class RemoteClientConfig(BaseModel):
    """Configuration for the HTTP client behind remote module proxies.

    Attributes:
        base_url: Server base URL, e.g. "http://localhost:3000/poto"
        timeout: Per-request timeout in seconds
        token: Optional bearer token sent with every call
        login_path: Route used by RemoteModuleClient.login()
    """

    model_config = ConfigDict(frozen=False)

    base_url: str = Field(..., description="Remote RPC server base URL")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout")
    token: str | None = None
    login_path: str = Field(default="poto-login", min_length=1)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip the trailing slash."""
        if not v:
            raise ValueError("URL cannot be empty")

        valid_schemes = ("http://", "https://")
        if not any(v.startswith(scheme) for scheme in valid_schemes):
            raise ValueError(
                f"URL must start with one of: {', '.join(valid_schemes)}"
            )
        return v.rstrip("/")


class WebSocketChannelConfig(BaseModel):
    """Configuration for the WebSocket host channel.

    Attributes:
        host: Host to bind to
        port: Port to bind to (0 picks a free port)
        path: Route prefix; guests connect to "<path>/<frame_id>"
    """

    model_config = ConfigDict(frozen=False)

    host: str = Field(default="localhost", description="Host to bind to")
    port: int = Field(default=8080, ge=0, le=65535, description="Port to bind to")
    path: str = Field(default="/bridge", description="WebSocket route prefix")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Require an absolute path without a trailing slash."""
        if not v.startswith("/"):
            raise ValueError("Path must start with '/'")
        return v.rstrip("/") or "/"
