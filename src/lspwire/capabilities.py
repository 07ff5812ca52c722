"""Default client capabilities sent with ``initialize``.

Only what this client actually guarantees is declared here. Callers pass
their own capabilities as plain dicts; they are deep-merged over the
defaults, so caller values win.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lspwire.config.merge import merge_configs


class CapabilityModel(BaseModel):
    """Base model for capability types with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)


class HoverClientCapabilities(CapabilityModel):
    """Hover capabilities: plain text rendering only."""

    dynamic_registration: bool = Field(default=False, alias="dynamicRegistration")
    content_format: list[str] = Field(
        default_factory=lambda: ["plaintext"], alias="contentFormat"
    )


class TextDocumentClientCapabilities(CapabilityModel):
    """Text document capabilities."""

    hover: HoverClientCapabilities = Field(default_factory=HoverClientCapabilities)


class ClientCapabilities(CapabilityModel):
    """Client capabilities sent during initialization."""

    text_document: TextDocumentClientCapabilities = Field(
        default_factory=TextDocumentClientCapabilities, alias="textDocument"
    )


def default_capabilities() -> dict[str, Any]:
    """The documented default capabilities as a wire-format dict."""
    return ClientCapabilities().model_dump(by_alias=True)


def merge_capabilities(*overrides: dict[str, Any] | None) -> dict[str, Any]:
    """Deep-merge caller capabilities over the defaults, later ones winning."""
    return merge_configs(default_capabilities(), *overrides)
