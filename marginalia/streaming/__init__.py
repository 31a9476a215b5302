"""Forwarding of research debug events to external consumers."""

from .webhook import WebhookConfig, WebhookForwarder

__all__ = ["WebhookConfig", "WebhookForwarder"]
