"""HTTP surface for Thicket."""

from thicket.server.app import PostMessageRequest, create_app, main

__all__ = ["PostMessageRequest", "create_app", "main"]
