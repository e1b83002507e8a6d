"""Context assembly for provider calls."""

from thicket.context.builder import BuiltContext, ContextBuilder, LLMMessage

__all__ = ["BuiltContext", "ContextBuilder", "LLMMessage"]
