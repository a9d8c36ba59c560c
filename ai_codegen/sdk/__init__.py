"""
SDK for AI Codegen.

Provides programmatic access to cached, rate-limited code generation.
"""

from .openai_client import CompletionClient

__all__ = ["CompletionClient"]
