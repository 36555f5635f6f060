"""LLM response cache and usage analytics."""

__version__ = "1.0.0"
