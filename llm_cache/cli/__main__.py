"""CLI entry point.

Allows running the CLI as a module: python -m llm_cache.cli
"""

from llm_cache.cli import app

if __name__ == "__main__":
    app()
