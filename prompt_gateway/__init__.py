"""HTTP gateway relaying prompts to an LLM completion provider."""

__version__ = "1.0.0"
