"""Customer-support chat backend: conversation store, prompt assembly and LLM replies."""

__version__ = "1.0.0"
