"""claudish: Anthropic Messages gateway for heterogeneous LLM providers."""

__version__ = "0.4.0"
