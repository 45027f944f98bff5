"""Beauty-clinic career agent: job matching, LLM conversation, avatar and speech adapters."""

__version__ = "0.1.0"
