"""pluqqy - compose LLM prompts from reusable markdown fragments."""

__version__ = "0.1.0"
