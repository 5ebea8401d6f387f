"""multibot: a command framework for chat-platform bots."""

__version__ = "1.0.0"
