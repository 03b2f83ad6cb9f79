"""Send text to a chat-completion model and hand the reply back."""

__version__ = "1.0.0"
