"""Queues, track sources, guild settings and replies for a voice-channel music bot."""

__version__ = "1.6.0"