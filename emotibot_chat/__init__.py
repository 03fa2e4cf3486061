"""
EmotiBot Chat - a mood-aware conversational front-end.

This package classifies the mood of user input, relays it to a remote LLM chat
API, exposes the reply as observable state and optionally speaks it aloud with
mood-tuned prosody.
"""

__version__ = "0.1.0"
