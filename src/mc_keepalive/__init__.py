"""Resilient session and reconnection engine for a scripted Bedrock client."""

__version__ = "0.1.0"
