"""Carpooling backend: email-verified accounts, ride listings and moderation."""

__version__ = "1.0.0"
