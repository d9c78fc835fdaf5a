"""Signing, verification and key management for Uptane metadata."""

__version__ = "0.3.0"
