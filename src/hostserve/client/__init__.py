"""Clients for external services."""

from .localapi import LocalAPIClient

__all__ = ["LocalAPIClient"]
