"""
Account package.

Exposes the API-key check the weather endpoints are gated by.
"""

from havo.api.accounts.authorization import ApiKeyGate
from havo.api.accounts.store import AccountStore, ApiKeyNotFound

__all__ = ["ApiKeyGate", "AccountStore", "ApiKeyNotFound"]
