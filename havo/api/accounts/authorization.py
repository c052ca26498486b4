"""API-key gate in front of the weather endpoints."""

from __future__ import annotations

import logging

from havo.api.accounts.store import AccountStore, ApiKeyNotFound
from havo.api.weather.errors import AuthorizationDenied

logger = logging.getLogger(__name__)


class ApiKeyGate:
    """
    Yes/no check of a caller's API key.

    authorize() returns True for a known key, raises AuthorizationDenied for
    an unknown one and lets StoreFailure through for database problems.
    """

    def __init__(self, store: AccountStore) -> None:
        self._store = store

    async def authorize(self, api_key: str) -> bool:
        try:
            valid = await self._store.check_api_key(api_key)
        except ApiKeyNotFound:
            logger.info("Rejected unknown API key ending in %s", api_key[-4:])
            raise AuthorizationDenied("API key has been disabled.") from None
        if not valid:
            raise AuthorizationDenied("API key has been disabled.")
        return True
