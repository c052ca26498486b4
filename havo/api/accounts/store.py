"""
Account store — read-only access to the api_keys table.

Only the API-key check lives here; signup, login and key issuance are owned by
the account service that writes the table.
"""

from __future__ import annotations

import logging
from typing import Any

from havo.api.weather.errors import StoreFailure

logger = logging.getLogger(__name__)

_CHECK_API_KEY_SQL = """
SELECT COUNT(*) FROM api_keys
WHERE api_key = $1
"""


class ApiKeyNotFound(Exception):
    """No api_keys row matches the key."""


class AccountStore:
    def __init__(self, pool: Any) -> None:
        """
        Args:
            pool: asyncpg connection pool (or anything with an async fetchval).
        """
        self._pool = pool

    async def check_api_key(self, api_key: str) -> bool:
        """Return True when the key exists. Raises ApiKeyNotFound or StoreFailure."""
        try:
            count = await self._pool.fetchval(_CHECK_API_KEY_SQL, api_key)
        except Exception as exc:
            raise StoreFailure(f"failed to scan count of api key in the database: {exc}") from exc

        if count and count > 0:
            return True
        raise ApiKeyNotFound()
