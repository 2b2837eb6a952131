"""
Secure Storage

Encrypted key-value store for data held on behalf of the rest of the
platform (profile data, preferences, communication history, contracts,
cookie choices). Values are JSON-encoded and Fernet-encrypted at rest.
Expired items read as missing and are removed on read.

Writes are added to the caller's session; committing is the caller's job.
"""

import json
import logging
from datetime import timedelta
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.ext.asyncio import AsyncSession

from boligdeposit.exceptions import StorageError
from boligdeposit.models.secure_item import SecureItem
from boligdeposit.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Default lifetime of temporary items (minutes)
TEMP_ITEM_MINUTES = 5


class SecureStorage:
    def __init__(self, db: AsyncSession, fernet: Fernet, now=None):
        self.db = db
        self.fernet = fernet
        self._now = now

    def _current_time(self):
        return self._now or utcnow()

    def _encrypt(self, value: Any) -> str:
        return self.fernet.encrypt(json.dumps(value, default=str).encode("utf-8")).decode("utf-8")

    def _decrypt(self, key: str, token: str) -> Any:
        try:
            return json.loads(self.fernet.decrypt(token.encode("utf-8")))
        except (InvalidToken, ValueError) as exc:
            logger.error("secure_storage: unreadable value for key %s", key)
            raise StorageError(f"Stored value for '{key}' is unreadable", operation="get_item") from exc

    async def get_item(self, key: str) -> Any | None:
        item = await self.db.get(SecureItem, key)
        if item is None:
            return None
        if item.is_expired(self._current_time()):
            await self.db.delete(item)
            await self.db.flush()
            return None
        return self._decrypt(key, item.value)

    async def set_item(self, key: str, value: Any, expire_minutes: int | None = None) -> None:
        now = self._current_time()
        expires_at = now + timedelta(minutes=expire_minutes) if expire_minutes else None
        encrypted = self._encrypt(value)

        item = await self.db.get(SecureItem, key)
        if item is None:
            self.db.add(SecureItem(key=key, value=encrypted, created_at=now, expires_at=expires_at))
        else:
            item.value = encrypted
            item.created_at = now
            item.expires_at = expires_at
        await self.db.flush()

    async def set_temp_item(self, key: str, value: Any, expire_minutes: int = TEMP_ITEM_MINUTES) -> None:
        await self.set_item(key, value, expire_minutes=expire_minutes)

    async def remove_item(self, key: str) -> bool:
        item = await self.db.get(SecureItem, key)
        if item is None:
            return False
        await self.db.delete(item)
        await self.db.flush()
        return True
