"""Guest cart persistence - one JSON document per device in the local store"""

import json
import logging

from pydantic import TypeAdapter, ValidationError

from ...client.local_store import LocalStore
from ...config import GUEST_CART_KEY
from .schemas import GuestCartItem

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(list[GuestCartItem])


class GuestCartStore:
    """
    Read-modify-write access to the guest cart document.

    Callers always load() immediately before mutating and save() the whole
    list back; nothing is cached in memory between operations. Storage
    failures surface as RedisError so a mutation never writes over a copy
    it could not read.
    """

    def __init__(self, store: LocalStore, key: str = GUEST_CART_KEY):
        self.store = store
        self.key = key

    def load(self) -> list[GuestCartItem]:
        raw = self.store.read(self.key)
        if not raw:
            return []
        try:
            return _items_adapter.validate_python(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error(f"❌ Discarding unreadable guest cart for device {self.store.device_id}: {e}")
            return []

    def save(self, items: list[GuestCartItem]) -> None:
        self.store.write(self.key, json.dumps([item.model_dump() for item in items]))

    def clear(self) -> None:
        self.store.delete(self.key)
