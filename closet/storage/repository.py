"""JSON-backed storage for the garment catalog and the user's reference photo."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Mapping

from closet.errors import InvalidInputError
from closet.storage.models import (
    Category,
    GarmentDraft,
    GarmentRecord,
    ImagePayload,
    UserModelPhoto,
    normalize_tags,
)

CATALOG_KEY = "virtual_closet"
USER_PHOTO_KEY = "virtual_closet_user_image"

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Keyed get/set persistence with JSON-serializable values."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or ``None`` when the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``."""


class JsonFileStore(KeyValueStore):
    """Stores each key as ``<root>/<key>.json``."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._locks: dict[str, asyncio.Lock] = {}

    def _path(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def _lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        async with self._lock_for(key):
            if not path.exists():
                return None
            try:
                data = await asyncio.to_thread(path.read_text, encoding="utf-8")
                return json.loads(data)
            except (OSError, json.JSONDecodeError):
                logger.warning("Could not read %s; treating it as empty.", path, exc_info=True)
                return None

    async def set(self, key: str, value: Any) -> None:
        body = json.dumps(value, ensure_ascii=False)
        async with self._lock_for(key):
            await asyncio.to_thread(self._write_file, self._path(key), body)

    @staticmethod
    def _write_file(path: Path, body: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(path)


def _new_item_id() -> str:
    return f"item-{uuid.uuid4().hex}"


class CatalogStore:
    """Owns the garment collection and the single user photo.

    Writes are serialized through one lock and publish a new tuple only after
    the value was persisted, so readers always see a complete snapshot.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        id_factory: Callable[[], str] = _new_item_id,
    ) -> None:
        self._store = store
        self._id_factory = id_factory
        self._items: tuple[GarmentRecord, ...] = ()
        self._user_photo: UserModelPhoto | None = None
        self._write_lock = asyncio.Lock()
        self._loaded = False

    @classmethod
    async def open(cls, store: KeyValueStore, **kwargs: Any) -> "CatalogStore":
        catalog = cls(store, **kwargs)
        await catalog.load()
        return catalog

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def items(self) -> tuple[GarmentRecord, ...]:
        return self._items

    @property
    def user_photo(self) -> UserModelPhoto | None:
        return self._user_photo

    async def load(self) -> None:
        """Read the catalog and photo; anything unreadable loads as empty."""

        raw_items = await self._store.get(CATALOG_KEY)
        items: list[GarmentRecord] = []
        if isinstance(raw_items, list):
            for entry in raw_items:
                if not isinstance(entry, Mapping):
                    continue
                try:
                    items.append(GarmentRecord.from_dict(entry))
                except InvalidInputError as exc:
                    logger.warning("Skipping stored garment %s: %s", entry.get("id"), exc)
        elif raw_items is not None:
            logger.warning("Stored catalog has unexpected type %s; starting empty.", type(raw_items).__name__)

        raw_photo = await self._store.get(USER_PHOTO_KEY)
        photo: UserModelPhoto | None = None
        if isinstance(raw_photo, Mapping):
            try:
                photo = UserModelPhoto.from_dict(raw_photo)
            except InvalidInputError as exc:
                logger.warning("Ignoring stored user photo: %s", exc)

        self._items = tuple(items)
        self._user_photo = photo
        self._loaded = True

    async def add_item(self, draft: GarmentDraft | Mapping[str, Any]) -> GarmentRecord:
        """Persist a confirmed draft as a new record with a fresh id."""

        image_data, mime_type, category, name, tags = self._pick_fields(draft)
        if not image_data:
            raise InvalidInputError("A garment needs image data before it can be saved.")
        if not isinstance(image_data, (bytes, bytearray)):
            raise InvalidInputError("Garment image data must be raw bytes.")
        if isinstance(tags, str):
            tags = (tags,)
        if not mime_type:
            raise InvalidInputError("A garment needs a mime type before it can be saved.")
        if category is None:
            raise InvalidInputError("A garment needs a category before it can be saved.")

        record = GarmentRecord(
            id=self._id_factory(),
            image_data=bytes(image_data),
            mime_type=str(mime_type),
            category=Category.parse(category),
            name=str(name or "").strip(),
            tags=normalize_tags(tags or ()),
        )
        async with self._write_lock:
            updated = self._items + (record,)
            await self._persist_items(updated)
            self._items = updated
        logger.info("Added %s garment %s.", record.category.value, record.id)
        return record

    async def remove_item(self, item_id: str) -> None:
        """Remove the record with ``item_id``; unknown ids are ignored."""

        async with self._write_lock:
            updated = tuple(item for item in self._items if item.id != item_id)
            if len(updated) == len(self._items):
                return
            await self._persist_items(updated)
            self._items = updated
        logger.info("Removed garment %s.", item_id)

    async def set_user_photo(self, photo: UserModelPhoto) -> None:
        async with self._write_lock:
            await self._store.set(USER_PHOTO_KEY, photo.to_dict())
            self._user_photo = photo

    def get_item(self, item_id: str) -> GarmentRecord | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def items_by_category(self, category: Category | str) -> list[GarmentRecord]:
        wanted = Category.parse(category)
        return [item for item in self._items if item.category is wanted]

    def by_category(self) -> dict[Category, list[GarmentRecord]]:
        """Map each represented category to its records in insertion order."""

        grouped: dict[Category, list[GarmentRecord]] = {}
        for item in self._items:
            grouped.setdefault(item.category, []).append(item)
        return grouped

    def available_categories(self) -> list[Category]:
        present = {item.category for item in self._items}
        return [category for category in Category if category in present]

    def search(self, term: str) -> list[GarmentRecord]:
        """Case-insensitive match against names and tags."""

        lowered = term.strip().lower()
        if not lowered:
            return list(self._items)
        return [
            item
            for item in self._items
            if lowered in item.name.lower() or any(lowered in tag for tag in item.tags)
        ]

    async def _persist_items(self, items: tuple[GarmentRecord, ...]) -> None:
        await self._store.set(CATALOG_KEY, [item.to_dict() for item in items])

    @staticmethod
    def _pick_fields(
        draft: GarmentDraft | Mapping[str, Any],
    ) -> tuple[bytes | None, str | None, Any, Any, Any]:
        # Only these fields ever reach storage; anything else on the draft is dropped.
        if isinstance(draft, GarmentDraft):
            return draft.image.data, draft.image.mime_type, draft.category, draft.name, draft.tags
        image = draft.get("image")
        if isinstance(image, ImagePayload):
            image_data, mime_type = image.data, image.mime_type
        else:
            image_data, mime_type = draft.get("image_data"), draft.get("mime_type")
        return image_data, mime_type, draft.get("category"), draft.get("name"), draft.get("tags")


class ClosetRepository:
    """Hands out one loaded catalog per user, each stored in its own directory."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)
        self._catalogs: dict[str, CatalogStore] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        if user_id not in self._locks:
            self._locks[user_id] = asyncio.Lock()
        return self._locks[user_id]

    async def catalog(self, user_id: str) -> CatalogStore:
        async with self._lock_for(user_id):
            catalog = self._catalogs.get(user_id)
            if catalog is None:
                catalog = await CatalogStore.open(JsonFileStore(self._root / user_id))
                self._catalogs[user_id] = catalog
            return catalog
