"""
JSON-backed persistence provider.

This is the durable local store: each collection lives in its own JSON file
in a data directory and is rewritten after every mutation, the way a browser
keeps its state in local storage.

Design decisions:
- Collections are loaded lazily on the first call that needs them
- Missing files mean empty collections (except the seeded catalog files)
- Writes go to a temporary file first and are then moved into place
- Subscriptions reuse the in-memory signal bus, so only sessions in the
  same process hear about new notifications
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from storefront.config import PROVIDER_JSON, Settings, settings as default_settings
from storefront.models import (
    Ingredient,
    Order,
    Product,
    UserNotification,
    UserProfile,
)
from storefront.providers import InMemoryProvider, PersistenceProvider
from storefront.signals import SignalBus

logger = logging.getLogger("data_store")


COLLECTION_FILES = {
    "products": "products.json",
    "ingredients": "ingredients.json",
    "orders": "orders.json",
    "users": "users.json",
    "notifications": "notifications.json",
}


class DataStore(InMemoryProvider):
    """
    Provider that keeps every collection in a JSON file under data_dir.

    Example:
        store = DataStore(data_dir=Path("data"))
        products = await store.get_products()
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        signal_bus: Optional[SignalBus] = None,
        latency: float = 0.0,
    ):
        """
        Initialize the data store.

        Args:
            data_dir: Directory holding the JSON files. Defaults to the
                      configured BAKERY_DATA_DIR.
            signal_bus: Transport for new-notification signals
            latency: Simulated delay for every call, in seconds
        """
        super().__init__(signal_bus=signal_bus, latency=latency)
        if data_dir is None:
            data_dir = Path(default_settings.data_dir)
        self.data_dir = Path(data_dir)
        self._loaded = False

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, collection: str) -> list[dict]:
        filepath = self.data_dir / COLLECTION_FILES[collection]
        if not filepath.exists():
            return []
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._products = {p["id"]: Product(**p) for p in self._load_json("products")}
        self._ingredients = {i["id"]: Ingredient(**i) for i in self._load_json("ingredients")}
        self._orders = {o["id"]: Order(**o) for o in self._load_json("orders")}
        self._users = {u["id"]: UserProfile(**u) for u in self._load_json("users")}
        self._notifications = {n["id"]: UserNotification(**n) for n in self._load_json("notifications")}
        self._loaded = True
        logger.info(
            f"Loaded data from {self.data_dir}: {len(self._products)} products, "
            f"{len(self._orders)} orders, {len(self._notifications)} notifications"
        )

    # =========================================================================
    # Writing
    # =========================================================================

    def _persist(self, collection: str) -> None:
        records = getattr(self, f"_{collection}").values()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.data_dir / COLLECTION_FILES[collection]
        tmp_path = filepath.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump([r.model_dump(mode="json") for r in records], f, indent=2)
        os.replace(tmp_path, filepath)
        logger.debug(f"Wrote {collection} to {filepath}")

    def reload(self) -> None:
        """Drop the in-memory copy so the next call rereads the files."""
        self._loaded = False


def create_provider(config: Optional[Settings] = None) -> PersistenceProvider:
    """
    Build the provider selected by configuration.

    This is the only place that knows which backend is in use.
    """
    config = config or default_settings
    if config.provider == PROVIDER_JSON:
        logger.info(f"Using JSON data store at {config.data_dir}")
        return DataStore(
            data_dir=Path(config.data_dir),
            signal_bus=SignalBus(max_log=config.signal_log_size),
            latency=config.provider_latency,
        )

    logger.info("Using in-memory provider seeded from the bundled catalog")
    products, ingredients = load_catalog(Path(config.data_dir))
    return InMemoryProvider(
        products=products,
        ingredients=ingredients,
        signal_bus=SignalBus(max_log=config.signal_log_size),
        latency=config.provider_latency,
    )


def load_catalog(data_dir: Path) -> tuple[list[Product], list[Ingredient]]:
    """Read the seed products and ingredients from data_dir."""
    seed = DataStore(data_dir=data_dir)
    return (
        [Product(**p) for p in seed._load_json("products")],
        [Ingredient(**i) for i in seed._load_json("ingredients")],
    )
