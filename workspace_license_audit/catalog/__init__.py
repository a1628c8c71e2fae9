"""
SKU catalog — human-readable license names to SKU identifiers.
Loaded from ``sku_catalog.json`` so it can be updated without code changes.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

from ..config import ConfigurationError

CATALOG_PATH = Path(__file__).parent / "sku_catalog.json"


@lru_cache(maxsize=None)
def load_sku_catalog(path: Optional[str] = None) -> dict[str, dict[str, str]]:
    """Return ``{product_id: {sku_name: sku_id}}``."""
    source = Path(path) if path else CATALOG_PATH
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot load SKU catalog {source}: {e}")
    return {
        product: dict(skus)
        for product, skus in data.items()
        if not product.startswith("_") and isinstance(skus, dict)
    }


def resolve_sku(product_id: str, name_or_id: str, catalog: Optional[dict] = None) -> str:
    """
    Map a SKU name (case-insensitive) to its identifier.
    Values that are not catalog names pass through as raw SKU ids.
    """
    skus = (catalog or load_sku_catalog()).get(product_id, {})
    wanted = name_or_id.strip().lower()
    for name, sku_id in skus.items():
        if name.lower() == wanted:
            return sku_id
    return name_or_id.strip()


def sku_name(product_id: str, sku_id: str, catalog: Optional[dict] = None) -> str:
    """Catalog name for a SKU id, or the id itself if unknown."""
    for name, known_id in (catalog or load_sku_catalog()).get(product_id, {}).items():
        if known_id == sku_id:
            return name
    return sku_id
