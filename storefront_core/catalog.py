"""
catalog.py — Read-only Catalog Lookup

The pricing engine only needs current variant + product snapshots for a set of
variant ids and SKUs. Any storage can provide them by implementing CatalogLookup;
InMemoryCatalog serves development and tests.
"""

import threading
from typing import Dict, Iterable, List, Optional, Protocol

from .models import CatalogItem, Product, Variant


class CatalogLookup(Protocol):
    def find_variants(self, variant_ids: Iterable[str], skus: Iterable[str]) -> List[CatalogItem]:
        """Returns every variant matching one of the ids or SKUs, in any order."""
        ...


class InMemoryCatalog:
    """Catalog held in process memory, keyed by product id."""

    def __init__(self, products: Optional[Iterable[Product]] = None):
        self._lock = threading.Lock()
        self._products: Dict[str, Product] = {}
        for product in products or []:
            self.add_product(product)

    def add_product(self, product: Product):
        with self._lock:
            self._products[product.id] = product

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return self._products.get(product_id)

    def get_variant(self, variant_id: str) -> Optional[CatalogItem]:
        items = self.find_variants([variant_id], [])
        return items[0] if items else None

    def find_variants(self, variant_ids: Iterable[str], skus: Iterable[str]) -> List[CatalogItem]:
        wanted_ids = set(variant_ids)
        wanted_skus = set(skus)
        with self._lock:
            products = list(self._products.values())

        found = []
        for product in products:
            for variant in product.variants:
                if variant.id in wanted_ids or (variant.sku and variant.sku in wanted_skus):
                    found.append(CatalogItem(variant=variant, product=product))
        return found
