"""Inventory reconciliation: column mapping, staged matching and promotion."""

from __future__ import annotations

from .columns import ColumnMapping, InventoryRow, normalize_column_name, resolve_columns
from .engine import ReconciliationResult, reconcile_inventory
from .inventory import (
    ClearedInventory,
    InventoryCounts,
    InventoryItem,
    InventoryPage,
    clear_inventory,
    clear_unidentified_entries,
    inventory_counts,
    inventory_products,
    remove_products,
    unidentified_entries,
)
from .pipeline import (
    DEFAULT_PHASES,
    ExactMatchPhase,
    FuzzyMatchPhase,
    PromotionPhase,
    ReconciliationPipeline,
    StageUnmatchedPhase,
)
from .search import ProductSearchHit, match_product, search_products
from .staging import StagedRow, StagingBatch

__all__ = [
    "DEFAULT_PHASES",
    "ClearedInventory",
    "ColumnMapping",
    "ExactMatchPhase",
    "FuzzyMatchPhase",
    "InventoryCounts",
    "InventoryItem",
    "InventoryPage",
    "InventoryRow",
    "ProductSearchHit",
    "PromotionPhase",
    "ReconciliationPipeline",
    "ReconciliationResult",
    "StageUnmatchedPhase",
    "StagedRow",
    "StagingBatch",
    "clear_inventory",
    "clear_unidentified_entries",
    "inventory_counts",
    "inventory_products",
    "match_product",
    "normalize_column_name",
    "reconcile_inventory",
    "remove_products",
    "resolve_columns",
    "search_products",
    "unidentified_entries",
]
