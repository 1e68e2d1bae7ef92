"""
Estimate Session — one editing session over one estimate.

Wires the estimate tree to its collaborators and owns the estimate identifier
explicitly. Collaborators are duck-typed:

    store.get(estimate_id) -> dict                 raises EstimateNotFound
    store.create(payload: dict) -> dict            saved estimate, with "id"
    store.update(estimate_id, payload: dict) -> dict
    catalog.materials_for_works(work_ids) -> {work_id: [template, ...]}
    price_updater.update_price(work_id, price)

A failed collaborator call leaves the tree as it was before the call
(a failed load leaves it empty).
"""

import logging

from .coefficient_engine import parse_coefficient
from .estimate_tree import EstimateTree
from .exceptions import (
    CatalogLookupError,
    EstimateNotFound,
    PersistenceError,
    PriceCommitError,
)
from .persistence_mapper import flatten
from .schemas import EstimateRecord, WorkChoice

logger = logging.getLogger(__name__)


class EstimateSession:

    def __init__(self, store, catalog=None, price_updater=None, project_id=None,
                 estimate_id=None, confirm=None, on_change=None):
        self.store = store
        self.catalog = catalog
        self.price_updater = price_updater
        self.project_id = project_id
        self.estimate_id = estimate_id
        self._confirm = confirm
        self._on_change = on_change
        self.tree = EstimateTree(confirm=confirm, on_change=on_change)

    def _discard_tree(self):
        self.tree = EstimateTree(confirm=self._confirm, on_change=self._on_change)

    def _forget_estimate(self, reason: str):
        logger.info("Dropping reference to estimate %s: %s", self.estimate_id, reason)
        self.estimate_id = None
        self._discard_tree()

    # --- Load / save ---

    def load(self):
        """
        Hydrate the tree from the store. Returns the metadata, or None when there
        is nothing to load (no identifier, estimate missing, or it belongs to a
        different project).
        """
        if self.estimate_id is None:
            return None

        try:
            record = self.store.get(self.estimate_id)
        except EstimateNotFound:
            self._forget_estimate("not found")
            return None
        except Exception as e:
            logger.warning("Loading estimate %s failed: %s", self.estimate_id, e)
            self._discard_tree()
            raise PersistenceError(f"Failed to load estimate {self.estimate_id}: {e}") from e

        if not isinstance(record, EstimateRecord):
            record = EstimateRecord.model_validate(record)

        if self.project_id is not None and str(record.project_id) != str(self.project_id):
            self._forget_estimate(f"belongs to project {record.project_id}")
            return None

        self._discard_tree()
        return self.tree.load(record)

    def build_payload(self) -> dict:
        payload = flatten(self.tree.metadata, self.tree.sections, self.project_id)
        return payload.model_dump(by_alias=True)

    def save(self) -> dict:
        """
        Create (no identifier yet) or update the estimate. On success the returned
        identifier is kept and, when the store echoes the items back, their ids are
        copied onto the work items by position. The tree itself is not rebuilt, so
        materials the save payload leaves out (zero quantity) stay in the session.
        """
        payload = self.build_payload()
        try:
            if self.estimate_id is None:
                saved = self.store.create(payload)
            else:
                saved = self.store.update(self.estimate_id, payload)
        except Exception as e:
            logger.warning("Saving estimate %s failed: %s", self.estimate_id, e)
            raise PersistenceError(f"Failed to save estimate: {e}") from e

        saved = saved or {}
        self.estimate_id = saved.get("id", self.estimate_id)
        if saved.get("items"):
            self._absorb_item_ids(saved["items"])
        self.tree.mark_saved()
        logger.info("Saved estimate %s (%d items)", self.estimate_id, len(payload["items"]))
        return saved

    def _absorb_item_ids(self, saved_items: list):
        # Stores keep payload order (position_number), so items match by position.
        items = list(self.tree.iter_items())
        if len(items) != len(saved_items):
            logger.warning(
                "Store returned %d items for %d sent; keeping local item ids",
                len(saved_items), len(items),
            )
            return
        for item, saved_item in zip(items, saved_items):
            saved_id = saved_item.get("id") if isinstance(saved_item, dict) else getattr(saved_item, "id", None)
            if saved_id is not None:
                item.id = str(saved_id)

    # --- Catalog-backed operations ---

    def add_works(self, works: list):
        """Fetch material templates for the works, then insert them. All or nothing."""
        if not works:
            return
        works = [w if isinstance(w, WorkChoice) else WorkChoice.model_validate(w) for w in works]
        try:
            materials = self.catalog.materials_for_works([w.id for w in works])
        except Exception as e:
            logger.warning("Material lookup for %d works failed: %s", len(works), e)
            raise CatalogLookupError(f"Failed to load materials for works: {e}") from e
        self.tree.add_works(works, materials)

    def commit_work_price(self, section_idx: int, item_idx: int):
        """Publish a work item's current price as the catalog base price and re-anchor it."""
        item = self.tree.work_item(section_idx, item_idx)
        if item.work_id is None:
            raise PriceCommitError(f"Work item {item.name!r} is not linked to the catalog")
        try:
            self.price_updater.update_price(item.work_id, item.price)
        except Exception as e:
            logger.warning("Price commit for work %s failed: %s", item.work_id, e)
            raise PriceCommitError(f"Failed to update base price: {e}") from e
        self.tree.registry.commit(item.price_key, item.price)

    def apply_coefficient_input(self, value):
        """Validate free-form coefficient input, then apply it to the tree."""
        percent = parse_coefficient(value)
        self.tree.apply_coefficient(percent)
        return percent
