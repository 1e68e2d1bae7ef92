"""
Estimate Tree — the mutable aggregate behind one editing session.

sections -> work items -> material lines. Every mutation leaves each
section's subtotal equal to the sum of its work totals, marks the tree as
having unsaved changes and notifies the optional on_change callback.

Removals are gated by an injected confirm(message) -> bool callback. With no
callback configured, removals are declined.
"""

import logging
from dataclasses import asdict, fields
from typing import Callable, Optional

from . import material_calculator as calc
from .coefficient_engine import CoefficientEngine
from .config import settings
from .nodes import EstimateMetadata, Section, WorkItem, new_node_id, round2
from .ordering import section_code_for, sort_sections, sort_work_items
from .persistence_mapper import hydrate, new_estimate_metadata
from .price_registry import OriginalPriceRegistry
from .schemas import MaterialChoice, WorkChoice, WorkMaterialTemplate

logger = logging.getLogger(__name__)

_METADATA_FIELDS = {f.name for f in fields(EstimateMetadata)}


class EstimateTree:

    def __init__(
        self,
        confirm: Optional[Callable[[str], bool]] = None,
        on_change: Optional[Callable[[bool], None]] = None,
        registry: Optional[OriginalPriceRegistry] = None,
    ):
        self.sections: list[Section] = []
        self.metadata = new_estimate_metadata()
        self.registry = registry if registry is not None else OriginalPriceRegistry()
        self.coefficients = CoefficientEngine(self.registry)
        self.confirm = confirm
        self.on_change = on_change
        self.has_unsaved_changes = False
        self._saved_snapshot = None

    # --- State helpers ---

    @property
    def current_coefficient(self) -> float:
        return self.coefficients.current_coefficient

    @property
    def works_total(self) -> float:
        return round2(sum(section.subtotal for section in self.sections))

    @property
    def materials_total(self) -> float:
        return round2(sum(item.materials_total for item in self.iter_items()))

    def iter_items(self):
        for section in self.sections:
            yield from section.items

    def _set_unsaved(self, value: bool):
        self.has_unsaved_changes = value
        if self.on_change:
            self.on_change(value)

    def _touch(self):
        self._set_unsaved(True)

    def _confirmed(self, message: str) -> bool:
        return bool(self.confirm and self.confirm(message))

    def _section(self, section_idx: int) -> Section:
        if not 0 <= section_idx < len(self.sections):
            raise IndexError(f"No section at index {section_idx}")
        return self.sections[section_idx]

    def work_item(self, section_idx: int, item_idx: int) -> WorkItem:
        return self._item(section_idx, item_idx)

    def _item(self, section_idx: int, item_idx: int) -> WorkItem:
        section = self._section(section_idx)
        if not 0 <= item_idx < len(section.items):
            raise IndexError(f"No work item at index {item_idx} in section {section_idx}")
        return section.items[item_idx]

    def _material(self, section_idx: int, item_idx: int, material_idx: int):
        item = self._item(section_idx, item_idx)
        if not 0 <= material_idx < len(item.materials):
            raise IndexError(f"No material at index {material_idx} in work item {item_idx}")
        return item, item.materials[material_idx]

    def _snapshot(self):
        return asdict(self.metadata), [asdict(section) for section in self.sections]

    def mark_saved(self):
        """Take the current tree as the last saved state and clear the unsaved flag."""
        self._saved_snapshot = self._snapshot()
        self._set_unsaved(False)

    def matches_saved_snapshot(self) -> bool:
        return self._saved_snapshot is not None and self._snapshot() == self._saved_snapshot

    # --- Load ---

    def load(self, record) -> EstimateMetadata:
        """Replace the tree with a persisted estimate and seed original prices from it."""
        self.metadata, self.sections = hydrate(record)
        added = self.registry.seed_sections(self.sections)
        logger.info(
            "Loaded estimate %r: %d sections, %d items, %d new original prices",
            self.metadata.name, len(self.sections), sum(len(s.items) for s in self.sections), added,
        )
        self.mark_saved()
        return self.metadata

    # --- Work items ---

    def add_works(self, works: list, materials_by_work: Optional[dict] = None):
        """
        Insert catalog works with zero quantity. Each work lands in the section of
        its phase (created on demand); its catalog materials start in auto mode.
        All input is validated before the first insertion.
        """
        if not works:
            return
        materials_by_work = materials_by_work or {}

        prepared = []
        for work in works:
            if not isinstance(work, WorkChoice):
                work = WorkChoice.model_validate(work)
            templates = materials_by_work.get(work.id)
            if templates is None:
                templates = materials_by_work.get(str(work.id), [])
            templates = [
                t if isinstance(t, WorkMaterialTemplate) else WorkMaterialTemplate.model_validate(t)
                for t in templates
            ]
            prepared.append((work, templates))

        for work, templates in prepared:
            title = work.phase or settings.DEFAULT_PHASE
            section = next((s for s in self.sections if s.title == title), None)
            if section is None:
                code = section_code_for(work.code)
                section = Section(id=new_node_id(f"s{code}"), code=code, title=title)
                self.sections.append(section)

            section.items.append(WorkItem(
                id=new_node_id(f"item-{work.id}"),
                work_id=work.id,
                code=work.code,
                name=work.name,
                unit=work.unit,
                quantity=0,
                price=work.price,
                total=0.0,
                phase=work.phase,
                section=work.section,
                subsection=work.subsection,
                materials=[calc.material_from_template(t) for t in templates],
            ))
            sort_work_items(section.items)
            section.recalculate_subtotal()

        sort_sections(self.sections)
        self.registry.seed_sections(self.sections)
        logger.info("Added %d works to estimate", len(works))
        self._touch()

    def update_work_quantity(self, section_idx: int, item_idx: int, value) -> bool:
        """
        Blank input (None or "") sets the quantity to zero. Invalid or negative
        input is ignored. Returns whether the tree changed.
        """
        item = self._item(section_idx, item_idx)
        if value is None or (isinstance(value, str) and not value.strip()):
            quantity = 0
        else:
            quantity = calc.parse_amount(value)
            if quantity is None:
                return False

        item.quantity = quantity
        item.recalculate_total()
        for material in item.materials:
            calc.apply_work_quantity(material, quantity)
        self.sections[section_idx].recalculate_subtotal()
        self._touch()
        return True

    def update_work_price(self, section_idx: int, item_idx: int, value) -> bool:
        """Edit a unit price. The original price registry is left alone."""
        item = self._item(section_idx, item_idx)
        price = calc.parse_amount(value)
        if price is None:
            return False
        item.price = price
        item.recalculate_total()
        self.sections[section_idx].recalculate_subtotal()
        self._touch()
        return True

    def remove_work_item(self, section_idx: int, item_idx: int) -> bool:
        """Remove a work item after confirmation; an emptied section is removed too."""
        section = self._section(section_idx)
        self._item(section_idx, item_idx)
        if not self._confirmed("Remove this work item?"):
            return False

        del section.items[item_idx]
        if not section.items:
            del self.sections[section_idx]
        else:
            section.recalculate_subtotal()
        self._touch()
        return True

    # --- Materials (never affect section subtotals) ---

    def add_material_to_work(self, section_idx: int, item_idx: int, material):
        item = self._item(section_idx, item_idx)
        if not isinstance(material, MaterialChoice):
            material = MaterialChoice.model_validate(material)
        line = calc.material_for_work(item, material)
        item.materials.append(line)
        self._touch()
        return line

    def replace_material(self, section_idx: int, item_idx: int, material_idx: int, material):
        item, old = self._material(section_idx, item_idx, material_idx)
        if not isinstance(material, MaterialChoice):
            material = MaterialChoice.model_validate(material)
        line = calc.replacement_material(old, material)
        item.materials[material_idx] = line
        self._touch()
        return line

    def remove_material(self, section_idx: int, item_idx: int, material_idx: int) -> bool:
        item, _ = self._material(section_idx, item_idx, material_idx)
        if not self._confirmed("Remove this material?"):
            return False
        del item.materials[material_idx]
        self._touch()
        return True

    def update_material_consumption(self, section_idx: int, item_idx: int, material_idx: int, value) -> bool:
        item, material = self._material(section_idx, item_idx, material_idx)
        consumption = calc.parse_amount(value)
        if consumption is None:
            return False
        calc.set_consumption(material, item.quantity, consumption)
        self._touch()
        return True

    def update_material_quantity(self, section_idx: int, item_idx: int, material_idx: int, value) -> bool:
        _, material = self._material(section_idx, item_idx, material_idx)
        quantity = calc.parse_amount(value)
        if quantity is None:
            return False
        calc.set_quantity(material, quantity)
        self._touch()
        return True

    # --- Pricing coefficient ---

    def apply_coefficient(self, percent: float):
        self.coefficients.apply(self.sections, percent)
        logger.info("Applied price coefficient %+g%%", percent)
        self._touch()

    def reset_prices(self):
        self.coefficients.reset(self.sections)
        logger.info("Reset work prices to original values")
        self._touch()

    # --- Metadata and lifecycle ---

    def update_metadata(self, field: str, value):
        """Set one metadata or project field (name, status, client_name, ...)."""
        if field not in _METADATA_FIELDS:
            raise ValueError(f"Unknown estimate field: {field}")
        setattr(self.metadata, field, value)
        self._touch()

    def clear(self):
        self.sections = []
        self._touch()
