"""
Persistence Mapper — nested estimate tree <-> flat list of items.

Load groups flat items into sections by phase and orders them; save drops the
grouping again. This module is the only place where the external field names
(snake_case and camelCase duplicates) are translated to the engine's own.
"""

from datetime import date

from .config import settings
from .nodes import EstimateMetadata, MaterialLine, Section, WorkItem, new_node_id, round2
from .ordering import section_code_for, sort_sections, sort_work_items
from .schemas import (
    EstimateItemMaterialRecord,
    EstimateItemPayload,
    EstimateItemRecord,
    EstimatePayload,
    EstimateRecord,
    MaterialPayload,
)


def _default_name(created: date) -> str:
    return f"Смета от {created.strftime('%d.%m.%Y')}"


def new_estimate_metadata() -> EstimateMetadata:
    """Metadata of an estimate that has never been saved."""
    today = date.today()
    return EstimateMetadata(
        name=_default_name(today),
        estimate_type=settings.DEFAULT_ESTIMATE_TYPE,
        status=settings.DEFAULT_STATUS,
        description=settings.DEFAULT_DESCRIPTION,
        estimate_date=today.isoformat(),
        currency=settings.DEFAULT_CURRENCY,
    )


# --- Load ---

def hydrate_metadata(record: EstimateRecord) -> EstimateMetadata:
    created = (record.created_at.date() if record.created_at else date.today())
    return EstimateMetadata(
        name=record.name or _default_name(created),
        estimate_type=record.estimate_type or settings.DEFAULT_ESTIMATE_TYPE,
        status=record.status or settings.DEFAULT_STATUS,
        description=record.description or "",
        estimate_date=record.estimate_date or date.today().isoformat(),
        currency=record.currency or settings.DEFAULT_CURRENCY,
        client_name=record.client_name or "",
        contractor_name=record.contractor_name or "",
        object_address=record.object_address or "",
        contract_number=record.contract_number or "",
    )


def hydrate_material(record: EstimateItemMaterialRecord) -> MaterialLine:
    quantity = record.quantity or 0.0
    price = record.unit_price or record.price or 0.0
    auto = record.auto_calculate if record.auto_calculate is not None else True
    return MaterialLine(
        id=new_node_id(f"mat{record.material_id}" if record.material_id is not None else "mat"),
        material_id=record.material_id,
        code=record.sku,
        name=record.material_name or "",
        unit=record.unit,
        quantity=quantity,
        price=price,
        total=record.total or round2(quantity * price),
        consumption=record.consumption_coefficient or record.consumption or 0.0,
        auto_calculate=auto,
        is_required=record.is_required is not False,
        notes=record.notes or "",
        image=record.image,
    )


def hydrate_item(record: EstimateItemRecord) -> WorkItem:
    quantity = record.quantity or 0.0
    price = record.unit_price or 0.0
    return WorkItem(
        id=str(record.id) if record.id is not None else new_node_id("item"),
        work_id=record.work_id if record.work_id is not None else record.id,
        code=record.code,
        name=record.name,
        description=record.description,
        unit=record.unit,
        quantity=quantity,
        price=price,
        total=record.final_price or round2(quantity * price),
        phase=record.phase,
        section=record.section,
        subsection=record.subsection,
        materials=[hydrate_material(m) for m in record.materials],
    )


def hydrate_sections(items) -> list:
    """Group flat items into sections keyed by phase, ordered and totalled."""
    sections: list[Section] = []
    by_title: dict[str, Section] = {}
    for record in items:
        title = record.phase or settings.DEFAULT_PHASE
        section = by_title.get(title)
        if section is None:
            code = section_code_for(record.code)
            section = Section(id=new_node_id(f"s{code}"), code=code, title=title)
            by_title[title] = section
            sections.append(section)
        section.items.append(hydrate_item(record))

    for section in sections:
        sort_work_items(section.items)
        section.recalculate_subtotal()
    sort_sections(sections)
    return sections


def hydrate(record) -> tuple:
    """Flat persisted estimate (dict or EstimateRecord) -> (metadata, sections)."""
    if not isinstance(record, EstimateRecord):
        record = EstimateRecord.model_validate(record)
    return hydrate_metadata(record), hydrate_sections(record.items)


# --- Save ---

def flatten_material(material: MaterialLine) -> MaterialPayload:
    return MaterialPayload(
        material_id=material.material_id,
        quantity=material.quantity,
        unit_price=material.price or 0.0,
        consumption=material.consumption or 1.0,
        auto_calculate=material.auto_calculate,
        is_required=material.is_required is not False,
        notes=material.notes or "",
    )


def flatten_item(item: WorkItem) -> EstimateItemPayload:
    return EstimateItemPayload(
        work_id=item.work_id,
        code=item.code,
        name=item.name,
        description=item.description,
        unit=item.unit,
        quantity=item.quantity or 0.0,
        unit_price=item.price or 0.0,
        final_price=item.total or 0.0,
        phase=item.phase,
        section=item.section,
        subsection=item.subsection,
        materials=[
            flatten_material(m) for m in item.materials
            if m.material_id not in (None, "") and (m.quantity or 0) > 0
        ],
    )


def flatten(metadata: EstimateMetadata, sections: list, project_id=None) -> EstimatePayload:
    """Tree -> save payload. Section grouping is dropped; item order is preserved."""
    return EstimatePayload(
        name=metadata.name,
        project_id=project_id,
        estimate_type=metadata.estimate_type,
        status=metadata.status,
        description=metadata.description,
        estimate_date=metadata.estimate_date,
        currency=metadata.currency,
        client_name=metadata.client_name or "",
        contractor_name=metadata.contractor_name or "",
        object_address=metadata.object_address or "",
        contract_number=metadata.contract_number or "",
        items=[flatten_item(item) for section in sections for item in section.items],
    )
