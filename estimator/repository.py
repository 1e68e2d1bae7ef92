"""
SQLAlchemy-backed collaborators for EstimateSession: estimate store, work
catalog lookup and catalog price updates.
"""

import logging

from sqlalchemy.orm import Session

from . import models
from .exceptions import EstimateNotFound, PriceCommitError
from .nodes import round2
from .schemas import EstimatePayload

logger = logging.getLogger(__name__)


def _to_int(value):
    try:
        return int(value)
    except (ValueError, TypeError):
        return value


class SqlEstimateStore:
    """Stores estimates as estimate_items rows with nested estimate_item_materials."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, estimate_id) -> dict:
        estimate = self.db.get(models.Estimate, _to_int(estimate_id))
        if estimate is None:
            raise EstimateNotFound(estimate_id)
        return self._estimate_to_dict(estimate)

    def create(self, payload: dict) -> dict:
        data = EstimatePayload.model_validate(payload)
        estimate = models.Estimate()
        try:
            self._write(estimate, data)
            self.db.add(estimate)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Created estimate %s with %d items", estimate.id, len(data.items))
        return self.get(estimate.id)

    def update(self, estimate_id, payload: dict) -> dict:
        data = EstimatePayload.model_validate(payload)
        estimate = self.db.get(models.Estimate, _to_int(estimate_id))
        if estimate is None:
            raise EstimateNotFound(estimate_id)
        try:
            estimate.items.clear()
            self.db.flush()
            self._write(estimate, data)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Updated estimate %s with %d items", estimate.id, len(data.items))
        return self.get(estimate.id)

    def _write(self, estimate: models.Estimate, data: EstimatePayload):
        estimate.project_id = str(data.project_id) if data.project_id is not None else None
        estimate.name = data.name
        estimate.estimate_type = data.estimate_type
        estimate.status = data.status or "draft"
        estimate.description = data.description or ""
        estimate.estimate_date = data.estimate_date
        estimate.currency = data.currency or "RUB"
        estimate.client_name = data.client_name
        estimate.contractor_name = data.contractor_name
        estimate.object_address = data.object_address
        estimate.contract_number = data.contract_number

        total_amount = 0.0
        for position, item in enumerate(data.items, start=1):
            row = models.EstimateItem(
                position_number=position,
                work_id=str(item.work_id) if item.work_id is not None else None,
                code=item.code or "",
                name=item.name,
                description=item.description or "",
                unit=item.unit,
                quantity=item.quantity,
                unit_price=item.unit_price,
                final_price=item.final_price,
                phase=item.phase,
                section=item.section,
                subsection=item.subsection,
                overhead_percent=item.overhead_percent,
                profit_percent=item.profit_percent,
                tax_percent=item.tax_percent,
                is_optional=item.is_optional,
                notes=item.notes,
            )
            for material in item.materials:
                row.materials.append(models.EstimateItemMaterial(
                    material_id=_to_int(material.material_id),
                    quantity=material.quantity,
                    unit_price=material.unit_price,
                    consumption_coefficient=material.consumption,
                    auto_calculate=material.auto_calculate,
                    is_required=material.is_required,
                    notes=material.notes,
                ))
            estimate.items.append(row)
            total_amount += item.final_price or 0.0
        estimate.total_amount = round2(total_amount)

    def _estimate_to_dict(self, estimate: models.Estimate) -> dict:
        return {
            "id": estimate.id,
            "project_id": estimate.project_id,
            "name": estimate.name,
            "estimate_type": estimate.estimate_type,
            "status": estimate.status,
            "description": estimate.description,
            "estimate_date": estimate.estimate_date,
            "currency": estimate.currency,
            "client_name": estimate.client_name,
            "contractor_name": estimate.contractor_name,
            "object_address": estimate.object_address,
            "contract_number": estimate.contract_number,
            "total_amount": estimate.total_amount,
            "created_at": estimate.created_at,
            "items": [self._item_to_dict(item) for item in estimate.items],
        }

    def _item_to_dict(self, item: models.EstimateItem) -> dict:
        materials = sorted(item.materials, key=lambda m: (m.material.name if m.material else ""))
        return {
            "id": item.id,
            "work_id": item.work_id,
            "code": item.code,
            "name": item.name,
            "description": item.description,
            "unit": item.unit,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "final_price": item.final_price or round2((item.quantity or 0) * (item.unit_price or 0)),
            "phase": item.phase,
            "section": item.section,
            "subsection": item.subsection,
            "materials": [self._material_to_dict(m) for m in materials],
        }

    def _material_to_dict(self, row: models.EstimateItemMaterial) -> dict:
        material = row.material
        price = row.unit_price or (material.price if material else 0.0)
        return {
            "material_id": row.material_id,
            "sku": material.sku if material else None,
            "material_name": material.name if material else "",
            "unit": material.unit if material else None,
            "quantity": row.quantity,
            "unit_price": row.unit_price,
            "price": price,
            "total": round2((row.quantity or 0) * (row.unit_price or 0)),
            "consumption_coefficient": row.consumption_coefficient,
            "auto_calculate": row.auto_calculate,
            "is_required": row.is_required,
            "notes": row.notes,
            "image": material.image if material else None,
        }


class SqlWorkCatalog:
    """Material templates linked to catalog works."""

    def __init__(self, db: Session):
        self.db = db

    def materials_for_works(self, work_ids: list) -> dict:
        """
        Returns {work_id: [template, ...]} for every requested id, required
        materials first, then by name. Works without materials map to [].
        """
        grouped = {work_id: [] for work_id in work_ids}
        requested = {str(work_id): work_id for work_id in work_ids}

        rows = (
            self.db.query(models.WorkMaterial, models.Material)
            .join(models.Material, models.WorkMaterial.material_id == models.Material.id)
            .filter(models.WorkMaterial.work_id.in_([_to_int(w) for w in work_ids]))
            .order_by(models.WorkMaterial.work_id, models.WorkMaterial.is_required.desc(), models.Material.name)
            .all()
        )
        for link, material in rows:
            key = requested.get(str(link.work_id), link.work_id)
            grouped.setdefault(key, []).append({
                "material_id": material.id,
                "material_sku": material.sku,
                "material_name": material.name,
                "material_unit": material.unit,
                "material_price": material.price or 0.0,
                "consumption": link.consumption if link.consumption is not None else 1.0,
                "is_required": bool(link.is_required),
                "show_image": bool(material.image),
            })
        return grouped


class SqlWorkPriceUpdater:
    """Writes a revised base price back to the work catalog."""

    def __init__(self, db: Session):
        self.db = db

    def update_price(self, work_id, price: float):
        work = self.db.get(models.Work, _to_int(work_id))
        if work is None:
            raise PriceCommitError(f"Work {work_id} not found in catalog")
        work.base_price = price
        self.db.commit()
        logger.info("Base price of work %s set to %s", work_id, price)
