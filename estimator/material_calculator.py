"""
Material Calculator — derives material quantities from work quantities.

Rounding rules differ by path and are kept that way:
- owner quantity changed / material added: quantity = ceil(work_qty * consumption)
- consumption edited directly:             quantity = round2(work_qty * consumption)
"""

import math

from .nodes import MaterialLine, WorkItem, new_node_id, round2


def parse_amount(value):
    """
    Parse user input into a non-negative float.
    Accepts numbers and strings with ',' or '.' as decimal separator.
    Returns None for blank, non-numeric, non-finite or negative input.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip().replace(",", "."))
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def normalize_consumption(raw) -> float:
    """Round catalog consumption up to one decimal. Missing or zero counts as 1.0."""
    raw = float(raw or 0) or 1.0
    return math.ceil(raw * 10) / 10


def auto_quantity(work_quantity: float, consumption: float) -> int:
    return math.ceil(work_quantity * (consumption or 0))


def recalculate_total(material: MaterialLine):
    material.total = round2(material.quantity * material.price)


def apply_work_quantity(material: MaterialLine, work_quantity: float):
    """Cascade a new owner quantity into one material line."""
    if material.auto_calculate:
        material.quantity = auto_quantity(work_quantity, material.consumption)
    recalculate_total(material)


def set_consumption(material: MaterialLine, work_quantity: float, consumption: float):
    material.consumption = consumption
    if material.auto_calculate:
        material.quantity = round2(work_quantity * consumption)
    recalculate_total(material)


def set_quantity(material: MaterialLine, quantity: float):
    """A hand-entered quantity switches the material to manual mode."""
    material.quantity = quantity
    material.auto_calculate = False
    recalculate_total(material)


def material_from_template(template) -> MaterialLine:
    """
    Build a zero-quantity auto material for a freshly added work from a
    catalog WorkMaterialTemplate.
    """
    return MaterialLine(
        id=new_node_id(f"mat{template.material_id}"),
        material_id=template.material_id,
        code=template.material_sku or f"M-{template.material_id}",
        name=template.material_name,
        unit=template.material_unit,
        quantity=0,
        price=template.material_price,
        total=0.0,
        consumption=float(template.consumption),
        auto_calculate=True,
        is_required=template.is_required,
    )


def material_for_work(item: WorkItem, choice) -> MaterialLine:
    """
    Build a material line for a MaterialChoice attached to an existing work.
    In manual mode the initial quantity is the normalized consumption itself.
    """
    consumption = normalize_consumption(choice.consumption)
    if choice.auto_calculate:
        quantity = auto_quantity(item.quantity, consumption)
    else:
        quantity = consumption
    material = MaterialLine(
        id=new_node_id(f"mat{choice.id}"),
        material_id=choice.id,
        code=choice.sku or f"M-{choice.id}",
        name=choice.name,
        unit=choice.unit,
        quantity=quantity,
        price=choice.price,
        consumption=consumption,
        auto_calculate=choice.auto_calculate,
        image=choice.image,
    )
    recalculate_total(material)
    return material


def replacement_material(old: MaterialLine, choice) -> MaterialLine:
    """
    Swap the catalog material behind a line. Quantity and consumption carry over,
    the price comes from the new material, and the line returns to auto mode.
    """
    material = MaterialLine(
        id=new_node_id(f"mat{choice.id}"),
        material_id=choice.id,
        code=choice.sku or f"M-{choice.id}",
        name=choice.name,
        unit=choice.unit,
        quantity=old.quantity,
        price=choice.price,
        consumption=old.consumption,
        auto_calculate=True,
        image=choice.image,
    )
    recalculate_total(material)
    return material
