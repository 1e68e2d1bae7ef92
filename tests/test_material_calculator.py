"""
Material calculator tests — auto/manual modes and the rounding rules of each path.
"""

import pytest

from estimator import material_calculator as calc
from estimator.nodes import MaterialLine, WorkItem
from estimator.schemas import MaterialChoice, WorkMaterialTemplate


def _material(**overrides):
    fields = dict(id="m1", material_id=501, code="BET", name="Бетон", unit="м3",
                  quantity=0, price=100.0, consumption=2.3, auto_calculate=True)
    fields.update(overrides)
    return MaterialLine(**fields)


def _work(quantity=0.0):
    return WorkItem(id="w1", work_id=7, code="02-010", name="Работа", unit="м3",
                    quantity=quantity, price=1000.0)


@pytest.mark.parametrize("value,expected", [
    (5, 5.0),
    ("7.25", 7.25),
    ("2,5", 2.5),
    (" 3 ", 3.0),
    (0, 0.0),
    ("-1", None),
    ("abc", None),
    ("nan", None),
    ("inf", None),
    (None, None),
    (True, None),
])
def test_parse_amount(value, expected):
    """Numbers, numeric strings and comma decimals parse; the rest is None."""
    assert calc.parse_amount(value) == expected


def test_auto_material_follows_work_quantity():
    """quantity 5 x consumption 2.3 -> 12; quantity 7 -> 17 (ceiling)."""
    material = _material()
    calc.apply_work_quantity(material, 5)
    assert material.quantity == 12
    assert material.total == 1200.0
    calc.apply_work_quantity(material, 7)
    assert material.quantity == 17
    assert material.total == 1700.0


def test_manual_material_keeps_quantity():
    """Owner quantity changes only refresh the total in manual mode."""
    material = _material(quantity=3, auto_calculate=False, price=10.5)
    calc.apply_work_quantity(material, 40)
    assert material.quantity == 3
    assert material.total == 31.5


def test_consumption_edit_uses_plain_rounding():
    """Direct consumption edits round to 2 decimals instead of ceiling."""
    material = _material(price=10.0)
    calc.set_consumption(material, 3, 1.25)
    assert material.consumption == 1.25
    assert material.quantity == 3.75
    assert material.total == 37.5


def test_consumption_edit_in_manual_mode_keeps_quantity():
    material = _material(quantity=9, auto_calculate=False, price=2.0)
    calc.set_consumption(material, 3, 5.0)
    assert material.consumption == 5.0
    assert material.quantity == 9
    assert material.total == 18.0


def test_quantity_edit_switches_to_manual():
    """A direct quantity edit flips the line to manual mode."""
    material = _material(price=3.0)
    calc.set_quantity(material, 14)
    assert material.auto_calculate is False
    assert material.quantity == 14
    assert material.total == 42.0


@pytest.mark.parametrize("raw,expected", [
    (2.34, 2.4),
    (0.11, 0.2),
    (1.0, 1.0),
    (None, 1.0),
    (0, 1.0),
])
def test_normalize_consumption_rounds_up_to_one_decimal(raw, expected):
    assert calc.normalize_consumption(raw) == expected


def test_material_for_work_auto_mode():
    choice = MaterialChoice.model_validate(
        {"id": 77, "name": "Арматура", "unit": "кг", "price": 80, "consumption_coefficient": 2.34}
    )
    material = calc.material_for_work(_work(quantity=5), choice)
    assert material.consumption == 2.4
    assert material.quantity == 12
    assert material.total == 960.0
    assert material.code == "M-77"
    assert material.auto_calculate is True


def test_material_for_work_manual_mode_starts_at_consumption():
    """Manual lines start at the normalized consumption."""
    choice = MaterialChoice.model_validate(
        {"id": 78, "sku": "GV-1", "name": "Гвозди", "price": 10, "consumption": 0.55, "autoCalculate": False}
    )
    material = calc.material_for_work(_work(quantity=5), choice)
    assert material.auto_calculate is False
    assert material.quantity == 0.6
    assert material.total == 6.0
    assert material.code == "GV-1"


def test_material_from_template_starts_empty_in_auto_mode():
    template = WorkMaterialTemplate.model_validate(
        {"material_id": 5, "material_name": "Песок", "material_price": 300, "consumption": 1.17}
    )
    material = calc.material_from_template(template)
    assert material.quantity == 0
    assert material.total == 0.0
    assert material.consumption == 1.17  # catalog value is used as-is on this path
    assert material.auto_calculate is True


def test_replacement_keeps_quantity_and_consumption():
    """Only identity and price change on replacement."""
    old = _material(quantity=12, consumption=2.3, auto_calculate=False, price=100)
    choice = MaterialChoice.model_validate({"id": 600, "name": "Бетон B20", "price": 120.5})
    new = calc.replacement_material(old, choice)
    assert new.material_id == 600
    assert new.quantity == 12
    assert new.consumption == 2.3
    assert new.total == 1446.0
    assert new.auto_calculate is True
