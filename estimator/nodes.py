"""
In-memory nodes of an estimate: sections, work items and material lines.

Section.subtotal sums work totals only. Material cost is tracked per material
line and reported separately; it never enters a section subtotal.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Union

Identifier = Union[int, str]


def round2(value: float) -> float:
    """Round a money amount or quantity to 2 decimals."""
    return round(float(value), 2)


def new_node_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def price_key(work_id: Optional[Identifier], code: Optional[str], name: Optional[str]) -> str:
    """Identity of a work item for original-price tracking: work id, else code_name."""
    if work_id is not None and work_id != "":
        return str(work_id)
    return f"{code or ''}_{name or ''}"


@dataclass
class MaterialLine:
    id: str
    material_id: Optional[Identifier]
    code: Optional[str]
    name: str
    unit: Optional[str]
    quantity: float = 0.0
    price: float = 0.0
    total: float = 0.0
    consumption: float = 0.0
    auto_calculate: bool = True
    is_required: bool = True
    notes: str = ""
    image: Optional[str] = None


@dataclass
class WorkItem:
    id: str
    work_id: Optional[Identifier]
    code: Optional[str]
    name: str
    unit: Optional[str]
    quantity: float = 0.0
    price: float = 0.0
    total: float = 0.0
    phase: Optional[str] = None
    section: Optional[str] = None
    subsection: Optional[str] = None
    description: Optional[str] = None
    materials: List[MaterialLine] = field(default_factory=list)

    @property
    def price_key(self) -> str:
        return price_key(self.work_id, self.code, self.name)

    def recalculate_total(self):
        self.total = round2(self.quantity * self.price)

    @property
    def materials_total(self) -> float:
        return round2(sum(m.total for m in self.materials))


@dataclass
class Section:
    id: str
    code: str
    title: str
    items: List[WorkItem] = field(default_factory=list)
    subtotal: float = 0.0

    def recalculate_subtotal(self):
        self.subtotal = round2(sum(item.total for item in self.items))


@dataclass
class EstimateMetadata:
    name: str = ""
    estimate_type: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    estimate_date: Optional[str] = None
    currency: Optional[str] = None
    # Project fields
    client_name: str = ""
    contractor_name: str = ""
    object_address: str = ""
    contract_number: str = ""
