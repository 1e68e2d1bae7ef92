"""
External contracts of the estimate engine.

The load contract mirrors what the persistence collaborator returns, including
its duplicated snake_case/camelCase fields. Those duplicates are accepted here
and collapsed to one value per concept by the persistence mapper.
"""

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Identifier = Union[int, str]


# --- Load contract (persistence collaborator -> engine) ---

class EstimateItemMaterialRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    material_id: Optional[Identifier] = None
    sku: Optional[str] = None
    material_name: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[float] = 0.0
    unit_price: Optional[float] = None
    price: Optional[float] = None
    total: Optional[float] = None
    consumption_coefficient: Optional[float] = None
    consumption: Optional[float] = None
    auto_calculate: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("auto_calculate", "autoCalculate"),
    )
    is_required: Optional[bool] = None
    notes: Optional[str] = None
    image: Optional[str] = None


class EstimateItemRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Identifier] = None
    work_id: Optional[Identifier] = Field(
        default=None, validation_alias=AliasChoices("work_id", "workId"),
    )
    code: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[float] = 0.0
    unit_price: Optional[float] = 0.0
    final_price: Optional[float] = None
    phase: Optional[str] = None
    section: Optional[str] = None
    subsection: Optional[str] = None
    materials: List[EstimateItemMaterialRecord] = []


class EstimateRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Identifier] = None
    project_id: Optional[Identifier] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId"),
    )
    name: Optional[str] = None
    estimate_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("estimate_type", "estimateType"),
    )
    status: Optional[str] = None
    description: Optional[str] = None
    estimate_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("estimate_date", "estimateDate"),
    )
    currency: Optional[str] = None
    client_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("client_name", "clientName"),
    )
    contractor_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contractor_name", "contractorName"),
    )
    object_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("object_address", "objectAddress"),
    )
    contract_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contract_number", "contractNumber"),
    )
    created_at: Optional[datetime] = None
    items: List[EstimateItemRecord] = []

    @field_validator("estimate_date", mode="before")
    @classmethod
    def _date_to_iso(cls, value):
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return value


# --- Save contract (engine -> persistence collaborator) ---

class MaterialPayload(BaseModel):
    material_id: Identifier
    quantity: float
    unit_price: float = 0.0
    consumption: float = 1.0
    auto_calculate: bool = True
    is_required: bool = True
    notes: str = ""


class EstimateItemPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    work_id: Optional[Identifier] = Field(default=None, alias="workId")
    code: Optional[str] = None
    name: str
    description: Optional[str] = None
    unit: Optional[str] = None
    quantity: float = 0.0
    unit_price: float = 0.0
    final_price: float = 0.0
    phase: Optional[str] = None
    section: Optional[str] = None
    subsection: Optional[str] = None
    overhead_percent: float = 0.0
    profit_percent: float = 0.0
    tax_percent: float = 0.0
    is_optional: bool = False
    notes: str = ""
    materials: List[MaterialPayload] = []


class EstimatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    name: str
    project_id: Optional[Identifier] = None
    estimate_type: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    estimate_date: Optional[str] = None
    currency: Optional[str] = None
    client_name: str = ""
    contractor_name: str = ""
    object_address: str = ""
    contract_number: str = ""
    items: List[EstimateItemPayload] = []


# --- Catalog contracts ---

class WorkMaterialTemplate(BaseModel):
    """One material a catalog work consumes, as returned by the catalog lookup."""
    model_config = ConfigDict(extra="ignore")

    material_id: Identifier
    material_sku: Optional[str] = None
    material_name: str = ""
    material_unit: Optional[str] = None
    material_price: float = 0.0
    consumption: float = 1.0
    is_required: bool = True
    show_image: bool = True


class WorkChoice(BaseModel):
    """A catalog work picked by the user for insertion into the estimate."""
    model_config = ConfigDict(extra="ignore")

    id: Identifier
    code: Optional[str] = None
    name: str
    unit: Optional[str] = None
    price: float = 0.0
    phase: Optional[str] = None
    section: Optional[str] = None
    subsection: Optional[str] = None


class MaterialChoice(BaseModel):
    """A catalog material picked by the user to attach to (or swap into) a work item."""
    model_config = ConfigDict(extra="ignore")

    id: Identifier
    sku: Optional[str] = None
    name: str
    unit: Optional[str] = None
    price: float = 0.0
    consumption: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("consumption", "consumption_coefficient"),
    )
    auto_calculate: bool = Field(
        default=True, validation_alias=AliasChoices("auto_calculate", "autoCalculate"),
    )
    image: Optional[str] = None
