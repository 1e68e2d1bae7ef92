from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


# --- Reference catalog ---

class Work(Base):
    """Catalog of works with their base (reference) unit price."""
    __tablename__ = "works"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=True)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=True)
    base_price = Column(Float, default=0.0)
    phase = Column(String, nullable=True)
    section = Column(String, nullable=True)
    subsection = Column(String, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    materials = relationship("WorkMaterial", back_populates="work", cascade="all, delete-orphan")


class Material(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, nullable=True)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=True)
    price = Column(Float, default=0.0)
    consumption = Column(Float, nullable=True)  # Default consumption when not linked to a work
    image = Column(String, nullable=True)


class WorkMaterial(Base):
    """Consumption of a material per unit of work quantity."""
    __tablename__ = "work_materials"

    id = Column(Integer, primary_key=True, index=True)
    work_id = Column(Integer, ForeignKey("works.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    consumption = Column(Float, default=1.0)
    is_required = Column(Boolean, default=True)
    notes = Column(Text, nullable=True)

    work = relationship("Work", back_populates="materials")
    material = relationship("Material")


# --- Estimates ---

class Estimate(Base):
    __tablename__ = "estimates"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    estimate_type = Column(String, nullable=True)
    status = Column(String, default="draft")
    description = Column(Text, nullable=True)
    estimate_date = Column(String, nullable=True)  # ISO date, stored verbatim
    currency = Column(String, default="RUB")
    client_name = Column(String, nullable=True)
    contractor_name = Column(String, nullable=True)
    object_address = Column(String, nullable=True)
    contract_number = Column(String, nullable=True)
    total_amount = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "EstimateItem",
        back_populates="estimate",
        cascade="all, delete-orphan",
        order_by="EstimateItem.position_number",
    )


class EstimateItem(Base):
    __tablename__ = "estimate_items"

    id = Column(Integer, primary_key=True, index=True)
    estimate_id = Column(Integer, ForeignKey("estimates.id"), nullable=False)
    position_number = Column(Integer, nullable=False)
    item_type = Column(String, default="work")
    work_id = Column(String, nullable=True)  # Link back to the work catalog
    code = Column(String, nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    unit = Column(String, nullable=True)
    quantity = Column(Float, default=0.0)
    unit_price = Column(Float, default=0.0)
    final_price = Column(Float, default=0.0)
    phase = Column(String, nullable=True)
    section = Column(String, nullable=True)
    subsection = Column(String, nullable=True)
    # Stub fields: stored as sent, never computed
    overhead_percent = Column(Float, default=0.0)
    profit_percent = Column(Float, default=0.0)
    tax_percent = Column(Float, default=0.0)
    is_optional = Column(Boolean, default=False)
    notes = Column(Text, nullable=True)

    estimate = relationship("Estimate", back_populates="items")
    materials = relationship("EstimateItemMaterial", back_populates="item", cascade="all, delete-orphan")


class EstimateItemMaterial(Base):
    __tablename__ = "estimate_item_materials"

    id = Column(Integer, primary_key=True, index=True)
    estimate_item_id = Column(Integer, ForeignKey("estimate_items.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    quantity = Column(Float, default=0.0)
    unit_price = Column(Float, default=0.0)
    consumption_coefficient = Column(Float, default=1.0)
    auto_calculate = Column(Boolean, default=True)
    is_required = Column(Boolean, default=True)
    notes = Column(Text, nullable=True)

    item = relationship("EstimateItem", back_populates="materials")
    material = relationship("Material")
