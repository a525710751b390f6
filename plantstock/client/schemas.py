"""Typed views of the API payloads, validated once at the network boundary.

The models are lenient about known payload drift (``minStockLevel`` versus
``minStock``, numbers sent as strings) and ignore unknown keys.
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictStr


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Material(_Model):
    id: StrictStr
    code: StrictStr
    name: StrictStr
    category: StrictStr
    unit: StrictStr
    current_stock: float = Field(validation_alias=AliasChoices("currentStock", "current_stock"))
    min_stock: float = Field(validation_alias=AliasChoices("minStock", "minStockLevel", "min_stock"))
    max_stock: float = Field(0.0, validation_alias=AliasChoices("maxStock", "maxStockLevel", "max_stock"))
    unit_price: float = Field(0.0, validation_alias=AliasChoices("unitPrice", "unit_price"))
    description: str | None = None
    supplier: str | None = None
    location: str | None = None
    last_updated: str | None = Field(None, validation_alias=AliasChoices("lastUpdated", "updatedAt"))


class MaterialMovement(_Model):
    id: StrictStr
    material_id: StrictStr = Field(validation_alias=AliasChoices("materialId", "material_id"))
    type: Literal["IN", "OUT"]
    quantity: float
    material_code: str | None = Field(None, validation_alias=AliasChoices("materialCode", "material_code"))
    material_name: str | None = Field(None, validation_alias=AliasChoices("materialName", "material_name"))
    unit: str | None = None
    total_price: float = Field(0.0, validation_alias=AliasChoices("totalPrice", "total_price"))
    reason: str | None = None
    created_at: str | None = Field(None, validation_alias=AliasChoices("createdAt", "created_at"))


class Machine(_Model):
    id: StrictStr
    code: StrictStr
    name: StrictStr
    status: StrictStr
    category: str | None = None
    location: str | None = None


class WorkOrder(_Model):
    id: StrictStr
    order_number: StrictStr = Field(validation_alias=AliasChoices("orderNumber", "order_number"))
    title: StrictStr
    status: Literal["PLANNED", "IN_PROGRESS", "COMPLETED", "CANCELLED"]
    priority: str | None = None
    machine_name: str | None = Field(None, validation_alias=AliasChoices("machineName", "machine_name"))
    quantity: float = 1.0


class Envelope(_Model):
    success: StrictBool
    data: Any = None
    error: str | None = None
    message: str | None = None
