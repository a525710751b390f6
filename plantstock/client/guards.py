from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from plantstock.client.schemas import Envelope, Machine, Material, MaterialMovement, WorkOrder

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _valid(model: type[BaseModel], value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    try:
        model.model_validate(value)
    except ValidationError:
        return False
    return True


def is_material(value: Any) -> bool:
    return _valid(Material, value)


def is_material_movement(value: Any) -> bool:
    return _valid(MaterialMovement, value)


def is_machine(value: Any) -> bool:
    return _valid(Machine, value)


def is_work_order(value: Any) -> bool:
    return _valid(WorkOrder, value)


def is_api_response(value: Any) -> bool:
    return _valid(Envelope, value)


def _records(data: Any, key: str | None) -> list | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("data"), list):
            return data["data"]
        if key and isinstance(data.get(key), list):
            return data[key]
    return None


def extract_safe(response: Any, model: type[M], key: str | None = None) -> list[M]:
    """Validated records of ``model`` from an API envelope.

    ``data`` may be the list itself, ``{"data": [...]}`` or ``{key: [...]}``.
    Malformed records are dropped with a warning; a failed or malformed
    envelope yields an empty list.
    """
    if not is_api_response(response):
        logger.warning("invalid API response structure for %s", model.__name__)
        return []
    if not response["success"]:
        logger.warning("API response indicates failure: %s", response.get("error"))
        return []

    records = _records(response.get("data"), key)
    if records is None:
        logger.warning("unexpected %s data structure: %r", model.__name__, response.get("data"))
        return []

    out: list[M] = []
    for item in records:
        try:
            out.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("invalid %s record dropped (%d errors): %r", model.__name__, e.error_count(), item)
    return out


def extract_safe_materials(response: Any) -> list[Material]:
    return extract_safe(response, Material, "materials")


def extract_safe_movements(response: Any) -> list[MaterialMovement]:
    return extract_safe(response, MaterialMovement, "movements")


def extract_safe_machines(response: Any) -> list[Machine]:
    return extract_safe(response, Machine, "machines")


def extract_safe_work_orders(response: Any) -> list[WorkOrder]:
    return extract_safe(response, WorkOrder, "workOrders")
