from __future__ import annotations
from decimal import Decimal
from sqlalchemy.orm import Session

from plantstock.core.errors import BadRequest, NotFound
from plantstock.db.models.inventory import Material, MaterialMovement

MOVEMENT_TYPES = ("IN", "OUT")


def lock_material(db: Session, material_id: str) -> Material:
    m = db.query(Material).filter(Material.id == material_id).with_for_update().first()
    if not m:
        raise NotFound("Material not found")
    return m


def post_movement(
    db: Session,
    *,
    material: Material,
    type: str,
    quantity: Decimal,
    performed_by: str | None,
    reason: str = "",
    description: str | None = None,
    location: str | None = None,
    unit_price: Decimal | None = None,
    work_order_id: str | None = None,
) -> MaterialMovement:
    """Record a stock movement and apply it to the material's current stock.

    Does not commit; the caller owns the transaction so several postings can
    succeed or fail together. Raises BadRequest when an OUT exceeds stock.
    """
    if type not in MOVEMENT_TYPES:
        raise BadRequest("type must be IN or OUT")
    qty = Decimal(quantity)
    if qty <= 0:
        raise BadRequest("quantity must be greater than 0")

    current = Decimal(material.current_stock or 0)
    if type == "OUT":
        if qty > current:
            raise BadRequest("Insufficient stock")
        material.current_stock = current - qty
    else:
        material.current_stock = current + qty

    price = Decimal(unit_price) if unit_price is not None else Decimal(material.unit_price or 0)
    mv = MaterialMovement(
        material_id=material.id,
        material_code=material.code,
        material_name=material.name,
        type=type,
        quantity=qty,
        unit=material.unit,
        unit_price=price,
        total_price=qty * price,
        reason=reason or "",
        description=description,
        location=location or material.location,
        performed_by=performed_by,
        work_order_id=work_order_id,
    )
    db.add(mv)
    db.flush()
    return mv


def reverse_movement(db: Session, mv: MaterialMovement) -> None:
    """Undo a movement's effect on stock and delete it. Caller commits."""
    m = db.query(Material).filter(Material.id == mv.material_id).with_for_update().first()
    if m:
        current = Decimal(m.current_stock or 0)
        qty = Decimal(mv.quantity)
        if mv.type == "IN":
            if qty > current:
                raise BadRequest("Cannot delete movement: stock would become negative")
            m.current_stock = current - qty
        else:
            m.current_stock = current + qty
    db.delete(mv)


def check_availability(db: Session, lines: list[tuple[str, Decimal]]) -> list[dict]:
    """Return a shortage entry per material whose stock cannot cover the summed requirement."""
    required: dict[str, Decimal] = {}
    for material_id, qty in lines:
        required[material_id] = required.get(material_id, Decimal("0")) + Decimal(qty)

    shortages = []
    for material_id, qty in required.items():
        m = db.query(Material).filter(Material.id == material_id).first()
        available = Decimal(m.current_stock or 0) if m else Decimal("0")
        if not m or available < qty:
            shortages.append({
                "materialId": material_id,
                "materialCode": m.code if m else None,
                "required": float(qty),
                "available": float(available),
            })
    return shortages
