"""
Catalog Service

Read-only material lookups used to validate orders and receipts.
"""
from typing import Dict, Iterable
from sqlalchemy.orm import Session

from factoryops.exceptions import ValidationError
from factoryops.models.inventory import RawMaterial


def resolve_materials(db: Session, material_ids: Iterable[int]) -> Dict[int, RawMaterial]:
    """
    Look up several materials at once.

    Raises:
        ValidationError: if any identifier is unknown or inactive; the
            error lists every unresolved identifier.
    """
    wanted = set(material_ids)
    if not wanted:
        return {}

    rows = db.query(RawMaterial).filter(RawMaterial.id.in_(wanted)).all()
    found = {m.id: m for m in rows if m.active}

    missing = sorted(wanted - set(found))
    if missing:
        raise ValidationError(
            f"Unknown material(s): {', '.join(str(m) for m in missing)}",
            field="material_id",
            details={"material_ids": missing},
        )
    return found
