from __future__ import annotations

from sqlalchemy.orm import Session

from plantstock.db.models.system import Sequence


def next_sequence(db: Session, name: str) -> int:
    """Increment and return the named counter. Caller commits."""
    seq = db.query(Sequence).filter(Sequence.name == name).with_for_update().first()
    if not seq:
        seq = Sequence(name=name, value=0)
        db.add(seq)
    seq.value = (seq.value or 0) + 1
    db.flush()
    return seq.value
