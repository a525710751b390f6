from datetime import datetime, timezone

from plantstock.core.sequence import next_sequence
from plantstock.db import seed
from plantstock.db.models.auth import User
from plantstock.db.models.inventory import Material, MaterialMovement
from plantstock.db.models.production import BOMItem, Machine, WorkOrder
from services.workorders.service import next_order_number


def test_seed_demo_posts_opening_stock_once(db):
    assert seed.seed_demo(db) is True
    assert db.query(Material).count() == 5
    assert db.query(Machine).count() == 3
    assert db.query(BOMItem).count() == 14
    assert db.query(WorkOrder).count() == 2
    movements = db.query(MaterialMovement).all()
    assert len(movements) == 5
    assert all(mv.type == "IN" and mv.reason == "Opening stock" for mv in movements)
    fuse = db.query(Material).filter(Material.code == "ELK001").one()
    assert float(fuse.current_stock) == 100

    assert seed.seed_demo(db) is False
    assert db.query(Material).count() == 5


def test_ensure_admin_from_env(db, monkeypatch):
    monkeypatch.setattr(seed, "ADMIN_EMAIL", "Boss@AcmePlant.com")
    monkeypatch.setattr(seed, "ADMIN_PASSWORD", "secret123")
    user = seed.ensure_admin(db)
    assert user.email == "boss@acmeplant.com"
    assert user.role == "admin"
    assert seed.ensure_admin(db).id == user.id
    assert db.query(User).count() == 1


def test_sequences_are_per_name(db):
    assert next_sequence(db, "a") == 1
    assert next_sequence(db, "a") == 2
    assert next_sequence(db, "b") == 1
    db.commit()
    year_2030 = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert next_order_number(db, year_2030) == "WO-2030-001"
    assert next_order_number(db, year_2030) == "WO-2030-002"
