import uuid

from sqlalchemy import select

from sschool.core.scheduler import build_scheduler, sweep_orphaned_materials_job
from sschool.models.material import Material


def test_sweep_removes_only_orphaned_materials(app, db, student):
    db.add_all([
        Material(user_id=student.id, title="Kept", content="owned"),
        Material(user_id=str(uuid.uuid4()), title="Orphan 1", content="gone"),
        Material(user_id=str(uuid.uuid4()), title="Orphan 2", content="gone"),
    ])
    db.commit()

    removed = sweep_orphaned_materials_job(app.state.session_factory)

    assert removed == 2
    db.expire_all()
    assert db.scalars(select(Material.title)).all() == ["Kept"]


def test_sweep_with_nothing_to_do(app, client):
    assert sweep_orphaned_materials_job(app.state.session_factory) == 0


def test_build_scheduler_registers_sweep_job(app):
    scheduler = build_scheduler(app.state.session_factory, interval_hours=6)

    job = scheduler.get_job("sweep_orphaned_materials")
    assert job is not None
    assert job.name == "Sweep orphaned materials"
    assert not scheduler.running
