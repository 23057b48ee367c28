"""
BOQ workflow - line editing, approval, price log and summary
"""
import uuid

import pytest
from sqlalchemy import select, func

from bidflow.errors import ErrorKind, WorkflowError
from bidflow.models import BOQ, BOQStatus, MaterialPriceLog
from bidflow.services import boq_service


async def test_add_and_list_jobs(db_session, project):
    await boq_service.add_boq_job(db_session, project["boq_id"], project["wall_id"], quantity=10, labor_cost=35)
    await boq_service.add_boq_job(db_session, project["boq_id"], project["slab_id"], quantity=4, labor_cost=120)

    boq, lines = await boq_service.get_boq_with_jobs(db_session, project["project_id"])
    assert boq.id == project["boq_id"]
    # ordered by job name
    assert [job.name for _, job in lines] == ["Brick wall", "Concrete slab"]


async def test_duplicate_job_is_conflict(db_session, project):
    await boq_service.add_boq_job(db_session, project["boq_id"], project["slab_id"], quantity=1, labor_cost=0)
    with pytest.raises(WorkflowError) as exc:
        await boq_service.add_boq_job(db_session, project["boq_id"], project["slab_id"], quantity=2, labor_cost=0)
    assert exc.value.kind == ErrorKind.CONFLICT


@pytest.mark.parametrize("quantity,labor_cost", [(0, 10), (-1, 10), (1, -5)])
async def test_job_values_are_validated(db_session, project, quantity, labor_cost):
    with pytest.raises(WorkflowError) as exc:
        await boq_service.add_boq_job(db_session, project["boq_id"], project["slab_id"],
                                      quantity=quantity, labor_cost=labor_cost)
    assert exc.value.kind == ErrorKind.VALIDATION


async def test_unknown_job(db_session, project):
    with pytest.raises(WorkflowError) as exc:
        await boq_service.add_boq_job(db_session, project["boq_id"], uuid.uuid4(), quantity=1, labor_cost=0)
    assert exc.value.message == "job not found"


async def test_update_and_delete_line(db_session, project):
    boq_id, slab_id = project["boq_id"], project["slab_id"]
    await boq_service.add_boq_job(db_session, boq_id, slab_id, quantity=1, labor_cost=10)

    line = await boq_service.update_boq_job(db_session, boq_id, slab_id, quantity=5, labor_cost=12)
    assert (line.quantity, line.labor_cost) == (5, 12)

    await boq_service.delete_boq_job(db_session, boq_id, slab_id)
    _, lines = await boq_service.get_boq_with_jobs(db_session, project["project_id"])
    assert lines == []

    with pytest.raises(WorkflowError) as exc:
        await boq_service.delete_boq_job(db_session, boq_id, slab_id)
    assert exc.value.kind == ErrorKind.NOT_FOUND


async def test_empty_boq_cannot_be_approved(db_session, project):
    with pytest.raises(WorkflowError) as exc:
        await boq_service.approve_boq(db_session, project["boq_id"])
    assert exc.value.code == "boq_empty"


async def test_approved_boq_is_frozen(db_session, approved_boq):
    boq_id, slab_id = approved_boq["boq_id"], approved_boq["slab_id"]

    stored = await db_session.get(BOQ, boq_id)
    assert stored.status == BOQStatus.APPROVED

    with pytest.raises(WorkflowError) as exc:
        await boq_service.update_boq_job(db_session, boq_id, slab_id, quantity=9, labor_cost=1)
    assert exc.value.message == "BOQ must be in draft status to be modified"

    with pytest.raises(WorkflowError) as exc:
        await boq_service.approve_boq(db_session, boq_id)
    assert exc.value.kind == ErrorKind.STATE


async def test_price_log_is_append_only(db_session, approved_boq):
    boq_id, slab_id, cement_id = approved_boq["boq_id"], approved_boq["slab_id"], approved_boq["cement_id"]
    await boq_service.log_material_price(db_session, boq_id, slab_id, cement_id, estimated_price=55)
    await boq_service.log_material_price(db_session, boq_id, slab_id, cement_id, actual_price=48)

    count = await db_session.scalar(
        select(func.count()).select_from(MaterialPriceLog).where(MaterialPriceLog.boq_id == boq_id)
    )
    assert count == 3


async def test_price_log_needs_a_price(db_session, approved_boq):
    with pytest.raises(WorkflowError) as exc:
        await boq_service.log_material_price(db_session, approved_boq["boq_id"], approved_boq["slab_id"],
                                             approved_boq["cement_id"])
    assert exc.value.kind == ErrorKind.VALIDATION


async def test_price_log_for_job_outside_boq(db_session, approved_boq):
    with pytest.raises(WorkflowError) as exc:
        await boq_service.log_material_price(db_session, approved_boq["boq_id"], approved_boq["wall_id"],
                                             approved_boq["brick_id"], estimated_price=1)
    assert exc.value.message == "job not found in BOQ"


async def test_summary_requires_approval(db_session, project):
    with pytest.raises(WorkflowError) as exc:
        await boq_service.get_boq_summary(db_session, project["project_id"])
    assert exc.value.message == "BOQ is not approved"


async def test_summary_metrics(db_session, approved_boq):
    summary = await boq_service.get_boq_summary(db_session, approved_boq["project_id"])

    assert summary["project_info"]["project_name"] == "Riverside Warehouse"
    [job] = summary["jobs"]
    assert job["total_labor_cost"] == 200
    assert job["total_estimated_price"] == 100
    assert job["materials"][0]["material_name"] == "Cement"

    metrics = summary["summary_metrics"]
    assert metrics["total_labor_cost"] == 200
    assert metrics["total_material_cost"] == 100
    assert metrics["grand_total"] == 300
