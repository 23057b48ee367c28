"""
API endpoint tests for all routes.
Uses in-memory SQLite + dependency-overridden FastAPI test client.
"""
import uuid


# ===================== HEALTH / ROOT =====================


async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


# ===================== PROJECTS =====================


async def test_create_project(client, seed_data):
    r = await client.post("/projects", json={
        "name": "Harbor Office",
        "address": "1 Quay Rd",
        "client_id": str(seed_data["client_id"]),
        "start_date": "2024-01-01",
    })
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "planning"
    assert body["start_date"] == "2024-01-01"

    r = await client.get(f"/projects/{body['id']}")
    assert r.status_code == 200
    assert r.json()["name"] == "Harbor Office"


async def test_create_project_validation_error(client):
    r = await client.post("/projects", json={"name": ""})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "validation"
    assert "name" in body["error"]


async def test_create_project_unknown_client(client):
    r = await client.post("/projects", json={"name": "Ghost", "client_id": str(uuid.uuid4())})
    assert r.status_code == 404
    assert r.json() == {"error": "client not found", "code": "client_not_found"}


async def test_get_unknown_project(client):
    r = await client.get(f"/projects/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["error"] == "project not found"


async def test_start_project_before_approval(client, project):
    r = await client.put(f"/projects/{project['project_id']}/status", json={"status": "in_progress"})
    assert r.status_code == 409
    assert r.json()["code"] == "boq_not_approved"


async def test_illegal_project_transition(client, project):
    r = await client.put(f"/projects/{project['project_id']}/status", json={"status": "completed"})
    assert r.status_code == 400
    assert r.json()["code"] == "illegal_transition"


async def test_unknown_project_status(client, project):
    r = await client.put(f"/projects/{project['project_id']}/status", json={"status": "paused"})
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_status"


async def test_cancel_project(client, project):
    r = await client.put(f"/projects/{project['project_id']}/cancel")
    assert r.status_code == 200
    assert r.json()["project"]["status"] == "cancelled"

    r = await client.put(f"/projects/{project['project_id']}/cancel")
    assert r.status_code == 400
    assert r.json()["code"] == "terminal_status"


async def test_overview_missing_price(client, project):
    r = await client.post(f"/boqs/{project['boq_id']}/jobs", json={
        "job_id": str(project["slab_id"]), "quantity": 1, "labor_cost": 10,
    })
    assert r.status_code == 201
    r = await client.post(f"/boqs/{project['boq_id']}/material-prices", json={
        "job_id": str(project["slab_id"]), "material_id": str(project["cement_id"]), "actual_price": 20,
    })
    assert r.status_code == 201

    r = await client.get(f"/projects/{project['project_id']}/overview")
    assert r.status_code == 422
    assert r.json() == {"error": "missing price information", "code": "missing_price"}


async def test_summary_requires_completed_project(client, approved_quotation):
    r = await client.get(f"/projects/{approved_quotation['project_id']}/summary")
    assert r.status_code == 400
    assert r.json()["code"] == "project_not_completed"


async def test_overview(client, approved_quotation):
    r = await client.get(f"/projects/{approved_quotation['project_id']}/overview")
    assert r.status_code == 200
    body = r.json()
    assert body["total_overall_cost"] == 300
    assert body["total_with_tax"] == 642


# ===================== BOQ =====================


async def test_boq_is_created_on_first_access(client, seed_data):
    r = await client.post("/projects", json={"name": "Depot"})
    project_id = r.json()["id"]

    first = await client.get(f"/boqs/project/{project_id}")
    second = await client.get(f"/boqs/project/{project_id}")
    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["status"] == "draft"
    assert first.json()["jobs"] == []


async def test_boq_job_lines(client, project):
    boq_id, slab_id = project["boq_id"], str(project["slab_id"])

    r = await client.post(f"/boqs/{boq_id}/jobs", json={"job_id": slab_id, "quantity": 2, "labor_cost": 100})
    assert r.status_code == 201

    r = await client.post(f"/boqs/{boq_id}/jobs", json={"job_id": slab_id, "quantity": 2, "labor_cost": 100})
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_boq_job"

    r = await client.put(f"/boqs/{boq_id}/jobs/{slab_id}", json={"quantity": 3, "labor_cost": 90})
    assert r.status_code == 200
    assert r.json()["quantity"] == 3

    r = await client.get(f"/boqs/project/{project['project_id']}")
    [line] = r.json()["jobs"]
    assert line["name"] == "Concrete slab"
    assert line["labor_cost"] == 90

    r = await client.delete(f"/boqs/{boq_id}/jobs/{slab_id}")
    assert r.status_code == 200


async def test_approve_empty_boq(client, project):
    r = await client.put(f"/boqs/{project['boq_id']}/approve")
    assert r.status_code == 400
    assert r.json()["code"] == "boq_empty"


async def test_boq_summary(client, approved_boq):
    r = await client.get(f"/boqs/project/{approved_boq['project_id']}/summary")
    assert r.status_code == 200
    assert r.json()["summary_metrics"]["total_amount"] == 300


# ===================== GENERAL COSTS =====================


async def test_cost_types(client, seed_data):
    r = await client.get("/general-costs/types")
    assert r.status_code == 200
    assert sorted(t["type_name"] for t in r.json()) == sorted(seed_data["cost_types"])


async def test_project_general_costs(client, project):
    r = await client.get(f"/general-costs/project/{project['project_id']}")
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == len(project["cost_types"])
    assert all(row["estimated_cost"] == 0 for row in rows)

    g_id = rows[0]["id"]
    r = await client.put(f"/general-costs/{g_id}", json={"estimated_cost": 750})
    assert r.status_code == 200
    assert r.json()["estimated_cost"] == 750

    r = await client.get(f"/general-costs/{g_id}")
    assert r.json()["estimated_cost"] == 750

    r = await client.put(f"/general-costs/{g_id}/actual-cost", json={"actual_cost": 10})
    assert r.status_code == 400
    assert r.json()["error"] == "BOQ must be approved to update actual cost"


async def test_estimated_cost_rejects_infinity(client, project):
    r = await client.get(f"/general-costs/project/{project['project_id']}")
    g_id = r.json()[0]["id"]

    r = await client.put(
        f"/general-costs/{g_id}",
        content='{"estimated_cost": Infinity}',
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation"

    r = await client.get(f"/general-costs/{g_id}")
    assert r.json()["estimated_cost"] == 0


async def test_selling_price_rejects_nan(client, approved_boq):
    project_id = approved_boq["project_id"]
    await client.post(f"/quotations/projects/{project_id}")

    body = (
        '{"tax_percentage": NaN, "selling_general_cost": 100, "job_selling_prices": '
        f'[{{"job_id": "{approved_boq["slab_id"]}", "selling_price": 250}}]}}'
    )
    r = await client.put(
        f"/quotations/projects/{project_id}/selling-price",
        content=body,
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert "error" in r.json()


async def test_contract_job_listed_twice(client, approved_quotation):
    slab_id = str(approved_quotation["slab_id"])
    r = await client.post(f"/contracts/{approved_quotation['project_id']}", json={
        "periods": [{"period_number": 1, "jobs": [{"job_id": slab_id}, {"job_id": slab_id}]}],
    })
    assert r.status_code == 400
    assert r.json()["code"] == "duplicate_period_job"


async def test_duplicate_general_cost(client, project):
    await client.get(f"/general-costs/project/{project['project_id']}")
    r = await client.post("/general-costs", json={
        "boq_id": str(project["boq_id"]), "type_name": "insurance",
    })
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_general_cost"


async def test_unknown_general_cost(client):
    r = await client.get(f"/general-costs/{uuid.uuid4()}")
    assert r.status_code == 404


# ===================== QUOTATIONS =====================


async def test_quotation_flow(client, approved_boq):
    project_id = approved_boq["project_id"]

    r = await client.post(f"/quotations/projects/{project_id}")
    assert r.status_code == 200
    assert r.json()["status"] == "draft"
    assert r.json()["jobs"][0]["total"] == 300

    r = await client.put(f"/quotations/projects/{project_id}/selling-price", json={
        "tax_percentage": 7,
        "selling_general_cost": 100,
        "job_selling_prices": [{"job_id": str(approved_boq["slab_id"]), "selling_price": 250}],
    })
    assert r.status_code == 200
    assert r.json()["final_amount"] == 642

    r = await client.get(f"/quotations/projects/{project_id}/export")
    assert r.status_code == 400

    r = await client.put(f"/quotations/projects/{project_id}/approve")
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    r = await client.put(f"/quotations/projects/{project_id}/approve")
    assert r.status_code == 400
    assert r.json()["code"] == "no_draft_quotation"

    r = await client.get(f"/quotations/projects/{project_id}/export")
    assert r.status_code == 200
    assert r.json()["final_amount"] == 642


async def test_quotation_before_boq_approval(client, project):
    r = await client.post(f"/quotations/projects/{project['project_id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "BOQ must be approved before creating quotation"


# ===================== CONTRACTS =====================


async def test_create_contract(client, approved_quotation):
    project_id = approved_quotation["project_id"]
    r = await client.post(f"/contracts/{project_id}", json={
        "pay_within": 45,
        "periods": [
            {"period_number": 2, "amount_period": 300},
            {"period_number": 1, "amount_period": 300,
             "jobs": [{"job_id": str(approved_quotation["slab_id"]), "job_amount": 300}]},
        ],
    })
    assert r.status_code == 201
    assert [p["period_number"] for p in r.json()["periods"]] == [1, 2]

    r = await client.get(f"/contracts/{project_id}")
    assert r.status_code == 200
    assert r.json()["pay_within"] == 45


async def test_contract_job_outside_boq(client, approved_quotation):
    r = await client.post(f"/contracts/{approved_quotation['project_id']}", json={
        "periods": [{"period_number": 1, "jobs": [{"job_id": str(approved_quotation["wall_id"])}]}],
    })
    assert r.status_code == 404
    assert r.json()["code"] == "boq_job_not_found"


# ===================== INVOICES =====================


async def test_invoice_flow(client, contracted):
    project_id = contracted["project_id"]

    r = await client.post(f"/invoices/{project_id}", json={
        "contract_id": str(contracted["contract_id"]), "payment_term": "30 days",
    })
    assert r.status_code == 201
    invoice_ids = r.json()["invoice_ids"]
    assert len(invoice_ids) == 3

    r = await client.get(f"/invoices/{project_id}")
    assert r.status_code == 200
    assert len(r.json()["invoices"]) == 3

    invoice_id = invoice_ids[0]
    r = await client.put(f"/invoice/{invoice_id}/status", json={"status": "approved"})
    assert r.status_code == 400
    assert r.json()["code"] == "missing_required_fields"

    r = await client.put(f"/invoice/{invoice_id}", json={
        "invoice_date": "2024-03-01", "payment_due_date": "2024-03-31",
    })
    assert r.status_code == 200
    assert r.json()["invoice_date"] == "2024-03-01"
    assert r.json()["payment_term"] == "30 days"

    r = await client.put(f"/invoice/{invoice_id}/status", json={"status": "approved"})
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    r = await client.put(f"/invoice/{invoice_id}/status", json={"status": "draft"})
    assert r.status_code == 400

    r = await client.get(f"/invoices/contract/{contracted['contract_id']}/status")
    assert r.status_code == 200
    assert r.json()["progress"]["invoiced_periods"] == 3

    r = await client.delete(f"/invoice/{invoice_ids[1]}")
    assert r.status_code == 200
    r = await client.get(f"/invoice/{invoice_ids[1]}")
    assert r.status_code == 404


async def test_invoice_due_date_before_invoice_date(client, contracted):
    r = await client.post(f"/invoices/{contracted['project_id']}", json={
        "contract_id": str(contracted["contract_id"]),
    })
    invoice_id = r.json()["invoice_ids"][0]

    r = await client.put(f"/invoice/{invoice_id}", json={
        "invoice_date": "2024-03-31", "payment_due_date": "2024-03-01",
    })
    assert r.status_code == 400


async def test_invoice_for_unapproved_project(client, project):
    r = await client.post(f"/invoices/{project['project_id']}", json={"contract_id": str(uuid.uuid4())})
    assert r.status_code == 400
    assert r.json()["error"] == "BOQ must be approved"
