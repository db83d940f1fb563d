"""
Route-level behaviour through the ASGI app: guard placement, status codes, JSON error bodies.
"""
from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from planilla.database import get_gateway
from planilla.exceptions import GatewayError
from planilla.main import app
from planilla.security import issue_token


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {issue_token(1, 'test-secret')}"}


class DepartmentStore:
    """Minimal in-memory stand-in for insertdepartamento / getdepartamentos."""

    def __init__(self):
        self.names = []

    async def call(self, procedure, params=(), types=()):
        assert procedure == "insertdepartamento"
        if params[0] in self.names:
            raise GatewayError("El nombre del departamento ya existe", code="45000")
        self.names.append(params[0])

    async def fetch(self, routine, params=(), types=()):
        assert routine == "getdepartamentos"
        return [{"id": i, "nombre": n} for i, n in enumerate(self.names, 1)]


# ---------- guard ----------


@pytest.mark.parametrize("path", ["/report/detail", "/report/total", "/fortnight/calculate"])
def test_guarded_routes_require_token(client, gateway, path):
    resp = client.get(path)
    assert resp.status_code == 401
    assert resp.json() == {"message": "Access denied, no token provided."}
    assert gateway.calls == []


def test_guarded_route_rejects_bad_token(client, gateway):
    resp = client.get("/report/detail", headers={"Authorization": "Bearer forged.token.value"})
    assert resp.status_code == 403
    assert gateway.calls == []


def test_guarded_route_rejects_expired_token(client, gateway):
    token = issue_token(1, "test-secret", now=datetime.now(timezone.utc) - timedelta(minutes=61))
    resp = client.post("/fortnight", json={"timestamp": "2024-01-01T00:00:00"}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403
    assert gateway.calls == []


def test_unguarded_routes_need_no_token(client, gateway):
    assert client.get("/department").status_code == 200
    gateway.rows = [{"nombre": "Ana"}]
    assert client.get("/collaborator", params={"cardID": "115250"}).status_code == 200


# ---------- reports ----------


def test_report_detail_valid_range_returns_array(client, gateway, auth_headers):
    resp = client.get(
        "/report/detail",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == []
    _, routine, params, types = gateway.calls[0]
    assert routine == "getquincenas"
    assert [str(p) if p is not None else None for p in params] == ["2024-01-01", "2024-01-31", None, None, "0", "100"]
    assert types == ["DATE", "DATE", "INT", "SMALLINT", "INT", "INT"]


def test_report_detail_invalid_date_is_400(client, gateway, auth_headers):
    resp = client.get("/report/detail", params={"startDate": "yesterday"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["kind"] == "INVALID_DATE"
    assert gateway.calls == []


def test_report_total_is_bound(client, gateway, auth_headers):
    gateway.rows = [{"total": 1}]
    resp = client.get(
        "/report/total",
        params={"date": "2024-01-01", "endDate": "2024-01-31", "departmentID": "2"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == [{"total": 1}]
    assert gateway.calls[0][1] == "getquincenastotal"
    assert gateway.calls[0][2][3] == 2


def test_report_detail_export(client, gateway, auth_headers):
    gateway.rows = [{"cedula": 115250, "nombre": "Ana", "salario_neto": 480000}]
    resp = client.get(
        "/report/detail/export",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert "report_detail_2024-01-01_2024-01-31.xlsx" in resp.headers["content-disposition"]
    ws = load_workbook(BytesIO(resp.content)).active
    assert [c.value for c in ws[1]] == ["cedula", "nombre", "salario_neto"]
    assert [c.value for c in ws[2]] == [115250, "Ana", 480000]


def test_report_database_failure_is_generic(client, gateway, auth_headers):
    gateway.error = GatewayError("function getquincenas does not exist", code="42883")
    resp = client.get("/report/detail", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json() == {"message": "Error getting report detail"}


# ---------- fortnights ----------


def test_insert_fortnight(client, gateway, auth_headers):
    resp = client.post("/fortnight", json={"timestamp": "2024-01-15T00:00:00Z"}, headers=auth_headers)
    assert resp.status_code == 201
    assert gateway.calls[0][1] == "insertquincena"


@pytest.mark.parametrize("body", [{}, {"timestamp": "31-31-2024"}])
def test_insert_fortnight_invalid_timestamp(client, gateway, auth_headers, body):
    resp = client.post("/fortnight", json=body, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["kind"] == "INVALID_TIMESTAMP"
    assert gateway.calls == []


def test_invalid_timestamp_legacy_404(client, gateway, auth_headers, test_settings):
    test_settings.invalid_timestamp_status = 404
    resp = client.put("/fortnight", json={"timestamp": "bad", "n": 3}, headers=auth_headers)
    assert resp.status_code == 404
    assert gateway.calls == []


def test_insert_n_fortnights(client, gateway, auth_headers):
    resp = client.put("/fortnight", json={"timestamp": "2024-01-01T00:00:00", "n": "4"}, headers=auth_headers)
    assert resp.status_code == 201
    _, routine, params, types = gateway.calls[0]
    assert routine == "insertnquincenas"
    assert params[0] == 4
    assert types == ["INT", "TIMESTAMP"]


@pytest.mark.parametrize("n", [None, 0, -2])
def test_insert_n_fortnights_requires_positive_n(client, gateway, auth_headers, n):
    resp = client.put("/fortnight", json={"timestamp": "2024-01-01T00:00:00", "n": n}, headers=auth_headers)
    assert resp.status_code == 400
    assert gateway.calls == []


def test_fortnight_rejected_by_routine(client, gateway, auth_headers):
    gateway.error = GatewayError("La quincena ya existe", code="P0001")
    resp = client.post("/fortnight", json={"timestamp": "2024-01-15T00:00:00"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "La quincena ya existe"}


def test_calculate_tax(client, gateway, auth_headers):
    gateway.rows = [{"tramo": 1, "impuesto": 0}]
    resp = client.get("/fortnight/calculate", params={"salary": "950000.75"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == [{"tramo": 1, "impuesto": 0}]
    assert str(gateway.calls[0][2][0]) == "950000"


# ---------- departments / collaborators ----------


def test_create_then_list_department():
    store = DepartmentStore()
    app.dependency_overrides[get_gateway] = lambda: store
    try:
        client = TestClient(app)
        assert client.post("/department", json={"departmentName": "Sales"}).status_code == 201
        names = [row["nombre"] for row in client.get("/department").json()]
        assert "Sales" in names
        dup = client.post("/department", json={"departmentName": "Sales"})
        assert dup.status_code == 409
    finally:
        app.dependency_overrides.clear()


def test_contribution_out_of_range_route(client, gateway):
    resp = client.patch("/department", json={"departmentID": 1, "salary": 1000, "contributionPercentage": 5.5})
    assert resp.status_code == 400
    assert gateway.calls == []


def test_unknown_employee_in_membership_insert(client, gateway):
    gateway.error = GatewayError("cedula inexistente", code="P0002")
    resp = client.put("/department", json={"departmentID": 1, "cardIDs": [999999]})
    assert resp.status_code == 400
    assert resp.json() == {"message": "One or more employee IDs do not exist"}


def test_malformed_body_is_400(client, gateway):
    resp = client.patch("/department", json={"departmentID": 1, "hasSpouse": "perhaps"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request"
    assert gateway.calls == []


@pytest.mark.parametrize("flag", ["yes", "1", 1])
def test_has_spouse_is_not_coerced(client, gateway, flag):
    resp = client.patch("/department", json={"departmentID": 1, "salary": 1000, "hasSpouse": flag})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid request"
    assert gateway.calls == []


def test_employee_salary_not_found_route(client, gateway):
    resp = client.get("/department/employee", params={"cardID": "115250", "departmentID": "1"})
    assert resp.status_code == 404


def test_collaborator_lookup(client, gateway):
    assert client.get("/collaborator").status_code == 400
    assert client.get("/collaborator", params={"cardID": "115250"}).json() == {
        "message": "The employee does not exist"
    }
    gateway.rows = [{"nombre": "Ana", "apellido": "Mora"}]
    resp = client.get("/collaborator", params={"cardID": "115250"})
    assert resp.status_code == 200
    assert resp.json() == {"nombre": "Ana", "apellido": "Mora"}


def test_employee_name_route_uses_idcard(client, gateway):
    gateway.rows = [{"nombre": "Ana"}]
    resp = client.get("/department/employee/name", params={"IDCard": "115250"})
    assert resp.status_code == 200
    assert gateway.calls[0][2] == [115250]


# ---------- health ----------


def test_health_check(client, gateway):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Current time from DB" in resp.text


def test_health_check_database_down(client, gateway):
    gateway.error = GatewayError("could not connect")
    resp = client.get("/")
    assert resp.status_code == 500
    assert resp.text == "Error connecting to the database"
