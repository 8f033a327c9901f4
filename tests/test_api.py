"""HTTP tests for the /taxCodes resource with an in-memory store."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from easytax.api.tax_codes import get_clock, get_tax_code_store
from easytax.auth.middleware import get_tenant_from_bearer
from easytax.config import settings
from easytax.database import get_db
from easytax.exceptions import PersistenceError
from easytax.main import app
from easytax.models import Tenant

TENANT_ID = "6f1c3d2e-9a4b-4c1d-8e2f-000000000001"
NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)
BASE = f"{settings.mount_path}/taxCodes"


def au_gst(product="HardwareProduct", **overrides):
    item = {
        "tax_zone": "AU",
        "product_name": product,
        "tax_code": "GST",
        "tax_rate": "0.10",
        "valid_from_date": "2000-10-01T00:00:00+10:00",
    }
    item.update(overrides)
    return item


@pytest.fixture
def client(store):
    app.dependency_overrides[get_tax_code_store] = lambda: store
    app.dependency_overrides[get_tenant_from_bearer] = lambda: Tenant(
        tenant_id=TENANT_ID, name="Test Tenant"
    )
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_post_single_then_get(client):
    """Scenario: AU GST valid from 2000-10-01, open ended."""
    resp = client.post(
        f"{BASE}/AU/HardwareProduct/GST",
        json={"tax_rate": "0.10", "valid_from_date": "2000-10-01T00:00:00Z"},
    )
    assert resp.status_code == 201
    assert resp.headers["location"] == f"{BASE}/AU/HardwareProduct/GST"
    assert resp.content == b""

    resp = client.get(
        f"{BASE}/AU/HardwareProduct/GST", params={"validDate": "2025-01-01T00:00:00Z"}
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == [
        {
            "tenant_id": TENANT_ID,
            "tax_zone": "AU",
            "product_name": "HardwareProduct",
            "tax_code": "GST",
            "tax_rate": "0.10",
            "valid_from_date": "2000-10-01T00:00:00.000Z",
            "created_date": "2025-01-01T00:00:00.000Z",
        }
    ]

    resp = client.get(
        f"{BASE}/AU/HardwareProduct/GST", params={"validDate": "1999-01-01T00:00:00Z"}
    )
    assert resp.json() == []


def test_single_post_path_overrides_body_keys(client, store):
    body = au_gst(tax_zone="NZ", product_name="Other", tax_code="VAT")
    resp = client.post(f"{BASE}/AU/HardwareProduct/GST", json=body)
    assert resp.status_code == 201
    [stored] = client.get(BASE).json()
    assert (stored["tax_zone"], stored["product_name"], stored["tax_code"]) == (
        "AU",
        "HardwareProduct",
        "GST",
    )


def test_location_quotes_segments(client):
    resp = client.post(
        f"{BASE}/AU/Hardware Product/GST",
        json={"tax_rate": "0.10", "valid_from_date": "2000-10-01T00:00:00Z"},
    )
    assert resp.headers["location"] == f"{BASE}/AU/Hardware%20Product/GST"


def test_overlapping_records_both_returned(client):
    batch = [
        au_gst(tax_rate="0.15", valid_from_date="2022-01-01T00:00:00Z"),
        au_gst(valid_from_date="2020-01-01T00:00:00Z", valid_to_date="2024-01-01T00:00:00Z"),
    ]
    assert client.post(BASE, json=batch).status_code == 200

    found = client.get(
        f"{BASE}/AU/HardwareProduct/GST", params={"validDate": "2023-06-01T00:00:00Z"}
    ).json()
    assert [r["valid_from_date"] for r in found] == [
        "2020-01-01T00:00:00.000Z",
        "2022-01-01T00:00:00.000Z",
    ]
    assert found[0]["valid_to_date"] == "2024-01-01T00:00:00.000Z"
    assert "valid_to_date" not in found[1]


def test_valid_now_uses_clock(client):
    batch = [
        au_gst(valid_from_date="2020-01-01T00:00:00Z", valid_to_date="2025-01-01T00:00:00Z"),
        au_gst(tax_rate="0.12", valid_from_date="2025-01-01T00:00:00Z"),
    ]
    client.post(BASE, json=batch)
    found = client.get(BASE, params={"validNow": "TRUE"}).json()
    assert [r["tax_rate"] for r in found] == ["0.12"]


def test_valid_now_false_means_unfiltered(client):
    client.post(BASE, json=[au_gst(valid_from_date="2030-01-01T00:00:00Z")])
    assert len(client.get(BASE, params={"validNow": "false"}).json()) == 1


def test_valid_now_and_valid_date_conflict(client):
    resp = client.get(BASE, params={"validNow": "true", "validDate": "2025-01-01T00:00:00Z"})
    assert resp.status_code == 400
    assert "validNow" in resp.json()["detail"]


def test_bad_valid_date(client):
    resp = client.get(BASE, params={"validDate": "last tuesday"})
    assert resp.status_code == 400
    assert "validDate" in resp.json()["detail"]


def test_valid_date_with_offset(client):
    client.post(BASE, json=[au_gst()])
    # 2000-10-01T00:00+10:00 is exactly when the record opens
    found = client.get(BASE, params={"validDate": "2000-10-01T00:00:00+10:00"}).json()
    assert len(found) == 1
    found = client.get(BASE, params={"validDate": "2000-09-30T23:59:59+10:00"}).json()
    assert found == []


def test_get_prefix_levels(client):
    client.post(
        BASE,
        json=[
            au_gst("HardwareProduct"),
            au_gst("InstallProduct"),
            au_gst("InstallProduct", tax_code="LCT"),
            au_gst(tax_zone="NZ", tax_rate="0.15"),
        ],
    )
    assert len(client.get(BASE).json()) == 4
    assert len(client.get(f"{BASE}/AU").json()) == 3
    assert len(client.get(f"{BASE}/AU/InstallProduct").json()) == 2
    assert len(client.get(f"{BASE}/AU/InstallProduct/LCT").json()) == 1
    assert client.get(f"{BASE}/US").json() == []


def test_delete_zone_leaves_other_zones(client, store):
    client.post(
        BASE,
        json=[
            au_gst("HardwareProduct"),
            au_gst("InstallProduct", tax_code="LCT"),
            au_gst(tax_zone="NZ", tax_rate="0.15"),
        ],
    )
    resp = client.delete(f"{BASE}/AU")
    assert resp.status_code == 200
    assert resp.content == b""
    assert client.get(f"{BASE}/AU").json() == []
    assert [r["tax_zone"] for r in client.get(BASE).json()] == ["NZ"]


def test_delete_nothing_is_ok(client):
    assert client.delete(f"{BASE}/AU/HardwareProduct/GST").status_code == 200


def test_delete_root_removes_everything(client, store):
    client.post(BASE, json=[au_gst(), au_gst(tax_zone="NZ")])
    assert client.delete(BASE).status_code == 200
    assert len(store) == 0


@pytest.mark.parametrize("body", [b"[]", b"", b"null"])
def test_empty_batch_is_noop(client, store, body):
    resp = client.post(BASE, content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 200
    assert len(store) == 0


def test_batch_on_partial_path(client, store):
    """Shorter paths still take a full batch; the path does not override keys."""
    resp = client.post(f"{BASE}/AU", json=[au_gst(tax_zone="NZ")])
    assert resp.status_code == 200
    assert client.get(f"{BASE}/NZ").json()[0]["tax_zone"] == "NZ"


def test_malformed_batch_writes_nothing(client, store):
    batch = [
        au_gst("HardwareProduct"),
        au_gst(
            "InstallProduct",
            valid_from_date="2001-01-01T00:00:00Z",
            valid_to_date="2000-01-01T00:00:00Z",
        ),
    ]
    resp = client.post(BASE, json=batch)
    assert resp.status_code == 400
    assert "valid_to_date" in resp.json()["detail"]
    assert len(store) == 0


@pytest.mark.parametrize(
    "body",
    [
        {"tax_rate": "-1", "valid_from_date": "2000-01-01T00:00:00Z"},
        {"tax_rate": "ten percent", "valid_from_date": "2000-01-01T00:00:00Z"},
        {"tax_rate": "0.1", "valid_from_date": "someday"},
        [{"tax_rate": "0.1", "valid_from_date": "2000-01-01T00:00:00Z"}],
    ],
)
def test_malformed_single_body(client, store, body):
    resp = client.post(f"{BASE}/AU/HardwareProduct/GST", json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Invalid tax code")
    assert len(store) == 0


def test_single_body_not_json(client):
    resp = client.post(
        f"{BASE}/AU/HardwareProduct/GST",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400


def test_rate_precision_preserved(client):
    client.post(
        f"{BASE}/AU/HardwareProduct/GST",
        json={"tax_rate": "0.0825000", "valid_from_date": "2000-10-01T00:00:00Z"},
    )
    assert client.get(BASE).json()[0]["tax_rate"] == "0.0825000"


def test_json_number_rates_keep_their_digits(client):
    """Rates sent as JSON numbers are read as decimals, never as floats."""
    for code, rate in [("GST", b"0.10"), ("VAT", b"0.123456789012345678901")]:
        resp = client.post(
            f"{BASE}/AU/HardwareProduct/{code}",
            content=b'{"tax_rate": ' + rate + b', "valid_from_date": "2000-10-01T00:00:00Z"}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 201
    found = client.get(BASE).json()
    assert [r["tax_rate"] for r in found] == ["0.10", "0.123456789012345678901"]


def test_batch_json_number_rate(client):
    resp = client.post(
        BASE,
        content=(
            b'[{"tax_zone": "NZ", "product_name": "HardwareProduct", "tax_code": "GST",'
            b' "tax_rate": 0.150, "valid_from_date": "2000-10-01T00:00:00Z"}]'
        ),
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 200
    assert client.get(f"{BASE}/NZ").json()[0]["tax_rate"] == "0.150"


def test_epoch_seconds_accepted_in_body_and_query(client):
    """Bodies and validDate share one timestamp grammar."""
    resp = client.post(
        f"{BASE}/AU/HardwareProduct/GST",
        json={"tax_rate": "0.10", "valid_from_date": 970358400},
    )
    assert resp.status_code == 201
    [stored] = client.get(BASE).json()
    assert stored["valid_from_date"] == "2000-10-01T00:00:00.000Z"

    assert len(client.get(BASE, params={"validDate": "970358400"}).json()) == 1
    assert client.get(BASE, params={"validDate": "970358399"}).json() == []


@pytest.mark.parametrize("valid_date", ["2000", "2000-10"])
def test_partial_valid_date_rejected(client, valid_date):
    resp = client.get(BASE, params={"validDate": valid_date})
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "path",
    ["/taxCodes/AU/HardwareProduct/GST/extra", "/taxCodes/", "/taxCodes/AU//GST", "/rates"],
)
@pytest.mark.parametrize("method", ["GET", "POST", "DELETE"])
def test_unknown_resource_is_not_found(client, path, method):
    resp = client.request(method, f"{settings.mount_path}{path}")
    assert resp.status_code == 404
    assert resp.json()["detail"] == f"Resource {path} not found"


def test_repeated_reads_identical(client):
    client.post(BASE, json=[au_gst("B"), au_gst("A"), au_gst("C")])
    first = client.get(BASE).json()
    assert [r["product_name"] for r in first] == ["A", "B", "C"]
    assert client.get(BASE).json() == first


class FailingStore:
    async def query(self, tenant_id, prefix):
        raise PersistenceError("could not connect to server")

    async def insert(self, record):
        raise PersistenceError("could not connect to server")

    async def insert_batch(self, records):
        raise PersistenceError("could not connect to server")

    async def delete(self, tenant_id, prefix):
        raise PersistenceError("could not connect to server")


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("GET", "", None),
        ("POST", "", [au_gst()]),
        ("POST", "/AU/HardwareProduct/GST", au_gst()),
        ("DELETE", "/AU", None),
    ],
)
def test_storage_failure_is_server_error(client, method, path, body):
    app.dependency_overrides[get_tax_code_store] = lambda: FailingStore()
    resp = client.request(method, f"{BASE}{path}", json=body)
    assert resp.status_code == 500
    assert resp.json() == {"detail": "could not connect to server"}


class NoTenantSession:
    """Session whose tenant lookup never finds anyone."""

    class _Result:
        def scalar_one_or_none(self):
            return None

    async def execute(self, stmt):
        return self._Result()


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer sk_unknown"}])
def test_no_tenant_is_not_found(store, headers):
    app.dependency_overrides[get_tax_code_store] = lambda: store
    app.dependency_overrides[get_db] = lambda: NoTenantSession()
    try:
        with TestClient(app) as c:
            resp = c.get(BASE, headers=headers)
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 404
    assert resp.json() == {"detail": "No tenant specified"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}



class BrokenSession:
    """Session whose database connection has gone away."""

    async def execute(self, stmt):
        raise OperationalError("SELECT", {}, Exception("connection reset"))


def test_tenant_lookup_failure_is_server_error(store):
    app.dependency_overrides[get_tax_code_store] = lambda: store
    app.dependency_overrides[get_db] = lambda: BrokenSession()
    try:
        with TestClient(app) as c:
            resp = c.get(BASE, headers={"Authorization": "Bearer sk_demo"})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 500
    assert resp.json() == {"detail": "connection reset"}
