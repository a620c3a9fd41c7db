import pydantic
import pytest

from crewhours.accommodations.schemas import AccommodationUpdate
from crewhours.profiles.schemas import ProfileUpdate
from crewhours.profiles.validation import normalize_iban, sanitize_text
from crewhours.projects.schemas import ProjectUpdate

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_sanitize_text_strips_markup():
    assert sanitize_text("  <script>alert(1)</script>Novak s.r.o. ") == "Novak s.r.o."
    assert sanitize_text('<img onerror="x">') == '<img "x">'
    assert sanitize_text("javascript:void(0)") == "void(0)"


def test_iban_is_compacted():
    assert normalize_iban("SK31 1200 0000 1987 4263 7541") == "SK3112000000198742637541"
    with pytest.raises(ValueError):
        normalize_iban("31 1200")


@pytest.mark.parametrize(
    "schema, field",
    [
        (ProfileUpdate, "is_vat_payer"),
        (ProjectUpdate, "name"),
        (ProjectUpdate, "is_active"),
        (AccommodationUpdate, "default_price_per_night"),
    ],
)
def test_partial_updates_reject_null_required_columns(schema, field):
    with pytest.raises(pydantic.ValidationError):
        schema.model_validate({field: None})
    # Omitting the field is fine.
    assert schema.model_validate({}).model_fields_set == set()


@pytest.mark.asyncio
async def test_update_own_billing_data(client, worker, auth):
    response = await client.put(
        "/api/profiles/me",
        json={"company_name": "Novak Montage", "iban": "at61 1904 3002 3457 3201", "ico": "12345678"},
        headers=auth(worker),
    )
    assert response.status_code == 422

    response = await client.put(
        "/api/profiles/me",
        json={"company_name": "Novak Montage", "iban": "AT61 1904 3002 3457 3201", "ico": "12345678"},
        headers=auth(worker),
    )
    assert response.status_code == 200
    profile = response.json()["data"]
    assert profile["iban"] == "AT611904300234573201"
    assert profile["full_name"] == "Jan Novak"


@pytest.mark.asyncio
async def test_hourly_rate_is_admin_only(client, worker, admin, auth):
    response = await client.put(
        "/api/profiles/me", json={"hourly_rate": 99}, headers=auth(worker)
    )
    assert response.json()["data"]["hourly_rate"] == 15.0

    response = await client.put(
        f"/api/profiles/{worker.id}", json={"hourly_rate": 18.5}, headers=auth(admin)
    )
    assert response.json()["data"]["hourly_rate"] == 18.5


@pytest.mark.asyncio
async def test_signature_upload(client, worker, auth):
    response = await client.post(
        "/api/profiles/me/signature",
        files={"file": ("podpis.png", PNG, "image/png")},
        headers=auth(worker),
    )
    assert response.status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("filename", "content"),
    [("podpis.gif", b"GIF89a"), ("podpis.png", b"not an image"), ("podpis", PNG)],
)
async def test_signature_upload_rejects_bad_files(client, worker, auth, filename, content):
    response = await client.post(
        "/api/profiles/me/signature",
        files={"file": (filename, content, "application/octet-stream")},
        headers=auth(worker),
    )
    assert response.status_code == 422
