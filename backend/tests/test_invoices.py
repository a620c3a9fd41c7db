import uuid
from datetime import date, timedelta

import pytest

from crewhours.closings import service as closings
from crewhours.invoicing.models import Invoice, InvoiceStatus
from crewhours.invoicing.pdf import build_payment_qr_payload, invoice_filename, payment_message
from crewhours.invoicing.service import calculate_amounts, effective_status, transaction_tax

KW42_MONDAY = date(2025, 10, 13)
GENERATE = {"issue_date": "2025-10-21"}


async def approved_week(db, worker, manager, make_record, week=42, days=2):
    monday = date.fromisocalendar(2025, week, 1)
    for offset in range(days):
        await make_record(worker, monday + timedelta(days=offset))
    closing = await closings.submit_week(db, worker, week, 2025)
    return await closings.approve_closing(db, closing.id, manager)


# ── Calculations ─────────────────────────────────────────────────────────────


def test_amounts_without_vat():
    assert calculate_amounts(16, 15, is_vat_payer=False, is_reverse_charge=False) == {
        "subtotal": 240.0,
        "vat_amount": 0.0,
        "advance_deduction": 0.0,
        "total_amount": 240.0,
    }


def test_vat_payer_adds_vat_unless_reverse_charge():
    amounts = calculate_amounts(10, 20, is_vat_payer=True, is_reverse_charge=False)
    assert (amounts["vat_amount"], amounts["total_amount"]) == (40.0, 240.0)

    amounts = calculate_amounts(10, 20, is_vat_payer=True, is_reverse_charge=True)
    assert (amounts["vat_amount"], amounts["total_amount"]) == (0.0, 200.0)


def test_advances_reduce_the_total():
    amounts = calculate_amounts(
        40, 15, is_vat_payer=False, is_reverse_charge=False, advance_deduction=150
    )
    assert amounts["total_amount"] == 450.0


@pytest.mark.parametrize(
    ("total", "expected"),
    [(240.0, 0.96), (1234.56, 4.94), (100.01, 0.41), (250.0, 1.0)],
)
def test_transaction_tax_rounds_up_to_cent(total, expected):
    assert transaction_tax(total, 0.4) == expected


def test_effective_status_follows_due_date():
    invoice = Invoice(status=InvoiceStatus.PENDING, due_date=date(2025, 11, 11))
    assert effective_status(invoice, date(2025, 11, 1)) == InvoiceStatus.PENDING
    assert effective_status(invoice, date(2025, 11, 8)) == InvoiceStatus.DUE_SOON
    assert effective_status(invoice, date(2025, 11, 11)) == InvoiceStatus.DUE_SOON
    assert effective_status(invoice, date(2025, 11, 12)) == InvoiceStatus.OVERDUE

    invoice.status = InvoiceStatus.PAID
    assert effective_status(invoice, date(2026, 1, 1)) == InvoiceStatus.PAID


# ── PDF details ──────────────────────────────────────────────────────────────


def test_payment_qr_payload():
    payload = build_payment_qr_payload(
        "SK31 1200 0000 1987 4263 7541",
        240,
        payment_message(42, "Jan Novak"),
        "TKJD s.r.o.",
    )
    assert payload == (
        "SPD*1.0*ACC:SK3112000000198742637541*AM:240.00*CC:EUR"
        "*MSG:42 woche Jan Novak*RN:TKJD s.r.o."
    )


def test_payment_message_strips_separator():
    assert payment_message(7, "Jan *Novak") == "7 woche Jan Novak"
    assert payment_message(None, "Jan Novak") == "Jan Novak"


def test_weekly_invoice_filename():
    invoice = Invoice(invoice_number="2025001", calendar_week=7, week_closing_id=uuid.uuid4())
    assert invoice_filename(invoice, "Jan Novak", "Bridge: Linz") == "07 KW 2025001 Jan Novak Bridge Linz.pdf"


def test_other_invoice_filename():
    invoice = Invoice(invoice_number="2025/003", calendar_week=None, week_closing_id=None)
    assert invoice_filename(invoice) == "Faktura_2025003.pdf"


# ── API ──────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generate_invoice_from_approved_week(client, db, worker, manager, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record)

    response = await client.post(
        f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
    )
    assert response.status_code == 201
    invoice = response.json()["data"]
    assert invoice["invoice_number"] == "2025001"
    assert invoice["calendar_week"] == 42
    assert invoice["total_hours"] == 16.0
    assert invoice["hourly_rate"] == 15.0
    assert invoice["subtotal"] == 240.0
    assert invoice["vat_amount"] == 0.0
    assert invoice["total_amount"] == 240.0
    assert invoice["transaction_tax_amount"] == 0.96
    assert invoice["due_date"] == "2025-11-11"
    assert invoice["project"]["name"] == "Bridge Linz"

    response = await client.post(
        f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invoice_numbers_are_sequential(client, db, worker, manager, make_record, auth):
    first = await approved_week(db, worker, manager, make_record, week=42, days=1)
    second = await approved_week(db, worker, manager, make_record, week=43, days=1)

    numbers = []
    for closing in (first, second):
        response = await client.post(
            f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
        )
        numbers.append(response.json()["data"]["invoice_number"])
    assert numbers == ["2025001", "2025002"]


@pytest.mark.asyncio
async def test_submitted_week_cannot_be_invoiced(client, db, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing = await closings.submit_week(db, worker, 42, 2025)
    response = await client.post(
        f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_undo_blocked_once_invoiced(client, db, worker, manager, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record)
    await client.post(f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker))

    response = await client.post(f"/api/closings/{closing.id}/undo-approval", headers=auth(manager))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_advances_are_deducted_and_released_on_void(
    client, db, worker, manager, accountant, make_record, auth
):
    closing = await approved_week(db, worker, manager, make_record)
    response = await client.post(
        "/api/advances",
        json={"user_id": str(worker.id), "amount": 100, "date": "2025-10-10"},
        headers=auth(accountant),
    )
    assert response.status_code == 201
    advance_id = response.json()["data"]["id"]

    response = await client.post(
        f"/api/invoices/from-closing/{closing.id}",
        json={**GENERATE, "deduct_advances": True},
        headers=auth(accountant),
    )
    invoice = response.json()["data"]
    assert invoice["advance_deduction"] == 100.0
    assert invoice["total_amount"] == 140.0

    advances = (await client.get("/api/advances", headers=auth(accountant))).json()["data"]
    assert [a["used_in_invoice_id"] for a in advances if a["id"] == advance_id] == [invoice["id"]]

    response = await client.patch(
        f"/api/invoices/{invoice['id']}/status", json={"status": "void"}, headers=auth(accountant)
    )
    assert response.json()["data"]["status"] == "void"

    advances = (await client.get("/api/advances", headers=auth(accountant))).json()["data"]
    assert all(a["used_in_invoice_id"] is None for a in advances)


@pytest.mark.asyncio
async def test_advances_larger_than_invoice(client, db, worker, manager, accountant, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record, days=1)
    await client.post(
        "/api/advances",
        json={"user_id": str(worker.id), "amount": 500, "date": "2025-10-10"},
        headers=auth(accountant),
    )
    response = await client.post(
        f"/api/invoices/from-closing/{closing.id}",
        json={**GENERATE, "deduct_advances": True},
        headers=auth(accountant),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_mark_paid_and_lock(client, db, worker, manager, accountant, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record)
    invoice_id = (await client.post(
        f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
    )).json()["data"]["id"]

    response = await client.patch(
        f"/api/invoices/{invoice_id}/status", json={"status": "paid"}, headers=auth(worker)
    )
    assert response.status_code == 403

    response = await client.patch(
        f"/api/invoices/{invoice_id}/status", json={"status": "paid"}, headers=auth(accountant)
    )
    paid = response.json()["data"]
    assert paid["status"] == "paid"
    assert paid["paid_at"] is not None

    response = await client.post(f"/api/invoices/{invoice_id}/lock", headers=auth(accountant))
    assert response.json()["data"]["is_locked"] is True

    response = await client.delete(f"/api/invoices/{invoice_id}", headers=auth(accountant))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_invoice_pdf(client, db, worker, manager, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record)
    invoice_id = (await client.post(
        f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
    )).json()["data"]["id"]

    response = await client.get(f"/api/invoices/{invoice_id}/pdf", headers=auth(worker))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert "42 KW 2025001 Jan Novak Bridge Linz.pdf" in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_other_workers_invoices_are_hidden(client, db, worker, manager, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record)
    invoice_id = (await client.post(
        f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker)
    )).json()["data"]["id"]

    response = await client.get(f"/api/invoices/{invoice_id}", headers=auth(manager))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invoice_stats(client, db, worker, manager, accountant, make_record, auth):
    closing = await approved_week(db, worker, manager, make_record)
    await client.post(f"/api/invoices/from-closing/{closing.id}", json=GENERATE, headers=auth(worker))

    response = await client.get("/api/invoices/stats", headers=auth(accountant))
    stats = response.json()["data"]
    assert stats["invoice_count"] == 1
    assert stats["total_amount"] == 240.0
    assert stats["total_hours"] == 16.0
    assert "void" not in stats["by_status"]


@pytest.mark.asyncio
async def test_deleting_closing_discards_invoices_and_reopens_week(
    client, db, worker, manager, admin, accountant, make_record, auth
):
    closing = await approved_week(db, worker, manager, make_record)
    closing_id = closing.id
    await client.post(
        "/api/advances",
        json={"user_id": str(worker.id), "amount": 50, "date": "2025-10-10"},
        headers=auth(accountant),
    )
    response = await client.post(
        f"/api/invoices/from-closing/{closing_id}",
        json={**GENERATE, "deduct_advances": True},
        headers=auth(accountant),
    )
    invoice_id = response.json()["data"]["id"]

    response = await client.delete(f"/api/closings/{closing_id}", headers=auth(manager))
    assert response.status_code == 403

    response = await client.delete(f"/api/closings/{closing_id}", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Weekly closing deleted"

    assert (await client.get(f"/api/closings/{closing_id}", headers=auth(admin))).status_code == 404
    assert (await client.get(f"/api/invoices/{invoice_id}", headers=auth(admin))).status_code == 404
    advances = (await client.get("/api/advances", headers=auth(accountant))).json()["data"]
    assert all(a["used_in_invoice_id"] is None for a in advances)

    records = (await client.get("/api/records", headers=auth(worker))).json()["data"]
    assert {r["status"] for r in records} == {"draft"}

    response = await client.post(
        "/api/closings/submit", json={"calendar_week": 42, "year": 2025}, headers=auth(worker)
    )
    assert response.status_code == 200
    assert response.json()["data"]["id"] != str(closing_id)


@pytest.mark.asyncio
async def test_delete_unknown_closing(client, admin, auth):
    response = await client.delete(f"/api/closings/{uuid.uuid4()}", headers=auth(admin))
    assert response.status_code == 404
