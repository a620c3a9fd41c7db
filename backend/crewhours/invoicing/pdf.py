import io
import re

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Image,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from crewhours.config import Settings
from crewhours.invoicing.models import Invoice
from crewhours.profiles.models import Profile

_FILENAME_UNSAFE = re.compile(r'[/\\?%*:|"<>]')


def _clean_filename_part(value: str) -> str:
    return " ".join(_FILENAME_UNSAFE.sub("", value).split())


def invoice_filename(invoice: Invoice, supplier_name: str = "", project_name: str = "") -> str:
    """``42 KW 2025001 Jan Novak Bridge.pdf`` for weekly invoices, ``Faktura_<n>.pdf`` otherwise."""
    if invoice.week_closing_id is None or invoice.calendar_week is None:
        return f"Faktura_{_clean_filename_part(invoice.invoice_number)}.pdf"
    parts = [
        f"{invoice.calendar_week:02d} KW",
        _clean_filename_part(invoice.invoice_number),
        _clean_filename_part(supplier_name),
        _clean_filename_part(project_name),
    ]
    return " ".join(p for p in parts if p) + ".pdf"


def payment_message(calendar_week: int | None, supplier_name: str) -> str:
    prefix = f"{calendar_week} woche " if calendar_week is not None else ""
    return (prefix + supplier_name).replace("*", "").strip()


def build_payment_qr_payload(iban: str, amount: float, message: str, recipient: str) -> str:
    """Short-form SEPA payment string understood by Slovak banking apps."""
    account = re.sub(r"\s", "", iban).upper()
    return (
        f"SPD*1.0*ACC:{account}*AM:{amount:.2f}*CC:EUR"
        f"*MSG:{message.replace('*', '')}*RN:{recipient.replace('*', '')}"
    )


def _qr_drawing(payload: str, size: float) -> Drawing:
    widget = QrCodeWidget(payload)
    x1, y1, x2, y2 = widget.getBounds()
    drawing = Drawing(size, size, transform=[size / (x2 - x1), 0, 0, size / (y2 - y1), 0, 0])
    drawing.add(widget)
    return drawing


def _money(amount: float, currency: str) -> str:
    return f"{amount:,.2f} {currency}".replace(",", " ")


def generate_invoice_pdf(
    invoice: Invoice,
    profile: Profile | None,
    settings: Settings,
    signature: bytes | None = None,
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"Faktura {invoice.invoice_number}",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "InvTitle", parent=styles["Title"], fontSize=22, alignment=2,
        textColor=colors.HexColor("#282828"),
    )
    label_style = ParagraphStyle(
        "InvLabel", parent=styles["Normal"], fontSize=8, textColor=colors.HexColor("#828282"),
    )
    normal_style = ParagraphStyle("InvNormal", parent=styles["Normal"], fontSize=9)

    currency = settings.currency
    supplier_name = (profile.full_name if profile else "") or invoice.user.full_name
    elements: list = []

    elements.append(Paragraph(f"FAKTURA {invoice.invoice_number}", title_style))
    elements.append(Spacer(1, 10))

    # Supplier (worker) and customer blocks
    supplier_lines = [f"<b>{supplier_name}</b>"]
    if profile:
        if profile.company_name:
            supplier_lines.append(profile.company_name)
        if profile.billing_address:
            supplier_lines.extend(line.strip() for line in profile.billing_address.splitlines())
        if profile.ico:
            supplier_lines.append(f"ICO: {profile.ico}")
        if profile.dic:
            supplier_lines.append(f"DIC: {profile.dic}")
        if profile.is_vat_payer and profile.vat_number:
            supplier_lines.append(f"IC DPH: {profile.vat_number}")
        elif not profile.is_vat_payer:
            supplier_lines.append("Nie je platitel DPH.")
        if profile.contract_number:
            supplier_lines.append(f"Zmluva: {profile.contract_number}")

    customer_lines = [
        f"<b>{settings.company_name}</b>",
        settings.company_street,
        settings.company_country,
        f"ICO: {settings.company_ico}",
        f"DIC: {settings.company_dic}",
        f"IC DPH: {settings.company_ic_dph}",
    ]

    address_table = Table(
        [
            [Paragraph("DODAVATEL", label_style), Paragraph("ODBERATEL", label_style)],
            [
                Paragraph("<br/>".join(supplier_lines), normal_style),
                Paragraph("<br/>".join(customer_lines), normal_style),
            ],
        ],
        colWidths=[90 * mm, 90 * mm],
    )
    address_table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    elements.append(address_table)
    elements.append(Spacer(1, 12))

    # Dates strip
    dates_table = Table(
        [
            ["Datum vystavenia:", "Datum dodania:", "Splatnost:"],
            [
                invoice.issue_date.strftime("%d.%m.%Y"),
                invoice.delivery_date.strftime("%d.%m.%Y"),
                invoice.due_date.strftime("%d.%m.%Y"),
            ],
        ],
        colWidths=[60 * mm, 60 * mm, 60 * mm],
    )
    dates_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f5f5f5")),
        ("FONTSIZE", (0, 0), (-1, 0), 8),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#646464")),
        ("FONTNAME", (0, 1), (-1, 1), "Helvetica-Bold"),
        ("TEXTCOLOR", (2, 1), (2, 1), colors.HexColor("#b40000")),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    elements.append(dates_table)
    elements.append(Spacer(1, 8))

    iban = profile.iban if profile and profile.iban else ""
    payment_table = Table(
        [[
            f"Suma: {_money(invoice.total_amount, currency)}",
            f"Variabilny symbol: {re.sub(r'[^0-9]', '', invoice.invoice_number)}",
            f"IBAN: {iban or '-'}",
        ]],
        colWidths=[55 * mm, 55 * mm, 70 * mm],
    )
    payment_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#fafafa")),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("FONTNAME", (0, 0), (0, 0), "Helvetica-Bold"),
    ]))
    elements.append(payment_table)
    elements.append(Spacer(1, 14))

    # Service line
    week_label = f"{invoice.calendar_week}. kalendarny tyzden" if invoice.calendar_week else "vykonanu pracu"
    project_label = f" ({invoice.project.name})" if invoice.project else ""
    items_table = Table(
        [
            ["C.", "NAZOV", "MNOZSTVO", "JEDN. CENA", "SPOLU"],
            [
                "1.",
                Paragraph(
                    f"Fakturujem Vam na zaklade zmluvy za vykonanu pracu za {week_label}{project_label}.",
                    normal_style,
                ),
                f"{invoice.total_hours:.2f} hod",
                _money(invoice.hourly_rate, currency),
                _money(invoice.subtotal, currency),
            ],
        ],
        colWidths=[12 * mm, 83 * mm, 28 * mm, 28 * mm, 29 * mm],
    )
    items_table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#505050")),
        ("ALIGN", (2, 0), (2, -1), "CENTER"),
        ("ALIGN", (3, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.HexColor("#c8c8c8")),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 10))

    # Totals
    totals_data = [["Zaklad:", _money(invoice.subtotal, currency)]]
    if invoice.vat_amount:
        totals_data.append([f"DPH {settings.vat_rate * 100:.0f} %:", _money(invoice.vat_amount, currency)])
    if invoice.advance_deduction:
        totals_data.append(["Zaloha:", f"-{_money(invoice.advance_deduction, currency)}"])
    totals_data.append(["Spolu na uhradu:", _money(invoice.total_amount, currency)])

    totals_table = Table(totals_data, colWidths=[140 * mm, 40 * mm])
    totals_table.setStyle(TableStyle([
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("LINEABOVE", (0, -1), (-1, -1), 1, colors.HexColor("#334155")),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]))
    elements.append(totals_table)

    if invoice.is_reverse_charge:
        elements.append(Spacer(1, 6))
        elements.append(Paragraph("Prenesenie danovej povinnosti.", normal_style))

    elements.append(Spacer(1, 16))

    # Payment QR code and signature side by side
    qr_cell: object = ""
    if iban and invoice.total_amount > 0:
        payload = build_payment_qr_payload(
            iban,
            invoice.total_amount,
            payment_message(invoice.calendar_week, supplier_name),
            settings.qr_recipient_name,
        )
        qr_cell = _qr_drawing(payload, 35 * mm)

    signature_cell: object = ""
    if signature:
        signature_cell = Image(io.BytesIO(signature), width=50 * mm, height=20 * mm, kind="proportional")

    footer = Table(
        [[qr_cell, signature_cell], ["", Paragraph("Podpis dodavatela", label_style)]],
        colWidths=[90 * mm, 90 * mm],
    )
    footer.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
        ("ALIGN", (1, 0), (1, -1), "CENTER"),
    ]))
    elements.append(footer)

    doc.build(elements)
    return buffer.getvalue()
