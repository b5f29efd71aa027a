"""Invoice PDF rendering for persisted bills."""

from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, Optional

from flask import current_app, has_app_context
from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from pos_billing.exceptions import DeliveryError


def _business_info() -> Dict[str, Any]:
    if not has_app_context():
        return {'name': '', 'currency': 'Rs.'}
    cfg = current_app.config
    return {
        'name': cfg.get('BUSINESS_NAME', ''),
        'address': cfg.get('BUSINESS_ADDRESS', ''),
        'phone': cfg.get('BUSINESS_PHONE', ''),
        'currency': cfg.get('CURRENCY_SYMBOL', 'Rs.'),
    }


def _render_invoice(bill, info: Dict[str, Any]) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=0.5*inch,
        bottomMargin=0.5*inch,
        title=f"Invoice {bill.bill_id}",
    )
    currency = info.get('currency', '')

    def fmt(value) -> str:
        return f"{currency}{Decimal(str(value)):.2f}"

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'InvoiceHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and business header
    elements.append(Paragraph("INVOICE", title_style))
    if info.get('name'):
        elements.append(Paragraph(f"<b>{info['name']}</b>", header_style))
    if info.get('address'):
        elements.append(Paragraph(info['address'], header_style))
    if info.get('phone'):
        elements.append(Paragraph(f"Tel: {info['phone']}", header_style))
    elements.append(Spacer(1, 0.25*inch))

    # 2. Bill metadata
    meta = [
        ['Bill ID:', bill.bill_id],
        ['Customer:', bill.customer_name or 'Customer'],
    ]
    if bill.customer_phone:
        meta.append(['Phone:', bill.customer_phone])
    if bill.customer_email:
        meta.append(['Email:', bill.customer_email])
    if bill.created_at:
        meta.append(['Date:', bill.created_at.strftime('%d/%m/%Y %H:%M')])

    meta_table = Table(meta, colWidths=[1.3*inch, 4.5*inch])
    meta_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(meta_table)
    elements.append(Spacer(1, 0.25*inch))

    # 3. Items
    table_data = [['Product', 'Qty', 'Price', 'Tax', 'Total']]
    for line in bill.lines:
        line_tax = sum((Decimal(t['tax_amount']) for t in (line.taxes or [])), Decimal('0'))
        table_data.append([
            line.product_name or 'Unnamed',
            str(line.quantity),
            fmt(line.unit_price),
            fmt(line_tax),
            fmt(Decimal(str(line.line_total)) + line_tax),
        ])

    items_table = Table(table_data, colWidths=[3.2*inch, 0.6*inch, 1.1*inch, 1*inch, 1.2*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 10),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Tax breakdown and totals
    summary = [['Subtotal:', fmt(bill.subtotal)]]
    for entry in bill.tax_breakdown or []:
        label = entry['tax_name']
        if entry.get('tax_percentage') not in (None, '0'):
            label = f"{label} ({entry['tax_percentage']}%)"
        summary.append([f"{label}:", fmt(entry['tax_amount'])])
    summary.append(['Total tax:', fmt(bill.tax_amount)])

    summary_table = Table(summary, colWidths=[5.9*inch, 1.2*inch])
    summary_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(summary_table)

    total_table = Table([['GRAND TOTAL:', fmt(bill.grand_total)]], colWidths=[5.9*inch, 1.2*inch])
    total_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 13),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, 0), (-1, -1), 1.5, colors.HexColor('#27AE60')),
    ]))
    elements.append(Spacer(1, 0.1*inch))
    elements.append(total_table)

    doc.build(elements)
    return buffer.getvalue()


def render_invoice_pdf(bill, business_info: Optional[Dict[str, Any]] = None) -> bytes:
    """Render a bill as PDF bytes. Raises DeliveryError if rendering fails."""
    info = business_info if business_info is not None else _business_info()
    try:
        return _render_invoice(bill, info)
    except Exception as e:
        raise DeliveryError(f'Failed to render invoice {bill.bill_id}: {e}') from e
