"""
Final signed copy of an executed contract.

Renders a snapshot PDF (terms, both signature blocks, audit trail),
stores it on the contract as an inline attachment and e-mails it to
every signer who has signed.
"""

import logging
from io import BytesIO

from django.conf import settings
from django.core.mail import EmailMessage
from django.utils import timezone
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from ..models import Contract, ContractAttachment, InviteStatus
from .attachment_service import build_data_url

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = 'application/pdf'


class SnapshotRenderer:
    """Lay out a contract snapshot on letter-sized pages."""

    PAGE_WIDTH, PAGE_HEIGHT = letter
    MARGIN = 54
    LINE_HEIGHT = 14
    CHARS_PER_LINE = 95

    def __init__(self, canvas_obj):
        self.canvas = canvas_obj
        self.y = self.PAGE_HEIGHT - self.MARGIN

    def _ensure_room(self, lines=1):
        if self.y - lines * self.LINE_HEIGHT < self.MARGIN:
            self.canvas.showPage()
            self.y = self.PAGE_HEIGHT - self.MARGIN

    def write_line(self, text, font='Helvetica', size=10):
        self._ensure_room()
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(HexColor('#000000'))
        self.canvas.drawString(self.MARGIN, self.y, text)
        self.y -= self.LINE_HEIGHT

    def write_paragraph(self, text, font='Helvetica', size=10):
        for raw_line in (text or '').splitlines() or ['']:
            while len(raw_line) > self.CHARS_PER_LINE:
                cut = raw_line.rfind(' ', 0, self.CHARS_PER_LINE)
                if cut <= 0:
                    cut = self.CHARS_PER_LINE
                self.write_line(raw_line[:cut], font, size)
                raw_line = raw_line[cut:].lstrip()
            self.write_line(raw_line, font, size)

    def gap(self, lines=1):
        self.y -= lines * self.LINE_HEIGHT

    def signature_block(self, label, signed_by, signed_at):
        self._ensure_room(3)
        self.write_line(label, 'Helvetica-Bold', 11)
        if signed_by:
            self.write_line(signed_by, 'Helvetica-Oblique', 16)
            self.write_line(f'Signed at {signed_at.isoformat() if signed_at else "-"}')
        else:
            self.write_line('Not signed')
        self.gap()


def render_contract_snapshot(contract):
    """
    Render the final signed snapshot of a contract.

    Returns:
        bytes: PDF document
    """
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    pdf.setTitle(contract.name)

    renderer = SnapshotRenderer(pdf)
    renderer.write_line(contract.name, 'Helvetica-Bold', 16)
    renderer.gap()
    renderer.write_line(f'Contract ID: {contract.pk}')
    if contract.start_date or contract.end_date:
        renderer.write_line(f'Term: {contract.start_date or "-"} to {contract.end_date or "-"}')
    if contract.executed_date:
        renderer.write_line(f'Executed: {contract.executed_date.isoformat()}')
    renderer.gap()

    renderer.write_line('Terms', 'Helvetica-Bold', 12)
    renderer.write_paragraph(contract.terms)
    renderer.gap()

    renderer.signature_block('Customer', contract.signed_by_customer, contract.signed_at_customer)
    renderer.signature_block('Provider', contract.signed_by_provider, contract.signed_at_provider)

    renderer.write_line('Audit trail', 'Helvetica-Bold', 12)
    for event in contract.signature_audit.all():
        line = f'{event.at.isoformat()}  {event.event}'
        if event.actor:
            line += f'  by {event.actor}'
        if event.ip:
            line += f'  from {event.ip}'
        renderer.write_paragraph(line, size=9)
        if event.details:
            renderer.write_paragraph(f'    {event.details}', size=9)

    pdf.save()
    buffer.seek(0)
    return buffer.getvalue()


def finalize_executed_contract(contract_id):
    """
    Produce and distribute the final copy of an executed contract.

    Raises on any failure so the finalize task can retry.

    Returns:
        ContractAttachment: the stored snapshot
    """
    contract = Contract.objects.get(pk=contract_id)

    pdf_bytes = render_contract_snapshot(contract)
    stamp = timezone.now().strftime('%Y%m%d%H%M%S')
    filename = f'signed_{contract.pk}_{stamp}.pdf'

    attachment = ContractAttachment.objects.create(
        contract=contract,
        name=filename,
        url=build_data_url(pdf_bytes, PDF_MIME_TYPE),
    )

    recipients = sorted(set(
        contract.signature_invites.filter(
            status=InviteStatus.SIGNED
        ).values_list('email', flat=True)
    ))

    if recipients:
        message = EmailMessage(
            subject=f'Signed copy: {contract.name}',
            body=(
                f'All required signatures for "{contract.name}" have been collected.\n'
                f'The signed copy is attached.'
            ),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=recipients,
        )
        message.attach(filename, pdf_bytes, PDF_MIME_TYPE)
        message.send(fail_silently=False)

    logger.info(
        "Stored final copy %s for contract %s and mailed %d signer(s)",
        attachment.pk, contract.pk, len(recipients)
    )
    return attachment
