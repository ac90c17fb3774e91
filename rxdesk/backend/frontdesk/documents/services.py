"""
Concrete renderers.

Registered renderers:
  print     : HtmlPrintRenderer     (print preview page with Print / Close controls)
  download  : TextDownloadRenderer  (paginated fixed-size text file)
"""

import re
import textwrap

from django.conf import settings
from django.template.loader import render_to_string

from .base import BaseDocumentRenderer
from .types import PrescriptionViewModel, RenderedDocument


# ── HtmlPrintRenderer ──────────────────────────────────────────────────────
#
# Template: frontdesk/prescription_print.html
# The page calls window.print() on load; the controls are hidden when printed.

class HtmlPrintRenderer(BaseDocumentRenderer):

    template_name = 'frontdesk/prescription_print.html'

    def render(self, view_model: PrescriptionViewModel) -> RenderedDocument:
        html = render_to_string(self.template_name, {'doc': view_model})
        return RenderedDocument(content=html, content_type='text/html; charset=utf-8')


# ── TextDownloadRenderer ───────────────────────────────────────────────────
#
# Fixed page of DOCUMENT_PAGE_WIDTH x DOCUMENT_PAGE_HEIGHT characters, body
# indented by MARGIN, title centered, a form feed between pages and a
# "Page i of n" footer on each.

class TextDownloadRenderer(BaseDocumentRenderer):

    MARGIN = 4
    # everything else becomes "_" in the download filename
    UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

    def __init__(self, width=None, height=None):
        self.width = width or getattr(settings, 'DOCUMENT_PAGE_WIDTH', 80)
        self.height = height or getattr(settings, 'DOCUMENT_PAGE_HEIGHT', 60)

    @property
    def body_width(self):
        return self.width - 2 * self.MARGIN

    def _wrap(self, text):
        return textwrap.wrap(text, self.body_width) or ['']

    def _body(self, vm: PrescriptionViewModel) -> list[str]:
        lines = [
            'PRESCRIPTION'.center(self.body_width),
            f'Prescription ID: {vm.prescription_id or "-"}'.center(self.body_width),
            '',
            f'Date: {vm.visit_date or "-"}',
            '',
        ]

        if vm.patient is not None:
            lines += [
                f'Patient: {vm.patient.name}',
                f'Patient ID: {vm.patient.patient_id}',
                f'Age: {vm.patient.age if vm.patient.age is not None else "-"}'
                f'    Gender: {vm.patient.gender or "-"}',
            ]
        else:
            lines.append('Patient information not available')
        lines.append('')

        lines.append('Medicines')
        lines.append('-' * self.body_width)
        if vm.lines:
            for i, item in enumerate(vm.lines, start=1):
                row = f'{i}. {item.medicine} | {item.dosage} | {item.frequency} | {item.duration} days'
                lines += self._wrap(row)
        else:
            lines.append('No medicines prescribed')
        lines.append('')

        lines.append('Notes:')
        lines += self._wrap(vm.notes or 'No notes')
        lines += ['', '', '_' * 24, "Doctor's Signature"]
        return lines

    def _paginate(self, body: list[str]) -> str:
        per_page = self.height - 2      # footer + spacer
        chunks = [body[i:i + per_page] for i in range(0, len(body), per_page)] or [[]]
        pad = ' ' * self.MARGIN

        pages = []
        for number, chunk in enumerate(chunks, start=1):
            page = [pad + line if line else '' for line in chunk]
            page += [''] * (per_page - len(chunk))
            page += ['', f'Page {number} of {len(chunks)}'.center(self.width)]
            pages.append('\n'.join(page))
        return '\f'.join(pages) + '\n'

    def filename(self, view_model: PrescriptionViewModel) -> str:
        stem = self.UNSAFE_FILENAME_CHARS.sub('_', view_model.prescription_id or '').strip('_.')
        return f'Prescription-{stem or "download"}.txt'

    def render(self, view_model: PrescriptionViewModel) -> RenderedDocument:
        return RenderedDocument(
            content=self._paginate(self._body(view_model)),
            content_type='text/plain; charset=utf-8',
            filename=self.filename(view_model),
        )
