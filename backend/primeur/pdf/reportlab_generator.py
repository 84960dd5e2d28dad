import io
import logging
import os
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from primeur.pdf.config import PDFSettings
from primeur.pdf.exceptions import PDFGenerationException
from primeur.pdf.generator import AbstractPDFGenerator
from primeur.pdf.models import PDFDocumentLine, PDFInvoiceData, PDFQuoteData, PDFShopInfo
from primeur.stock.utils import format_quantity

logger = logging.getLogger(__name__)

QUOTE_CONDITIONS = (
    "Ce devis est valable jusqu'à la date indiquée ci-dessus.<br/>"
    "Les prix sont exprimés en euros.<br/>"
    "En cas d'acceptation, ce devis pourra être converti en commande."
)

INVOICE_CONDITIONS = "Paiement à réception de facture.<br/>Merci de votre confiance !"


def _money(value) -> str:
    return f"{value:.2f} €"


class ReportLabPDFGenerator(AbstractPDFGenerator):
    """Implémentation du générateur PDF utilisant ReportLab."""

    def __init__(self, settings: PDFSettings):
        self.settings = settings
        self.primary_color = colors.HexColor(settings.PRIMARY_COLOR_HEX)

    def _header(self, title_style) -> list:
        if os.path.exists(self.settings.LOGO_PATH):
            logo = Image(self.settings.LOGO_PATH, width=1.5 * inch, height=0.75 * inch)
            logo.hAlign = 'LEFT'
            return [logo]
        logger.debug(f"[PDFGen] Logo non trouvé : {self.settings.LOGO_PATH}")
        return [Paragraph(self.settings.COMPANY_NAME, title_style)]

    def _render(
        self,
        title: str,
        heading: str,
        meta_html: str,
        recipient_label: str,
        shop: PDFShopInfo,
        items: Sequence[PDFDocumentLine],
        total_rows: List[Tuple[str, Decimal]],
        total_ttc: Decimal,
        sections: List[Tuple[str, Optional[str]]],
    ) -> bytes:
        """Mise en page commune: en-tête société, références, destinataire, lignes, totaux puis sections."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, title=title)
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(name="DocTitle", parent=styles["Heading1"], textColor=self.primary_color)
        normal_style = styles["Normal"]
        right_style = ParagraphStyle(name="Right", parent=normal_style, alignment=2)
        bold_style = ParagraphStyle(name="Bold", parent=normal_style, fontName='Helvetica-Bold')
        footer_style = ParagraphStyle(name="Footer", fontSize=9, textColor=colors.gray, alignment=1)

        elements = self._header(title_style)
        elements.append(Paragraph(self.settings.COMPANY_INFO_HTML, normal_style))
        elements.append(Spacer(1, 0.2 * inch))

        elements.append(Paragraph(heading, title_style))
        elements.append(Paragraph(meta_html, right_style))
        elements.append(Spacer(1, 0.2 * inch))

        shop_lines = [f"<b>{recipient_label} :</b> {shop.name}", shop.address, f"{shop.postal_code} {shop.city}"]
        if shop.phone:
            shop_lines.append(f"Tél : {shop.phone}")
        elements.append(Paragraph("<br/>".join(shop_lines), normal_style))
        elements.append(Spacer(1, 0.3 * inch))

        table_data = [["Produit", "Qté", "Prix HT", "TVA", "Total TTC"]]
        for item in items:
            table_data.append([
                Paragraph(item.product_name, normal_style),
                f"{format_quantity(item.quantity)} {item.unit}",
                _money(item.price_ht),
                f"{item.tva_rate:.1f}%",
                _money(item.total_ttc),
            ])
        for label, amount in total_rows:
            table_data.append(["", "", "", label, _money(amount)])
        table_data.append(["", "", "", Paragraph("<b>Total TTC</b>", bold_style), Paragraph(f"<b>{_money(total_ttc)}</b>", bold_style)])

        lines_end = len(items)
        table = Table(table_data, colWidths=[2.6 * inch, 1.0 * inch, 1.0 * inch, 1.0 * inch, 1.2 * inch])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), self.primary_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, lines_end), 0.5, colors.darkgrey),
            ('GRID', (3, lines_end + 1), (-1, -1), 0.5, colors.darkgrey),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ]))
        elements.append(table)
        elements.append(Spacer(1, 0.3 * inch))

        for section_title, text in sections:
            if not text:
                continue
            elements.append(Paragraph(f"<u>{section_title} :</u>", normal_style))
            elements.append(Paragraph(text, normal_style))
            elements.append(Spacer(1, 0.2 * inch))

        def add_footer(canvas, doc):
            canvas.saveState()
            footer = Paragraph(self.settings.FOOTER_TEXT, footer_style)
            w, h = footer.wrap(doc.width, doc.bottomMargin)
            footer.drawOn(canvas, doc.leftMargin, h)
            canvas.restoreState()

        try:
            doc.build(elements, onFirstPage=add_footer, onLaterPages=add_footer)
        except Exception as e:
            logger.error(f"[PDFGen] Erreur ReportLab build() pour {title}: {e}", exc_info=True)
            raise PDFGenerationException(f"Erreur lors de la construction du PDF: {e}", original_exception=e)

        pdf_bytes = buffer.getvalue()
        buffer.close()
        logger.info(f"[PDFGen] PDF {title} généré en mémoire ({len(pdf_bytes)} bytes).")
        return pdf_bytes

    async def generate_quote_pdf(self, quote_data: PDFQuoteData) -> bytes:
        """Construit le PDF d'un devis à partir des lignes figées du devis.

        Mise en page: en-tête société, numéro et dates, magasin destinataire,
        tableau des lignes, totaux HT / TVA / TTC, notes puis conditions.
        """
        number = quote_data.quote_number
        logger.info(f"[PDFGen] Génération PDF devis {number}")
        return self._render(
            title=f"Devis {number}",
            heading="DEVIS",
            meta_html=(
                f"Numéro : {number}<br/>"
                f"Date : {quote_data.created_at:%d/%m/%Y}<br/>"
                f"Valable jusqu'au : {quote_data.valid_until:%d/%m/%Y}"
            ),
            recipient_label="Devis pour",
            shop=quote_data.shop,
            items=quote_data.items,
            total_rows=[("Sous-total HT", quote_data.total_ht), ("TVA", quote_data.total_tva)],
            total_ttc=quote_data.total_ttc,
            sections=[("Notes", quote_data.notes), ("Conditions", QUOTE_CONDITIONS)],
        )

    async def generate_invoice_pdf(self, invoice_data: PDFInvoiceData) -> bytes:
        """Construit le PDF d'une facture; la remise éventuelle apparaît avant le total TTC."""
        number = invoice_data.invoice_number
        logger.info(f"[PDFGen] Génération PDF facture {number}")
        total_rows = [("Sous-total HT", invoice_data.total_ht), ("TVA", invoice_data.total_tva)]
        if invoice_data.discount_amount > 0:
            total_rows.append(("Remise", -invoice_data.discount_amount))
        return self._render(
            title=f"Facture {number}",
            heading="FACTURE",
            meta_html=(
                f"Numéro : {number}<br/>"
                f"Date : {invoice_data.generated_at:%d/%m/%Y}<br/>"
                f"Commande : {invoice_data.order_number} du {invoice_data.order_date:%d/%m/%Y}"
            ),
            recipient_label="Facturé à",
            shop=invoice_data.shop,
            items=invoice_data.items,
            total_rows=total_rows,
            total_ttc=invoice_data.total_ttc,
            sections=[("Conditions de paiement", INVOICE_CONDITIONS)],
        )
