from abc import ABC, abstractmethod

from primeur.pdf.models import PDFInvoiceData, PDFQuoteData


class AbstractPDFGenerator(ABC):
    """Interface abstraite pour un générateur de documents PDF.
    Approche orientée données, l'implémentation gère la mise en page.
    """

    @abstractmethod
    async def generate_quote_pdf(self, quote_data: PDFQuoteData) -> bytes:
        """Génère le PDF d'un devis.

        Args:
            quote_data: Données formatées du devis (magasin, lignes figées, totaux).

        Returns:
            Le contenu binaire du PDF généré.

        Raises:
            PDFGenerationException: Si une erreur survient durant la génération.
        """
        raise NotImplementedError

    @abstractmethod
    async def generate_invoice_pdf(self, invoice_data: PDFInvoiceData) -> bytes:
        """Génère le PDF d'une facture à partir des lignes de la commande facturée."""
        raise NotImplementedError
