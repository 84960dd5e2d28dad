from typing import Optional

from primeur.invoices.constants import ERROR_ACCESS_DENIED, ERROR_ALREADY_INVOICED, ERROR_INVOICE_NOT_FOUND


class InvoiceDomainException(Exception):
    """Exception de base pour le domaine des factures."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvoiceNotFoundException(InvoiceDomainException):
    def __init__(self, message: str = ERROR_INVOICE_NOT_FOUND):
        super().__init__(message)


class InvoiceAccessDeniedException(InvoiceDomainException):
    def __init__(self):
        super().__init__(ERROR_ACCESS_DENIED)


class InvalidInvoiceException(InvoiceDomainException):
    pass


class InvoiceAlreadyExistsException(InvoiceDomainException):
    def __init__(self, invoice_id: Optional[int] = None):
        self.invoice_id = invoice_id
        super().__init__(ERROR_ALREADY_INVOICED)
