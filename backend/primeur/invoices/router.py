import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.config import settings
from primeur.core.schemas import Pagination
from primeur.core.utils import total_pages
from primeur.invoices.constants import INVOICE_GENERATED_MSG, INVOICE_SENT_MSG
from primeur.invoices.dependencies import InvoiceServiceDep
from primeur.invoices.exceptions import (
    InvoiceAccessDeniedException,
    InvoiceDomainException,
    InvoiceNotFoundException,
)
from primeur.invoices.models import InvoiceDetailResponse, InvoiceListResponse, InvoiceMutationResponse
from primeur.pdf.dependencies import PDFGeneratorDep
from primeur.pdf.exceptions import PDFDomainException
from primeur.shops.dependencies import UserShopDep

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_invoice_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, InvoiceNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, InvoiceAccessDeniedException):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, InvoiceDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, PDFDomainException):
        logger.error(f"[Invoice API] Erreur PDF: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors de la génération du PDF")
    logger.error(f"[Invoice API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement de la facture")


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    response: Response,
    service: InvoiceServiceDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    shop_id: Optional[int] = Query(None, ge=1),
):
    """Liste des factures. Un client ne voit que celles de son magasin."""
    invoices, total = await service.list_invoices(current_user, user_shop, page, limit, shop_id=shop_id)
    start = (page - 1) * limit
    response.headers["Content-Range"] = f"invoices {start}-{start + max(len(invoices) - 1, 0)}/{total}"
    return InvoiceListResponse(
        invoices=invoices,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


@router.post("/orders/{order_id}", response_model=InvoiceMutationResponse, status_code=status.HTTP_201_CREATED)
async def generate_invoice(service: InvoiceServiceDep, current_admin_user: AdminUserDep, order_id: int = Path(..., ge=1)):
    """Émet la facture d'une commande livrée (une seule par commande)."""
    try:
        invoice = await service.generate_invoice(order_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_invoice_service_errors(e)
    return InvoiceMutationResponse(message=INVOICE_GENERATED_MSG, invoice=invoice)


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def read_invoice(
    service: InvoiceServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep, invoice_id: int = Path(..., ge=1)
):
    try:
        return InvoiceDetailResponse(invoice=await service.get_invoice(invoice_id, current_user, user_shop))
    except Exception as e:
        handle_invoice_service_errors(e)


@router.post("/{invoice_id}/send", response_model=InvoiceMutationResponse)
async def send_invoice(service: InvoiceServiceDep, current_admin_user: AdminUserDep, invoice_id: int = Path(..., ge=1)):
    try:
        invoice = await service.send_invoice(invoice_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_invoice_service_errors(e)
    return InvoiceMutationResponse(message=INVOICE_SENT_MSG, invoice=invoice)


@router.get("/{invoice_id}/download")
async def download_invoice(
    service: InvoiceServiceDep,
    generator: PDFGeneratorDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    invoice_id: int = Path(..., ge=1),
):
    try:
        filename, content = await service.render_pdf(invoice_id, current_user, user_shop, generator)
    except Exception as e:
        handle_invoice_service_errors(e)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
