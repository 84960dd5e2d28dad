import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.config import settings
from primeur.core.schemas import MessageResponse, Pagination
from primeur.core.utils import total_pages
from primeur.orders.exceptions import OrderDomainException
from primeur.pdf.dependencies import PDFGeneratorDep
from primeur.pdf.exceptions import PDFDomainException
from primeur.pricing.exceptions import PricingDomainException
from primeur.quotes.constants import (
    QUOTE_ACCEPTED_MSG,
    QUOTE_CONVERTED_MSG,
    QUOTE_CREATED_MSG,
    QUOTE_DELETED_MSG,
    QUOTE_REJECTED_MSG,
    QUOTE_SENT_MSG,
    QUOTE_UPDATED_MSG,
)
from primeur.quotes.dependencies import QuoteServiceDep
from primeur.quotes.exceptions import QuoteAccessDeniedException, QuoteDomainException, QuoteNotFoundException
from primeur.quotes.models import (
    QuoteConvertResponse,
    QuoteCreate,
    QuoteDetailResponse,
    QuoteListResponse,
    QuoteMutationResponse,
    QuoteStatus,
    QuoteUpdate,
)
from primeur.shops.dependencies import UserShopDep

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_quote_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, QuoteNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, QuoteAccessDeniedException):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, (QuoteDomainException, OrderDomainException, PricingDomainException)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, PDFDomainException):
        logger.error(f"[Quote API] Erreur PDF: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors de la génération du PDF")
    logger.error(f"[Quote API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement du devis")


@router.get("", response_model=QuoteListResponse)
async def list_quotes(
    response: Response,
    service: QuoteServiceDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    shop_id: Optional[int] = Query(None, ge=1),
    status_filter: Optional[QuoteStatus] = Query(None, alias="status"),
):
    """Liste des devis. Un client ne voit que ceux de son magasin; filtres réservés aux admins."""
    quotes, total = await service.list_quotes(
        current_user, user_shop, page, limit, shop_id=shop_id, status=status_filter.value if status_filter else None
    )
    start = (page - 1) * limit
    response.headers["Content-Range"] = f"quotes {start}-{start + max(len(quotes) - 1, 0)}/{total}"
    return QuoteListResponse(
        quotes=quotes,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


@router.get("/{quote_id}", response_model=QuoteDetailResponse)
async def read_quote(
    service: QuoteServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep, quote_id: int = Path(..., ge=1)
):
    try:
        return QuoteDetailResponse(quote=await service.get_quote(quote_id, current_user, user_shop))
    except Exception as e:
        handle_quote_service_errors(e)


@router.post("", response_model=QuoteMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(data: QuoteCreate, service: QuoteServiceDep, current_admin_user: AdminUserDep):
    """Crée un devis en brouillon; les prix résolus sont figés sur les lignes."""
    try:
        quote = await service.create_quote(data, user_id=current_admin_user.id)
    except Exception as e:
        handle_quote_service_errors(e)
    return QuoteMutationResponse(message=QUOTE_CREATED_MSG, quote=quote)


@router.put("/{quote_id}", response_model=QuoteMutationResponse)
async def update_quote(
    data: QuoteUpdate, service: QuoteServiceDep, current_admin_user: AdminUserDep, quote_id: int = Path(..., ge=1)
):
    try:
        quote = await service.update_quote(quote_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_quote_service_errors(e)
    return QuoteMutationResponse(message=QUOTE_UPDATED_MSG, quote=quote)


@router.post("/{quote_id}/send", response_model=QuoteMutationResponse)
async def send_quote(service: QuoteServiceDep, current_admin_user: AdminUserDep, quote_id: int = Path(..., ge=1)):
    try:
        quote = await service.send_quote(quote_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_quote_service_errors(e)
    return QuoteMutationResponse(message=QUOTE_SENT_MSG, quote=quote)


@router.post("/{quote_id}/accept", response_model=QuoteMutationResponse)
async def accept_quote(
    service: QuoteServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep, quote_id: int = Path(..., ge=1)
):
    try:
        quote = await service.accept_quote(quote_id, current_user, user_shop)
    except Exception as e:
        handle_quote_service_errors(e)
    return QuoteMutationResponse(message=QUOTE_ACCEPTED_MSG, quote=quote)


@router.post("/{quote_id}/reject", response_model=QuoteMutationResponse)
async def reject_quote(
    service: QuoteServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep, quote_id: int = Path(..., ge=1)
):
    try:
        quote = await service.reject_quote(quote_id, current_user, user_shop)
    except Exception as e:
        handle_quote_service_errors(e)
    return QuoteMutationResponse(message=QUOTE_REJECTED_MSG, quote=quote)


@router.post("/{quote_id}/convert", response_model=QuoteConvertResponse)
async def convert_quote(service: QuoteServiceDep, current_admin_user: AdminUserDep, quote_id: int = Path(..., ge=1)):
    """Convertit un devis accepté et non expiré en commande."""
    try:
        quote, order = await service.convert_quote(quote_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_quote_service_errors(e)
    return QuoteConvertResponse(message=QUOTE_CONVERTED_MSG, quote=quote, order=order)


@router.get("/{quote_id}/download")
async def download_quote(
    service: QuoteServiceDep,
    generator: PDFGeneratorDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    quote_id: int = Path(..., ge=1),
):
    try:
        filename, content = await service.render_pdf(quote_id, current_user, user_shop, generator)
    except Exception as e:
        handle_quote_service_errors(e)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{quote_id}", response_model=MessageResponse)
async def delete_quote(service: QuoteServiceDep, current_admin_user: AdminUserDep, quote_id: int = Path(..., ge=1)):
    try:
        await service.delete_quote(quote_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_quote_service_errors(e)
    return MessageResponse(message=QUOTE_DELETED_MSG)
