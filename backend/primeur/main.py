"""
Module principal de l'application FastAPI Primeur.

Configure l'instance FastAPI (CORS, gestionnaires d'erreurs, fichiers téléversés)
et inclut les routeurs des différents domaines: catalogue, tarifs, promotions, stock,
devis, commandes, retours, fournisseurs, magasins, notifications et sécurité.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from primeur.config import settings
from primeur.database import create_tables

# --- Importer les routeurs ---
from primeur.admin.router import router as security_router
from primeur.auth.router import auth_router
from primeur.categories.router import router as categories_router
from primeur.invoices.router import router as invoice_router
from primeur.notifications.router import router as notification_router
from primeur.orders.router import router as order_router
from primeur.pricing.router import router as pricing_router
from primeur.products.router import router as product_router
from primeur.promotions.router import router as promotion_router
from primeur.quotes.router import router as quote_router
from primeur.returns.router import router as return_router
from primeur.shops.router import router as shop_router
from primeur.stock.router import router as stock_router
from primeur.suppliers.router import router as supplier_router

# Configurer le logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_CREATE_TABLES:
        logger.info("Création des tables manquantes...")
        await create_tables()
    yield


app = FastAPI(
    title="Primeur API",
    description="API de gestion d'un grossiste en fruits et légumes: catalogue, tarifs, devis, commandes, retours et fournisseurs.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range"],
)

# Photos de retours (créé à la première écriture)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


# ======================================================
# Gestionnaires d'erreurs: enveloppe {success, message}
# ======================================================
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Requête invalide sur {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Données invalides", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Erreur base de données sur {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": settings.DB_SQL_ERROR_MSG},
    )


# ======================================================
# Inclure les routeurs
# ======================================================
prefix = settings.API_V1_PREFIX

app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Authentification"])

# Catalogue, tarifs et promotions
app.include_router(categories_router, prefix=f"{prefix}/categories", tags=["Categories"])
app.include_router(product_router, prefix=f"{prefix}/products", tags=["Produits"])
app.include_router(pricing_router, prefix=f"{prefix}/prices", tags=["Prices"])
app.include_router(promotion_router, prefix=f"{prefix}/promotions", tags=["Promotions"])
app.include_router(stock_router, prefix=f"{prefix}/stock", tags=["Stock"])

# Devis, commandes, factures et retours
app.include_router(quote_router, prefix=f"{prefix}/quotes", tags=["Quotes"])
app.include_router(order_router, prefix=f"{prefix}/orders", tags=["Orders"])
app.include_router(invoice_router, prefix=f"{prefix}/invoices", tags=["Invoices"])
app.include_router(return_router, prefix=f"{prefix}/returns", tags=["Returns"])

# Fournisseurs, magasins, notifications
app.include_router(supplier_router, prefix=f"{prefix}/suppliers", tags=["Suppliers"])
app.include_router(shop_router, prefix=f"{prefix}/shops", tags=["Shops"])
app.include_router(notification_router, prefix=f"{prefix}/notifications", tags=["Notifications"])

# Administration
app.include_router(security_router, prefix=f"{prefix}/admin/security", tags=["Security"])
