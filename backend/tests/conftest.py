# Standard Library
from decimal import Decimal
from typing import AsyncGenerator, List

# Third-Party Libraries
import pytest
import pytest_asyncio

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

# First-Party Libraries
import primeur.models  # noqa: F401
from primeur.main import app
from primeur.config import settings
from primeur.database import get_db_session
from primeur.auth.security import get_password_hash, create_access_token
from primeur.categories.models import Category
from primeur.products.models import Product
from primeur.shops.models import Shop
from primeur.users.models import User, UserRole
from primeur.pdf.dependencies import get_pdf_generator
from primeur.pdf.exceptions import PDFGenerationException
from primeur.pdf.generator import AbstractPDFGenerator
from primeur.pdf.models import PDFInvoiceData, PDFQuoteData

# URL de base pour la DB en mémoire
TEST_DATABASE_BASE_URL = "sqlite+aiosqlite:///:memory:"

API_PREFIX = settings.API_V1_PREFIX


# --- Fixtures de Base ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Crée un engine, des tables, et fournit une session DB en mémoire pour chaque test."""
    # StaticPool: une seule connexion, donc une seule base en mémoire
    engine: AsyncEngine = create_async_engine(TEST_DATABASE_BASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with TestingSessionLocal() as session:
        yield session

    await engine.dispose()


class MockPDFGenerator(AbstractPDFGenerator):
    """Un générateur PDF simulé pour les tests."""

    async def generate_quote_pdf(self, quote_data: PDFQuoteData) -> bytes:
        if quote_data.notes == "fail_pdf":
            raise PDFGenerationException("Mock quote generation failed intentionally.")
        return f"%PDF-mock {quote_data.quote_number} {quote_data.total_ttc}".encode("utf-8")

    async def generate_invoice_pdf(self, invoice_data: PDFInvoiceData) -> bytes:
        return f"%PDF-mock {invoice_data.invoice_number} {invoice_data.total_ttc}".encode("utf-8")


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient httpx utilisant la session DB de test et un générateur PDF mocké."""
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    def override_get_pdf_generator() -> AbstractPDFGenerator:
        return MockPDFGenerator()

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_pdf_generator] = override_get_pdf_generator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_db_session, None)
    app.dependency_overrides.pop(get_pdf_generator, None)


# --- Fixtures Utilisateur et Authentification ---

async def _create_user(db_session: AsyncSession, email: str, role: UserRole, name: str) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash("password123"),
        name=name,
        role=role.value,
        email_verified=True,
        is_approved=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers(user: User) -> dict[str, str]:
    if user.id is None:
        pytest.fail("L'ID de l'utilisateur est None après commit/refresh.")
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", UserRole.ADMIN, "Admin User")


@pytest_asyncio.fixture(scope="function")
async def client_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "client@example.com", UserRole.CLIENT, "Client User")


@pytest_asyncio.fixture(scope="function")
async def other_client_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", UserRole.CLIENT, "Other Client")


@pytest_asyncio.fixture(scope="function")
async def client_shop(db_session: AsyncSession, client_user: User) -> Shop:
    shop = Shop(name="Primeur du Marché", address="1 rue des Halles", city="Lyon", postal_code="69001", user_id=client_user.id)
    db_session.add(shop)
    await db_session.commit()
    await db_session.refresh(shop)
    return shop


@pytest_asyncio.fixture(scope="function")
async def other_shop(db_session: AsyncSession, other_client_user: User) -> Shop:
    shop = Shop(name="Épicerie Verte", address="5 place du Port", city="Nantes", postal_code="44000", user_id=other_client_user.id)
    db_session.add(shop)
    await db_session.commit()
    await db_session.refresh(shop)
    return shop


@pytest_asyncio.fixture(scope="function")
async def auth_headers_admin(admin_user: User) -> dict[str, str]:
    return _headers(admin_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_client(client_user: User, client_shop: Shop) -> dict[str, str]:
    return _headers(client_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_other(other_client_user: User, other_shop: Shop) -> dict[str, str]:
    return _headers(other_client_user)


# --- Fixtures Catalogue ---

@pytest_asyncio.fixture(scope="function")
async def test_category(db_session: AsyncSession) -> Category:
    category = Category(name="Fruits", description="Fruits de saison")
    db_session.add(category)
    await db_session.commit()
    await db_session.refresh(category)
    return category


@pytest_asyncio.fixture(scope="function")
async def test_products(db_session: AsyncSession, test_category: Category) -> List[Product]:
    """Trois produits à 10, 5 et 2 € HT, TVA 5,5 %, 100 unités en stock."""
    products = [
        Product(name="Pommes", unit="kg", price_ht=Decimal("10.00"), price_ht_t2=Decimal("9.00"),
                tva_rate=Decimal("5.5"), stock=Decimal("100"), stock_alert=Decimal("10"), category_id=test_category.id),
        Product(name="Poires", unit="kg", price_ht=Decimal("5.00"),
                tva_rate=Decimal("5.5"), stock=Decimal("100"), stock_alert=Decimal("10"), category_id=test_category.id),
        Product(name="Salades", unit="pièce", price_ht=Decimal("2.00"),
                tva_rate=Decimal("5.5"), stock=Decimal("100"), stock_alert=Decimal("10"), category_id=test_category.id),
    ]
    db_session.add_all(products)
    await db_session.commit()
    for product in products:
        await db_session.refresh(product)
    return products


@pytest_asyncio.fixture(scope="function")
async def test_product(test_products: List[Product]) -> Product:
    return test_products[0]
