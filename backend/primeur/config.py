import logging
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Charger les variables d'environnement AVANT de définir la classe Settings
load_dotenv()

DEFAULT_JWT_SECRET = "remplacer_par_une_vraie_cle_secrete_forte"


class Settings(BaseSettings):
    # --- Base de Données ---
    POSTGRES_DB: str = "primeur"
    POSTGRES_USER: str = "primeur"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    # Si définie, remplace l'URL construite à partir des variables POSTGRES_*
    DATABASE_URL: Optional[str] = None
    DB_ECHO_LOG: bool = False
    # Création des tables manquantes au démarrage (développement)
    DB_CREATE_TABLES: bool = False

    # --- JWT ---
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # --- Application ---
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # --- Uploads (photos de retours) ---
    UPLOAD_DIR: str = "uploads"
    RETURN_PHOTO_MAX_BYTES: int = 5 * 1024 * 1024
    RETURN_PHOTO_ALLOWED_TYPES: List[str] = ["image/jpeg", "image/jpg", "image/png", "image/gif"]

    # --- Règles métier ---
    NUMBERING_MAX_ATTEMPTS: int = 10
    TRANSACTION_MAX_RETRIES: int = 3
    SUPPLIER_VAT_RATE: float = 20.0
    PRICE_HISTORY_LIMIT: int = 50
    SECURITY_STATS_WINDOW_DAYS: int = 7

    # --- Messages Génériques ---
    DB_SQL_ERROR_MSG: str = "Un problème technique est survenu avec la base de données."
    INTERNAL_ERROR_MSG: str = "Erreur serveur interne"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'


settings = Settings()

if settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
    logger.warning("La variable JWT_SECRET_KEY utilise la valeur par défaut. Veuillez définir une clé secrète forte.")

logger.info(f"Configuration chargée: DB={settings.POSTGRES_DB}@{settings.POSTGRES_HOST}")
