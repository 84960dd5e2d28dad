"""Configuration spécifique au module PDF.

Utilise Pydantic BaseSettings pour permettre la surcharge par
des variables d'environnement (préfixe PDF_).
"""
from pydantic_settings import BaseSettings


class PDFSettings(BaseSettings):
    """Paramètres de configuration pour la génération de PDF."""

    LOGO_PATH: str = "backend/static/logo.png"
    COMPANY_NAME: str = "Distribution Fruits & Légumes"
    COMPANY_INFO_HTML: str = (
        "<b>Distribution Fruits &amp; Légumes</b><br/>"
        "123 Rue des Fruits<br/>"
        "75000 Paris, France"
    )
    FOOTER_TEXT: str = "Distribution Fruits & Légumes - Grossiste primeur"
    PRIMARY_COLOR_HEX: str = "#2e7d32"

    class Config:
        env_file = '.env'
        env_file_encoding = 'utf-8'
        env_prefix = 'PDF_'
        extra = 'ignore'


pdf_settings = PDFSettings()
