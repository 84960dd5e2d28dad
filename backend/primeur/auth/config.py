"""
Configuration du module d'authentification.

Les secrets proviennent de la configuration globale (variables d'environnement / .env).
"""
from primeur.config import settings

# --- Configuration JWT ---
JWT_SECRET_KEY: str = settings.JWT_SECRET_KEY
JWT_ALGORITHM: str = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES: int = settings.ACCESS_TOKEN_EXPIRE_MINUTES

# --- Configuration OAuth2 ---
OAUTH2_TOKEN_URL: str = f"{settings.API_V1_PREFIX}/auth/token"
