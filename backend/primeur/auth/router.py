"""
Module définissant les routes API FastAPI pour l'authentification.

Contient les endpoints pour:
- /token : Connexion et obtention d'un token JWT
- /me : Récupération des informations de l'utilisateur connecté
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from primeur.auth.dependencies import AuthServiceDep, CurrentUserDep
from primeur.auth.exceptions import InvalidCredentialsException
from primeur.auth.models import Token
from primeur.auth.security import create_access_token
from primeur.users.models import UserRead

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    auth_service: AuthServiceDep
):
    """
    Authentifie l'utilisateur et retourne un token JWT.

    - **username**: Email de l'utilisateur (utilisé comme identifiant)
    - **password**: Mot de passe de l'utilisateur
    """
    logger.info("[Router] Tentative de login pour: %s", form_data.username)
    user = await auth_service.authenticate_user(email=form_data.username, password=form_data.password)
    if not user:
        logger.warning("[Router] Échec authentification pour: %s", form_data.username)
        raise InvalidCredentialsException()

    access_token = create_access_token(data={"sub": str(user.id)})
    logger.info("[Router] Token créé pour user ID: %s", user.id)
    return Token(access_token=access_token, token_type="bearer")

@router.get("/me", response_model=UserRead)
async def read_users_me(current_user: CurrentUserDep):
    """Récupère les informations de l'utilisateur actuellement connecté."""
    logger.info("[Router] Récupération infos pour user ID: %s", current_user.id)
    return current_user

auth_router = router
