"""
Gestion de l'authentification Garmin Connect via Garth
Email et mot de passe ne sont JAMAIS stockes : login one-time, token Garth chiffre.
"""
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

import garth

from readiness.core.settings import get_settings
from readiness.domain.errors import HealthSourceError

logger = logging.getLogger(__name__)
settings = get_settings()


class GarminAuthError(HealthSourceError):
    """Login, chiffrement ou restauration de session Garmin impossible."""


class GarminAuthManager:
    """Gestionnaire d'authentification Garmin Connect"""

    def __init__(self, encryption_key: Optional[str] = None):
        self.encryption_key = encryption_key if encryption_key is not None else settings.ENCRYPTION_KEY
        if self.encryption_key:
            try:
                self.cipher = Fernet(self.encryption_key.encode())
            except (ValueError, TypeError) as e:
                logger.error(f"Erreur initialisation Fernet: {e}")
                self.cipher = None
        else:
            logger.warning("ENCRYPTION_KEY manquante")
            self.cipher = None

    def login(self, email: str, password: str) -> str:
        """
        Authentification Garmin via Garth.
        Retourne le token Garth serialise et chiffre, a placer dans
        GARMIN_TOKEN_ENCRYPTED. Email et mot de passe ne sont PAS stockes.

        Raises:
            GarminAuthError si le login ou la serialisation echoue
        """
        client = garth.Client(domain="garmin.com")
        try:
            client.login(email, password)
        except Exception as e:
            logger.warning(f"Echec login Garmin: {type(e).__name__}: {e}")
            raise GarminAuthError("Identifiants Garmin invalides") from e

        try:
            token_data = client.dumps()
        except Exception as e:
            logger.error(f"Echec serialisation token Garth: {e}")
            raise GarminAuthError("Erreur lors de la serialisation du token Garmin") from e

        return self.encrypt_token(token_data)

    def get_client(self, encrypted_token: str) -> garth.Client:
        """
        Reconstruit un client Garth a partir d'un token chiffre,
        sans re-login.
        """
        token_data = self.decrypt_token(encrypted_token)
        client = garth.Client(domain="garmin.com")
        try:
            client.loads(token_data)
        except Exception as e:
            logger.error(f"Echec restauration client Garth: {e}")
            raise GarminAuthError("Token Garmin invalide ou expire, reconnexion necessaire") from e
        return client

    def encrypt_token(self, token: str) -> str:
        """Chiffre un token Garth pour le stockage"""
        if not self.cipher:
            raise GarminAuthError("Encryption non configuree: ENCRYPTION_KEY manquante")
        if not token:
            raise GarminAuthError("Token vide fourni pour le chiffrement")
        return self.cipher.encrypt(token.encode()).decode()

    def decrypt_token(self, encrypted_token: str) -> str:
        """Dechiffre un token Garth stocke"""
        if not self.cipher:
            raise GarminAuthError("Encryption non configuree: ENCRYPTION_KEY manquante")
        if not encrypted_token:
            raise GarminAuthError("Aucun token Garmin configure (GARMIN_TOKEN_ENCRYPTED)")
        try:
            return self.cipher.decrypt(encrypted_token.encode()).decode()
        except InvalidToken as e:
            logger.error(f"Erreur dechiffrement token: {e}")
            raise GarminAuthError("Echec du dechiffrement du token Garmin") from e


garmin_auth = GarminAuthManager()
