"""
Sesión de administración sin estado.

El token es ``base64url(payload) + "." + hex(HMAC-SHA256(payload))`` con
``payload = {"t": <milisegundos>}`` y la contraseña de administración como
clave. No lleva identidad (hay un solo rol admin) ni se puede revocar: caduca
a las 24 horas y el logout sólo borra la cookie.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Callable, Optional

from .config import MIN_ADMIN_PASSWORD_LENGTH, get_admin_password
from .errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

COOKIE_NAME = "admin_session"
TTL_SECONDS = 24 * 60 * 60
TTL_MS = TTL_SECONDS * 1000

UNAUTHORIZED_MESSAGE = "Non autorisé."
WRONG_PASSWORD_MESSAGE = "Mot de passe incorrect."


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class SessionSigner:
    """
    Firma y verifica tokens de sesión.

    Args:
        secret: Contraseña de administración (mínimo 4 caracteres).
        clock: Función que devuelve la hora actual en segundos (``time.time``
            por defecto; se sustituye en tests).

    Raises:
        ConfigurationError: Si el secreto es demasiado corto.
    """

    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret or len(secret) < MIN_ADMIN_PASSWORD_LENGTH:
            raise ConfigurationError(
                "Administration non configurée (ADMIN_PASSWORD manquant)."
            )
        self._secret = secret.encode("utf-8")
        self._clock = clock

    @classmethod
    def from_env(cls, clock: Callable[[], float] = time.time) -> "SessionSigner":
        """Crea el firmante con ADMIN_PASSWORD."""
        return cls(get_admin_password(), clock=clock)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sign(self, payload: bytes) -> str:
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def check_password(self, submitted: Optional[str]) -> bool:
        """Compara la contraseña enviada con el secreto en tiempo constante."""
        if not isinstance(submitted, str):
            return False
        return hmac.compare_digest(submitted.encode("utf-8"), self._secret)

    def create_token(self) -> str:
        """Token nuevo con la hora actual."""
        payload = json.dumps({"t": self._now_ms()}, separators=(",", ":")).encode("utf-8")
        return f"{_b64encode(payload)}.{self._sign(payload)}"

    def verify_token(self, token: Optional[str]) -> bool:
        """
        Comprueba firma y caducidad de un token.

        Nunca lanza: cualquier token mal formado, alterado o caducado
        devuelve False.
        """
        if not token or not isinstance(token, str):
            return False

        parts = token.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return False
        encoded, signature = parts

        try:
            payload = _b64decode(encoded)
            # Una misma carga admite varias codificaciones; sólo vale la canónica.
            if _b64encode(payload) != encoded:
                return False
            data = json.loads(payload.decode("utf-8"))
        except ValueError:
            return False

        expected = self._sign(payload)
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
            return False

        if not isinstance(data, dict):
            return False
        issued_at = data.get("t")
        if isinstance(issued_at, bool) or not isinstance(issued_at, (int, float)):
            return False

        return self._now_ms() - issued_at <= TTL_MS

    def require(self, token: Optional[str]) -> None:
        """
        Exige un token válido.

        Raises:
            AuthenticationError: Si el token no es válido o ha caducado.
        """
        if not self.verify_token(token):
            raise AuthenticationError(UNAUTHORIZED_MESSAGE)
