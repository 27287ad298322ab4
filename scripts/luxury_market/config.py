"""
Configuración de la tienda usando variables de entorno.

El backend de almacenamiento se decide una sola vez al arrancar: si hay una
cadena de conexión Postgres válida se usa SQL, si no, los ficheros JSON.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlsplit

from dotenv import load_dotenv

from .errors import ConfigurationError

# Cargar variables de entorno desde .env
load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL_VARS = ("DATABASE_URL", "POSTGRES_URL")
DEFAULT_DATA_DIR = Path("data")
DEFAULT_WHATSAPP_NUMBER = "221773249642"
MIN_ADMIN_PASSWORD_LENGTH = 4

_PSQL_PREFIX = re.compile(r"^psql\s+", re.IGNORECASE)
_QUOTES = "'\""


@dataclass(frozen=True)
class FileBackend:
    """Almacenamiento en ficheros JSON dentro de un directorio."""

    data_dir: Path


@dataclass(frozen=True)
class SqlBackend:
    """Almacenamiento en Postgres."""

    url: str

    def __repr__(self) -> str:
        return f"SqlBackend(url={redact_url(self.url)!r})"


StorageBackend = Union[FileBackend, SqlBackend]


def _strip_quotes(value: str) -> str:
    value = value.strip()
    while len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        value = value[1:-1].strip()
    return value


def clean_database_url(raw: Optional[str]) -> Optional[str]:
    """
    Limpia una cadena de conexión copiada desde un panel o una terminal.

    Acepta cosas como ``psql 'postgresql://user:pw@host/db'`` o la URL entre
    comillas, y devuelve la URL sólo si es una URL postgres con host.

    Args:
        raw: Valor tal cual viene del entorno.

    Returns:
        URL limpia o None si no es utilizable.
    """
    if not raw:
        return None

    value = _strip_quotes(raw)
    value = _PSQL_PREFIX.sub("", value)
    value = _strip_quotes(value)
    if not value:
        return None

    try:
        parts = urlsplit(value)
        hostname = parts.hostname
    except ValueError:
        return None

    if parts.scheme not in ("postgres", "postgresql") or not hostname:
        return None
    return value


def redact_url(url: str) -> str:
    """Oculta la contraseña de una URL para poder loguearla."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return parts._replace(netloc=netloc).geturl()


def get_data_dir() -> Path:
    """Directorio de los ficheros JSON."""
    return Path(os.getenv("LUXURY_MARKET_DATA_DIR", str(DEFAULT_DATA_DIR)))


def get_storage_backend() -> StorageBackend:
    """
    Obtiene el backend de almacenamiento desde variables de entorno.

    Returns:
        SqlBackend si DATABASE_URL o POSTGRES_URL contienen una URL válida,
        FileBackend en caso contrario.
    """
    for var in DATABASE_URL_VARS:
        raw = os.getenv(var)
        if not raw:
            continue
        url = clean_database_url(raw)
        if url:
            logger.info(f"Backend SQL seleccionado ({var}): {redact_url(url)}")
            return SqlBackend(url=url)
        logger.warning(f"{var} definida pero no es una URL postgres válida, se ignora")

    data_dir = get_data_dir()
    logger.info(f"Backend de ficheros seleccionado: {data_dir}")
    return FileBackend(data_dir=data_dir)


def get_admin_password() -> str:
    """
    Obtiene el secreto compartido de administración.

    Raises:
        ConfigurationError: Si ADMIN_PASSWORD no existe o es demasiado corta.
    """
    secret = os.getenv("ADMIN_PASSWORD") or ""
    if len(secret) < MIN_ADMIN_PASSWORD_LENGTH:
        raise ConfigurationError(
            "Administration non configurée (ADMIN_PASSWORD manquant)."
        )
    return secret


def get_whatsapp_number() -> str:
    """Número de WhatsApp de la tienda, sólo dígitos."""
    raw = os.getenv("WHATSAPP_NUMBER") or DEFAULT_WHATSAPP_NUMBER
    digits = re.sub(r"\D+", "", raw)
    return digits or DEFAULT_WHATSAPP_NUMBER
