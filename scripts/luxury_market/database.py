"""
Módulo para manejar la conexión PostgreSQL y la migración del esquema.

La migración es idempotente y se ejecuta una sola vez por proceso: las
primeras peticiones concurrentes esperan a la misma migración en lugar de
lanzar CREATE TABLE / ALTER TABLE duplicados. Si falla, la siguiente llamada
vuelve a intentarlo.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from .config import redact_url

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,
        slug TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL,
        price INTEGER NOT NULL,
        category TEXT NOT NULL,
        universe TEXT NOT NULL CHECK (universe IN ('mode', 'tout')),
        image TEXT NOT NULL,
        description TEXT NOT NULL,
        color TEXT,
        sizes JSONB
    )
    """,
    "ALTER TABLE products ADD COLUMN IF NOT EXISTS images JSONB",
    "ALTER TABLE products ADD COLUMN IF NOT EXISTS color_images JSONB",
    """
    UPDATE products
    SET images = jsonb_build_array(image)
    WHERE images IS NULL OR images = '[]'::jsonb
    """,
    "CREATE TABLE IF NOT EXISTS categories (name TEXT PRIMARY KEY)",
    "CREATE TABLE IF NOT EXISTS mode_subcategories (name TEXT PRIMARY KEY)",
)


def create_pool(url: str, maxconn: int = 5) -> ThreadedConnectionPool:
    """Pool de conexiones para un servidor multi-hilo."""
    return ThreadedConnectionPool(1, maxconn, dsn=url)


class Database:
    """
    Conexión a Postgres compartida por los repositorios SQL.

    Args:
        url: Cadena de conexión ya validada.
        pool_factory: Crea el pool a partir de la URL (inyectable en tests).
    """

    def __init__(
        self,
        url: str,
        pool_factory: Callable[[str], ThreadedConnectionPool] = create_pool,
    ):
        self.url = url
        self._pool_factory = pool_factory
        self._pool: Optional[ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    def _get_pool(self) -> ThreadedConnectionPool:
        with self._pool_lock:
            if self._pool is None or self._pool.closed:
                try:
                    self._pool = self._pool_factory(self.url)
                except psycopg2.OperationalError as e:
                    logger.error(f"Error al conectar a {redact_url(self.url)}: {e}")
                    raise
                logger.info("Conexión a la base de datos establecida")
            return self._pool

    @contextmanager
    def cursor(self) -> Iterator[RealDictCursor]:
        """
        Cursor de diccionario dentro de una transacción.

        Hace commit al salir sin errores y rollback si hay una excepción, que
        se vuelve a lanzar.
        """
        pool = self._get_pool()
        conn = pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def ensure_schema(self) -> None:
        """
        Crea o completa las tablas si hace falta (una vez por proceso).

        Raises:
            psycopg2.Error: Si la migración falla; el siguiente intento la
                vuelve a ejecutar.
        """
        if self._schema_ready:
            return

        with self._schema_lock:
            if self._schema_ready:
                return
            try:
                with self.cursor() as cur:
                    for statement in SCHEMA_STATEMENTS:
                        cur.execute(statement)
            except psycopg2.Error as e:
                logger.error(f"Error al migrar el esquema: {e}")
                raise
            self._schema_ready = True
            logger.info("Esquema de la base de datos listo")

    def close(self) -> None:
        """Cierra todas las conexiones del pool."""
        with self._pool_lock:
            if self._pool is not None and not self._pool.closed:
                self._pool.closeall()
                logger.info("Conexión a la base de datos cerrada")
            self._pool = None
