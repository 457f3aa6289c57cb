from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url


logger = logging.getLogger(__name__)


def get_engine(url: str, *, probe: bool = True) -> Engine:
    """Crea un engine SQLAlchemy para la URL dada.

    Si ``probe`` es True ejecuta ``SELECT 1`` y loguea el resultado; un
    fallo del test no impide devolver el engine (pool_pre_ping reintenta).
    """
    parsed = make_url(url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine host=%s port=%s db=%s user=%s driver=%s",
        parsed.host,
        parsed.port,
        parsed.database,
        parsed.username,
        parsed.drivername,
    )

    engine = create_engine(url, pool_pre_ping=True, future=True)

    if probe:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("[DB] Test de conexión OK")
        except Exception:
            logger.exception("[DB] Test de conexión FALLÓ")

    return engine
