"""
Configuración de logging para la aplicación
Crea archivos de log por día en la carpeta configurada (LOG_DIR, por defecto logs/)
"""
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime

from ..config import settings

# Loggers del motor de stock/kardex: se registran en DEBUG para trazar cálculos
ENGINE_LOGGERS = (
    "kardex.application.services_stock",
    "kardex.application.services_kardex",
    "kardex.application.services_lotes",
)


def setup_logging():
    """Configura el sistema de logging con archivos diarios"""
    log_dir = settings.log_path
    log_dir.mkdir(parents=True, exist_ok=True)

    # Nombre del archivo de log con fecha actual (YYYY-MM-DD)
    today = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"kardex_{today}.log"

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Eliminar handlers existentes para evitar duplicados
    root_logger.handlers.clear()

    # maxBytes=10MB, backupCount=5
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.getLogger("kardex").setLevel(logging.INFO)
    logging.getLogger("kardex.api").setLevel(logging.INFO)

    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG)

    # Solo warnings y errores de SQL
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)

    logging.info(f"Sistema de logging configurado. Archivo: {log_file}")

    return root_logger


def get_logger(name: str = None):
    """Obtiene un logger con el nombre especificado"""
    if name:
        return logging.getLogger(f"kardex.{name}")
    return logging.getLogger("kardex")
