import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .db import init_db
from .api.routers import health, inventarios
from .infrastructure.logging_config import setup_logging
from .config import settings as app_settings

# Configurar logging al iniciar la aplicación
setup_logging()
logger = logging.getLogger(__name__)

# Inicializar BD (no fallar si conexión no está configurada - primer arranque)
try:
    init_db()
except Exception as e:
    logger.warning("No se pudo inicializar la base de datos: %s. Puede requerir configuración inicial.", e)

app = FastAPI(
    title="Kardex - Motor de Stock",
    version="0.1.0",
    description="Cálculo dinámico de stock, consumo FIFO y libro Kardex",
    docs_url="/docs" if app_settings.environment == "development" else None,
    redoc_url="/redoc" if app_settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

app.include_router(health.router)
app.include_router(inventarios.router)
