"""
Lectura de configuración externa para el motor: período activo y método de valoración.
Los fallos se recuperan localmente con un valor por defecto y un warning.
"""
from datetime import date, datetime
import logging

from ..config import settings
from ..domain.enums import MetodoValoracion
from ..domain.numeros import fin_de_dia
from ..infrastructure.unit_of_work import UnitOfWork
from .exceptions_inventario import ConfiguracionNoDisponibleError

logger = logging.getLogger(__name__)


class PeriodoService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def obtener_periodo_activo(self, company_id: int):
        periodo = self.uow.periodos.activo(company_id)
        if not periodo:
            raise ConfiguracionNoDisponibleError(f"No hay período contable activo para la empresa {company_id}")
        return periodo

    def obtener_metodo_valoracion(self, company_id: int) -> MetodoValoracion:
        config = self.uow.periodos.configuracion(company_id)
        if not config or not config.metodo_valoracion:
            raise ConfiguracionNoDisponibleError(f"Empresa {company_id} sin método de valoración configurado")
        try:
            return MetodoValoracion(config.metodo_valoracion.upper())
        except ValueError as e:
            raise ConfiguracionNoDisponibleError(
                f"Método de valoración desconocido: {config.metodo_valoracion}"
            ) from e

    def obtener_metodo_valoracion_o_defecto(self, company_id: int) -> MetodoValoracion:
        try:
            return self.obtener_metodo_valoracion(company_id)
        except ConfiguracionNoDisponibleError as e:
            logger.warning(f"{e}. Usando {settings.metodo_valoracion_defecto}")
            return MetodoValoracion(settings.metodo_valoracion_defecto)

    def obtener_fecha_corte(self, company_id: int) -> datetime:
        """Fin del período activo; si no está disponible, fin del día de hoy"""
        try:
            periodo = self.obtener_periodo_activo(company_id)
            return fin_de_dia(periodo.fecha_fin)
        except ConfiguracionNoDisponibleError as e:
            logger.warning(f"{e}. Usando fecha actual como corte")
            return fin_de_dia(date.today())

    def obtener_fecha_saldo_inicial(self, company_id: int) -> date:
        """1 de enero del año del período activo (hoy si no hay período)"""
        try:
            periodo = self.obtener_periodo_activo(company_id)
            return date(periodo.fecha_inicio.year, 1, 1)
        except ConfiguracionNoDisponibleError as e:
            logger.warning(f"{e}. Usando fecha actual para el saldo inicial")
            return date.today()
