"""Normalización de valores numéricos leídos del ledger"""
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP

CERO = Decimal("0")
Q_CANTIDAD = Decimal("0.0001")
Q_COSTO = Decimal("0.00000001")


def a_decimal(valor) -> Decimal:
    """Convierte None/float/int/str/Decimal a Decimal sin arrastrar ruido binario."""
    if valor is None:
        return CERO
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


def a_cantidad(valor) -> Decimal:
    return a_decimal(valor).quantize(Q_CANTIDAD, rounding=ROUND_HALF_UP)


def a_costo(valor) -> Decimal:
    return a_decimal(valor).quantize(Q_COSTO, rounding=ROUND_HALF_UP)


def piso_cero(valor: Decimal) -> Decimal:
    return valor if valor > CERO else CERO


def fin_de_dia(fecha) -> datetime:
    """date -> datetime 23:59:59.999999; un datetime se devuelve sin cambios"""
    if isinstance(fecha, datetime):
        return fecha
    return datetime.combine(fecha, time.max)


def inicio_de_dia(fecha) -> datetime:
    if isinstance(fecha, datetime):
        return fecha
    return datetime.combine(fecha, time.min)


def solo_fecha(valor) -> date:
    return valor.date() if isinstance(valor, datetime) else valor
