from enum import Enum

class TipoMovimiento(str, Enum):
    ENTRADA = "ENTRADA"
    SALIDA = "SALIDA"
    AJUSTE = "AJUSTE"

class EstadoMovimiento(str, Enum):
    PROCESADO = "PROCESADO"  # Único estado que cuenta para stock
    PENDIENTE = "PENDIENTE"
    ANULADO = "ANULADO"

class MetodoValoracion(str, Enum):
    PROMEDIO = "PROMEDIO"  # Promedio ponderado
    FIFO = "FIFO"  # PEPS

# Marca de documento reservada para el movimiento de saldo inicial
NUMERO_DOCUMENTO_INV_INIT = "INV-INIT"

# Tipo de operación de comprobante que crea lotes nuevos
TIPO_OPERACION_COMPRA = "COMPRA"
