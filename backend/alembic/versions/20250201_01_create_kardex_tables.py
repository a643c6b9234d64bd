"""create inventory ledger tables (lotes, movimientos, detalles de salida)

Revision ID: 20250201_01_create_kardex_tables
Revises:
Create Date: 2025-02-01

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20250201_01_create_kardex_tables'
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    # Crear solo las tablas que no existen (idempotente: init_db pudo crearlas)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    tables = set(inspector.get_table_names())

    if 'productos' not in tables:
        op.create_table(
            'productos',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('company_id', sa.Integer(), nullable=False, index=True),
            sa.Column('codigo', sa.String(length=50), nullable=False, index=True),
            sa.Column('nombre', sa.String(length=200), nullable=False),
            sa.Column('unidad_medida', sa.String(length=10), nullable=False, server_default='NIU'),
            sa.Column('activo', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.UniqueConstraint('company_id', 'codigo', name='uq_producto_company_codigo'),
        )

    if 'almacenes' not in tables:
        op.create_table(
            'almacenes',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('company_id', sa.Integer(), nullable=False, index=True),
            sa.Column('codigo', sa.String(length=50), nullable=False, index=True),
            sa.Column('nombre', sa.String(length=200), nullable=False),
            sa.Column('activo', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('company_id', 'codigo', name='uq_almacen_company_codigo'),
        )

    if 'inventarios' not in tables:
        op.create_table(
            'inventarios',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('company_id', sa.Integer(), nullable=False, index=True),
            sa.Column('producto_id', sa.Integer(), sa.ForeignKey('productos.id'), nullable=False, index=True),
            sa.Column('almacen_id', sa.Integer(), sa.ForeignKey('almacenes.id'), nullable=False, index=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('producto_id', 'almacen_id', name='uq_inventario_producto_almacen'),
        )

    if 'inventario_lotes' not in tables:
        op.create_table(
            'inventario_lotes',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('inventario_id', sa.Integer(), sa.ForeignKey('inventarios.id'), nullable=False, index=True),
            sa.Column('numero_lote', sa.String(length=100), nullable=True),
            sa.Column('cantidad_inicial', sa.Numeric(14, 4), nullable=False, server_default='0'),
            sa.Column('costo_unitario', sa.Numeric(18, 8), nullable=False, server_default='0'),
            sa.Column('fecha_ingreso', sa.Date(), nullable=False, index=True),
            sa.Column('observaciones', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )

    if 'movimientos' not in tables:
        op.create_table(
            'movimientos',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('company_id', sa.Integer(), nullable=False, index=True),
            sa.Column('tipo', sa.String(length=10), nullable=False, index=True),
            sa.Column('fecha', sa.DateTime(), nullable=False, index=True),
            sa.Column('numero_documento', sa.String(length=100), nullable=True, index=True),
            sa.Column('codigo_tabla12', sa.String(length=10), nullable=True),
            sa.Column('codigo_tabla10', sa.String(length=10), nullable=True),
            sa.Column('tipo_operacion', sa.String(length=100), nullable=True),
            sa.Column('tipo_comprobante', sa.String(length=100), nullable=True),
            sa.Column('observaciones', sa.Text(), nullable=True),
            sa.Column('estado', sa.String(length=15), nullable=False, server_default='PROCESADO', index=True),
            sa.Column('comprobante_id', sa.Integer(), nullable=True, index=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )

    if 'movimiento_detalles' not in tables:
        op.create_table(
            'movimiento_detalles',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('movimiento_id', sa.Integer(), sa.ForeignKey('movimientos.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('inventario_id', sa.Integer(), sa.ForeignKey('inventarios.id'), nullable=False, index=True),
            sa.Column('lote_id', sa.Integer(), sa.ForeignKey('inventario_lotes.id'), nullable=True, index=True),
            sa.Column('cantidad', sa.Numeric(14, 4), nullable=False),
        )

    if 'detalles_salida' not in tables:
        # lote_id sin FK: 0 = salida histórica sin lote
        op.create_table(
            'detalles_salida',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('movimiento_detalle_id', sa.Integer(), sa.ForeignKey('movimiento_detalles.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('lote_id', sa.Integer(), nullable=False, index=True),
            sa.Column('costo_unitario_de_lote', sa.Numeric(18, 8), nullable=False, server_default='0'),
            sa.Column('cantidad', sa.Numeric(14, 4), nullable=False),
        )

    if 'periodos_contables' not in tables:
        op.create_table(
            'periodos_contables',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('company_id', sa.Integer(), nullable=False, index=True),
            sa.Column('fecha_inicio', sa.Date(), nullable=False),
            sa.Column('fecha_fin', sa.Date(), nullable=False),
            sa.Column('activo', sa.Boolean(), nullable=False, server_default=sa.true()),
        )

    if 'configuracion_inventario' not in tables:
        op.create_table(
            'configuracion_inventario',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('company_id', sa.Integer(), nullable=False, unique=True, index=True),
            sa.Column('metodo_valoracion', sa.String(length=10), nullable=False, server_default='PROMEDIO'),
        )

def downgrade() -> None:
    for table in (
        'configuracion_inventario', 'periodos_contables', 'detalles_salida', 'movimiento_detalles',
        'movimientos', 'inventario_lotes', 'inventarios', 'almacenes', 'productos',
    ):
        op.drop_table(table)
