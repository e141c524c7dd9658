"""Inventory models: supplies (insumos), supply types and stock rows."""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from models.base import ApiModel


class SupplyType(ApiModel):
    id_tipo_insumo: Optional[int] = Field(default=None, alias="idTipoInsumo")
    nombre: str
    descripcion: Optional[str] = None


class Supply(ApiModel):
    """Insumo as returned by /inventario/insumos."""

    id_insumo: Optional[int] = Field(default=None, alias="idInsumo")
    codigo: Optional[str] = None
    nombre: str
    descripcion: Optional[str] = None
    unidad_medida: Optional[str] = Field(default=None, alias="unidadMedida")
    precio_unitario: Optional[Decimal] = Field(default=None, alias="precioUnitario")
    cantidad_stock: Optional[int] = Field(default=None, alias="cantidadStock")
    stock_minimo: Optional[int] = Field(default=None, alias="stockMinimo")
    activo: Optional[bool] = None
    tipo_insumo: Optional[SupplyType] = Field(default=None, alias="tipoInsumo")


class InventoryItem(ApiModel):
    """Stock row as returned by /inventario."""

    id_inventario: Optional[int] = Field(default=None, alias="idInventario")
    id_insumo: Optional[int] = Field(default=None, alias="idInsumo")
    nombre_insumo: Optional[str] = Field(default=None, alias="nombreInsumo")
    codigo_insumo: Optional[str] = Field(default=None, alias="codigoInsumo")
    cantidad_actual: Optional[int] = Field(default=None, alias="cantidadActual")
    valor_total: Optional[Decimal] = Field(default=None, alias="valorTotal")
    requiere_reorden: Optional[bool] = Field(default=None, alias="requiereReorden")
    es_nivel_critico: Optional[bool] = Field(default=None, alias="esNivelCritico")
    dias_stock_disponible: Optional[int] = Field(default=None, alias="diasStockDisponible")
    insumo: Optional[Supply] = None

    @property
    def name(self) -> str:
        if self.insumo is not None:
            return self.insumo.nombre
        return self.nombre_insumo or self.codigo_insumo or f"#{self.id_insumo}"

    @property
    def minimum_stock(self) -> Optional[int]:
        return self.insumo.stock_minimo if self.insumo else None

    @property
    def is_low(self) -> bool:
        if self.requiere_reorden or self.es_nivel_critico:
            return True
        minimum = self.minimum_stock
        return (
            minimum is not None
            and self.cantidad_actual is not None
            and self.cantidad_actual <= minimum
        )
