"""
Weighbridge Pydantic Schemas

Two-phase input: PB Harian (weighing) then Timbangan (pricing).
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, date
from decimal import Decimal


class WeighbridgeTicketCreate(BaseModel):
    """Phase 1: fields entered at the weighbridge station"""
    company_id: int
    no_seri: str = Field(..., min_length=1, max_length=50)
    item_id: int
    tanggal: date
    vehicle_id: Optional[int] = None
    supplier_id: Optional[int] = None
    jam_masuk: Optional[datetime] = None
    jam_keluar: Optional[datetime] = None
    timbang1: Decimal = Field(..., ge=0, description="First weighing (kg)")
    timbang2: Decimal = Field(..., ge=0, description="Second weighing (kg)")
    netto1: Optional[Decimal] = Field(None, ge=0, description="Computed when omitted")
    pot_percent: Decimal = Field(default=Decimal("0"), ge=0, le=1, description="0.05 = 5%")
    pot_kg: Optional[Decimal] = Field(None, ge=0)
    berat_terima: Optional[Decimal] = Field(None, ge=0)
    lokasi_kebun: Optional[str] = Field(None, max_length=150)
    penimbang: Optional[str] = Field(None, max_length=100)
    harga_per_kg: Decimal = Field(default=Decimal("0"), ge=0)
    pph_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    upah_bongkar_per_kg: Decimal = Field(default=Decimal("0"), ge=0)
    warehouse_id: Optional[int] = None


class WeighbridgeBulkCreate(BaseModel):
    company_id: int
    tickets: List[WeighbridgeTicketCreate] = Field(..., min_length=1)


class WeighbridgeWeighingUpdate(BaseModel):
    vehicle_id: Optional[int] = None
    supplier_id: Optional[int] = None
    item_id: Optional[int] = None
    tanggal: Optional[date] = None
    jam_masuk: Optional[datetime] = None
    jam_keluar: Optional[datetime] = None
    timbang1: Optional[Decimal] = Field(None, ge=0)
    timbang2: Optional[Decimal] = Field(None, ge=0)
    netto1: Optional[Decimal] = Field(None, ge=0)
    pot_percent: Optional[Decimal] = Field(None, ge=0, le=1)
    pot_kg: Optional[Decimal] = Field(None, ge=0)
    berat_terima: Optional[Decimal] = Field(None, ge=0)
    lokasi_kebun: Optional[str] = Field(None, max_length=150)
    penimbang: Optional[str] = Field(None, max_length=100)
    warehouse_id: Optional[int] = None


class WeighbridgePricingUpdate(BaseModel):
    """Phase 2: pricing entered for the supplier payment"""
    harga_per_kg: Decimal = Field(..., ge=0)
    pph_rate: Decimal = Field(..., ge=0, le=1)
    upah_bongkar_per_kg: Decimal = Field(default=Decimal("0"), ge=0)


class WeighbridgeBulkPost(BaseModel):
    ticket_ids: List[int] = Field(..., min_length=1)


class WeighbridgeReject(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class WeighbridgeApprove(BaseModel):
    warehouse_id: Optional[int] = Field(None, description="Destination warehouse; required unless set on the ticket")


class NoSeriResponse(BaseModel):
    no_seri: str


class WeighbridgeTicketResponse(BaseModel):
    id: int
    company_id: int
    doc_number: str
    no_seri: str
    vehicle_id: Optional[int] = None
    supplier_id: Optional[int] = None
    item_id: int
    tanggal: date
    jam_masuk: Optional[datetime] = None
    jam_keluar: Optional[datetime] = None
    timbang1: Decimal
    timbang2: Decimal
    netto1: Decimal
    pot_percent: Decimal
    pot_kg: Decimal
    berat_terima: Decimal
    lokasi_kebun: Optional[str] = None
    penimbang: Optional[str] = None
    harga_per_kg: Decimal
    pph_rate: Decimal
    upah_bongkar_per_kg: Decimal
    total: Decimal
    total_pph: Decimal
    total_upah_bongkar: Decimal
    total_pembayaran_supplier: Decimal
    status: str
    gl_status: str
    warehouse_id: Optional[int] = None
    journal_entry_id: Optional[int] = None
    created_by: Optional[int] = None
    posted_by: Optional[int] = None
    posted_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WeighbridgeBulkCreateResponse(BaseModel):
    created: List[WeighbridgeTicketResponse]
    errors: List[Dict[str, Any]]
