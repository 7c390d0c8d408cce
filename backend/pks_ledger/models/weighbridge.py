"""
Weighbridge ticket model (Timbangan TBS)

One ticket per truck: gross/tare weighing, sortation deduction, and the
supplier pricing derived from the accepted weight.
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Date, UniqueConstraint
from datetime import datetime

from pks_ledger.db.base import Base


class WeighbridgeTicket(Base):
    __tablename__ = "weighbridge_tickets"
    __table_args__ = (
        UniqueConstraint("company_id", "no_seri", name="uq_weighbridge_tickets_company_no_seri"),
        UniqueConstraint("company_id", "doc_number", name="uq_weighbridge_tickets_company_doc_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    doc_number = Column(String(40), nullable=False)  # WB/2025/03/0001
    no_seri = Column(String(50), nullable=False)  # Printed serial, 20250301-001

    # External master data references
    vehicle_id = Column(Integer, nullable=True)
    supplier_id = Column(Integer, nullable=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)

    tanggal = Column(Date, nullable=False, index=True)
    jam_masuk = Column(DateTime, nullable=True)
    jam_keluar = Column(DateTime, nullable=True)

    # Weighing (kg)
    timbang1 = Column(Numeric(18, 2), nullable=False)
    timbang2 = Column(Numeric(18, 2), nullable=False)
    netto1 = Column(Numeric(18, 2), nullable=False)
    pot_percent = Column(Numeric(9, 6), default=0, nullable=False)  # 0.05 = 5%
    pot_kg = Column(Numeric(18, 2), default=0, nullable=False)
    berat_terima = Column(Numeric(18, 2), nullable=False)

    lokasi_kebun = Column(String(150), nullable=True)
    penimbang = Column(String(100), nullable=True)

    # Pricing
    harga_per_kg = Column(Numeric(18, 2), default=0, nullable=False)
    pph_rate = Column(Numeric(9, 6), default=0, nullable=False)
    upah_bongkar_per_kg = Column(Numeric(18, 2), default=0, nullable=False)
    total = Column(Numeric(18, 2), default=0, nullable=False)
    total_pph = Column(Numeric(18, 2), default=0, nullable=False)
    total_upah_bongkar = Column(Numeric(18, 2), default=0, nullable=False)
    total_pembayaran_supplier = Column(Numeric(18, 2), default=0, nullable=False)

    # Status workflow: DRAFT -> POSTED -> APPROVED, POSTED -> DRAFT on reject
    status = Column(String(20), default="DRAFT", nullable=False, index=True)
    gl_status = Column(String(20), default="PENDING", nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)

    # Audit
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    posted_by = Column(Integer, nullable=True)
    posted_at = Column(DateTime, nullable=True)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<WeighbridgeTicket {self.no_seri}: {self.status}>"
