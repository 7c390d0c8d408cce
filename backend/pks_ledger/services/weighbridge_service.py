"""
Weighbridge ticket workflow (Timbangan TBS)

Two-phase input: weighing at the station (PB Harian), then pricing
(Timbangan). DRAFT -> POSTED -> APPROVED, POSTED -> DRAFT on reject.

Approval receives berat_terima kg of the ticket's item at harga_per_kg and
posts

    Dr INVENTORY_TBS                total_pembayaran_supplier
        Cr AP_SUPPLIER_TBS          total_pembayaran_supplier

in the same transaction. Any failure while posting rolls back the stock
movement with it; the failure is logged as a reconciliation item.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from pks_ledger.core.decimals import ZERO, to_decimal, q_money
from pks_ledger.core.status_config import (
    GLStatus,
    WEIGHBRIDGE_TRANSITIONS,
    WeighbridgeAction,
    WeighbridgeStatus,
    next_status,
)
from pks_ledger.db.session import atomic
from pks_ledger.exceptions import DuplicateError, NotFoundError, PksLedgerException, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import SystemAccountKey
from pks_ledger.models.weighbridge import WeighbridgeTicket
from pks_ledger.services.fiscal_period_service import FiscalPeriodService
from pks_ledger.services.inventory_service import InventoryService
from pks_ledger.services.journal_service import JournalLineInput, JournalService
from pks_ledger.services.master_data import MasterDataService
from pks_ledger.services.sequence_service import WEIGHBRIDGE, SequenceService
from pks_ledger.services.system_account_service import SystemAccountService

logger = get_logger(__name__)

SOURCE_TYPE = "WeighbridgeTicket"

# Weighing figures may differ from the recomputed value by this much (kg)
WEIGHT_TOLERANCE = Decimal("0.01")

_WEIGHING_FIELDS = (
    "vehicle_id",
    "supplier_id",
    "item_id",
    "tanggal",
    "jam_masuk",
    "jam_keluar",
    "timbang1",
    "timbang2",
    "netto1",
    "pot_percent",
    "pot_kg",
    "berat_terima",
    "lokasi_kebun",
    "penimbang",
    "warehouse_id",
)


def derive_weights(timbang1, timbang2, pot_percent) -> Dict[str, Decimal]:
    """netto1 = |timbang1 - timbang2|, pot_kg = netto1 * pot_percent, berat_terima = netto1 - pot_kg"""
    netto1 = abs(to_decimal(timbang1) - to_decimal(timbang2))
    pot_kg = netto1 * to_decimal(pot_percent)
    return {
        "netto1": q_money(netto1),
        "pot_kg": q_money(pot_kg),
        "berat_terima": q_money(netto1 - pot_kg),
    }


def calculate_pricing(berat_terima, harga_per_kg, pph_rate, upah_bongkar_per_kg) -> Dict[str, Decimal]:
    """Supplier payment figures, each rounded to 2 places."""
    berat = to_decimal(berat_terima)
    total = berat * to_decimal(harga_per_kg)
    total_pph = total * to_decimal(pph_rate)
    return {
        "total": q_money(total),
        "total_pph": q_money(total_pph),
        "total_upah_bongkar": q_money(berat * to_decimal(upah_bongkar_per_kg)),
        "total_pembayaran_supplier": q_money(total - total_pph),
    }


def validate_weighing(data: Dict[str, Any]) -> Dict[str, Decimal]:
    """
    Check the weighing figures entered at the station.

    Missing derived figures (netto1, pot_kg, berat_terima) are computed;
    given ones must match the recomputation within WEIGHT_TOLERANCE.
    """
    timbang1 = to_decimal(data.get("timbang1"))
    timbang2 = to_decimal(data.get("timbang2"))
    pot_percent = to_decimal(data.get("pot_percent"))
    if timbang1 < 0 or timbang2 < 0:
        raise ValidationError("Weights must not be negative", field="timbang1")
    if pot_percent < 0 or pot_percent > 1:
        raise ValidationError("Deduction must be between 0 and 1 (0-100%)", field="pot_percent", value=pot_percent)

    derived = derive_weights(timbang1, timbang2, pot_percent)
    for field, expected in derived.items():
        given = data.get(field)
        if given is None:
            continue
        if abs(to_decimal(given) - expected) > WEIGHT_TOLERANCE:
            raise ValidationError(
                f"{field} {given} does not match the weighing ({expected})",
                field=field,
                value=given,
                details={"expected": str(expected)},
            )
    return {
        "timbang1": q_money(timbang1),
        "timbang2": q_money(timbang2),
        "pot_percent": pot_percent,
        **derived,
    }


def _validate_pricing(harga_per_kg, pph_rate, upah_bongkar_per_kg) -> Tuple[Decimal, Decimal, Decimal]:
    harga = to_decimal(harga_per_kg)
    pph = to_decimal(pph_rate)
    upah = to_decimal(upah_bongkar_per_kg)
    if harga < 0:
        raise ValidationError("Price per kg must not be negative", field="harga_per_kg", value=harga)
    if pph < 0 or pph > 1:
        raise ValidationError("PPh rate must be between 0 and 1", field="pph_rate", value=pph)
    if upah < 0:
        raise ValidationError("Unloading wage must not be negative", field="upah_bongkar_per_kg", value=upah)
    return q_money(harga), pph, q_money(upah)


class WeighbridgeService:
    def __init__(
        self,
        db: Session,
        system_accounts: Optional[SystemAccountService] = None,
        inventory: Optional[InventoryService] = None,
        journal: Optional[JournalService] = None,
        periods: Optional[FiscalPeriodService] = None,
        sequences: Optional[SequenceService] = None,
        master_data: Optional[MasterDataService] = None,
    ):
        self.db = db
        self.master_data = master_data or MasterDataService(db)
        self.system_accounts = system_accounts or SystemAccountService(db)
        self.periods = periods or FiscalPeriodService(db)
        self.sequences = sequences or SequenceService(db)
        self.inventory = inventory or InventoryService(db, self.master_data)
        self.journal = journal or JournalService(db, self.periods, self.sequences)

    # === QUERIES ===

    def get(self, ticket_id: int, company_id: Optional[int] = None) -> WeighbridgeTicket:
        query = self.db.query(WeighbridgeTicket).filter(WeighbridgeTicket.id == ticket_id)
        if company_id is not None:
            query = query.filter(WeighbridgeTicket.company_id == company_id)
        ticket = query.first()
        if not ticket:
            raise NotFoundError("WeighbridgeTicket", ticket_id)
        return ticket

    def list(
        self,
        company_id: int,
        status: Optional[str] = None,
        supplier_id: Optional[int] = None,
        vehicle_id: Optional[int] = None,
        item_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[WeighbridgeTicket]:
        query = self.db.query(WeighbridgeTicket).filter(WeighbridgeTicket.company_id == company_id)
        if status:
            query = query.filter(WeighbridgeTicket.status == status)
        if supplier_id is not None:
            query = query.filter(WeighbridgeTicket.supplier_id == supplier_id)
        if vehicle_id is not None:
            query = query.filter(WeighbridgeTicket.vehicle_id == vehicle_id)
        if item_id is not None:
            query = query.filter(WeighbridgeTicket.item_id == item_id)
        if start_date:
            query = query.filter(WeighbridgeTicket.tanggal >= start_date)
        if end_date:
            query = query.filter(WeighbridgeTicket.tanggal <= end_date)
        return (
            query.order_by(WeighbridgeTicket.tanggal.desc(), WeighbridgeTicket.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def generate_no_seri(self, company_id: int, on_date: date) -> str:
        """Reserve the next `YYYYMMDD-NNN` serial for the day."""
        with atomic(self.db):
            no_seri = self.sequences.next_no_seri(company_id, on_date)
        return no_seri

    # === WEIGHING PHASE ===

    def create_ticket(
        self,
        company_id: int,
        no_seri: str,
        item_id: int,
        tanggal: date,
        timbang1,
        timbang2,
        pot_percent=ZERO,
        netto1=None,
        pot_kg=None,
        berat_terima=None,
        harga_per_kg=ZERO,
        pph_rate=ZERO,
        upah_bongkar_per_kg=ZERO,
        vehicle_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
        jam_masuk: Optional[datetime] = None,
        jam_keluar: Optional[datetime] = None,
        lokasi_kebun: Optional[str] = None,
        penimbang: Optional[str] = None,
        warehouse_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> WeighbridgeTicket:
        with atomic(self.db):
            ticket = self._create_ticket(
                company_id=company_id,
                no_seri=no_seri,
                item_id=item_id,
                tanggal=tanggal,
                weighing={
                    "timbang1": timbang1,
                    "timbang2": timbang2,
                    "pot_percent": pot_percent,
                    "netto1": netto1,
                    "pot_kg": pot_kg,
                    "berat_terima": berat_terima,
                },
                harga_per_kg=harga_per_kg,
                pph_rate=pph_rate,
                upah_bongkar_per_kg=upah_bongkar_per_kg,
                vehicle_id=vehicle_id,
                supplier_id=supplier_id,
                jam_masuk=jam_masuk,
                jam_keluar=jam_keluar,
                lokasi_kebun=lokasi_kebun,
                penimbang=penimbang,
                warehouse_id=warehouse_id,
                actor_id=actor_id,
            )
        return ticket

    def bulk_create_tickets(
        self,
        company_id: int,
        tickets: Sequence[Dict[str, Any]],
        actor_id: Optional[int] = None,
    ) -> Tuple[List[WeighbridgeTicket], List[Dict[str, Any]]]:
        """
        Create many tickets from the daily weighing sheet.

        Each ticket is its own transaction; failures are collected per
        no_seri and do not stop the rest.
        """
        created: List[WeighbridgeTicket] = []
        errors: List[Dict[str, Any]] = []
        for data in tickets:
            try:
                created.append(self.create_ticket(company_id=company_id, actor_id=actor_id, **data))
            except PksLedgerException as e:
                logger.warning(
                    "Bulk ticket rejected",
                    extra={"company_id": company_id, "no_seri": data.get("no_seri"), "error_code": e.error_code},
                )
                errors.append({"no_seri": data.get("no_seri"), **e.to_dict()})
        return created, errors

    def update_weighing(self, ticket_id: int, actor_id: Optional[int] = None, **changes) -> WeighbridgeTicket:
        """Edit weighing fields of a DRAFT ticket; derived weights and totals are recomputed."""
        unknown = set(changes) - set(_WEIGHING_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown weighing fields: {', '.join(sorted(unknown))}")

        with atomic(self.db):
            ticket = self._get_for_update(ticket_id)
            next_status(
                WEIGHBRIDGE_TRANSITIONS,
                ticket.status,
                WeighbridgeAction.EDIT,
                document="WeighbridgeTicket",
                document_id=ticket.id,
            )
            if "item_id" in changes:
                self.master_data.require_item(changes["item_id"], ticket.company_id)
            if changes.get("warehouse_id") is not None:
                self.master_data.require_active_warehouse(changes["warehouse_id"], ticket.company_id)

            raw_weights_changed = any(f in changes for f in ("timbang1", "timbang2", "pot_percent"))
            weighing = {
                "timbang1": changes.get("timbang1", ticket.timbang1),
                "timbang2": changes.get("timbang2", ticket.timbang2),
                "pot_percent": changes.get("pot_percent", ticket.pot_percent),
            }
            for field in ("netto1", "pot_kg", "berat_terima"):
                if field in changes:
                    weighing[field] = changes[field]
                elif not raw_weights_changed:
                    weighing[field] = getattr(ticket, field)
            weights = validate_weighing(weighing)

            for field, value in changes.items():
                if field not in weights:
                    setattr(ticket, field, value)
            for field, value in weights.items():
                setattr(ticket, field, value)
            self._apply_pricing(ticket)
            self.db.flush()

        logger.info(
            "Weighbridge weighing updated",
            extra={"ticket_id": ticket.id, "no_seri": ticket.no_seri, "actor_id": actor_id},
        )
        return ticket

    # === PRICING PHASE ===

    def update_pricing(
        self,
        ticket_id: int,
        harga_per_kg,
        pph_rate,
        upah_bongkar_per_kg,
        actor_id: Optional[int] = None,
    ) -> WeighbridgeTicket:
        harga, pph, upah = _validate_pricing(harga_per_kg, pph_rate, upah_bongkar_per_kg)
        with atomic(self.db):
            ticket = self._get_for_update(ticket_id)
            next_status(
                WEIGHBRIDGE_TRANSITIONS,
                ticket.status,
                WeighbridgeAction.EDIT,
                document="WeighbridgeTicket",
                document_id=ticket.id,
            )
            ticket.harga_per_kg = harga
            ticket.pph_rate = pph
            ticket.upah_bongkar_per_kg = upah
            self._apply_pricing(ticket)
            self.db.flush()

        logger.info(
            "Weighbridge pricing updated",
            extra={
                "ticket_id": ticket.id,
                "no_seri": ticket.no_seri,
                "harga_per_kg": harga,
                "total_pembayaran_supplier": ticket.total_pembayaran_supplier,
                "actor_id": actor_id,
            },
        )
        return ticket

    # === WORKFLOW ===

    def post(self, ticket_id: int, actor_id: Optional[int] = None) -> WeighbridgeTicket:
        """Freeze weighing and pricing (DRAFT -> POSTED)."""
        with atomic(self.db):
            ticket = self._post(self._get_for_update(ticket_id), actor_id)
        return ticket

    def bulk_post(self, ticket_ids: Sequence[int], actor_id: Optional[int] = None) -> List[WeighbridgeTicket]:
        """Post several tickets; one ticket that cannot be posted aborts them all."""
        if not ticket_ids:
            raise ValidationError("No tickets selected", field="ticket_ids")
        with atomic(self.db):
            tickets = [self._post(self._get_for_update(ticket_id), actor_id) for ticket_id in ticket_ids]
        return tickets

    def reject(self, ticket_id: int, actor_id: Optional[int] = None, reason: Optional[str] = None) -> WeighbridgeTicket:
        """Send a POSTED ticket back to DRAFT for correction."""
        with atomic(self.db):
            ticket = self._get_for_update(ticket_id)
            ticket.status = next_status(
                WEIGHBRIDGE_TRANSITIONS,
                ticket.status,
                WeighbridgeAction.REJECT,
                document="WeighbridgeTicket",
                document_id=ticket.id,
            )
            ticket.posted_by = None
            ticket.posted_at = None
            self.db.flush()

        logger.info(
            "Weighbridge ticket rejected",
            extra={"ticket_id": ticket.id, "no_seri": ticket.no_seri, "reason": reason, "actor_id": actor_id},
        )
        return ticket

    def approve(
        self,
        ticket_id: int,
        warehouse_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> WeighbridgeTicket:
        """
        Receive the TBS into stock and post the supplier payable.

        Raises:
            InvalidTransitionError: Ticket is not POSTED
            ValidationError: No warehouse chosen, or nothing to pay the supplier
            PeriodClosedError: Ticket date is in a closed period
            AccountMisconfiguredError: INVENTORY_TBS or AP_SUPPLIER_TBS not mapped
        """
        try:
            with atomic(self.db):
                ticket = self._get_for_update(ticket_id)
                target = next_status(
                    WEIGHBRIDGE_TRANSITIONS,
                    ticket.status,
                    WeighbridgeAction.APPROVE,
                    document="WeighbridgeTicket",
                    document_id=ticket.id,
                )
                warehouse_id = warehouse_id or ticket.warehouse_id
                if warehouse_id is None:
                    raise ValidationError("Destination warehouse is required", field="warehouse_id")
                if to_decimal(ticket.total_pembayaran_supplier) <= 0:
                    raise ValidationError(
                        f"Ticket {ticket.no_seri} has no supplier payment; set pricing first",
                        field="total_pembayaran_supplier",
                        value=ticket.total_pembayaran_supplier,
                    )
                self.master_data.require_active_warehouse(warehouse_id, ticket.company_id)
                self.periods.ensure_date_open(ticket.company_id, ticket.tanggal)

                ticket.warehouse_id = warehouse_id
                self.inventory.receive(
                    ticket.item_id,
                    warehouse_id,
                    ticket.berat_terima,
                    ticket.harga_per_kg,
                    source_type=SOURCE_TYPE,
                    reference_id=ticket.id,
                    note=ticket.no_seri,
                    actor_id=actor_id,
                )
                self._post_gl(ticket, actor_id)

                ticket.status = target
                ticket.approved_by = actor_id
                ticket.approved_at = datetime.utcnow()
                self.db.flush()
        except PksLedgerException as e:
            logger.warning(
                "Weighbridge approval rolled back",
                extra={"ticket_id": ticket_id, "error_code": e.error_code, "actor_id": actor_id},
            )
            raise

        logger.info(
            "Weighbridge ticket approved",
            extra={
                "ticket_id": ticket.id,
                "no_seri": ticket.no_seri,
                "warehouse_id": warehouse_id,
                "berat_terima": ticket.berat_terima,
                "total_pembayaran_supplier": ticket.total_pembayaran_supplier,
                "journal_entry_id": ticket.journal_entry_id,
                "actor_id": actor_id,
            },
        )
        return ticket

    def delete(self, ticket_id: int, actor_id: Optional[int] = None) -> None:
        with atomic(self.db):
            ticket = self._get_for_update(ticket_id)
            next_status(
                WEIGHBRIDGE_TRANSITIONS,
                ticket.status,
                WeighbridgeAction.DELETE,
                document="WeighbridgeTicket",
                document_id=ticket.id,
            )
            no_seri = ticket.no_seri
            self.db.delete(ticket)
            self.db.flush()

        logger.info(
            "Weighbridge ticket deleted",
            extra={"ticket_id": ticket_id, "no_seri": no_seri, "actor_id": actor_id},
        )

    # === INTERNAL HELPERS ===

    def _create_ticket(
        self,
        *,
        company_id: int,
        no_seri: str,
        item_id: int,
        tanggal: date,
        weighing: Dict[str, Any],
        harga_per_kg,
        pph_rate,
        upah_bongkar_per_kg,
        warehouse_id: Optional[int],
        actor_id: Optional[int],
        **extra,
    ) -> WeighbridgeTicket:
        no_seri = (no_seri or "").strip()
        if not no_seri:
            raise ValidationError("No. seri is required", field="no_seri")
        if tanggal is None:
            raise ValidationError("Ticket date is required", field="tanggal")
        weights = validate_weighing(weighing)
        harga, pph, upah = _validate_pricing(harga_per_kg, pph_rate, upah_bongkar_per_kg)
        self.master_data.require_item(item_id, company_id)
        if warehouse_id is not None:
            self.master_data.require_active_warehouse(warehouse_id, company_id)

        taken = (
            self.db.query(WeighbridgeTicket.id)
            .filter(WeighbridgeTicket.company_id == company_id, WeighbridgeTicket.no_seri == no_seri)
            .first()
        )
        if taken:
            raise DuplicateError("WeighbridgeTicket", field="no_seri", value=no_seri)

        ticket = WeighbridgeTicket(
            company_id=company_id,
            doc_number=self.sequences.next_number(company_id, WEIGHBRIDGE, tanggal),
            no_seri=no_seri,
            item_id=item_id,
            tanggal=tanggal,
            harga_per_kg=harga,
            pph_rate=pph,
            upah_bongkar_per_kg=upah,
            warehouse_id=warehouse_id,
            status=WeighbridgeStatus.DRAFT.value,
            gl_status=GLStatus.PENDING.value,
            created_by=actor_id,
            **weights,
            **extra,
        )
        self._apply_pricing(ticket)
        self.db.add(ticket)
        self.db.flush()

        logger.info(
            "Weighbridge ticket created",
            extra={
                "ticket_id": ticket.id,
                "no_seri": no_seri,
                "doc_number": ticket.doc_number,
                "berat_terima": ticket.berat_terima,
                "actor_id": actor_id,
            },
        )
        return ticket

    def _apply_pricing(self, ticket: WeighbridgeTicket) -> None:
        for field, value in calculate_pricing(
            ticket.berat_terima,
            ticket.harga_per_kg,
            ticket.pph_rate,
            ticket.upah_bongkar_per_kg,
        ).items():
            setattr(ticket, field, value)

    def _post(self, ticket: WeighbridgeTicket, actor_id: Optional[int]) -> WeighbridgeTicket:
        ticket.status = next_status(
            WEIGHBRIDGE_TRANSITIONS,
            ticket.status,
            WeighbridgeAction.POST,
            document="WeighbridgeTicket",
            document_id=ticket.id,
        )
        ticket.posted_by = actor_id
        ticket.posted_at = datetime.utcnow()
        self.db.flush()
        logger.info(
            "Weighbridge ticket posted",
            extra={"ticket_id": ticket.id, "no_seri": ticket.no_seri, "actor_id": actor_id},
        )
        return ticket

    def _post_gl(self, ticket: WeighbridgeTicket, actor_id: Optional[int]) -> None:
        amount = q_money(ticket.total_pembayaran_supplier)
        inventory_account_id = self.system_accounts.resolve(ticket.company_id, SystemAccountKey.INVENTORY_TBS)
        payable_account_id = self.system_accounts.resolve(ticket.company_id, SystemAccountKey.AP_SUPPLIER_TBS)

        entry = self.journal.post_entry(
            company_id=ticket.company_id,
            entry_date=ticket.tanggal,
            source_type=SOURCE_TYPE,
            source_id=ticket.id,
            memo=f"TBS purchase {ticket.no_seri}",
            lines=[
                JournalLineInput(
                    account_id=inventory_account_id,
                    debit=amount,
                    description=f"TBS {ticket.berat_terima} kg @ {ticket.harga_per_kg}",
                    warehouse_id=ticket.warehouse_id,
                    item_id=ticket.item_id,
                ),
                JournalLineInput(
                    account_id=payable_account_id,
                    credit=amount,
                    description=f"Supplier payable {ticket.no_seri}",
                ),
            ],
            actor_id=actor_id,
        )
        ticket.journal_entry_id = entry.id
        ticket.gl_status = GLStatus.POSTED.value

    def _get_for_update(self, ticket_id: int) -> WeighbridgeTicket:
        ticket = (
            self.db.query(WeighbridgeTicket)
            .filter(WeighbridgeTicket.id == ticket_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not ticket:
            raise NotFoundError("WeighbridgeTicket", ticket_id)
        return ticket
