"""
Weighbridge API Endpoints (Timbangan TBS)

Tickets are entered in two phases (weighing, then pricing), posted,
and approved into stock and the supplier payable.
"""
from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import (
    PaginationParams,
    get_actor_id,
    get_company_id,
    get_db,
    get_pagination_params,
)
from pks_ledger.schemas.weighbridge import (
    NoSeriResponse,
    WeighbridgeApprove,
    WeighbridgeBulkCreate,
    WeighbridgeBulkCreateResponse,
    WeighbridgeBulkPost,
    WeighbridgePricingUpdate,
    WeighbridgeReject,
    WeighbridgeTicketCreate,
    WeighbridgeTicketResponse,
    WeighbridgeWeighingUpdate,
)
from pks_ledger.services.weighbridge_service import WeighbridgeService

router = APIRouter()


@router.get("/", response_model=List[WeighbridgeTicketResponse])
async def list_tickets(
    company_id: int,
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    status: Optional[str] = None,
    supplier_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    item_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return WeighbridgeService(db).list(
        company_id,
        status=status,
        supplier_id=supplier_id,
        vehicle_id=vehicle_id,
        item_id=item_id,
        start_date=start_date,
        end_date=end_date,
        skip=pagination.skip,
        limit=pagination.limit,
    )


@router.get("/no-seri", response_model=NoSeriResponse)
async def next_no_seri(company_id: int, tanggal: date, db: Session = Depends(get_db)):
    """Reserve the next YYYYMMDD-NNN serial for the day"""
    return {"no_seri": WeighbridgeService(db).generate_no_seri(company_id, tanggal)}


@router.get("/{ticket_id}", response_model=WeighbridgeTicketResponse)
async def get_ticket(
    ticket_id: int,
    company_id: Optional[int] = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return WeighbridgeService(db).get(ticket_id, company_id)


@router.post("/", response_model=WeighbridgeTicketResponse, status_code=201)
async def create_ticket(
    request: WeighbridgeTicketCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Create a DRAFT ticket from the weighbridge reading

    netto1, pot_kg and berat_terima are derived when omitted and checked
    against timbang1/timbang2/pot_percent when sent.
    """
    ticket = WeighbridgeService(db).create_ticket(actor_id=actor_id, **request.model_dump())
    db.refresh(ticket)
    return ticket


@router.post("/bulk", response_model=WeighbridgeBulkCreateResponse, status_code=201)
async def bulk_create_tickets(
    request: WeighbridgeBulkCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Create the day's tickets; rejected rows are reported without stopping the rest"""
    created, errors = WeighbridgeService(db).bulk_create_tickets(
        request.company_id,
        [ticket.model_dump(exclude={"company_id"}) for ticket in request.tickets],
        actor_id=actor_id,
    )
    for ticket in created:
        db.refresh(ticket)
    return {"created": created, "errors": errors}


@router.patch("/{ticket_id}/weighing", response_model=WeighbridgeTicketResponse)
async def update_weighing(
    ticket_id: int,
    request: WeighbridgeWeighingUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    ticket = WeighbridgeService(db).update_weighing(
        ticket_id, actor_id=actor_id, **request.model_dump(exclude_unset=True)
    )
    db.refresh(ticket)
    return ticket


@router.put("/{ticket_id}/pricing", response_model=WeighbridgeTicketResponse)
async def update_pricing(
    ticket_id: int,
    request: WeighbridgePricingUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Set price per kg, PPh rate and unloading wage; totals are recomputed"""
    ticket = WeighbridgeService(db).update_pricing(
        ticket_id,
        request.harga_per_kg,
        request.pph_rate,
        request.upah_bongkar_per_kg,
        actor_id=actor_id,
    )
    db.refresh(ticket)
    return ticket


@router.post("/bulk-post", response_model=List[WeighbridgeTicketResponse])
async def bulk_post_tickets(
    request: WeighbridgeBulkPost,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Post several tickets; one that cannot be posted aborts them all"""
    tickets = WeighbridgeService(db).bulk_post(request.ticket_ids, actor_id=actor_id)
    for ticket in tickets:
        db.refresh(ticket)
    return tickets


@router.post("/{ticket_id}/post", response_model=WeighbridgeTicketResponse)
async def post_ticket(
    ticket_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    ticket = WeighbridgeService(db).post(ticket_id, actor_id=actor_id)
    db.refresh(ticket)
    return ticket


@router.post("/{ticket_id}/reject", response_model=WeighbridgeTicketResponse)
async def reject_ticket(
    ticket_id: int,
    request: WeighbridgeReject,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Send a POSTED ticket back to DRAFT"""
    ticket = WeighbridgeService(db).reject(ticket_id, actor_id=actor_id, reason=request.reason)
    db.refresh(ticket)
    return ticket


@router.post("/{ticket_id}/approve", response_model=WeighbridgeTicketResponse)
async def approve_ticket(
    ticket_id: int,
    request: WeighbridgeApprove,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Approve a POSTED ticket

    Receives berat_terima at harga_per_kg into the warehouse and posts
    Dr Inventory TBS / Cr AP Supplier TBS for the supplier payment. Nothing
    is kept when any step fails.
    """
    ticket = WeighbridgeService(db).approve(ticket_id, warehouse_id=request.warehouse_id, actor_id=actor_id)
    db.refresh(ticket)
    return ticket


@router.delete("/{ticket_id}")
async def delete_ticket(
    ticket_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    WeighbridgeService(db).delete(ticket_id, actor_id=actor_id)
    return {"message": f"Weighbridge ticket {ticket_id} deleted"}
