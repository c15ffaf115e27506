from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging
from db import get_db
from models.models import User, Empresa, Ticket
from schemas.schemas import TicketIn, TicketOut
from routers.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post("", response_model=TicketOut, status_code=201)
async def create_ticket(data: TicketIn, db: Session = Depends(get_db),
                        current: User = Depends(get_current_user)):
    empresa = None
    if data.empresa_id:
        empresa = db.query(Empresa).filter(Empresa.id == data.empresa_id,
                                           Empresa.owner_id == current.id).first()
        if not empresa:
            raise HTTPException(status_code=404, detail="Empresa não encontrada")
    ticket = Ticket(user_id=current.id, solicitante=current.email,
                    empresa_id=empresa.id if empresa else None,
                    empresa_nome=empresa.razao_social if empresa else None,
                    local_problema=data.local_problema.strip(), descricao=data.descricao.strip())
    db.add(ticket)
    db.flush()
    ticket.numero = f"T-{ticket.id:06d}"
    db.commit()
    db.refresh(ticket)
    logger.info(f"Chamado {ticket.numero} aberto por {current.email}")
    return ticket


@router.get("", response_model=List[TicketOut])
async def list_my_tickets(db: Session = Depends(get_db),
                          current: User = Depends(get_current_user)):
    return (db.query(Ticket).filter(Ticket.user_id == current.id)
            .order_by(Ticket.id.desc()).all())
