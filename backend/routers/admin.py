from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
from db import get_db
from models.models import User, Ticket, StatusTicket
from schemas.schemas import (UserOut, UserStatusUpdate, UserLicencaUpdate, TicketOut,
                             TicketStatusUpdate)
from routers.auth import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return user


@router.get("/users", response_model=List[UserOut])
async def list_users(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


@router.put("/users/{user_id}/status", response_model=UserOut)
async def set_user_status(user_id: int, data: UserStatusUpdate,
                          db: Session = Depends(get_db),
                          admin: User = Depends(require_admin)):
    user = _get_user(db, user_id)
    if user.id == admin.id and data.disabled:
        raise HTTPException(status_code=400, detail="Você não pode desativar a sua própria conta")
    user.disabled = data.disabled
    db.commit()
    db.refresh(user)
    logger.info(f"Usuário {user.email} {'desativado' if user.disabled else 'reativado'} por {admin.email}")
    return user


@router.put("/users/{user_id}/licenca", response_model=UserOut)
async def set_user_license(user_id: int, data: UserLicencaUpdate,
                           db: Session = Depends(get_db),
                           admin: User = Depends(require_admin)):
    user = _get_user(db, user_id)
    user.license_type = data.license_type
    db.commit()
    db.refresh(user)
    logger.info(f"Licença de {user.email} alterada para {data.license_type.value}")
    return user


# ── Chamados de suporte ──────────────────────────────────────────────────────

@router.get("/tickets", response_model=List[TicketOut])
async def list_tickets(status: Optional[StatusTicket] = None, db: Session = Depends(get_db),
                       _: User = Depends(require_admin)):
    q = db.query(Ticket)
    if status:
        q = q.filter(Ticket.status == status)
    return q.order_by(Ticket.id.desc()).all()


@router.put("/tickets/{ticket_id}/status", response_model=TicketOut)
async def set_ticket_status(ticket_id: int, data: TicketStatusUpdate,
                            db: Session = Depends(get_db),
                            admin: User = Depends(require_admin)):
    ticket = db.query(Ticket).filter(Ticket.id == ticket_id).first()
    if not ticket:
        raise HTTPException(status_code=404, detail="Chamado não encontrado")
    ticket.status = data.status
    db.commit()
    db.refresh(ticket)
    logger.info(f"Chamado {ticket.numero} marcado como {data.status.value} por {admin.email}")
    return ticket
