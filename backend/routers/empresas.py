import io
import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, StreamingResponse
from sqlalchemy.orm import Session
from typing import List
from db import get_db
from models.models import User, Empresa, Estabelecimento, Rubrica, TipoRubrica, Ticket
from schemas.schemas import (EmpresaCreate, EmpresaUpdate, EmpresaOut, EstabelecimentoIn,
                             EstabelecimentoOut, BackupOut)
from routers.auth import get_current_user
from services import backup_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/empresas", tags=["empresas"])

# (código, descrição, tipo, INSS, FGTS, IRRF)
RUBRICAS_PADRAO = [
    ("0001", "Salário Base", TipoRubrica.provento, True, True, True),
    ("0002", "Horas Extras 50%", TipoRubrica.provento, True, True, True),
    ("0003", "Adicional Noturno", TipoRubrica.provento, True, True, True),
    ("0004", "Vale-Transporte", TipoRubrica.desconto, False, False, False),
    ("0005", "Salário Família", TipoRubrica.provento, False, False, False),
    ("0006", "Adicional de Periculosidade", TipoRubrica.provento, True, True, True),
    ("0007", "Insalubridade Grau Médio 20%", TipoRubrica.provento, True, True, True),
    ("0008", "Pró-labore", TipoRubrica.provento, True, False, True),
    ("0009", "Faltas", TipoRubrica.desconto, True, True, True),
]


async def get_empresa(empresa_id: int, db: Session = Depends(get_db),
                      current: User = Depends(get_current_user)) -> Empresa:
    """The company in the path, if it belongs to the authenticated user."""
    empresa = db.query(Empresa).filter(Empresa.id == empresa_id,
                                       Empresa.owner_id == current.id).first()
    if not empresa:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")
    return empresa


def get_owned(db: Session, model, obj_id: int, empresa: Empresa, detail: str):
    obj = db.query(model).filter(model.id == obj_id, model.empresa_id == empresa.id).first()
    if not obj:
        raise HTTPException(status_code=404, detail=detail)
    return obj


def download(content: bytes, filename: str, media_type: str = "application/pdf"):
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("", response_model=List[EmpresaOut])
async def list_empresas(db: Session = Depends(get_db),
                        current: User = Depends(get_current_user)):
    return (db.query(Empresa).filter(Empresa.owner_id == current.id)
            .order_by(Empresa.razao_social).all())


@router.post("", response_model=EmpresaOut, status_code=201)
async def create_empresa(data: EmpresaCreate, db: Session = Depends(get_db),
                         current: User = Depends(get_current_user)):
    if db.query(Empresa).filter(Empresa.owner_id == current.id,
                                Empresa.cnpj == data.cnpj).first():
        raise HTTPException(status_code=400, detail="Já existe uma empresa com este CNPJ")
    empresa = Empresa(owner_id=current.id, **data.model_dump())
    db.add(empresa)
    db.flush()
    for codigo, descricao, tipo, inss, fgts, irrf in RUBRICAS_PADRAO:
        db.add(Rubrica(empresa_id=empresa.id, codigo=codigo, descricao=descricao, tipo=tipo,
                       incide_inss=inss, incide_fgts=fgts, incide_irrf=irrf))
    db.commit()
    db.refresh(empresa)
    logger.info(f"Empresa {empresa.id} criada por {current.email}")
    return empresa


@router.get("/{empresa_id}", response_model=EmpresaOut)
async def get_empresa_detail(empresa: Empresa = Depends(get_empresa)):
    return empresa


@router.put("/{empresa_id}", response_model=EmpresaOut)
async def update_empresa(data: EmpresaUpdate, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(empresa, field, value)
    db.commit()
    db.refresh(empresa)
    return empresa


@router.delete("/{empresa_id}")
async def delete_empresa(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    backup_service.delete_company_data(db, empresa)
    # chamados sobrevivem à empresa, com o nome já gravado
    db.query(Ticket).filter(Ticket.empresa_id == empresa.id).update(
        {Ticket.empresa_id: None}, synchronize_session=False)
    db.delete(empresa)
    db.commit()
    logger.info(f"Empresa {empresa.id} removida")
    return {"ok": True}


# ── Estabelecimento ──────────────────────────────────────────────────────────

@router.get("/{empresa_id}/estabelecimento", response_model=EstabelecimentoOut)
async def get_estabelecimento(empresa: Empresa = Depends(get_empresa)):
    if not empresa.estabelecimento:
        raise HTTPException(status_code=404, detail="Ficha do estabelecimento não encontrada")
    return empresa.estabelecimento


@router.put("/{empresa_id}/estabelecimento", response_model=EstabelecimentoOut)
async def save_estabelecimento(data: EstabelecimentoIn, empresa: Empresa = Depends(get_empresa),
                               db: Session = Depends(get_db)):
    estab = empresa.estabelecimento
    if estab is None:
        estab = Estabelecimento(empresa_id=empresa.id)
        db.add(estab)
    for field, value in data.model_dump().items():
        setattr(estab, field, value)
    db.commit()
    db.refresh(estab)
    return estab


# ── Backup ───────────────────────────────────────────────────────────────────

@router.post("/{empresa_id}/backup", response_model=BackupOut)
async def backup_empresa(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return backup_service.create_backup(db, empresa)


@router.get("/{empresa_id}/backup/{nome}")
async def download_backup(nome: str, empresa: Empresa = Depends(get_empresa)):
    try:
        caminho = backup_service.backup_path(empresa, nome)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return FileResponse(caminho, media_type="application/json", filename=nome)
