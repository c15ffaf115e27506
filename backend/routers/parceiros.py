from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from db import get_db
from models.models import Empresa, Parceiro, TipoParceiro
from schemas.schemas import ParceiroCreate, ParceiroUpdate, ParceiroOut
from routers.empresas import get_empresa, get_owned

router = APIRouter(prefix="/empresas/{empresa_id}/parceiros", tags=["parceiros"])


@router.get("", response_model=List[ParceiroOut])
async def list_parceiros(tipo: Optional[TipoParceiro] = None,
                         empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    q = db.query(Parceiro).filter(Parceiro.empresa_id == empresa.id)
    if tipo:
        q = q.filter(Parceiro.tipo == tipo)
    return q.order_by(Parceiro.razao_social).all()


@router.post("", response_model=ParceiroOut, status_code=201)
async def create_parceiro(data: ParceiroCreate, empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    if db.query(Parceiro).filter(Parceiro.empresa_id == empresa.id,
                                 Parceiro.cpf_cnpj == data.cpf_cnpj,
                                 Parceiro.tipo == data.tipo).first():
        raise HTTPException(status_code=400, detail="Parceiro já cadastrado com este documento")
    parceiro = Parceiro(empresa_id=empresa.id, **data.model_dump())
    db.add(parceiro)
    db.commit()
    db.refresh(parceiro)
    return parceiro


@router.get("/{parceiro_id}", response_model=ParceiroOut)
async def get_parceiro(parceiro_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    return get_owned(db, Parceiro, parceiro_id, empresa, "Parceiro não encontrado")


@router.put("/{parceiro_id}", response_model=ParceiroOut)
async def update_parceiro(parceiro_id: int, data: ParceiroUpdate,
                          empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    parceiro = get_owned(db, Parceiro, parceiro_id, empresa, "Parceiro não encontrado")
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(parceiro, k, v)
    db.commit()
    db.refresh(parceiro)
    return parceiro


@router.delete("/{parceiro_id}")
async def delete_parceiro(parceiro_id: int, empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    parceiro = get_owned(db, Parceiro, parceiro_id, empresa, "Parceiro não encontrado")
    db.delete(parceiro)
    db.commit()
    return {"ok": True}
