from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from db import get_db
from models.models import Empresa, ContaContabil
from schemas.schemas import ContaContabilCreate, ContaContabilOut
from routers.empresas import get_empresa, get_owned, download
from services import pdf_service

router = APIRouter(prefix="/empresas/{empresa_id}/contas", tags=["contabil"])


@router.get("", response_model=List[ContaContabilOut])
async def list_contas(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(ContaContabil).filter(ContaContabil.empresa_id == empresa.id)
            .order_by(ContaContabil.codigo).all())


@router.get("/relatorio/pdf")
async def plano_contas_pdf(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    contas = (db.query(ContaContabil).filter(ContaContabil.empresa_id == empresa.id)
              .order_by(ContaContabil.codigo).all())
    try:
        pdf = pdf_service.plano_contas_pdf(empresa, contas)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return download(pdf, "plano_de_contas.pdf")


@router.post("", response_model=ContaContabilOut, status_code=201)
async def create_conta(data: ContaContabilCreate, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    if db.query(ContaContabil).filter(ContaContabil.empresa_id == empresa.id,
                                      ContaContabil.codigo == data.codigo).first():
        raise HTTPException(status_code=400, detail="Já existe uma conta com este código")
    conta = ContaContabil(empresa_id=empresa.id, **data.model_dump())
    db.add(conta)
    db.commit()
    db.refresh(conta)
    return conta


@router.get("/{conta_id}", response_model=ContaContabilOut)
async def get_conta(conta_id: int, empresa: Empresa = Depends(get_empresa),
                    db: Session = Depends(get_db)):
    return get_owned(db, ContaContabil, conta_id, empresa, "Conta não encontrada")


@router.put("/{conta_id}", response_model=ContaContabilOut)
async def update_conta(conta_id: int, data: ContaContabilCreate,
                       empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    conta = get_owned(db, ContaContabil, conta_id, empresa, "Conta não encontrada")
    for k, v in data.model_dump().items():
        setattr(conta, k, v)
    db.commit()
    db.refresh(conta)
    return conta


@router.delete("/{conta_id}")
async def delete_conta(conta_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    conta = get_owned(db, ContaContabil, conta_id, empresa, "Conta não encontrada")
    db.delete(conta)
    db.commit()
    return {"ok": True}
