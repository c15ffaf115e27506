from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List
from db import get_db
from models.models import Empresa, Orcamento, ItemOrcamento, Recibo, Parceiro
from schemas.schemas import OrcamentoCreate, OrcamentoOut, ReciboCreate, ReciboOut
from services.payroll_service import money
from services import pdf_service
from routers.empresas import get_empresa, get_owned, download

router = APIRouter(prefix="/empresas/{empresa_id}", tags=["comercial"])


def _proximo_numero(db: Session, model, empresa: Empresa) -> int:
    ultimo = db.query(func.max(model.numero)).filter(model.empresa_id == empresa.id).scalar()
    return (ultimo or 0) + 1


def _fill_orcamento(db: Session, orcamento: Orcamento, data: OrcamentoCreate, empresa: Empresa):
    cliente_nome = data.cliente_nome
    if data.cliente_id:
        cliente = get_owned(db, Parceiro, data.cliente_id, empresa, "Cliente não encontrado")
        cliente_nome = cliente_nome or cliente.razao_social
    if not cliente_nome:
        raise HTTPException(status_code=400, detail="Informe o cliente do orçamento")
    orcamento.cliente_id = data.cliente_id
    orcamento.cliente_nome = cliente_nome
    orcamento.data = data.data
    orcamento.validade = data.validade
    orcamento.observacoes = data.observacoes
    orcamento.itens = [ItemOrcamento(descricao=i.descricao, quantidade=i.quantidade,
                                     valor_unitario=i.valor_unitario,
                                     valor_total=money(i.quantidade * i.valor_unitario))
                       for i in data.itens]
    orcamento.valor_total = money(sum(i.valor_total for i in orcamento.itens))


# ── Orçamentos ───────────────────────────────────────────────────────────────

@router.get("/orcamentos", response_model=List[OrcamentoOut])
async def list_orcamentos(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Orcamento).filter(Orcamento.empresa_id == empresa.id)
            .order_by(Orcamento.numero.desc()).all())


@router.post("/orcamentos", response_model=OrcamentoOut, status_code=201)
async def create_orcamento(data: OrcamentoCreate, empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    orcamento = Orcamento(empresa_id=empresa.id, numero=_proximo_numero(db, Orcamento, empresa))
    _fill_orcamento(db, orcamento, data, empresa)
    db.add(orcamento)
    db.commit()
    db.refresh(orcamento)
    return orcamento


@router.get("/orcamentos/{orcamento_id}", response_model=OrcamentoOut)
async def get_orcamento(orcamento_id: int, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    return get_owned(db, Orcamento, orcamento_id, empresa, "Orçamento não encontrado")


@router.put("/orcamentos/{orcamento_id}", response_model=OrcamentoOut)
async def update_orcamento(orcamento_id: int, data: OrcamentoCreate,
                           empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    orcamento = get_owned(db, Orcamento, orcamento_id, empresa, "Orçamento não encontrado")
    _fill_orcamento(db, orcamento, data, empresa)
    db.commit()
    db.refresh(orcamento)
    return orcamento


@router.delete("/orcamentos/{orcamento_id}")
async def delete_orcamento(orcamento_id: int, empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    orcamento = get_owned(db, Orcamento, orcamento_id, empresa, "Orçamento não encontrado")
    db.delete(orcamento)
    db.commit()
    return {"ok": True}


@router.get("/orcamentos/{orcamento_id}/pdf")
async def orcamento_pdf(orcamento_id: int, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    orcamento = get_owned(db, Orcamento, orcamento_id, empresa, "Orçamento não encontrado")
    return download(pdf_service.orcamento_pdf(empresa, orcamento),
                    f"orcamento_{orcamento.numero:04d}.pdf")


# ── Recibos ──────────────────────────────────────────────────────────────────

@router.get("/recibos", response_model=List[ReciboOut])
async def list_recibos(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Recibo).filter(Recibo.empresa_id == empresa.id)
            .order_by(Recibo.numero.desc()).all())


@router.post("/recibos", response_model=ReciboOut, status_code=201)
async def create_recibo(data: ReciboCreate, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    recibo = Recibo(empresa_id=empresa.id, numero=_proximo_numero(db, Recibo, empresa),
                    **data.model_dump())
    db.add(recibo)
    db.commit()
    db.refresh(recibo)
    return recibo


@router.get("/recibos/{recibo_id}", response_model=ReciboOut)
async def get_recibo(recibo_id: int, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    return get_owned(db, Recibo, recibo_id, empresa, "Recibo não encontrado")


@router.put("/recibos/{recibo_id}", response_model=ReciboOut)
async def update_recibo(recibo_id: int, data: ReciboCreate,
                        empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    recibo = get_owned(db, Recibo, recibo_id, empresa, "Recibo não encontrado")
    for k, v in data.model_dump().items():
        setattr(recibo, k, v)
    db.commit()
    db.refresh(recibo)
    return recibo


@router.delete("/recibos/{recibo_id}")
async def delete_recibo(recibo_id: int, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    recibo = get_owned(db, Recibo, recibo_id, empresa, "Recibo não encontrado")
    db.delete(recibo)
    db.commit()
    return {"ok": True}


@router.get("/recibos/{recibo_id}/pdf")
async def recibo_pdf(recibo_id: int, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    recibo = get_owned(db, Recibo, recibo_id, empresa, "Recibo não encontrado")
    return download(pdf_service.recibo_pdf(empresa, recibo), f"recibo_{recibo.numero:04d}.pdf")
