import io
import csv
import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from db import get_db
from models.models import (Empresa, Lancamento, ItemLancamento, Aliquota, TipoLancamento,
                           StatusLancamento)
from schemas.schemas import (LancamentoCreate, LancamentoUpdate, LancamentoOut,
                             ImportacaoResultado, AliquotaCreate, AliquotaOut)
from services.xml_service import classify_xml
from routers.empresas import get_empresa, get_owned

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/empresas/{empresa_id}", tags=["fiscal"])


def _filtered(db: Session, empresa: Empresa, tipo: Optional[TipoLancamento],
              data_inicio: Optional[date], data_fim: Optional[date]):
    q = db.query(Lancamento).filter(Lancamento.empresa_id == empresa.id)
    if tipo:
        q = q.filter(Lancamento.tipo == tipo)
    if data_inicio:
        q = q.filter(Lancamento.data >= data_inicio)
    if data_fim:
        q = q.filter(Lancamento.data <= data_fim)
    return q


def _duplicado(db: Session, empresa: Empresa, dados: dict) -> bool:
    q = db.query(Lancamento).filter(Lancamento.empresa_id == empresa.id)
    if dados.get('chave_nfe'):
        return q.filter(Lancamento.chave_nfe == dados['chave_nfe']).first() is not None
    if dados.get('numero_nfse'):
        return q.filter(Lancamento.numero_nfse == dados['numero_nfse'],
                        Lancamento.prestador_cnpj == dados.get('prestador_cnpj')).first() is not None
    return False


# ── Lançamentos ──────────────────────────────────────────────────────────────

@router.get("/lancamentos", response_model=List[LancamentoOut])
async def list_lancamentos(tipo: Optional[TipoLancamento] = None,
                           data_inicio: Optional[date] = None,
                           data_fim: Optional[date] = None,
                           empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    return _filtered(db, empresa, tipo, data_inicio, data_fim).order_by(
        Lancamento.data.desc(), Lancamento.id.desc()).all()


@router.post("/lancamentos", response_model=LancamentoOut, status_code=201)
async def create_lancamento(data: LancamentoCreate, empresa: Empresa = Depends(get_empresa),
                            db: Session = Depends(get_db)):
    fields = data.model_dump(exclude={"itens"})
    if _duplicado(db, empresa, fields):
        raise HTTPException(status_code=400, detail="Documento fiscal já lançado")
    lancamento = Lancamento(empresa_id=empresa.id, **fields)
    lancamento.itens = [ItemLancamento(**i.model_dump()) for i in data.itens]
    db.add(lancamento)
    db.commit()
    db.refresh(lancamento)
    return lancamento


# Declared before /lancamentos/{lancamento_id} so "export" is not read as an id
@router.get("/lancamentos/export/csv")
async def export_csv(tipo: Optional[TipoLancamento] = None,
                     data_inicio: Optional[date] = None,
                     data_fim: Optional[date] = None,
                     empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    lancamentos = _filtered(db, empresa, tipo, data_inicio, data_fim).order_by(
        Lancamento.data).all()
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";")
    writer.writerow(["ID", "Tipo", "Status", "Data", "Número", "Chave / NFS-e",
                     "Emitente / Prestador", "Destinatário / Tomador", "Valor",
                     "PIS", "COFINS", "ISS", "INSS retido"])
    for l in lancamentos:
        origem = l.emitente_nome or l.prestador_nome
        destino = l.destinatario_nome or l.tomador_nome
        writer.writerow([l.id, l.tipo.value, l.status.value, l.data.isoformat(), l.numero or "",
                         l.chave or "", origem or "", destino or "", f"{l.valor_documento:.2f}",
                         f"{l.valor_pis or 0:.2f}", f"{l.valor_cofins or 0:.2f}",
                         f"{l.valor_iss or 0:.2f}", f"{l.valor_inss or 0:.2f}"])
    output.seek(0)
    return StreamingResponse(
        io.BytesIO(output.getvalue().encode("utf-8-sig")),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=lancamentos.csv"},
    )


@router.get("/lancamentos/{lancamento_id}", response_model=LancamentoOut)
async def get_lancamento(lancamento_id: int, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    return get_owned(db, Lancamento, lancamento_id, empresa, "Lançamento não encontrado")


@router.put("/lancamentos/{lancamento_id}", response_model=LancamentoOut)
async def update_lancamento(lancamento_id: int, data: LancamentoUpdate,
                            empresa: Empresa = Depends(get_empresa),
                            db: Session = Depends(get_db)):
    lancamento = get_owned(db, Lancamento, lancamento_id, empresa, "Lançamento não encontrado")
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(lancamento, k, v)
    db.commit()
    db.refresh(lancamento)
    return lancamento


@router.delete("/lancamentos/{lancamento_id}")
async def delete_lancamento(lancamento_id: int, empresa: Empresa = Depends(get_empresa),
                            db: Session = Depends(get_db)):
    lancamento = get_owned(db, Lancamento, lancamento_id, empresa, "Lançamento não encontrado")
    db.delete(lancamento)
    db.commit()
    return {"ok": True}


# ── Importação de XML ────────────────────────────────────────────────────────

@router.post("/lancamentos/importar", response_model=ImportacaoResultado)
async def import_xml(files: List[UploadFile] = File(...),
                     empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    resultado = ImportacaoResultado()
    for file in files:
        nome = file.filename or "arquivo.xml"
        content = await file.read()
        try:
            doc = classify_xml(content, empresa.cnpj)
        except ValueError as e:
            resultado.erros.append(f"{nome}: {e}")
            continue

        if doc['tipo'] == 'cancelamento':
            lancamento = db.query(Lancamento).filter(
                Lancamento.empresa_id == empresa.id,
                Lancamento.chave_nfe == doc['chave']).first()
            if lancamento is None:
                resultado.erros.append(f"{nome}: nota cancelada não encontrada nos lançamentos")
                continue
            lancamento.status = StatusLancamento.cancelado
            resultado.cancelados += 1
            continue

        if doc['tipo'] == 'desconhecido':
            resultado.desconhecidos.append(nome)
            continue

        dados = dict(doc['dados'])
        itens = dados.pop('itens', [])
        if dados.get('data') is None:
            resultado.erros.append(f"{nome}: data de emissão ausente")
            continue
        if _duplicado(db, empresa, dados):
            resultado.duplicados += 1
            continue

        lancamento = Lancamento(empresa_id=empresa.id, tipo=TipoLancamento(doc['tipo']),
                                arquivo_nome=nome, **dados)
        lancamento.itens = [ItemLancamento(**i) for i in itens]
        db.add(lancamento)
        db.flush()
        resultado.importados += 1

    db.commit()
    logger.info(f"Importação empresa {empresa.id}: {resultado.importados} importados, "
                f"{resultado.duplicados} duplicados, {resultado.cancelados} cancelados, "
                f"{len(resultado.erros)} erros")
    return resultado


# ── Alíquotas ────────────────────────────────────────────────────────────────

@router.get("/aliquotas", response_model=List[AliquotaOut])
async def list_aliquotas(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Aliquota).filter(Aliquota.empresa_id == empresa.id)
            .order_by(Aliquota.esfera, Aliquota.nome_do_imposto).all())


@router.post("/aliquotas", response_model=AliquotaOut, status_code=201)
async def create_aliquota(data: AliquotaCreate, empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    aliquota = Aliquota(empresa_id=empresa.id, **data.model_dump())
    db.add(aliquota)
    db.commit()
    db.refresh(aliquota)
    return aliquota


@router.put("/aliquotas/{aliquota_id}", response_model=AliquotaOut)
async def update_aliquota(aliquota_id: int, data: AliquotaCreate,
                          empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    aliquota = get_owned(db, Aliquota, aliquota_id, empresa, "Alíquota não encontrada")
    for k, v in data.model_dump().items():
        setattr(aliquota, k, v)
    db.commit()
    db.refresh(aliquota)
    return aliquota


@router.delete("/aliquotas/{aliquota_id}")
async def delete_aliquota(aliquota_id: int, empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    aliquota = get_owned(db, Aliquota, aliquota_id, empresa, "Alíquota não encontrada")
    db.delete(aliquota)
    db.commit()
    return {"ok": True}
