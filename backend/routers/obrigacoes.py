import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from db import get_db
from models.models import (Empresa, Lancamento, FolhaPagamento, Rci, Rubrica, Pgdas,
                           ArquivoEfd, ArquivoReinf, EventoEsocial, TipoLancamento,
                           StatusLancamento, AnexoSimples)
from schemas.schemas import (PgdasIn, PgdasOut, EfdIn, ReinfIn, ArquivoEfdOut, ArquivoReinfOut,
                             EsocialIn, EventoEsocialOut)
from services.pgdas_service import calculate_simples
from services.efd_contribuicoes_service import generate_efd_contribuicoes, encode_efd
from services.reinf_service import generate_reinf
from services import esocial_service
from services.parser_service import periodo_bounds, previous_periods
from services.payroll_service import money
from services import pdf_service
from routers.empresas import get_empresa, get_owned, download

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/empresas/{empresa_id}", tags=["obrigacoes"])


def _lancamentos(db: Session, empresa: Empresa, inicio: date, fim: date) -> List[Lancamento]:
    return db.query(Lancamento).filter(Lancamento.empresa_id == empresa.id,
                                       Lancamento.data >= inicio,
                                       Lancamento.data <= fim).all()


def receita_bruta(db: Session, empresa: Empresa, inicio: date, fim: date) -> float:
    """Gross revenue: non-cancelled outgoing NF-e plus services rendered."""
    return money(sum(l.valor_documento for l in _lancamentos(db, empresa, inicio, fim)
                     if l.tipo in (TipoLancamento.saida, TipoLancamento.servico)
                     and l.status != StatusLancamento.cancelado))


def _folha_12m(db: Session, empresa: Empresa, periodos: List[str]) -> float:
    total = 0.0
    for model in (FolhaPagamento, Rci):
        total += sum(r.total_proventos or 0.0 for r in db.query(model).filter(
            model.empresa_id == empresa.id, model.periodo.in_(periodos)))
    return money(total)


# ── PGDAS ────────────────────────────────────────────────────────────────────

def _calcular_pgdas(db: Session, empresa: Empresa, data: PgdasIn):
    anteriores = previous_periods(data.periodo)
    rpa = data.rpa
    if rpa is None:
        rpa = receita_bruta(db, empresa, *periodo_bounds(data.periodo))
    rbt12 = data.rbt12
    if rbt12 is None:
        rbt12 = receita_bruta(db, empresa, periodo_bounds(anteriores[0])[0],
                              periodo_bounds(anteriores[-1])[1])
    anexo = data.anexo or (empresa.anexo_simples or AnexoSimples.I).value
    folha = data.folha_12m
    if anexo == "auto" and folha is None:
        folha = _folha_12m(db, empresa, anteriores)
    try:
        return calculate_simples(rpa, rbt12, anexo, folha)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/pgdas/calcular")
async def preview_pgdas(data: PgdasIn, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    return _calcular_pgdas(db, empresa, data)


@router.post("/pgdas", response_model=PgdasOut)
async def save_pgdas(data: PgdasIn, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    calc = _calcular_pgdas(db, empresa, data)
    pgdas = db.query(Pgdas).filter(Pgdas.empresa_id == empresa.id,
                                   Pgdas.periodo == data.periodo).first()
    if pgdas is None:
        pgdas = Pgdas(empresa_id=empresa.id, periodo=data.periodo)
        db.add(pgdas)
    pgdas.anexo = AnexoSimples(calc['anexo'])
    for field in ('rpa', 'rbt12', 'aliquota_nominal', 'parcela_deduzir', 'aliquota_efetiva',
                  'valor_das'):
        setattr(pgdas, field, calc[field])
    db.commit()
    db.refresh(pgdas)
    return pgdas


@router.get("/pgdas", response_model=List[PgdasOut])
async def list_pgdas(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Pgdas).filter(Pgdas.empresa_id == empresa.id)
            .order_by(Pgdas.id.desc()).all())


@router.delete("/pgdas/{pgdas_id}")
async def delete_pgdas(pgdas_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    pgdas = get_owned(db, Pgdas, pgdas_id, empresa, "Apuração não encontrada")
    db.delete(pgdas)
    db.commit()
    return {"ok": True}


@router.get("/pgdas/{pgdas_id}/pdf")
async def pgdas_pdf(pgdas_id: int, empresa: Empresa = Depends(get_empresa),
                    db: Session = Depends(get_db)):
    pgdas = get_owned(db, Pgdas, pgdas_id, empresa, "Apuração não encontrada")
    return download(pdf_service.pgdas_pdf(empresa, pgdas),
                    f"pgdas_{pgdas.periodo.replace('/', '')}.pdf")


# ── EFD-Contribuições ────────────────────────────────────────────────────────

@router.post("/efd-contribuicoes")
async def generate_efd(data: EfdIn, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    lancamentos = _lancamentos(db, empresa, *periodo_bounds(data.periodo))
    try:
        arquivo = generate_efd_contribuicoes(empresa, lancamentos, data.periodo,
                                             data.sem_movimento, data.tipo_escrituracao,
                                             data.recibo_anterior)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.add(ArquivoEfd(empresa_id=empresa.id, nome_arquivo=arquivo['nome_arquivo'],
                      periodo=data.periodo, tipo_escrituracao=data.tipo_escrituracao,
                      sem_movimento=data.sem_movimento, conteudo=arquivo['conteudo']))
    db.commit()
    return download(encode_efd(arquivo['conteudo']), arquivo['nome_arquivo'],
                    "text/plain; charset=iso-8859-1")


@router.get("/efd-contribuicoes", response_model=List[ArquivoEfdOut])
async def list_efd(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(ArquivoEfd).filter(ArquivoEfd.empresa_id == empresa.id)
            .order_by(ArquivoEfd.id.desc()).all())


@router.get("/efd-contribuicoes/{arquivo_id}/download")
async def download_efd(arquivo_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    arquivo = get_owned(db, ArquivoEfd, arquivo_id, empresa, "Arquivo não encontrado")
    return download(encode_efd(arquivo.conteudo), arquivo.nome_arquivo,
                    "text/plain; charset=iso-8859-1")


# ── EFD-Reinf ────────────────────────────────────────────────────────────────

@router.post("/reinf")
async def generate_reinf_file(data: ReinfIn, empresa: Empresa = Depends(get_empresa),
                              db: Session = Depends(get_db)):
    lancamentos = _lancamentos(db, empresa, *periodo_bounds(data.periodo))
    try:
        arquivo = generate_reinf(empresa, lancamentos, data.periodo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    tipos = "/".join(dict.fromkeys(e['tipo'] for e in arquivo['eventos']))
    db.add(ArquivoReinf(empresa_id=empresa.id, nome_arquivo=arquivo['nome_arquivo'],
                        periodo=data.periodo, tipo=tipos, conteudo=arquivo['conteudo']))
    db.commit()
    return download(arquivo['conteudo'].encode("utf-8"), arquivo['nome_arquivo'],
                    "application/xml")


@router.get("/reinf", response_model=List[ArquivoReinfOut])
async def list_reinf(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(ArquivoReinf).filter(ArquivoReinf.empresa_id == empresa.id)
            .order_by(ArquivoReinf.id.desc()).all())


@router.get("/reinf/{arquivo_id}/download")
async def download_reinf(arquivo_id: int, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    arquivo = get_owned(db, ArquivoReinf, arquivo_id, empresa, "Arquivo não encontrado")
    return download(arquivo.conteudo.encode("utf-8"), arquivo.nome_arquivo, "application/xml")


# ── eSocial ──────────────────────────────────────────────────────────────────

@router.post("/esocial", response_model=EventoEsocialOut, status_code=201)
async def generate_esocial(data: EsocialIn, empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    seq = (empresa.esocial_seq or 0) + 1
    kwargs = {'periodo': data.periodo}
    if data.tipo == "S-1010":
        kwargs['rubricas'] = (db.query(Rubrica).filter(Rubrica.empresa_id == empresa.id)
                              .order_by(Rubrica.codigo).all())
    elif data.tipo == "S-1200":
        if not data.folha_id:
            raise HTTPException(status_code=400,
                                detail="Informe a folha de pagamento para gerar o evento S-1200.")
        kwargs['folha'] = get_owned(db, FolhaPagamento, data.folha_id, empresa,
                                    "Folha não encontrada")
    elif data.tipo == "S-1299" and data.periodo:
        kwargs['folhas'] = db.query(FolhaPagamento).filter(
            FolhaPagamento.empresa_id == empresa.id,
            FolhaPagamento.periodo == data.periodo).all()
    try:
        gerado = esocial_service.generate_event(data.tipo, empresa, seq, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    evento = EventoEsocial(empresa_id=empresa.id, **gerado)
    db.add(evento)
    empresa.esocial_seq = seq
    db.commit()
    db.refresh(evento)
    return evento


@router.get("/esocial", response_model=List[EventoEsocialOut])
async def list_esocial(tipo: Optional[str] = None, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    q = db.query(EventoEsocial).filter(EventoEsocial.empresa_id == empresa.id)
    if tipo:
        q = q.filter(EventoEsocial.tipo == tipo)
    return q.order_by(EventoEsocial.id.desc()).all()


@router.get("/esocial/{evento_id}", response_model=EventoEsocialOut)
async def get_esocial(evento_id: int, empresa: Empresa = Depends(get_empresa),
                      db: Session = Depends(get_db)):
    return get_owned(db, EventoEsocial, evento_id, empresa, "Evento não encontrado")


@router.post("/esocial/{evento_id}/enviar", response_model=EventoEsocialOut)
async def send_esocial(evento_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    evento = get_owned(db, EventoEsocial, evento_id, empresa, "Evento não encontrado")
    try:
        esocial_service.enviar_evento(evento)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(evento)
    return evento


@router.post("/esocial/{evento_id}/consultar", response_model=EventoEsocialOut)
async def check_esocial(evento_id: int, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    evento = get_owned(db, EventoEsocial, evento_id, empresa, "Evento não encontrado")
    try:
        esocial_service.consultar_evento(evento, empresa.cnpj)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(evento)
    return evento


@router.get("/esocial/{evento_id}/xml")
async def download_esocial(evento_id: int, empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    evento = get_owned(db, EventoEsocial, evento_id, empresa, "Evento não encontrado")
    return download(evento.payload.encode("utf-8"), f"{evento.event_id}.xml", "application/xml")


@router.delete("/esocial/{evento_id}")
async def delete_esocial(evento_id: int, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    evento = get_owned(db, EventoEsocial, evento_id, empresa, "Evento não encontrado")
    db.delete(evento)
    db.commit()
    return {"ok": True}
