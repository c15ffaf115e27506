from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import date
from typing import Dict, List, Optional
from db import get_db
from models.models import (Empresa, Lancamento, Funcionario, EventoEsocial, TipoLancamento,
                           StatusLancamento, StatusEsocial)
from schemas.schemas import DashboardStats, RelatorioMensal, ValorMensal
from services.parser_service import periodo_bounds
from services import pdf_service
from services.payroll_service import money
from routers.empresas import get_empresa, download

router = APIRouter(prefix="/empresas/{empresa_id}", tags=["dashboard"])


def _validos(db: Session, empresa: Empresa, inicio: date, fim: date):
    return db.query(Lancamento).filter(Lancamento.empresa_id == empresa.id,
                                       Lancamento.status != StatusLancamento.cancelado,
                                       Lancamento.data >= inicio,
                                       Lancamento.data <= fim).all()


@router.get("/dashboard", response_model=DashboardStats)
async def get_stats(periodo: Optional[str] = None, empresa: Empresa = Depends(get_empresa),
                    db: Session = Depends(get_db)):
    if not periodo:
        today = date.today()
        periodo = f"{today.month:02d}/{today.year}"
    try:
        inicio, fim = periodo_bounds(periodo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    lancamentos = _validos(db, empresa, inicio, fim)
    totais = {tipo: 0.0 for tipo in TipoLancamento}
    for l in lancamentos:
        totais[l.tipo] += l.valor_documento

    ativos = db.query(func.count(Funcionario.id)).filter(
        Funcionario.empresa_id == empresa.id, Funcionario.ativo == True).scalar() or 0  # noqa: E712

    pendentes = db.query(func.count(EventoEsocial.id)).filter(
        EventoEsocial.empresa_id == empresa.id,
        EventoEsocial.status.in_([StatusEsocial.pending, StatusEsocial.error])).scalar() or 0

    return DashboardStats(
        periodo=periodo,
        total_entradas=money(totais[TipoLancamento.entrada]),
        total_saidas=money(totais[TipoLancamento.saida]),
        total_servicos=money(totais[TipoLancamento.servico]),
        lancamentos_mes=len(lancamentos),
        funcionarios_ativos=ativos,
        eventos_esocial_pendentes=pendentes,
    )


def _por_mes(db: Session, empresa: Empresa, ano: int, tipos) -> RelatorioMensal:
    meses = {m: 0.0 for m in range(1, 13)}
    for l in _validos(db, empresa, date(ano, 1, 1), date(ano, 12, 31)):
        if l.tipo in tipos:
            meses[l.data.month] += l.valor_documento
    valores = [ValorMensal(mes=m, total=money(v)) for m, v in meses.items()]
    return RelatorioMensal(ano=ano, meses=valores, total=money(sum(meses.values())))


@router.get("/relatorios/faturamento", response_model=RelatorioMensal)
async def faturamento(ano: int, empresa: Empresa = Depends(get_empresa),
                      db: Session = Depends(get_db)):
    return _por_mes(db, empresa, ano, (TipoLancamento.saida, TipoLancamento.servico))


@router.get("/relatorios/compras", response_model=RelatorioMensal)
async def compras(ano: int, empresa: Empresa = Depends(get_empresa),
                  db: Session = Depends(get_db)):
    return _por_mes(db, empresa, ano, (TipoLancamento.entrada,))


# ── Relatórios em PDF ────────────────────────────────────────────────────────

def _zerado() -> Dict:
    return {'total': 0.0, 'normal': 0.0, 'cancelado': 0.0}


def _resumo_anual(lancamentos) -> List[Dict]:
    """Revenue and costs per month split by status; saldo counts normal documents only."""
    meses = [{'mes': m, 'faturamento': _zerado(), 'custos': _zerado(), 'saldo': 0.0}
             for m in range(1, 13)]
    for l in lancamentos:
        mes = meses[l.data.month - 1]
        grupo = mes['custos'] if l.tipo == TipoLancamento.entrada else mes['faturamento']
        grupo['total'] += l.valor_documento
        if l.status == StatusLancamento.normal:
            grupo['normal'] += l.valor_documento
        elif l.status == StatusLancamento.cancelado:
            grupo['cancelado'] += l.valor_documento
    for mes in meses:
        mes['saldo'] = mes['faturamento']['normal'] - mes['custos']['normal']
    return meses


@router.get("/relatorios/anual/pdf")
async def relatorio_anual_pdf(ano: int, empresa: Empresa = Depends(get_empresa),
                              db: Session = Depends(get_db)):
    lancamentos = db.query(Lancamento).filter(Lancamento.empresa_id == empresa.id,
                                              Lancamento.data >= date(ano, 1, 1),
                                              Lancamento.data <= date(ano, 12, 31)).all()
    if not lancamentos:
        raise HTTPException(status_code=400,
                            detail="Nenhum lançamento fiscal encontrado para o ano selecionado.")
    pdf = pdf_service.relatorio_anual_pdf(empresa, ano, _resumo_anual(lancamentos))
    return download(pdf, f"relatorio_anual_{ano}.pdf")


@router.get("/relatorios/receita-bruta/pdf")
async def receita_bruta_pdf(periodo: str, empresa: Empresa = Depends(get_empresa),
                            db: Session = Depends(get_db)):
    try:
        inicio, fim = periodo_bounds(periodo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    normais = [l for l in _validos(db, empresa, inicio, fim)
               if l.status == StatusLancamento.normal]
    comercio = sum(l.valor_documento for l in normais if l.tipo == TipoLancamento.saida)
    servicos = sum(l.valor_documento for l in normais if l.tipo == TipoLancamento.servico)
    pdf = pdf_service.receita_bruta_pdf(empresa, periodo, money(comercio), money(servicos))
    return download(pdf, f"receita_bruta_{inicio:%m%Y}.pdf")


@router.get("/relatorios/compras/pdf")
async def compras_pdf(data_inicio: Optional[date] = None, data_fim: Optional[date] = None,
                      empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    q = db.query(Lancamento).filter(Lancamento.empresa_id == empresa.id,
                                    Lancamento.tipo == TipoLancamento.entrada,
                                    Lancamento.status != StatusLancamento.cancelado)
    if data_inicio:
        q = q.filter(Lancamento.data >= data_inicio)
    if data_fim:
        q = q.filter(Lancamento.data <= data_fim)
    try:
        pdf = pdf_service.compras_pdf(empresa, q.all(), data_inicio, data_fim)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return download(pdf, "relatorio_compras.pdf")
