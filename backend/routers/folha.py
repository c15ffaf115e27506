import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from db import get_db
from models.models import (Empresa, Funcionario, Socio, Rubrica, FolhaPagamento, Rci, Ferias,
                           Rescisao, DecimoTerceiro, StatusFolha)
from schemas.schemas import (EventoIn, FolhaCalculoIn, FolhaOut, RciCalculoIn, RciOut, FeriasIn,
                             FeriasOut, RescisaoIn, RescisaoOut, DecimoTerceiroIn,
                             DecimoTerceiroOut)
from services.payroll_service import apply_automatic_events, calculate_payroll
from services.verbas_service import (calculate_vacation, calculate_termination,
                                     calculate_thirteenth, meses_trabalhados_no_ano,
                                     periodo_aquisitivo)
from services.parser_service import format_brl, format_date_br, periodo_bounds
from services import pdf_service
from routers.empresas import get_empresa, get_owned, download

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/empresas/{empresa_id}", tags=["folha"])

RUBRICA_SALARIO_BASE = "0001"
RUBRICA_PRO_LABORE = "0008"


def _rubrica_dict(r: Rubrica) -> Dict:
    return {'codigo': r.codigo, 'descricao': r.descricao, 'tipo': r.tipo.value,
            'incide_inss': bool(r.incide_inss), 'incide_fgts': bool(r.incide_fgts),
            'incide_irrf': bool(r.incide_irrf)}


def _rubrica_por_codigo(db: Session, empresa: Empresa, codigo: str) -> Optional[Rubrica]:
    return db.query(Rubrica).filter(Rubrica.empresa_id == empresa.id,
                                    Rubrica.codigo == codigo).first()


def _build_eventos(db: Session, empresa: Empresa, eventos: List[EventoIn]) -> List[Dict]:
    result = []
    for e in eventos:
        rubrica = get_owned(db, Rubrica, e.rubrica_id, empresa, "Rubrica não encontrada")
        result.append({'rubrica': _rubrica_dict(rubrica), 'referencia': e.referencia,
                       'provento': e.provento, 'desconto': e.desconto})
    return result


def _eventos_padrao(db: Session, empresa: Empresa, codigo: str, valor: float,
                    fallback: Dict) -> List[Dict]:
    """Single event used when the request carries none: salário base or pró-labore."""
    rubrica = _rubrica_por_codigo(db, empresa, codigo)
    return [{'rubrica': _rubrica_dict(rubrica) if rubrica else fallback,
             'referencia': 30, 'provento': valor, 'desconto': 0.0}]


def _calcular_folha(db: Session, empresa: Empresa, data: FolhaCalculoIn):
    funcionario = get_owned(db, Funcionario, data.funcionario_id, empresa,
                            "Funcionário não encontrado")
    if data.eventos:
        eventos = _build_eventos(db, empresa, data.eventos)
    else:
        eventos = _eventos_padrao(db, empresa, RUBRICA_SALARIO_BASE, funcionario.salario_base,
                                  {'codigo': RUBRICA_SALARIO_BASE, 'descricao': 'Salário Base',
                                   'tipo': 'provento', 'incide_inss': True,
                                   'incide_fgts': True, 'incide_irrf': True})
    eventos = apply_automatic_events(eventos, funcionario.salario_base,
                                     funcionario.dependentes_salario_familia)
    return funcionario, calculate_payroll(eventos, funcionario.dependentes_irrf)


def _periodo_arquivo(periodo: str) -> str:
    return periodo.replace("/", "")


# ── Folha de pagamento ───────────────────────────────────────────────────────

@router.post("/folhas/calcular")
async def preview_folha(data: FolhaCalculoIn, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    _, calc = _calcular_folha(db, empresa, data)
    return calc


@router.post("/folhas", response_model=FolhaOut)
async def save_folha(data: FolhaCalculoIn, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    funcionario, calc = _calcular_folha(db, empresa, data)
    folha = db.query(FolhaPagamento).filter(FolhaPagamento.empresa_id == empresa.id,
                                            FolhaPagamento.funcionario_id == funcionario.id,
                                            FolhaPagamento.periodo == data.periodo).first()
    if folha and folha.status == StatusFolha.finalizada:
        raise HTTPException(status_code=409,
                            detail="Folha finalizada não pode ser recalculada")
    if folha is None:
        folha = FolhaPagamento(empresa_id=empresa.id, funcionario_id=funcionario.id,
                               periodo=data.periodo)
        db.add(folha)
    folha.status = StatusFolha.calculada
    folha.eventos = calc['eventos']
    folha.total_proventos = calc['total_proventos']
    folha.total_descontos = calc['total_descontos']
    folha.liquido = calc['liquido']
    folha.base_inss = calc['base_inss']
    folha.base_irrf = calc['base_irrf']
    folha.base_fgts = calc['base_fgts']
    folha.valor_inss = calc['inss']['valor']
    folha.valor_irrf = calc['irrf']['valor']
    folha.valor_fgts = calc['fgts']['valor']
    db.commit()
    db.refresh(folha)
    logger.info(f"Folha salva: funcionário {funcionario.id} período {data.periodo} "
                f"líquido={folha.liquido}")
    return folha


@router.get("/folhas", response_model=List[FolhaOut])
async def list_folhas(periodo: Optional[str] = None, funcionario_id: Optional[int] = None,
                      empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    q = db.query(FolhaPagamento).filter(FolhaPagamento.empresa_id == empresa.id)
    if periodo:
        q = q.filter(FolhaPagamento.periodo == periodo)
    if funcionario_id:
        q = q.filter(FolhaPagamento.funcionario_id == funcionario_id)
    return q.order_by(FolhaPagamento.id.desc()).all()


@router.get("/folhas/{folha_id}", response_model=FolhaOut)
async def get_folha(folha_id: int, empresa: Empresa = Depends(get_empresa),
                    db: Session = Depends(get_db)):
    return get_owned(db, FolhaPagamento, folha_id, empresa, "Folha não encontrada")


@router.post("/folhas/{folha_id}/finalizar", response_model=FolhaOut)
async def finalize_folha(folha_id: int, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    folha = get_owned(db, FolhaPagamento, folha_id, empresa, "Folha não encontrada")
    folha.status = StatusFolha.finalizada
    db.commit()
    db.refresh(folha)
    return folha


@router.delete("/folhas/{folha_id}")
async def delete_folha(folha_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    folha = get_owned(db, FolhaPagamento, folha_id, empresa, "Folha não encontrada")
    if folha.status == StatusFolha.finalizada:
        raise HTTPException(status_code=409, detail="Folha finalizada não pode ser excluída")
    db.delete(folha)
    db.commit()
    return {"ok": True}


@router.get("/folhas/{folha_id}/holerite")
async def holerite(folha_id: int, empresa: Empresa = Depends(get_empresa),
                   db: Session = Depends(get_db)):
    folha = get_owned(db, FolhaPagamento, folha_id, empresa, "Folha não encontrada")
    pdf = pdf_service.holerite_pdf(empresa, folha.funcionario, folha)
    return download(pdf, f"holerite_{folha.funcionario_id}_{_periodo_arquivo(folha.periodo)}.pdf")


# ── RCI (pró-labore) ─────────────────────────────────────────────────────────

def _calcular_rci(db: Session, empresa: Empresa, data: RciCalculoIn):
    socio = get_owned(db, Socio, data.socio_id, empresa, "Sócio não encontrado")
    if data.eventos:
        eventos = _build_eventos(db, empresa, data.eventos)
    else:
        if not socio.pro_labore:
            raise HTTPException(status_code=400, detail="Sócio sem pró-labore cadastrado")
        eventos = _eventos_padrao(db, empresa, RUBRICA_PRO_LABORE, socio.pro_labore,
                                  {'codigo': RUBRICA_PRO_LABORE, 'descricao': 'Pró-labore',
                                   'tipo': 'provento', 'incide_inss': True,
                                   'incide_fgts': False, 'incide_irrf': True})
    return socio, calculate_payroll(eventos, socio.dependentes_irrf or 0, is_socio=True)


@router.post("/rcis/calcular")
async def preview_rci(data: RciCalculoIn, empresa: Empresa = Depends(get_empresa),
                      db: Session = Depends(get_db)):
    _, calc = _calcular_rci(db, empresa, data)
    return calc


@router.post("/rcis", response_model=RciOut)
async def save_rci(data: RciCalculoIn, empresa: Empresa = Depends(get_empresa),
                   db: Session = Depends(get_db)):
    socio, calc = _calcular_rci(db, empresa, data)
    rci = db.query(Rci).filter(Rci.empresa_id == empresa.id, Rci.socio_id == socio.id,
                               Rci.periodo == data.periodo).first()
    if rci is None:
        rci = Rci(empresa_id=empresa.id, socio_id=socio.id, periodo=data.periodo)
        db.add(rci)
    rci.eventos = calc['eventos']
    rci.total_proventos = calc['total_proventos']
    rci.total_descontos = calc['total_descontos']
    rci.liquido = calc['liquido']
    rci.base_inss = calc['base_inss']
    rci.base_irrf = calc['base_irrf']
    rci.valor_inss = calc['inss']['valor']
    rci.valor_irrf = calc['irrf']['valor']
    db.commit()
    db.refresh(rci)
    return rci


@router.get("/rcis", response_model=List[RciOut])
async def list_rcis(periodo: Optional[str] = None, empresa: Empresa = Depends(get_empresa),
                    db: Session = Depends(get_db)):
    q = db.query(Rci).filter(Rci.empresa_id == empresa.id)
    if periodo:
        q = q.filter(Rci.periodo == periodo)
    return q.order_by(Rci.id.desc()).all()


@router.delete("/rcis/{rci_id}")
async def delete_rci(rci_id: int, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    rci = get_owned(db, Rci, rci_id, empresa, "RCI não encontrado")
    db.delete(rci)
    db.commit()
    return {"ok": True}


@router.get("/rcis/{rci_id}/pdf")
async def rci_pdf(rci_id: int, empresa: Empresa = Depends(get_empresa),
                  db: Session = Depends(get_db)):
    rci = get_owned(db, Rci, rci_id, empresa, "RCI não encontrado")
    pdf = pdf_service.rci_pdf(empresa, rci.socio, rci)
    return download(pdf, f"rci_{rci.socio_id}_{_periodo_arquivo(rci.periodo)}.pdf")


# ── Férias ───────────────────────────────────────────────────────────────────

def _calcular_ferias(db: Session, empresa: Empresa, data: FeriasIn):
    funcionario = get_owned(db, Funcionario, data.funcionario_id, empresa,
                            "Funcionário não encontrado")
    try:
        calc = calculate_vacation(funcionario.salario_base, data.dias, data.abono_pecuniario,
                                  data.adiantamento_decimo_terceiro,
                                  funcionario.dependentes_irrf)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return funcionario, calc


def _totais(row) -> Dict:
    return {'eventos': row.eventos, 'total_proventos': row.total_proventos,
            'total_descontos': row.total_descontos, 'liquido': row.liquido}


@router.post("/ferias/calcular")
async def preview_ferias(data: FeriasIn, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    _, calc = _calcular_ferias(db, empresa, data)
    return calc


@router.post("/ferias", response_model=FeriasOut, status_code=201)
async def save_ferias(data: FeriasIn, empresa: Empresa = Depends(get_empresa),
                      db: Session = Depends(get_db)):
    _, calc = _calcular_ferias(db, empresa, data)
    ferias = Ferias(empresa_id=empresa.id, **data.model_dump(), eventos=calc['eventos'],
                    total_proventos=calc['total_proventos'],
                    total_descontos=calc['total_descontos'], liquido=calc['liquido'])
    db.add(ferias)
    db.commit()
    db.refresh(ferias)
    return ferias


@router.get("/ferias", response_model=List[FeriasOut])
async def list_ferias(funcionario_id: Optional[int] = None,
                      empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    q = db.query(Ferias).filter(Ferias.empresa_id == empresa.id)
    if funcionario_id:
        q = q.filter(Ferias.funcionario_id == funcionario_id)
    return q.order_by(Ferias.data_inicio.desc()).all()


@router.delete("/ferias/{ferias_id}")
async def delete_ferias(ferias_id: int, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    ferias = get_owned(db, Ferias, ferias_id, empresa, "Férias não encontradas")
    db.delete(ferias)
    db.commit()
    return {"ok": True}


@router.get("/ferias/{ferias_id}/pdf")
async def ferias_pdf(ferias_id: int, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    ferias = get_owned(db, Ferias, ferias_id, empresa, "Férias não encontradas")
    detalhes = [("Início do gozo", format_date_br(ferias.data_inicio)),
                ("Dias", str(ferias.dias))]
    pdf = pdf_service.verbas_pdf(empresa, ferias.funcionario, "Recibo de Férias",
                                 _totais(ferias), detalhes)
    return download(pdf, f"ferias_{ferias.funcionario_id}_{ferias.id}.pdf")


@router.get("/ferias/{ferias_id}/aviso")
async def aviso_ferias(ferias_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    ferias = get_owned(db, Ferias, ferias_id, empresa, "Férias não encontradas")
    funcionario = ferias.funcionario
    aquisitivo = periodo_aquisitivo(funcionario.data_admissao, ferias.data_inicio)
    pdf = pdf_service.aviso_ferias_pdf(empresa, funcionario, ferias, aquisitivo)
    return download(pdf, f"aviso_ferias_{ferias.funcionario_id}_{ferias.id}.pdf")


# ── Rescisão ─────────────────────────────────────────────────────────────────

def _calcular_rescisao(db: Session, empresa: Empresa, data: RescisaoIn):
    funcionario = get_owned(db, Funcionario, data.funcionario_id, empresa,
                            "Funcionário não encontrado")
    try:
        calc = calculate_termination(funcionario.salario_base, funcionario.data_admissao,
                                     data.data_rescisao, data.motivo, data.tipo_aviso,
                                     data.saldo_fgts, funcionario.dependentes_irrf)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return funcionario, calc


@router.post("/rescisoes/calcular")
async def preview_rescisao(data: RescisaoIn, empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    _, calc = _calcular_rescisao(db, empresa, data)
    return calc


@router.post("/rescisoes", response_model=RescisaoOut, status_code=201)
async def save_rescisao(data: RescisaoIn, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    funcionario, calc = _calcular_rescisao(db, empresa, data)
    rescisao = Rescisao(empresa_id=empresa.id, **data.model_dump(), eventos=calc['eventos'],
                        total_proventos=calc['total_proventos'],
                        total_descontos=calc['total_descontos'], liquido=calc['liquido'],
                        dias_aviso=calc['dias_aviso'], fgts_rescisao=calc['fgts_rescisao'],
                        multa_fgts=calc['multa_fgts'])
    db.add(rescisao)
    funcionario.ativo = False
    db.commit()
    db.refresh(rescisao)
    logger.info(f"Rescisão registrada: funcionário {funcionario.id} inativado")
    return rescisao


@router.get("/rescisoes", response_model=List[RescisaoOut])
async def list_rescisoes(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Rescisao).filter(Rescisao.empresa_id == empresa.id)
            .order_by(Rescisao.data_rescisao.desc()).all())


@router.delete("/rescisoes/{rescisao_id}")
async def delete_rescisao(rescisao_id: int, empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    rescisao = get_owned(db, Rescisao, rescisao_id, empresa, "Rescisão não encontrada")
    db.delete(rescisao)
    db.commit()
    return {"ok": True}


@router.get("/rescisoes/{rescisao_id}/pdf")
async def rescisao_pdf(rescisao_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    rescisao = get_owned(db, Rescisao, rescisao_id, empresa, "Rescisão não encontrada")
    funcionario = rescisao.funcionario
    detalhes = [("Data da rescisão", format_date_br(rescisao.data_rescisao)),
                ("Motivo", rescisao.motivo.replace("_", " ")),
                ("Aviso prévio", f"{rescisao.tipo_aviso} ({rescisao.dias_aviso} dias)"),
                ("FGTS do mês", format_brl(rescisao.fgts_rescisao)),
                ("Multa FGTS 40%", format_brl(rescisao.multa_fgts))]
    pdf = pdf_service.verbas_pdf(empresa, funcionario, "Termo de Rescisão",
                                 _totais(rescisao), detalhes)
    return download(pdf, f"rescisao_{funcionario.id}.pdf")


# ── 13º salário ──────────────────────────────────────────────────────────────

def _calcular_decimo(db: Session, empresa: Empresa, data: DecimoTerceiroIn):
    funcionario = get_owned(db, Funcionario, data.funcionario_id, empresa,
                            "Funcionário não encontrado")
    meses = data.meses_trabalhados or meses_trabalhados_no_ano(funcionario.data_admissao, data.ano)
    adiantamento = None
    if data.parcela == "segunda":
        primeira = db.query(DecimoTerceiro).filter(
            DecimoTerceiro.empresa_id == empresa.id,
            DecimoTerceiro.funcionario_id == funcionario.id,
            DecimoTerceiro.ano == data.ano,
            DecimoTerceiro.parcela == "primeira").first()
        if primeira:
            adiantamento = primeira.liquido
    try:
        calc = calculate_thirteenth(funcionario.salario_base, meses, data.parcela,
                                    funcionario.dependentes_irrf, adiantamento)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return funcionario, meses, calc


@router.post("/decimos/calcular")
async def preview_decimo(data: DecimoTerceiroIn, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    _, meses, calc = _calcular_decimo(db, empresa, data)
    return {**calc, 'meses_trabalhados': meses}


@router.post("/decimos", response_model=DecimoTerceiroOut, status_code=201)
async def save_decimo(data: DecimoTerceiroIn, empresa: Empresa = Depends(get_empresa),
                      db: Session = Depends(get_db)):
    funcionario, meses, calc = _calcular_decimo(db, empresa, data)
    decimo = DecimoTerceiro(empresa_id=empresa.id, funcionario_id=funcionario.id, ano=data.ano,
                            parcela=data.parcela, meses_trabalhados=meses,
                            eventos=calc['eventos'], total_proventos=calc['total_proventos'],
                            total_descontos=calc['total_descontos'], liquido=calc['liquido'])
    db.add(decimo)
    db.commit()
    db.refresh(decimo)
    return decimo


@router.get("/decimos", response_model=List[DecimoTerceiroOut])
async def list_decimos(ano: Optional[int] = None, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    q = db.query(DecimoTerceiro).filter(DecimoTerceiro.empresa_id == empresa.id)
    if ano:
        q = q.filter(DecimoTerceiro.ano == ano)
    return q.order_by(DecimoTerceiro.id.desc()).all()


@router.delete("/decimos/{decimo_id}")
async def delete_decimo(decimo_id: int, empresa: Empresa = Depends(get_empresa),
                        db: Session = Depends(get_db)):
    decimo = get_owned(db, DecimoTerceiro, decimo_id, empresa, "13º salário não encontrado")
    db.delete(decimo)
    db.commit()
    return {"ok": True}


@router.get("/decimos/{decimo_id}/pdf")
async def decimo_pdf(decimo_id: int, empresa: Empresa = Depends(get_empresa),
                     db: Session = Depends(get_db)):
    decimo = get_owned(db, DecimoTerceiro, decimo_id, empresa, "13º salário não encontrado")
    detalhes = [("Ano", str(decimo.ano)), ("Parcela", decimo.parcela),
                ("Meses trabalhados", f"{decimo.meses_trabalhados}/12")]
    pdf = pdf_service.verbas_pdf(empresa, decimo.funcionario, "Recibo de 13º Salário",
                                 _totais(decimo), detalhes)
    return download(pdf, f"decimo_terceiro_{decimo.funcionario_id}_{decimo.ano}.pdf")


# ── Resumo da folha ──────────────────────────────────────────────────────────

# mês de pagamento de cada parcela do 13º
MES_PARCELA_13 = {'primeira': 11, 'segunda': 12, 'unica': 12}


def _resumo_periodo(db: Session, empresa: Empresa, periodo: str):
    """(funcionário, [(título, totais)]) of everything paid in the period, by employee name."""
    inicio, fim = periodo_bounds(periodo)
    grupos: Dict[int, tuple] = {}

    def add(row, titulo):
        grupos.setdefault(row.funcionario_id, (row.funcionario, []))[1].append(
            (titulo, _totais(row)))

    for folha in db.query(FolhaPagamento).filter(FolhaPagamento.empresa_id == empresa.id,
                                                 FolhaPagamento.periodo == periodo):
        add(folha, "Folha de pagamento")
    for ferias in db.query(Ferias).filter(Ferias.empresa_id == empresa.id,
                                          Ferias.data_inicio.between(inicio, fim)):
        add(ferias, f"Férias ({ferias.dias} dias)")
    for decimo in db.query(DecimoTerceiro).filter(DecimoTerceiro.empresa_id == empresa.id,
                                                  DecimoTerceiro.ano == inicio.year):
        if MES_PARCELA_13[decimo.parcela] == inicio.month:
            add(decimo, f"13º salário ({decimo.parcela})")
    for rescisao in db.query(Rescisao).filter(Rescisao.empresa_id == empresa.id,
                                              Rescisao.data_rescisao.between(inicio, fim)):
        add(rescisao, "Rescisão")
    return sorted(grupos.values(), key=lambda g: g[0].nome_completo.lower())


@router.get("/relatorios/folha/pdf")
async def resumo_folha_pdf(periodo: str, empresa: Empresa = Depends(get_empresa),
                           db: Session = Depends(get_db)):
    try:
        grupos = _resumo_periodo(db, empresa, periodo)
        pdf = pdf_service.resumo_folha_pdf(empresa, periodo, grupos)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return download(pdf, f"resumo_folha_{_periodo_arquivo(periodo)}.pdf")
