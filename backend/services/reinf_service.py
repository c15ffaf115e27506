"""
EFD-Reinf batch generator.

One `envioLoteEventos` document holding:
    R-1000  informações do contribuinte
    R-2010  serviços tomados com retenção de INSS, one event per provider
    R-2020  serviços prestados com retenção de INSS, one event per taker
    R-2099  fechamento dos eventos periódicos
"""

import logging
import xml.etree.ElementTree as ET
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from config import ESOCIAL_TP_AMB
from models.models import RegimeTributario, StatusLancamento, TipoLancamento
from services.parser_service import only_digits, parse_periodo, periodo_api, periodo_bounds

logger = logging.getLogger(__name__)

REINF_VERSAO = 'v2_01_02'
REINF_NS = 'http://www.reinf.esocial.gov.br/schemas/{schema}/' + REINF_VERSAO
VER_PROC = 'contabil-1.0'


def event_id(cnpj: str, seq: int, when: Optional[datetime] = None, tp_insc: str = '1') -> str:
    """ID + tpInsc + inscrição (14) + AAAAMMDDHHMMSS + sequencial (5): 36 characters."""
    when = when or datetime.now()
    return f"ID{tp_insc}{only_digits(cnpj).ljust(14, '0')[:14]}{when:%Y%m%d%H%M%S}{seq:05d}"


def fmt_valor(value: Optional[float]) -> str:
    return f"{value or 0.0:.2f}".replace('.', ',')


def _sub(parent: ET.Element, tag: str, text=None) -> ET.Element:
    el = ET.SubElement(parent, tag)
    if text is not None:
        el.text = str(text)
    return el


def _evento(lote: ET.Element, schema: str, tag: str, eid: str) -> ET.Element:
    wrapper = _sub(lote, 'evento')
    wrapper.set('id', eid)
    reinf = _sub(wrapper, 'Reinf')
    reinf.set('xmlns', REINF_NS.format(schema=schema))
    evt = _sub(reinf, tag)
    evt.set('id', eid)
    return evt


def _ide_evento(evt: ET.Element, per_apur: Optional[str] = None) -> None:
    ide = _sub(evt, 'ideEvento')
    if per_apur:
        _sub(ide, 'indRetif', 1)
        _sub(ide, 'perApur', per_apur)
    _sub(ide, 'tpAmb', ESOCIAL_TP_AMB)
    _sub(ide, 'procEmi', 1)
    _sub(ide, 'verProc', VER_PROC)


def _ide_contri(evt: ET.Element, cnpj: str) -> None:
    ide = _sub(evt, 'ideContri')
    _sub(ide, 'tpInsc', 1)
    _sub(ide, 'nrInsc', cnpj[:8])


def _contato(empresa) -> Dict[str, str]:
    estab = empresa.estabelecimento
    if estab is not None and estab.contato_nome:
        return {'nome': estab.contato_nome, 'cpf': only_digits(estab.contato_cpf),
                'fone': only_digits(estab.contato_fone), 'email': empresa.email or ''}
    return {'nome': empresa.contador_nome or empresa.razao_social,
            'cpf': only_digits(empresa.contador_cpf),
            'fone': only_digits(empresa.contador_telefone or empresa.telefone),
            'email': empresa.contador_email or empresa.email or ''}


def class_trib(empresa) -> str:
    if empresa.regime_tributario in (RegimeTributario.simples, RegimeTributario.mei):
        return '01'
    return '99'


# ── Events ───────────────────────────────────────────────────────────────────

def _r1000(lote, empresa, cnpj: str, per_apur: str, eid: str) -> None:
    evt = _evento(lote, 'evtInfoContribuinte', 'evtInfoContri', eid)
    _ide_evento(evt)
    _ide_contri(evt, cnpj)
    inclusao = _sub(_sub(evt, 'infoContri'), 'inclusao')
    _sub(_sub(inclusao, 'idePeriodo'), 'iniValid', per_apur)
    cadastro = _sub(inclusao, 'infoCadastro')
    _sub(cadastro, 'classTrib', class_trib(empresa))
    _sub(cadastro, 'indEscrituracao', 0 if class_trib(empresa) == '01' else 1)
    _sub(cadastro, 'indDesoneracao', 0)
    _sub(cadastro, 'indAcordoIsenMulta', 0)
    situacao = empresa.estabelecimento.situacao_pj if empresa.estabelecimento else None
    _sub(cadastro, 'indSitPJ', situacao or 0)
    contato = _contato(empresa)
    ctt = _sub(cadastro, 'contato')
    _sub(ctt, 'nmCtt', contato['nome'].strip().upper())
    _sub(ctt, 'cpfCtt', contato['cpf'])
    _sub(ctt, 'foneFixo', contato['fone'])
    _sub(ctt, 'email', contato['email'])


def _info_nfs(parent, launches: List) -> None:
    for l in launches:
        nfs = _sub(parent, 'nfs')
        _sub(nfs, 'serie', l.serie or '1')
        _sub(nfs, 'numDocto', l.numero_nfse or l.numero or '')
        _sub(nfs, 'dtEmissaoNF', l.data.isoformat())
        _sub(nfs, 'vlrBruto', fmt_valor(l.valor_servicos))


def _r2010(lote, cnpj: str, prestador: str, launches: List, per_apur: str, eid: str) -> None:
    evt = _evento(lote, 'evt2010TomadorServicos', 'evtServTom', eid)
    _ide_evento(evt, per_apur)
    _ide_contri(evt, cnpj)
    estab = _sub(_sub(evt, 'infoServTom'), 'ideEstabObra')
    _sub(estab, 'tpInscEstab', 1)
    _sub(estab, 'nrInscEstab', cnpj)
    _sub(estab, 'indObra', 0)
    prest = _sub(estab, 'idePrestServ')
    bruto = sum(l.valor_servicos or 0.0 for l in launches)
    _sub(prest, 'cnpjPrestador', prestador)
    _sub(prest, 'vlrTotalBruto', fmt_valor(bruto))
    _sub(prest, 'vlrTotalBaseRet', fmt_valor(bruto))
    _sub(prest, 'vlrTotalRetPrinc', fmt_valor(sum(l.valor_inss or 0.0 for l in launches)))
    _sub(prest, 'indCPRB', 0)
    _info_nfs(prest, launches)


def _r2020(lote, cnpj: str, tomador: str, launches: List, per_apur: str, eid: str) -> None:
    evt = _evento(lote, 'evt2020PrestadorServicos', 'evtServPrest', eid)
    _ide_evento(evt, per_apur)
    _ide_contri(evt, cnpj)
    estab = _sub(_sub(evt, 'infoServPrest'), 'ideEstabPrest')
    _sub(estab, 'tpInscEstabPrest', 1)
    _sub(estab, 'nrInscEstabPrest', cnpj)
    tom = _sub(estab, 'ideTomador')
    bruto = sum(l.valor_servicos or 0.0 for l in launches)
    _sub(tom, 'tpInscTomador', 1 if len(tomador) == 14 else 2)
    _sub(tom, 'nrInscTomador', tomador)
    _sub(tom, 'indObra', 0)
    _sub(tom, 'vlrTotalBruto', fmt_valor(bruto))
    _sub(tom, 'vlrTotalBaseRet', fmt_valor(bruto))
    _sub(tom, 'vlrTotalRetPrinc', fmt_valor(sum(l.valor_inss or 0.0 for l in launches)))
    _info_nfs(tom, launches)


def _r2099(lote, empresa, cnpj: str, per_apur: str, eid: str,
           has_2010: bool, has_2020: bool) -> None:
    evt = _evento(lote, 'evt2099FechamentoEvtPeriodicos', 'evtFech', eid)
    _ide_evento(evt, per_apur)
    _ide_contri(evt, cnpj)
    contato = _contato(empresa)
    resp = _sub(evt, 'ideRespInf')
    _sub(resp, 'nmResp', contato['nome'].strip().upper())
    _sub(resp, 'cpfResp', contato['cpf'])
    _sub(resp, 'telefone', contato['fone'])
    _sub(resp, 'email', contato['email'])
    fech = _sub(evt, 'infoFech')
    _sub(fech, 'evtServTm', 'S' if has_2010 else 'N')
    _sub(fech, 'evtServPr', 'S' if has_2020 else 'N')
    for tag in ('evtAssDespRec', 'evtAssDespRep', 'evtComProd', 'evtCPRB', 'evtAquis'):
        _sub(fech, tag, 'N')


# ── Public API ───────────────────────────────────────────────────────────────

def _group_by(launches: List, attr: str) -> "OrderedDict[str, List]":
    groups: "OrderedDict[str, List]" = OrderedDict()
    for l in launches:
        groups.setdefault(only_digits(getattr(l, attr)), []).append(l)
    return groups


def generate_reinf(empresa, lancamentos: Iterable, periodo: str,
                   now: Optional[datetime] = None) -> Dict:
    """
    Build the EFD-Reinf batch XML for `periodo` ('MM/YYYY').

    Returns {'nome_arquivo', 'conteudo', 'eventos': [{'tipo', 'id'}]}.
    Raises ValueError when no launch of the period carries retained INSS.
    """
    month, year = parse_periodo(periodo)
    inicio, fim = periodo_bounds(periodo)
    per_apur = periodo_api(periodo)
    cnpj = only_digits(empresa.cnpj)
    now = now or datetime.now()

    ativos = [l for l in lancamentos
              if l.status != StatusLancamento.cancelado and inicio <= l.data <= fim
              and (l.valor_inss or 0) > 0]
    tomados = [l for l in ativos if l.tipo == TipoLancamento.entrada]
    prestados = [l for l in ativos if l.tipo == TipoLancamento.servico]
    if not tomados and not prestados:
        raise ValueError("Nenhuma nota fiscal com retenção de INSS (serviços tomados ou "
                         "prestados) foi encontrada no período.")

    root = ET.Element('Reinf')
    root.set('xmlns', REINF_NS.format(schema='envioLoteEventos'))
    lote = _sub(root, 'loteEventos')
    eventos: List[Dict] = []

    def next_id(tipo: str) -> str:
        eid = event_id(cnpj, len(eventos) + 1, now)
        eventos.append({'tipo': tipo, 'id': eid})
        return eid

    _r1000(lote, empresa, cnpj, per_apur, next_id('R-1000'))
    for prestador, grupo in _group_by(tomados, 'prestador_cnpj').items():
        _r2010(lote, cnpj, prestador, grupo, per_apur, next_id('R-2010'))
    for tomador, grupo in _group_by(prestados, 'tomador_cnpj').items():
        _r2020(lote, cnpj, tomador, grupo, per_apur, next_id('R-2020'))
    _r2099(lote, empresa, cnpj, per_apur, next_id('R-2099'), bool(tomados), bool(prestados))

    ET.indent(root)
    conteudo = '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding='unicode')
    nome = f"REINF_{cnpj}_{month:02d}{year}.xml"
    logger.info(f"EFD-Reinf gerada: {nome} ({len(eventos)} eventos)")
    return {'nome_arquivo': nome, 'conteudo': conteudo, 'eventos': eventos}
