"""
eSocial event XML builders and the simulated transmission cycle.

Supported events:
    S-1000  informações do empregador
    S-1005  tabela de estabelecimentos
    S-1010  tabela de rubricas
    S-1200  remuneração do trabalhador (from a saved payroll)
    S-1299  fechamento dos eventos periódicos

There is no webservice client: `enviar_evento` / `consultar_evento` move an
event through pending → processing → success | error after checking the
stored payload.
"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from config import ESOCIAL_TP_AMB
from models.models import RegimeTributario, StatusEsocial, TipoRubrica
from services.parser_service import only_digits, periodo_api
from services.reinf_service import event_id

logger = logging.getLogger(__name__)

ESOCIAL_VERSAO = 'v_S_01_02_00'
ESOCIAL_NS = 'http://www.esocial.gov.br/schema/evt/{schema}/' + ESOCIAL_VERSAO
VER_PROC = 'contabil-1.0'
COD_CATEG_EMPREGADO = 101
COD_LOTACAO = 'LOTACAO01'

TIPOS_EVENTO = ('S-1000', 'S-1005', 'S-1010', 'S-1200', 'S-1299')

MSG_SEM_ESTABELECIMENTO = ("Dados do estabelecimento não encontrados. Preencha a 'Ficha do "
                           "Estabelecimento' na tela 'Minha Empresa' antes de gerar o evento S-1005.")


def _sub(parent: ET.Element, tag: str, text=None) -> ET.Element:
    el = ET.SubElement(parent, tag)
    if text is not None:
        el.text = str(text)
    return el


def _documento(schema: str, tag: str, eid: str):
    root = ET.Element('eSocial')
    root.set('xmlns', ESOCIAL_NS.format(schema=schema))
    evt = _sub(root, tag)
    evt.set('Id', eid)
    return root, evt


def _ide_evento(evt, per_apur: Optional[str] = None) -> None:
    ide = _sub(evt, 'ideEvento')
    if per_apur:
        _sub(ide, 'indRetif', 1)
        _sub(ide, 'indApuracao', 1)
        _sub(ide, 'perApur', per_apur)
    _sub(ide, 'tpAmb', ESOCIAL_TP_AMB)
    _sub(ide, 'procEmi', 1)
    _sub(ide, 'verProc', VER_PROC)


def _ide_empregador(evt, cnpj: str) -> None:
    ide = _sub(evt, 'ideEmpregador')
    _sub(ide, 'tpInsc', 1)
    _sub(ide, 'nrInsc', cnpj[:8])


def _serialize(root: ET.Element) -> str:
    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding='unicode')


# ── Builders ─────────────────────────────────────────────────────────────────

def build_s1000(empresa, eid: str, ini_valid: str) -> str:
    cnpj = only_digits(empresa.cnpj)
    root, evt = _documento('evtInfoEmpregador', 'evtInfoEmpregador', eid)
    _ide_evento(evt)
    _ide_empregador(evt, cnpj)
    inclusao = _sub(_sub(evt, 'infoEmpregador'), 'inclusao')
    _sub(_sub(inclusao, 'idePeriodo'), 'iniValid', ini_valid)
    cadastro = _sub(inclusao, 'infoCadastro')
    simples = empresa.regime_tributario in (RegimeTributario.simples, RegimeTributario.mei)
    _sub(cadastro, 'classTrib', '01' if simples else '99')
    _sub(cadastro, 'indCoop', 0)
    _sub(cadastro, 'indConstr', 0)
    _sub(cadastro, 'indDesFolha', 0)
    _sub(cadastro, 'indOptRegEletron', 1)
    return _serialize(root)


def build_s1005(empresa, eid: str, ini_valid: str) -> str:
    estab = empresa.estabelecimento
    if estab is None:
        raise ValueError(MSG_SEM_ESTABELECIMENTO)

    cnpj = only_digits(empresa.cnpj)
    root, evt = _documento('evtTabEstab', 'evtTabEstab', eid)
    _ide_evento(evt)
    _ide_empregador(evt, cnpj)
    inclusao = _sub(_sub(evt, 'infoEstab'), 'inclusao')
    ide = _sub(inclusao, 'ideEstab')
    _sub(ide, 'tpInsc', 1)
    _sub(ide, 'nrInsc', cnpj)
    _sub(ide, 'iniValid', ini_valid)
    dados = _sub(inclusao, 'dadosEstab')
    _sub(dados, 'cnaePrem', only_digits(empresa.cnae_principal_codigo) or '0000000')
    rat = _sub(dados, 'aliqGilrat')
    _sub(rat, 'aliqRat', int(estab.aliq_rat or 0))
    _sub(rat, 'fap', f"{estab.fap or 0:.4f}")
    if estab.nr_caepf:
        _sub(_sub(dados, 'infoCaepf'), 'tpCaepf', 1)
    trab = _sub(dados, 'infoTrab')
    if estab.nr_insc_apr:
        apr = _sub(trab, 'infoApr')
        _sub(_sub(apr, 'infoEntEduc'), 'nrInsc', only_digits(estab.nr_insc_apr))
    _sub(_sub(trab, 'infoPCD'), 'contPCD', 1 if estab.contrata_pcd else 0)
    return _serialize(root)


def build_s1010(empresa, eid: str, ini_valid: str, rubricas: Iterable) -> str:
    rubricas = list(rubricas)
    if not rubricas:
        raise ValueError("Nenhuma rubrica cadastrada para gerar o evento S-1010.")

    cnpj = only_digits(empresa.cnpj)
    root, evt = _documento('evtTabRubrica', 'evtTabRubrica', eid)
    _ide_evento(evt)
    _ide_empregador(evt, cnpj)
    info = _sub(evt, 'infoRubrica')
    for r in rubricas:
        inclusao = _sub(info, 'inclusao')
        ide = _sub(inclusao, 'ideRubrica')
        _sub(ide, 'codRubr', r.codigo)
        _sub(ide, 'ideTabRubr', 'TAB01')
        _sub(ide, 'iniValid', ini_valid)
        dados = _sub(inclusao, 'dadosRubrica')
        _sub(dados, 'dscRubr', r.descricao)
        _sub(dados, 'natRubr', 1000 if r.tipo == TipoRubrica.provento else 9201)
        _sub(dados, 'tpRubr', 1 if r.tipo == TipoRubrica.provento else 2)
        _sub(dados, 'codIncCP', '11' if r.incide_inss else '00')
        _sub(dados, 'codIncIRRF', '11' if r.incide_irrf else '9')
        _sub(dados, 'codIncFGTS', '11' if r.incide_fgts else '00')
    return _serialize(root)


def build_s1200(empresa, eid: str, folha) -> str:
    cnpj = only_digits(empresa.cnpj)
    root, evt = _documento('evtRemun', 'evtRemun', eid)
    _ide_evento(evt, periodo_api(folha.periodo))
    _ide_empregador(evt, cnpj)
    _sub(_sub(evt, 'ideTrabalhador'), 'cpfTrab', only_digits(folha.funcionario.cpf))
    dm = _sub(evt, 'dmDev')
    _sub(dm, 'ideDmDev', f"FOLHA{folha.id}")
    _sub(dm, 'codCateg', COD_CATEG_EMPREGADO)
    lot = _sub(_sub(dm, 'infoPerApur'), 'ideEstabLot')
    _sub(lot, 'tpInsc', 1)
    _sub(lot, 'nrInsc', cnpj)
    _sub(lot, 'codLotacao', COD_LOTACAO)
    remun = _sub(lot, 'remunPerApur')
    _sub(remun, 'matricula', f"{folha.funcionario.id:06d}")
    for e in folha.eventos or []:
        rubrica = e.get('rubrica') or {}
        valor = (e.get('provento') or 0.0) + (e.get('desconto') or 0.0)
        if valor <= 0:
            continue
        item = _sub(remun, 'itensRemun')
        _sub(item, 'codRubr', str(rubrica.get('codigo', '')).upper())
        _sub(item, 'ideTabRubr', 'TAB01')
        if e.get('referencia'):
            _sub(item, 'qtdRubr', f"{float(e['referencia']):.2f}")
        _sub(item, 'vrRubr', f"{valor:.2f}")
    return _serialize(root)


def build_s1299(empresa, eid: str, periodo: str, tem_remuneracao: bool) -> str:
    cnpj = only_digits(empresa.cnpj)
    root, evt = _documento('evtFechaEvPer', 'evtFechaEvPer', eid)
    _ide_evento(evt, periodo_api(periodo))
    _ide_empregador(evt, cnpj)
    fech = _sub(evt, 'infoFech')
    _sub(fech, 'evtRemun', 'S' if tem_remuneracao else 'N')
    _sub(fech, 'evtComProd', 'N')
    _sub(fech, 'evtContratAvNP', 'N')
    _sub(fech, 'evtInfoComplPer', 'N')
    return _serialize(root)


def generate_event(tipo: str, empresa, seq: int = 1, now: Optional[datetime] = None,
                   periodo: Optional[str] = None, rubricas: Iterable = (),
                   folha=None, folhas: Iterable = ()) -> Dict:
    """
    Build one eSocial event. Returns {'tipo', 'event_id', 'periodo', 'payload'}.

    S-1200 needs `folha`; S-1299 needs `periodo` (and the period's `folhas`);
    S-1010 needs `rubricas`.
    """
    if tipo not in TIPOS_EVENTO:
        raise ValueError(f"Tipo de evento eSocial não suportado: {tipo}")
    now = now or datetime.now()
    eid = event_id(empresa.cnpj, seq, now)
    ini_valid = now.strftime('%Y-%m')

    if tipo == 'S-1000':
        payload = build_s1000(empresa, eid, ini_valid)
    elif tipo == 'S-1005':
        payload = build_s1005(empresa, eid, ini_valid)
    elif tipo == 'S-1010':
        payload = build_s1010(empresa, eid, ini_valid, rubricas)
    elif tipo == 'S-1200':
        if folha is None:
            raise ValueError("Informe a folha de pagamento para gerar o evento S-1200.")
        periodo = folha.periodo
        payload = build_s1200(empresa, eid, folha)
    else:
        if not periodo:
            raise ValueError("Informe o período para gerar o evento S-1299.")
        payload = build_s1299(empresa, eid, periodo, bool(list(folhas)))

    logger.info(f"Evento eSocial {tipo} gerado: {eid}")
    return {'tipo': tipo, 'event_id': eid, 'periodo': periodo, 'payload': payload}


# ── Simulated transmission ───────────────────────────────────────────────────

def enviar_evento(evento) -> None:
    """pending | error → processing."""
    if evento.status not in (StatusEsocial.pending, StatusEsocial.error):
        raise ValueError(f"Evento com status '{evento.status.value}' não pode ser enviado.")
    evento.status = StatusEsocial.processing
    evento.error_details = None
    logger.info(f"Evento eSocial {evento.event_id} enviado")


def validate_payload(payload: str, cnpj: str) -> List[str]:
    """Problems that the government would reject the event for; empty when valid."""
    try:
        root = ET.fromstring(payload.encode('utf-8'))
    except ET.ParseError as e:
        return [f"XML malformado: {e}"]

    errors = []
    inscricoes = [el.text for el in root.iter() if el.tag.endswith('}nrInsc') or el.tag == 'nrInsc']
    if only_digits(cnpj)[:8] not in inscricoes:
        errors.append("Inscrição do empregador ausente ou divergente do CNPJ da empresa.")
    evt = next(iter(root), None)
    if evt is None or not evt.get('Id'):
        errors.append("Evento sem identificador (atributo Id).")
    return errors


def consultar_evento(evento, cnpj: str) -> None:
    """processing → success | error (with details)."""
    if evento.status != StatusEsocial.processing:
        raise ValueError("Somente eventos em processamento podem ser consultados.")
    errors = validate_payload(evento.payload, cnpj)
    if errors:
        evento.status = StatusEsocial.error
        evento.error_details = '; '.join(errors)
        logger.warning(f"Evento eSocial {evento.event_id} rejeitado: {evento.error_details}")
    else:
        evento.status = StatusEsocial.success
        evento.error_details = None
        logger.info(f"Evento eSocial {evento.event_id} processado com sucesso")
