"""
NF-e / NFS-e XML deserialization and classification.

Lookups ignore namespaces and search descendants, so the same code reads
NF-e (nfeProc / NFe), ABRASF NFS-e (CompNfse / InfNfse) and the national
NFS-e layout (NFSe / infNFSe, DPS).
"""

import logging
import re
import xml.etree.ElementTree as ET
from datetime import date, datetime
from typing import Dict, List, Optional

from services.parser_service import only_digits, to_float

logger = logging.getLogger(__name__)

TP_EVENTO_CANCELAMENTO = '110111'
TIPOS_IMPORTACAO = ('saida', 'entrada', 'servico', 'desconhecido', 'cancelamento')


def _strip_ns(tag: str) -> str:
    return re.sub(r"\{[^}]+\}", "", tag) if isinstance(tag, str) else ''


def _find(elem, *names):
    """First direct child named in `names`, else the first such descendant."""
    if elem is None:
        return None
    for name in names:
        found = next((c for c in elem if _strip_ns(c.tag) == name), None)
        if found is not None:
            return found
    for name in names:
        found = next((e for e in elem.iter() if e is not elem and _strip_ns(e.tag) == name), None)
        if found is not None:
            return found
    return None


def _txt(elem, *names) -> Optional[str]:
    node = _find(elem, *names)
    if node is None or node.text is None:
        return None
    return node.text.strip() or None


def _num(elem, *names) -> float:
    return to_float(_txt(elem, *names))


def _documento(node) -> str:
    return only_digits(_txt(node, 'CNPJ', 'Cnpj', 'CPF', 'Cpf'))


def _data(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value[:10]).date()
    except ValueError:
        return None


# ── NF-e ─────────────────────────────────────────────────────────────────────

def parse_nfe(root) -> Dict:
    inf = _find(root, 'infNFe')
    ide = _find(inf, 'ide')
    emit = _find(inf, 'emit')
    dest = _find(inf, 'dest')
    tot = _find(inf, 'ICMSTot')

    chave = (inf.get('Id') or '').replace('NFe', '') or _txt(root, 'chNFe')

    itens: List[Dict] = []
    for det in (e for e in inf.iter() if _strip_ns(e.tag) == 'det'):
        prod = _find(det, 'prod')
        if prod is None:
            continue
        itens.append({
            'codigo': _txt(prod, 'cProd'),
            'descricao': _txt(prod, 'xProd'),
            'ncm': _txt(prod, 'NCM'),
            'cfop': _txt(prod, 'CFOP'),
            'unidade': _txt(prod, 'uCom'),
            'quantidade': _num(prod, 'qCom'),
            'valor_unitario': _num(prod, 'vUnCom'),
            'valor_total': _num(prod, 'vProd'),
        })

    return {
        'chave_nfe': chave,
        'numero': _txt(ide, 'nNF'),
        'serie': _txt(ide, 'serie'),
        'data': _data(_txt(ide, 'dhEmi', 'dEmi') or _txt(root, 'dhRecbto')),
        'emitente_nome': _txt(emit, 'xNome'),
        'emitente_cnpj': _documento(emit),
        'destinatario_nome': _txt(dest, 'xNome'),
        'destinatario_cnpj': _documento(dest),
        'valor_produtos': _num(tot, 'vProd'),
        'valor_total_nota': _num(tot, 'vNF'),
        'valor_desconto': _num(tot, 'vDesc'),
        'valor_frete': _num(tot, 'vFrete'),
        'valor_ipi': _num(tot, 'vIPI'),
        'valor_icms': _num(tot, 'vICMS'),
        'valor_pis': _num(tot, 'vPIS'),
        'valor_cofins': _num(tot, 'vCOFINS'),
        'itens': itens,
    }


# ── NFS-e ────────────────────────────────────────────────────────────────────

def _item_lc116(node) -> Optional[str]:
    item = _txt(node, 'ItemListaServico')
    if item:
        return item
    trib = only_digits(_txt(node, 'cTribNac'))
    return f"{trib[:2]}.{trib[2:4]}" if len(trib) >= 4 else None


def parse_nfse(root) -> Dict:
    node = _find(root, 'InfNfse', 'infNFSe')
    if node is None:
        node = root
    prest = _find(node, 'PrestadorServico', 'Prestador', 'prest', 'emit')
    toma = _find(node, 'TomadorServico', 'Tomador', 'toma')

    return {
        'numero_nfse': _txt(node, 'nNFSe', 'Numero'),
        'data': _data(_txt(node, 'dCompet', 'DataEmissao', 'dtEmissao', 'dhEmi',
                           'Competencia')),
        'prestador_nome': _txt(prest, 'RazaoSocial', 'Nome', 'xNome'),
        'prestador_cnpj': _documento(prest),
        'tomador_nome': _txt(toma, 'RazaoSocial', 'Nome', 'xNome'),
        'tomador_cnpj': _documento(toma),
        'discriminacao': _txt(node, 'Discriminacao', 'xDescServ', 'xDescricao'),
        'item_lc116': _item_lc116(node),
        'valor_servicos': _num(node, 'ValorServicos', 'vServ'),
        'valor_liquido': _num(node, 'ValorLiquidoNfse', 'vLiq'),
        'valor_iss': _num(node, 'ValorIss', 'vISSQN'),
        'valor_pis': _num(node, 'ValorPis', 'vPIS'),
        'valor_cofins': _num(node, 'ValorCofins', 'vCOFINS'),
        'valor_ir': _num(node, 'ValorIr', 'vRetIRRF'),
        'valor_inss': _num(node, 'ValorInss', 'vRetCP'),
        'valor_csll': _num(node, 'ValorCsll', 'vRetCSLL'),
        'itens': [],
    }


# ── Classification ───────────────────────────────────────────────────────────

def _is_cancelamento(root) -> bool:
    tags = {_strip_ns(e.tag) for e in root.iter()}
    if tags & {'procCancNFe', 'cancNFe'}:
        return True
    return 'procEventoNFe' in tags and _txt(root, 'tpEvento') == TP_EVENTO_CANCELAMENTO


def classify_xml(xml_bytes: bytes, empresa_cnpj: str) -> Dict:
    """
    Parse a fiscal XML and classify it relative to the company's CNPJ.

    Returns {'tipo', 'dados', 'chave'} where `tipo` is one of
    TIPOS_IMPORTACAO and `dados` holds the launch fields (None when the
    document cannot become a launch). Raises ValueError for malformed XML.
    """
    try:
        root = ET.fromstring(xml_bytes)
    except ET.ParseError as e:
        raise ValueError(f"XML inválido: {e}")

    cnpj = only_digits(empresa_cnpj)

    if _is_cancelamento(root):
        chave = _txt(root, 'chNFe')
        return {'tipo': 'cancelamento', 'dados': None, 'chave': chave}

    if _find(root, 'infNFe') is not None:
        dados = parse_nfe(root)
        if dados['emitente_cnpj'] == cnpj:
            tipo = 'saida'
        elif dados['destinatario_cnpj'] == cnpj:
            tipo = 'entrada'
        else:
            tipo = 'desconhecido'
        return {'tipo': tipo, 'dados': dados, 'chave': dados['chave_nfe']}

    if _find(root, 'CompNfse', 'NFSe', 'InfNfse', 'infNFSe') is not None or \
            _strip_ns(root.tag) in ('CompNfse', 'NFSe'):
        dados = parse_nfse(root)
        if dados['prestador_cnpj'] == cnpj:
            tipo = 'servico'
        elif dados['tomador_cnpj'] == cnpj:
            tipo = 'entrada'
        else:
            tipo = 'desconhecido'
        return {'tipo': tipo, 'dados': dados, 'chave': dados['numero_nfse']}

    logger.warning(f"Estrutura fiscal não reconhecida (raiz <{_strip_ns(root.tag)}>)")
    return {'tipo': 'desconhecido', 'dados': None, 'chave': None}
