"""
EFD-Contribuições (PIS/COFINS) text file generator.

Pipe-delimited records, one per line, CRLF line endings, ISO-8859-1 encoding.
Blocks written: 0, A (services), C (goods), D/F/I/P/1 (empty), M (totals), 9
(record counts). The layout is mandated by the Receita Federal guide; this
module only fills it from the company's launches.
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional

from config import EFD_COD_VER
from models.models import TipoLancamento, StatusLancamento
from services.parser_service import only_digits, periodo_bounds, parse_periodo

logger = logging.getLogger(__name__)

COD_PAIS_BRASIL = '01058'


# ── Field formatting ─────────────────────────────────────────────────────────

def fmt_valor(value: Optional[float]) -> str:
    if value is None:
        return '0,00'
    return f"{value:.2f}".replace('.', ',')


def fmt_data(value: Optional[date]) -> str:
    return value.strftime('%d%m%Y') if value else ''


def sanitize(text: Optional[str]) -> str:
    if not text:
        return ''
    return text.replace('|', '').replace('\r', ' ').replace('\n', ' ').strip().upper()


def record(*fields) -> str:
    return '|' + '|'.join('' if f is None else str(f) for f in fields) + '|'


# ── Launch selection ─────────────────────────────────────────────────────────

def _ativos(lancamentos: Iterable) -> List:
    return [l for l in lancamentos if l.status != StatusLancamento.cancelado]


def _is_servico_tomado(l) -> bool:
    return l.tipo == TipoLancamento.entrada and bool(l.numero_nfse) and not l.chave_nfe


def _participante(l) -> tuple:
    """(documento, nome) of the counterparty of a launch."""
    if l.tipo == TipoLancamento.servico:
        return only_digits(l.tomador_cnpj), l.tomador_nome
    if l.tipo == TipoLancamento.saida:
        return only_digits(l.destinatario_cnpj or l.tomador_cnpj), l.destinatario_nome or l.tomador_nome
    if _is_servico_tomado(l):
        return only_digits(l.prestador_cnpj), l.prestador_nome
    return only_digits(l.emitente_cnpj or l.prestador_cnpj), l.emitente_nome or l.prestador_nome


def _ind_ativ(lancamentos: List) -> str:
    tipos = {l.tipo for l in lancamentos}
    if TipoLancamento.saida in tipos:
        return '2'  # comércio
    if TipoLancamento.servico in tipos:
        return '1'  # prestação de serviços
    return '9'


# ── Blocks ───────────────────────────────────────────────────────────────────

def _bloco_0(empresa, inicio: date, fim: date, tipo_escrituracao: str,
             recibo_anterior: Optional[str], lancamentos: List) -> List[str]:
    cnpj = only_digits(empresa.cnpj)
    lines = [
        record('0000', EFD_COD_VER, tipo_escrituracao, '', recibo_anterior or '',
               fmt_data(inicio), fmt_data(fim), sanitize(empresa.razao_social), cnpj,
               (empresa.uf or '').upper(), empresa.codigo_municipio or '', '', '00',
               _ind_ativ(lancamentos)),
        record('0001', '0'),
        record('0100', sanitize(empresa.contador_nome), only_digits(empresa.contador_cpf),
               sanitize(empresa.contador_crc), '', '', '', '', '', '',
               only_digits(empresa.contador_telefone), '', (empresa.contador_email or '').strip(),
               empresa.codigo_municipio or ''),
    ]

    incidencia = empresa.incidencia_tributaria or '1'
    lines.append(record(
        '0110', incidencia,
        (empresa.metodo_apropriacao_credito or '1') if incidencia in ('1', '3') else '',
        empresa.tipo_contribuicao or '1',
        '9' if incidencia == '2' else '',
    ))

    lines.append(record('0140', '', sanitize(empresa.razao_social), cnpj, (empresa.uf or '').upper(),
                        only_digits(empresa.inscricao_estadual), empresa.codigo_municipio or '',
                        sanitize(empresa.inscricao_municipal), ''))

    participantes: "OrderedDict[str, str]" = OrderedDict()
    for l in lancamentos:
        doc, nome = _participante(l)
        if doc and doc != cnpj and doc not in participantes:
            participantes[doc] = sanitize(nome)
    for doc, nome in participantes.items():
        lines.append(record('0150', doc, nome, COD_PAIS_BRASIL,
                            doc if len(doc) == 14 else '', doc if len(doc) == 11 else '',
                            '', '', '', '', '', '', ''))

    lines.append(record('0990', len(lines) + 1))
    return lines


def _bloco_a(empresa, lancamentos: List) -> List[str]:
    servicos = [l for l in lancamentos
                if l.tipo == TipoLancamento.servico or _is_servico_tomado(l)]
    lines = [record('A001', '0' if servicos else '1')]
    if servicos:
        lines.append(record('A010', only_digits(empresa.cnpj)))
        for s in servicos:
            doc, _ = _participante(s)
            prestado = s.tipo == TipoLancamento.servico
            valor = s.valor_servicos or 0.0
            lines.append(record(
                'A100', '1' if prestado else '0', '0' if prestado else '1', doc, '00',
                s.serie or '', '', s.numero_nfse or '', '',
                fmt_data(s.data), fmt_data(s.data), fmt_valor(valor), '1', fmt_valor(0),
                fmt_valor(valor), fmt_valor(s.valor_pis), fmt_valor(valor), fmt_valor(s.valor_cofins),
                fmt_valor(0), fmt_valor(0), fmt_valor(s.valor_iss),
            ))
    lines.append(record('A990', len(lines) + 1))
    return lines


def _bloco_c(empresa, lancamentos: List) -> List[str]:
    notas = [l for l in lancamentos
             if l.tipo == TipoLancamento.saida or (l.tipo == TipoLancamento.entrada and l.chave_nfe)]
    lines = [record('C001', '0' if notas else '1')]
    if notas:
        lines.append(record('C010', only_digits(empresa.cnpj), '2'))
        for n in notas:
            doc, _ = _participante(n)
            saida = n.tipo == TipoLancamento.saida
            total = n.valor_total_nota or 0.0
            lines.append(record(
                'C100', '1' if saida else '0', '0' if saida else '1', doc, '55', '00',
                n.serie or '', n.numero or '', n.chave_nfe or '',
                fmt_data(n.data), fmt_data(n.data), fmt_valor(total), '1',
                fmt_valor(n.valor_desconto), fmt_valor(0), fmt_valor(n.valor_produtos or total),
                '9', fmt_valor(n.valor_frete), fmt_valor(0), fmt_valor(0),
                fmt_valor(0), fmt_valor(n.valor_icms), fmt_valor(0), fmt_valor(0),
                fmt_valor(n.valor_ipi), fmt_valor(n.valor_pis), fmt_valor(n.valor_cofins),
                fmt_valor(0), fmt_valor(0),
            ))
    lines.append(record('C990', len(lines) + 1))
    return lines


def _consolidacao(reg: str, total: float, cumulativo: bool) -> str:
    nc = fmt_valor(0 if cumulativo else total)
    cum = fmt_valor(total if cumulativo else 0)
    zero = fmt_valor(0)
    return record(reg, nc, zero, zero, nc, zero, zero, nc, cum, zero, zero, cum, fmt_valor(total))


def _bloco_m(empresa, lancamentos: List) -> List[str]:
    receitas = [l for l in lancamentos if l.tipo in (TipoLancamento.saida, TipoLancamento.servico)]
    total_pis = round(sum(l.valor_pis or 0.0 for l in receitas), 2)
    total_cofins = round(sum(l.valor_cofins or 0.0 for l in receitas), 2)
    has_values = total_pis > 0 or total_cofins > 0
    cumulativo = (empresa.incidencia_tributaria or '1') == '2'

    lines = [record('M001', '0' if has_values else '1')]
    if has_values:
        lines.append(_consolidacao('M200', total_pis, cumulativo))
        lines.append(_consolidacao('M600', total_cofins, cumulativo))
    lines.append(record('M990', len(lines) + 1))
    return lines


def _bloco_vazio(letra: str) -> List[str]:
    return [record(f'{letra}001', '1'), record(f'{letra}990', '2')]


def _bloco_9(lines: List[str]) -> List[str]:
    counts: "OrderedDict[str, int]" = OrderedDict()
    for line in lines:
        reg = line.split('|')[1]
        counts[reg] = counts.get(reg, 0) + 1

    bloco = [record('9001', '0')]
    for reg, qtd in counts.items():
        bloco.append(record('9900', reg, qtd))
    registros_9900 = len(counts) + 4
    bloco.append(record('9900', '9001', 1))
    bloco.append(record('9900', '9900', registros_9900))
    bloco.append(record('9900', '9990', 1))
    bloco.append(record('9900', '9999', 1))
    # 9990 counts every line of block 9, itself and 9999 included
    bloco.append(record('9990', len(bloco) + 2))
    bloco.append(record('9999', len(lines) + len(bloco) + 1))
    return bloco


# ── Public API ───────────────────────────────────────────────────────────────

def generate_efd_contribuicoes(empresa, lancamentos: Iterable, periodo: str,
                               sem_movimento: bool = False, tipo_escrituracao: str = '0',
                               recibo_anterior: Optional[str] = None) -> Dict:
    """
    Build the EFD-Contribuições file for `periodo` ('MM/YYYY').

    Returns {'nome_arquivo', 'conteudo', 'linhas'}; `conteudo` is text, use
    encode_efd() for the bytes to deliver.
    """
    month, year = parse_periodo(periodo)
    inicio, fim = periodo_bounds(periodo)
    if tipo_escrituracao not in ('0', '1'):
        raise ValueError("Tipo de escrituração deve ser 0 (original) ou 1 (retificadora).")
    if tipo_escrituracao == '1' and not recibo_anterior:
        raise ValueError("Escrituração retificadora exige o número do recibo anterior.")

    ativos = [] if sem_movimento else [l for l in _ativos(lancamentos) if inicio <= l.data <= fim]
    if not sem_movimento and not ativos:
        raise ValueError("Nenhum lançamento fiscal encontrado no período para gerar o "
                         "arquivo com movimento.")

    lines: List[str] = []
    lines += _bloco_0(empresa, inicio, fim, tipo_escrituracao, recibo_anterior, ativos)
    lines += _bloco_a(empresa, ativos)
    lines += _bloco_c(empresa, ativos)
    lines += _bloco_vazio('D')
    lines += _bloco_vazio('F')
    lines += _bloco_vazio('I')
    lines += _bloco_m(empresa, ativos)
    lines += _bloco_vazio('P')
    lines += _bloco_vazio('1')
    lines += _bloco_9(lines)

    nome = f"EFD_CONTRIBUICOES_{only_digits(empresa.cnpj)}_{month:02d}{year}.txt"
    logger.info(f"EFD-Contribuições gerada: {nome} ({len(lines)} linhas, "
                f"{len(ativos)} lançamentos)")
    return {'nome_arquivo': nome, 'conteudo': '\r\n'.join(lines) + '\r\n', 'linhas': len(lines)}


def encode_efd(conteudo: str) -> bytes:
    return conteudo.encode('iso-8859-1', errors='replace')
