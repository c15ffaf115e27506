"""
Payroll calculation engine.

Straight-line application of the published INSS / IRRF / FGTS / salário-família
tables in services.tabelas. Every function is pure: it receives plain values
and event dicts and returns dicts, so routers, PDF builders and tests can all
use the same results.

A payroll event is a dict:
    {
      'rubrica': {'codigo', 'descricao', 'tipo', 'incide_inss', 'incide_fgts', 'incide_irrf'},
      'referencia': float,
      'provento': float,
      'desconto': float,
    }
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from services.tabelas import (
    INSS_FAIXAS, INSS_TETO, INSS_ALIQUOTA_SOCIO,
    IRRF_FAIXAS, IRRF_DEDUCAO_DEPENDENTE, IRRF_DESCONTO_SIMPLIFICADO,
    FGTS_ALIQUOTA, SALARIO_FAMILIA_LIMITE, SALARIO_FAMILIA_COTA,
    SALARIO_MINIMO, HORAS_MENSAIS,
)

logger = logging.getLogger(__name__)

RUBRICA_VALE_TRANSPORTE = '0004'
RUBRICA_SALARIO_FAMILIA = '0005'
_TAX_CODES = {'inss', 'irrf'}


def money(value: float) -> float:
    """Round to cents, half-up (the way the tables are published)."""
    return float(Decimal(repr(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def _bracket(base: float, faixas) -> tuple:
    for limite, aliquota, deducao in faixas:
        if base <= limite:
            return aliquota, deducao
    return faixas[-1][1], faixas[-1][2]


# ── INSS ─────────────────────────────────────────────────────────────────────

def calculate_inss(base: float, is_socio: bool = False) -> Dict:
    """
    Employee contribution on `base`. Sócios pay a flat 11% on the pró-labore.

    The sócio cap is 11% of the contribution ceiling (R$ 856,46), not the
    employee table maximum of INSS_TETO (R$ 908,85).
    """
    if base <= 0:
        return {'valor': 0.0, 'aliquota': 0.0}

    if is_socio:
        teto_socio = INSS_FAIXAS[-1][0] * INSS_ALIQUOTA_SOCIO
        valor = min(base * INSS_ALIQUOTA_SOCIO, teto_socio)
        return {'valor': money(valor), 'aliquota': INSS_ALIQUOTA_SOCIO * 100}

    if base > INSS_FAIXAS[-1][0]:
        return {'valor': INSS_TETO, 'aliquota': INSS_FAIXAS[-1][1] * 100}

    aliquota, deducao = _bracket(base, INSS_FAIXAS)
    return {'valor': money(base * aliquota - deducao), 'aliquota': aliquota * 100}


# ── IRRF ─────────────────────────────────────────────────────────────────────

def _irrf_on(base: float) -> tuple:
    if base <= 0:
        return 0.0, 0.0
    aliquota, deducao = _bracket(base, IRRF_FAIXAS)
    return base * aliquota - deducao, aliquota


def calculate_irrf(base_bruta: float, inss: float = 0.0, dependentes: int = 0) -> Dict:
    """
    Withholding income tax on `base_bruta` (IRRF-incident proventos).

    Two legal options are computed and the cheaper one wins:
      - completa: base − INSS − dependentes × dedução por dependente
      - simplificada: base − desconto simplificado (replaces every legal deduction)

    The simplified discount is taken from the gross base only. INSS is not
    subtracted first (base − INSS − 564,80 would stack both deductions).
    """
    if base_bruta <= 0:
        return {'valor': 0.0, 'aliquota': 0.0, 'base': 0.0, 'deducao': 'completa'}

    base_completa = base_bruta - inss - dependentes * IRRF_DEDUCAO_DEPENDENTE
    base_simplificada = base_bruta - IRRF_DESCONTO_SIMPLIFICADO
    valor_completa, aliq_completa = _irrf_on(base_completa)
    valor_simplificada, aliq_simplificada = _irrf_on(base_simplificada)

    if valor_completa <= valor_simplificada:
        valor, aliquota, base, deducao = valor_completa, aliq_completa, base_completa, 'completa'
    else:
        valor, aliquota, base, deducao = (valor_simplificada, aliq_simplificada,
                                          base_simplificada, 'simplificada')

    return {
        'valor': money(max(0.0, valor)),
        'aliquota': aliquota * 100,
        'base': money(max(0.0, base)),
        'deducao': deducao,
    }


def calculate_fgts(base: float) -> Dict:
    return {'valor': money(max(0.0, base) * FGTS_ALIQUOTA), 'aliquota': FGTS_ALIQUOTA * 100}


# ── Payroll ──────────────────────────────────────────────────────────────────

def _is_tax_event(evento: Dict) -> bool:
    rubrica = evento.get('rubrica') or {}
    return (str(rubrica.get('codigo', '')).lower() in _TAX_CODES
            or str(rubrica.get('descricao', '')).strip().lower() in _TAX_CODES)


def _sum(eventos: List[Dict], field: str, incidence: Optional[str] = None) -> float:
    total = 0.0
    for e in eventos:
        rubrica = e.get('rubrica') or {}
        if field == 'provento' and rubrica.get('tipo') != 'provento':
            continue
        if field == 'desconto' and rubrica.get('tipo') != 'desconto':
            continue
        if incidence and not rubrica.get(incidence):
            continue
        total += e.get(field) or 0.0
    return total


def _tax_line(codigo: str, descricao: str, referencia: float, valor: float) -> Dict:
    return {
        'rubrica': {'codigo': codigo, 'descricao': descricao, 'tipo': 'desconto',
                    'incide_inss': False, 'incide_fgts': False, 'incide_irrf': False},
        'referencia': referencia,
        'provento': 0.0,
        'desconto': valor,
    }


def calculate_payroll(eventos: List[Dict], dependentes_irrf: int = 0,
                      is_socio: bool = False) -> Dict:
    """
    Compute bases, INSS, IRRF, FGTS and totals for one payroll.

    Manually entered INSS/IRRF discount lines are dropped: both are always
    recomputed from the bases and appended to the returned `eventos`.
    """
    eventos = [e for e in eventos if not _is_tax_event(e)]

    base_fgts = _sum(eventos, 'provento', 'incide_fgts')
    base_inss = _sum(eventos, 'provento', 'incide_inss')
    base_irrf_proventos = _sum(eventos, 'provento', 'incide_irrf')

    inss = calculate_inss(base_inss, is_socio=is_socio)
    irrf = calculate_irrf(base_irrf_proventos, inss['valor'], dependentes_irrf)
    fgts = calculate_fgts(0.0 if is_socio else base_fgts)

    total_proventos = _sum(eventos, 'provento')
    descontos_manuais = _sum(eventos, 'desconto')
    total_descontos = descontos_manuais + inss['valor'] + irrf['valor']

    calculados = list(eventos)
    if inss['valor'] > 0:
        calculados.append(_tax_line('inss', 'INSS', inss['aliquota'], inss['valor']))
    if irrf['valor'] > 0:
        calculados.append(_tax_line('irrf', 'IRRF', irrf['aliquota'], irrf['valor']))

    return {
        'eventos': calculados,
        'total_proventos': money(total_proventos),
        'total_descontos': money(total_descontos),
        'liquido': money(total_proventos - total_descontos),
        'base_inss': money(base_inss),
        'base_irrf': money(base_irrf_proventos - inss['valor']),
        'base_fgts': money(base_fgts),
        'inss': inss,
        'irrf': irrf,
        'fgts': fgts,
    }


# ── Automatic events ─────────────────────────────────────────────────────────

def calculate_automatic_event(rubrica: Dict, salario_base: float,
                              dependentes_salario_familia: int,
                              eventos: List[Dict],
                              referencia: Optional[float] = None) -> Optional[Dict]:
    """
    Value of a rubrica that the law defines by formula.

    Returns {'referencia', 'provento', 'desconto'} or None when the rubrica
    is not automatic and must be entered by hand.
    """
    codigo = rubrica.get('codigo')
    descricao = (rubrica.get('descricao') or '').lower()
    horas = referencia or 0.0

    if codigo == RUBRICA_SALARIO_FAMILIA:
        remuneracao = sum(e.get('provento') or 0.0 for e in eventos
                          if (e.get('rubrica') or {}).get('incide_inss'))
        if remuneracao <= SALARIO_FAMILIA_LIMITE and dependentes_salario_familia > 0:
            return {
                'referencia': dependentes_salario_familia,
                'provento': money(dependentes_salario_familia * SALARIO_FAMILIA_COTA),
                'desconto': 0.0,
            }
        return {'referencia': 0, 'provento': 0.0, 'desconto': 0.0}

    if codigo == RUBRICA_VALE_TRANSPORTE:
        return {'referencia': 6, 'provento': 0.0, 'desconto': money(salario_base * 0.06)}

    valor_hora = salario_base / HORAS_MENSAIS

    if 'horas extras 50%' in descricao:
        return {'referencia': horas, 'provento': money(valor_hora * 1.5 * horas), 'desconto': 0.0}

    if 'adicional noturno' in descricao:
        return {'referencia': horas, 'provento': money(valor_hora * 0.20 * horas), 'desconto': 0.0}

    if 'periculosidade' in descricao:
        return {'referencia': 30, 'provento': money(salario_base * 0.30), 'desconto': 0.0}

    if 'insalubridade' in descricao:
        rate = 0.0
        if '40%' in descricao or 'máximo' in descricao:
            rate = 0.40
        elif '20%' in descricao or 'médio' in descricao:
            rate = 0.20
        elif '10%' in descricao or 'mínimo' in descricao:
            rate = 0.10
        if rate > 0:
            return {'referencia': rate * 100, 'provento': money(SALARIO_MINIMO * rate),
                    'desconto': 0.0}

    return None


def apply_automatic_events(eventos: List[Dict], salario_base: float,
                           dependentes_salario_familia: int) -> List[Dict]:
    """
    Fill in the value of every automatic event. Salário-família is evaluated
    last because its eligibility depends on the other INSS-incident proventos.
    """
    result: List[Dict] = []
    pending_sf: List[int] = []
    for evento in eventos:
        evento = dict(evento)
        if (evento.get('rubrica') or {}).get('codigo') == RUBRICA_SALARIO_FAMILIA:
            pending_sf.append(len(result))
            result.append(evento)
            continue
        calc = calculate_automatic_event(evento['rubrica'], salario_base,
                                         dependentes_salario_familia, result,
                                         evento.get('referencia'))
        if calc is not None:
            evento.update(calc)
        result.append(evento)

    for idx in pending_sf:
        others = [e for i, e in enumerate(result) if i not in pending_sf]
        calc = calculate_automatic_event(result[idx]['rubrica'], salario_base,
                                         dependentes_salario_familia, others)
        result[idx].update(calc)

    for evento in result:
        evento.setdefault('referencia', 0.0)
        evento['provento'] = money(evento.get('provento') or 0.0)
        evento['desconto'] = money(evento.get('desconto') or 0.0)
    logger.debug(f"Automatic events applied to {len(result)} event(s)")
    return result
