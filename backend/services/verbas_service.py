"""
Vacation (férias), termination (rescisão) and 13th salary calculations.

Each calculation returns the same shape the payslip PDF understands:
    {'eventos': [{'descricao', 'referencia', 'provento', 'desconto'}, ...],
     'total_proventos', 'total_descontos', 'liquido', ...extra info}
"""

import calendar
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from services.payroll_service import calculate_inss, calculate_irrf, money
from services.tabelas import FGTS_ALIQUOTA, FGTS_MULTA_RESCISORIA

logger = logging.getLogger(__name__)

MOTIVOS_RESCISAO = ('dispensa_sem_justa_causa', 'pedido_demissao', 'justa_causa')
TIPOS_AVISO = ('indenizado', 'trabalhado')
PARCELAS_13 = ('primeira', 'segunda', 'unica')


def _evento(descricao: str, referencia: str = '', provento: float = 0.0,
            desconto: float = 0.0) -> Dict:
    return {'descricao': descricao, 'referencia': referencia,
            'provento': money(provento), 'desconto': money(desconto)}


def _totais(eventos: List[Dict]) -> Dict:
    proventos = sum(e['provento'] for e in eventos)
    descontos = sum(e['desconto'] for e in eventos)
    return {
        'eventos': eventos,
        'total_proventos': money(proventos),
        'total_descontos': money(descontos),
        'liquido': money(proventos - descontos),
    }


def _inss_evento(base: float, descricao: str) -> Optional[Dict]:
    inss = calculate_inss(base)
    if inss['valor'] <= 0:
        return None
    return _evento(f'INSS sobre {descricao}', f"{inss['valor'] / base * 100:.2f}%",
                   desconto=inss['valor'])


def _irrf_evento(base: float, inss: float, dependentes: int, descricao: str) -> Optional[Dict]:
    irrf = calculate_irrf(base, inss, dependentes)
    if irrf['valor'] <= 0:
        return None
    return _evento(f'IRRF sobre {descricao}', f"{irrf['aliquota']:.1f}%", desconto=irrf['valor'])


# ── Date arithmetic ──────────────────────────────────────────────────────────

def _add_months(d: date, months: int) -> date:
    month = d.month - 1 + months
    year = d.year + month // 12
    month = month % 12 + 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def full_months(start: date, end: date) -> int:
    """Number of complete months from `start` up to `end`."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if _add_months(start, months) > end:
        months -= 1
    return max(months, 0)


def avos(start: date, end: date) -> int:
    """Twelfths earned between two dates: a fraction of 15 days or more counts as a month."""
    if end < start:
        return 0
    months = full_months(start, end)
    leftover = (end - _add_months(start, months)).days + 1
    if leftover >= 15:
        months += 1
    return months


def meses_trabalhados_no_ano(data_admissao: date, ano: int, ate: Optional[date] = None) -> int:
    """Twelfths of the 13th salary earned in `ano`."""
    inicio = max(data_admissao, date(ano, 1, 1))
    fim = min(ate or date(ano, 12, 31), date(ano, 12, 31))
    return min(avos(inicio, fim), 12)


def periodo_aquisitivo(data_admissao: date, data_inicio: date) -> Tuple[date, date]:
    """Last complete acquisition period before `data_inicio` (the first one if none is complete)."""
    anos = full_months(data_admissao, data_inicio) // 12
    inicio = _add_months(data_admissao, 12 * max(anos - 1, 0))
    return inicio, _add_months(inicio, 12) - timedelta(days=1)


# ── Férias ───────────────────────────────────────────────────────────────────

def calculate_vacation(salario_base: float, dias: int, abono_pecuniario: bool = False,
                       adiantamento_decimo_terceiro: bool = False,
                       dependentes_irrf: int = 0) -> Dict:
    if not 5 <= dias <= 30:
        raise ValueError("Período de férias deve ter entre 5 e 30 dias.")
    if abono_pecuniario and dias > 20:
        raise ValueError("Com abono pecuniário o gozo é de no máximo 20 dias.")

    eventos: List[Dict] = []
    ferias = salario_base / 30 * dias
    terco = ferias / 3
    eventos.append(_evento('Férias', f'{dias} dias', provento=ferias))
    eventos.append(_evento('1/3 Constitucional de Férias', provento=terco))

    if abono_pecuniario:
        abono = salario_base / 30 * 10
        eventos.append(_evento('Abono Pecuniário', '10 dias', provento=abono))
        eventos.append(_evento('1/3 sobre Abono Pecuniário', provento=abono / 3))

    if adiantamento_decimo_terceiro:
        eventos.append(_evento('Adiantamento 1ª Parcela 13º Salário', provento=salario_base / 2))

    # Abono e adiantamento do 13º não sofrem INSS/IRRF na quitação das férias
    base = money(ferias) + money(terco)
    inss_ev = _inss_evento(base, 'Férias')
    if inss_ev:
        eventos.append(inss_ev)
    inss_valor = inss_ev['desconto'] if inss_ev else 0.0
    irrf_ev = _irrf_evento(base, inss_valor, dependentes_irrf, 'Férias')
    if irrf_ev:
        eventos.append(irrf_ev)

    return _totais(eventos)


# ── Rescisão ─────────────────────────────────────────────────────────────────

def aviso_previo_dias(data_admissao: date, data_rescisao: date) -> int:
    """30 days plus 3 per complete year of service, capped at 90 (Lei 12.506/2011)."""
    anos = full_months(data_admissao, data_rescisao) // 12
    return min(30 + 3 * anos, 90)


def calculate_termination(salario_base: float, data_admissao: date, data_rescisao: date,
                          motivo: str, tipo_aviso: str, saldo_fgts: float = 0.0,
                          dependentes_irrf: int = 0) -> Dict:
    if motivo not in MOTIVOS_RESCISAO:
        raise ValueError(f"Motivo de rescisão inválido: {motivo}")
    if tipo_aviso not in TIPOS_AVISO:
        raise ValueError(f"Tipo de aviso inválido: {tipo_aviso}")
    if data_rescisao < data_admissao:
        raise ValueError("Data de rescisão anterior à admissão.")

    eventos: List[Dict] = []

    dias_mes = calendar.monthrange(data_rescisao.year, data_rescisao.month)[1]
    dias_trabalhados = data_rescisao.day
    saldo_salario = money(salario_base / dias_mes * dias_trabalhados)
    eventos.append(_evento('Saldo de Salário', f'{dias_trabalhados} dias', provento=saldo_salario))

    data_projetada = data_rescisao
    aviso_valor = 0.0
    dias_aviso = 0
    if motivo == 'dispensa_sem_justa_causa' and tipo_aviso == 'indenizado':
        dias_aviso = aviso_previo_dias(data_admissao, data_rescisao)
        aviso_valor = money(salario_base / 30 * dias_aviso)
        data_projetada = data_rescisao + timedelta(days=dias_aviso)
        eventos.append(_evento('Aviso Prévio Indenizado', f'{dias_aviso} dias',
                               provento=aviso_valor))

    decimo_valor = 0.0
    if motivo != 'justa_causa':
        # Férias proporcionais: período aquisitivo corrente, contado do último aniversário de admissão
        anos = full_months(data_admissao, data_projetada) // 12
        inicio_aquisitivo = _add_months(data_admissao, anos * 12)
        meses_ferias = min(avos(inicio_aquisitivo, data_projetada), 12)
        if meses_ferias > 0:
            ferias = salario_base / 12 * meses_ferias
            eventos.append(_evento('Férias Proporcionais', f'{meses_ferias}/12', provento=ferias))
            eventos.append(_evento('1/3 sobre Férias Proporcionais', provento=ferias / 3))

        meses_13 = meses_trabalhados_no_ano(data_admissao, data_projetada.year, data_projetada)
        if meses_13 > 0:
            decimo_valor = money(salario_base / 12 * meses_13)
            eventos.append(_evento('13º Salário Proporcional', f'{meses_13}/12',
                                   provento=decimo_valor))

    # Descontos: INSS separado sobre saldo de salário e sobre 13º; IRRF idem (tributação exclusiva do 13º)
    inss_saldo = _inss_evento(saldo_salario, 'Saldo de Salário')
    if inss_saldo:
        eventos.append(inss_saldo)
    inss_13 = _inss_evento(decimo_valor, '13º Salário') if decimo_valor else None
    if inss_13:
        eventos.append(inss_13)

    irrf_saldo = _irrf_evento(saldo_salario, inss_saldo['desconto'] if inss_saldo else 0.0,
                              dependentes_irrf, 'Saldo de Salário')
    if irrf_saldo:
        eventos.append(irrf_saldo)
    if decimo_valor:
        irrf_13 = _irrf_evento(decimo_valor, inss_13['desconto'] if inss_13 else 0.0,
                               dependentes_irrf, '13º Salário')
        if irrf_13:
            eventos.append(irrf_13)

    result = _totais(eventos)

    # FGTS do mês da rescisão e multa de 40%: recolhidos via guia, fora do líquido
    fgts_rescisao = money((saldo_salario + aviso_valor + decimo_valor) * FGTS_ALIQUOTA)
    multa = 0.0
    if motivo == 'dispensa_sem_justa_causa':
        multa = money((saldo_fgts + fgts_rescisao) * FGTS_MULTA_RESCISORIA)
    result.update({
        'dias_aviso': dias_aviso,
        'data_projetada': data_projetada,
        'fgts_rescisao': fgts_rescisao,
        'multa_fgts': multa,
    })
    logger.info(f"Rescisão calculada: motivo={motivo} aviso={dias_aviso}d líquido={result['liquido']}")
    return result


# ── 13º salário ──────────────────────────────────────────────────────────────

def calculate_thirteenth(salario_base: float, meses: int, parcela: str,
                         dependentes_irrf: int = 0,
                         adiantamento: Optional[float] = None) -> Dict:
    """
    `parcela` is 'primeira' (advance, no deductions), 'segunda' (balance with
    INSS/IRRF over the full amount, minus the advance) or 'unica'.
    """
    if parcela not in PARCELAS_13:
        raise ValueError(f"Parcela inválida: {parcela}")
    if not 1 <= meses <= 12:
        raise ValueError("Meses trabalhados deve estar entre 1 e 12.")

    integral = money(salario_base / 12 * meses)
    eventos: List[Dict] = []

    if parcela == 'primeira':
        eventos.append(_evento('13º Salário - 1ª Parcela', f'{meses}/12', provento=integral / 2))
        return _totais(eventos)

    eventos.append(_evento('13º Salário', f'{meses}/12', provento=integral))
    inss_ev = _inss_evento(integral, '13º Salário')
    if inss_ev:
        eventos.append(inss_ev)
    irrf_ev = _irrf_evento(integral, inss_ev['desconto'] if inss_ev else 0.0,
                           dependentes_irrf, '13º Salário')
    if irrf_ev:
        eventos.append(irrf_ev)
    if parcela == 'segunda':
        valor_adiantado = money(integral / 2) if adiantamento is None else adiantamento
        eventos.append(_evento('Adiantamento 13º Salário', desconto=valor_adiantado))
    return _totais(eventos)
