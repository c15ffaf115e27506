"""
Simples Nacional (PGDAS-D) effective-rate calculation.

    alíquota efetiva = ((RBT12 × alíquota nominal) − parcela a deduzir) / RBT12
    DAS              = RPA × alíquota efetiva
"""

import logging
from typing import Dict, Optional

from services.payroll_service import money
from services.tabelas import SIMPLES_ANEXOS, SIMPLES_LIMITE, SIMPLES_FATOR_R_MINIMO

logger = logging.getLogger(__name__)


def faixa_simples(anexo: str, rbt12: float) -> tuple:
    """Return (faixa 1..6, alíquota nominal, parcela a deduzir) for the RBT12."""
    if anexo not in SIMPLES_ANEXOS:
        raise ValueError(f"Anexo do Simples Nacional inválido: {anexo}")
    if rbt12 > SIMPLES_LIMITE:
        raise ValueError("RBT12 acima do limite do Simples Nacional (R$ 4.800.000,00).")
    for i, (limite, aliquota, deducao) in enumerate(SIMPLES_ANEXOS[anexo], start=1):
        if rbt12 <= limite:
            return i, aliquota, deducao
    raise ValueError("RBT12 fora das faixas do Simples Nacional.")


def fator_r(folha_12m: float, rbt12: float) -> float:
    return folha_12m / rbt12 if rbt12 > 0 else 0.0


def anexo_por_fator_r(folha_12m: float, rbt12: float) -> str:
    """Services subject to Fator R: ≥ 28% of payroll over revenue → Anexo III, else V."""
    return 'III' if fator_r(folha_12m, rbt12) >= SIMPLES_FATOR_R_MINIMO else 'V'


def aliquota_efetiva(rbt12: float, aliquota_nominal: float, parcela_deduzir: float) -> float:
    """Effective rate as a fraction. In the first month (RBT12 = 0) the nominal rate applies."""
    if rbt12 <= 0:
        return aliquota_nominal
    return max((rbt12 * aliquota_nominal - parcela_deduzir) / rbt12, 0.0)


def calculate_simples(rpa: float, rbt12: float, anexo: str = 'I',
                      folha_12m: Optional[float] = None) -> Dict:
    """
    Full PGDAS calculation for one period.

    `anexo` may be 'auto' together with `folha_12m` to choose between Anexo III
    and V by Fator R. Percentages in the result are expressed as 0-100.
    """
    if rpa < 0 or rbt12 < 0:
        raise ValueError("Receitas não podem ser negativas.")
    if anexo == 'auto':
        anexo = anexo_por_fator_r(folha_12m or 0.0, rbt12)

    faixa, nominal, deducao = faixa_simples(anexo, rbt12)
    efetiva = aliquota_efetiva(rbt12, nominal, deducao)
    das = money(rpa * efetiva)
    logger.info(f"PGDAS anexo={anexo} faixa={faixa} RBT12={rbt12:.2f} efetiva={efetiva * 100:.4f}%")
    return {
        'anexo': anexo,
        'faixa': faixa,
        'rpa': money(rpa),
        'rbt12': money(rbt12),
        'aliquota_nominal': round(nominal * 100, 4),
        'parcela_deduzir': deducao,
        'aliquota_efetiva': round(efetiva * 100, 4),
        'valor_das': das,
    }
