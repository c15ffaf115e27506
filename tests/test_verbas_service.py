"""Tests for vacation, termination and 13th salary calculations."""

from datetime import date

import pytest

from services.verbas_service import (
    avos,
    aviso_previo_dias,
    calculate_termination,
    calculate_thirteenth,
    calculate_vacation,
    full_months,
    meses_trabalhados_no_ano,
    periodo_aquisitivo,
)


def descricoes(calc):
    return [e["descricao"] for e in calc["eventos"]]


# =============================================================================
# Date arithmetic
# =============================================================================


class TestDateHelpers:

    def test_full_months(self):
        assert full_months(date(2024, 1, 10), date(2024, 3, 9)) == 1
        assert full_months(date(2024, 1, 10), date(2024, 3, 10)) == 2

    def test_fraction_of_fifteen_days_counts(self):
        assert avos(date(2024, 1, 1), date(2024, 1, 15)) == 1
        assert avos(date(2024, 1, 1), date(2024, 1, 14)) == 0

    def test_meses_trabalhados_no_ano(self):
        assert meses_trabalhados_no_ano(date(2020, 5, 1), 2024) == 12
        assert meses_trabalhados_no_ano(date(2024, 3, 10), 2024) == 10
        assert meses_trabalhados_no_ano(date(2025, 1, 1), 2024) == 0

    def test_aviso_previo_grows_three_days_per_year(self):
        assert aviso_previo_dias(date(2024, 1, 1), date(2024, 6, 1)) == 30
        assert aviso_previo_dias(date(2022, 1, 10), date(2024, 6, 30)) == 36
        assert aviso_previo_dias(date(1990, 1, 1), date(2024, 6, 1)) == 90

    def test_periodo_aquisitivo(self):
        admissao = date(2022, 1, 10)
        assert periodo_aquisitivo(admissao, date(2024, 7, 1)) == (date(2023, 1, 10),
                                                                  date(2024, 1, 9))
        assert periodo_aquisitivo(admissao, date(2023, 1, 10)) == (date(2022, 1, 10),
                                                                   date(2023, 1, 9))
        assert periodo_aquisitivo(admissao, date(2022, 6, 1)) == (date(2022, 1, 10),
                                                                  date(2023, 1, 9))


# =============================================================================
# Férias
# =============================================================================


class TestVacation:

    def test_thirty_days(self):
        calc = calculate_vacation(3000.00, 30)
        assert calc["total_proventos"] == 4000.00
        assert calc["total_descontos"] == pytest.approx(378.82 + 133.84)
        assert calc["liquido"] == 3487.34

    def test_abono_pecuniario(self):
        calc = calculate_vacation(3000.00, 20, abono_pecuniario=True)
        assert "Abono Pecuniário" in descricoes(calc)
        assert "1/3 sobre Abono Pecuniário" in descricoes(calc)
        abono = next(e for e in calc["eventos"] if e["descricao"] == "Abono Pecuniário")
        assert abono["provento"] == 1000.00

    def test_abono_requires_at_most_twenty_days(self):
        with pytest.raises(ValueError):
            calculate_vacation(3000.00, 30, abono_pecuniario=True)

    def test_days_out_of_range(self):
        with pytest.raises(ValueError):
            calculate_vacation(3000.00, 4)

    def test_adiantamento_decimo_terceiro_is_not_taxed(self):
        sem = calculate_vacation(3000.00, 30)
        com = calculate_vacation(3000.00, 30, adiantamento_decimo_terceiro=True)
        assert com["total_proventos"] == sem["total_proventos"] + 1500.00
        assert com["total_descontos"] == sem["total_descontos"]


# =============================================================================
# Rescisão
# =============================================================================


class TestTermination:

    def test_dismissal_without_cause(self):
        calc = calculate_termination(3000.00, date(2022, 1, 10), date(2024, 6, 30),
                                     "dispensa_sem_justa_causa", "indenizado", saldo_fgts=1000.00)
        assert calc["dias_aviso"] == 36
        assert calc["data_projetada"] == date(2024, 8, 5)
        eventos = {e["descricao"]: e for e in calc["eventos"]}
        assert eventos["Saldo de Salário"]["provento"] == 3000.00
        assert eventos["Aviso Prévio Indenizado"]["provento"] == 3600.00
        assert eventos["13º Salário Proporcional"]["provento"] == 1750.00
        assert calc["fgts_rescisao"] == 668.00
        assert calc["multa_fgts"] == 667.20

    def test_resignation_has_no_notice_or_fine(self):
        calc = calculate_termination(3000.00, date(2022, 1, 10), date(2024, 6, 30),
                                     "pedido_demissao", "trabalhado", saldo_fgts=1000.00)
        assert calc["dias_aviso"] == 0
        assert calc["multa_fgts"] == 0.0
        assert "Férias Proporcionais" in descricoes(calc)

    def test_just_cause_pays_only_balance(self):
        calc = calculate_termination(3000.00, date(2022, 1, 10), date(2024, 6, 30),
                                     "justa_causa", "trabalhado")
        proventos = [e["descricao"] for e in calc["eventos"] if e["provento"] > 0]
        assert proventos == ["Saldo de Salário"]

    def test_fgts_fine_is_outside_net(self):
        calc = calculate_termination(3000.00, date(2022, 1, 10), date(2024, 6, 30),
                                     "dispensa_sem_justa_causa", "indenizado", saldo_fgts=1000.00)
        assert calc["liquido"] == pytest.approx(calc["total_proventos"] - calc["total_descontos"])

    def test_invalid_reason(self):
        with pytest.raises(ValueError):
            calculate_termination(3000.00, date(2022, 1, 10), date(2024, 6, 30),
                                  "acordo", "indenizado")

    def test_termination_before_admission(self):
        with pytest.raises(ValueError):
            calculate_termination(3000.00, date(2024, 1, 10), date(2023, 6, 30),
                                  "pedido_demissao", "trabalhado")


# =============================================================================
# 13º salário
# =============================================================================


class TestThirteenth:

    def test_first_installment_has_no_deductions(self):
        calc = calculate_thirteenth(3000.00, 12, "primeira")
        assert calc["liquido"] == 1500.00
        assert calc["total_descontos"] == 0.0

    def test_single_installment(self):
        calc = calculate_thirteenth(3000.00, 12, "unica")
        assert calc["liquido"] == 2727.98

    def test_second_installment_discounts_advance(self):
        calc = calculate_thirteenth(3000.00, 12, "segunda")
        assert calc["liquido"] == pytest.approx(2727.98 - 1500.00)

    def test_proportional(self):
        calc = calculate_thirteenth(3000.00, 6, "primeira")
        assert calc["total_proventos"] == 750.00

    def test_invalid_months(self):
        with pytest.raises(ValueError):
            calculate_thirteenth(3000.00, 0, "unica")
