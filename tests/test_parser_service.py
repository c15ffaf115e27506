"""Tests for the shared parsing and pt-BR formatting helpers."""

from datetime import date

import pytest

from services.parser_service import (
    format_brl,
    format_cep,
    format_cnpj,
    format_cpf,
    format_date_br,
    format_decimal,
    only_digits,
    parse_periodo,
    periodo_api,
    periodo_bounds,
    previous_periods,
    to_float,
)


class TestConversao:

    def test_only_digits(self):
        assert only_digits("11.222.333/0001-81") == "11222333000181"
        assert only_digits(None) == ""

    def test_to_float_is_lenient(self):
        assert to_float("1500.50") == 1500.50
        assert to_float("") == 0.0
        assert to_float(None) == 0.0
        assert to_float("abc") == 0.0
        assert to_float("1.234,56") == 0.0


class TestPeriodo:

    def test_parse(self):
        assert parse_periodo("07/2024") == (7, 2024)
        assert parse_periodo(" 12/2023 ") == (12, 2023)

    @pytest.mark.parametrize("periodo", ["13/2024", "7/2024", "2024-07", "", None])
    def test_invalid(self, periodo):
        with pytest.raises(ValueError):
            parse_periodo(periodo)

    def test_bounds_handle_leap_year(self):
        assert periodo_bounds("02/2024") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_api_format(self):
        assert periodo_api("03/2024") == "2024-03"

    def test_previous_periods_cross_year(self):
        assert previous_periods("02/2024", 3) == ["11/2023", "12/2023", "01/2024"]
        assert len(previous_periods("03/2024")) == 12


class TestFormatacao:

    def test_money(self):
        assert format_decimal(1234.5) == "1.234,50"
        assert format_decimal(None) == "0,00"
        assert format_decimal(6.728, 4) == "6,7280"
        assert format_brl(1234567.891) == "R$ 1.234.567,89"

    def test_documents(self):
        assert format_cnpj("11222333000181") == "11.222.333/0001-81"
        assert format_cnpj("123") == "123"
        assert format_cpf("12345678909") == "123.456.789-09"
        assert format_cep("01310100") == "01310-100"

    def test_date(self):
        assert format_date_br(date(2024, 3, 5)) == "05/03/2024"
        assert format_date_br(None) == ""
