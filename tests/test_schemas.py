"""Tests for request validation (documents, periods, required collections)."""

from datetime import date

import pytest
from pydantic import ValidationError

from schemas.schemas import (
    EmpresaCreate,
    FolhaCalculoIn,
    OrcamentoCreate,
    ParceiroCreate,
    ReciboCreate,
    SocioCreate,
    UserCreate,
)


class TestDocuments:

    def test_cnpj_is_normalized_to_digits(self):
        empresa = EmpresaCreate(razao_social="Exemplo", cnpj="11.222.333/0001-81")
        assert empresa.cnpj == "11222333000181"

    def test_cnpj_wrong_length(self):
        with pytest.raises(ValidationError):
            EmpresaCreate(razao_social="Exemplo", cnpj="11.222.333/0001")

    def test_cpf_is_normalized(self):
        socio = SocioCreate(nome_completo="Ana Socia", cpf="123.456.789-09")
        assert socio.cpf == "12345678909"

    def test_cpf_wrong_length(self):
        with pytest.raises(ValidationError):
            SocioCreate(nome_completo="Ana Socia", cpf="123.456.789")

    def test_partner_accepts_cpf_or_cnpj(self):
        pf = ParceiroCreate(tipo="cliente", razao_social="Pessoa", cpf_cnpj="123.456.789-09")
        pj = ParceiroCreate(tipo="fornecedor", razao_social="Empresa", cpf_cnpj="99.888.777/0001-66")
        assert pf.cpf_cnpj == "12345678909"
        assert pj.cpf_cnpj == "99888777000166"
        with pytest.raises(ValidationError):
            ParceiroCreate(tipo="cliente", razao_social="Pessoa", cpf_cnpj="123")

    def test_optional_document_may_be_omitted(self):
        recibo = ReciboCreate(pagador_nome="Cliente", valor=10, data=date(2024, 3, 1),
                              referente="Serviços")
        assert recibo.pagador_documento is None

    def test_counter_cpf_is_validated(self):
        with pytest.raises(ValidationError):
            EmpresaCreate(razao_social="Exemplo", cnpj="11222333000181", contador_cpf="12")


class TestPeriodo:

    def test_valid(self):
        assert FolhaCalculoIn(funcionario_id=1, periodo="03/2024").periodo == "03/2024"

    @pytest.mark.parametrize("periodo", ["3/2024", "13/2024", "2024-03", "00/2024", ""])
    def test_invalid(self, periodo):
        with pytest.raises(ValidationError):
            FolhaCalculoIn(funcionario_id=1, periodo=periodo)


class TestOther:

    def test_orcamento_requires_items(self):
        with pytest.raises(ValidationError):
            OrcamentoCreate(cliente_nome="Cliente", data=date(2024, 3, 1), itens=[])

    def test_short_password(self):
        with pytest.raises(ValidationError):
            UserCreate(email="a@b.com", password="123")

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            UserCreate(email="nao-e-email", password="123456")
