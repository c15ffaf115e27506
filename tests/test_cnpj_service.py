"""Tests for the CNPJ lookup (ReceitaWS first, BrasilAPI as complement or fallback)."""

import asyncio

import httpx
import pytest

from services.cnpj_service import lookup_cnpj, map_company_data, validate_cnpj_input

RECEITAWS_OK = {
    "status": "OK",
    "nome": "COMERCIO EXEMPLO LTDA",
    "fantasia": "EXEMPLO",
    "atividade_principal": [{"code": "47.51-2-01", "text": "Comércio varejista de informática"}],
    "cep": "01.310-100",
    "logradouro": "AV PAULISTA",
    "numero": "1000",
    "complemento": "",
    "bairro": "BELA VISTA",
    "municipio": "SAO PAULO",
    "uf": "SP",
    "telefone": "(11) 3333-4444",
    "email": "contato@exemplo.com.br",
}

BRASILAPI_OK = {
    "razao_social": "COMERCIO EXEMPLO LTDA",
    "nome_fantasia": "",
    "cnae_fiscal": 4751201,
    "cnae_fiscal_descricao": "Comércio varejista especializado de equipamentos de informática",
    "cep": "01310100",
    "logradouro": "AVENIDA PAULISTA",
    "numero": "1000",
    "bairro": "BELA VISTA",
    "municipio": "SAO PAULO",
    "codigo_municipio_ibge": 3550308,
    "uf": "SP",
    "ddd_telefone_1": "1133334444",
    "inscricoes_estaduais": [{"inscricao_estadual": "123456789", "uf": "SP"}],
}


def run_lookup(cnpj, receitaws=None, brasilapi=None):
    """Run lookup_cnpj against canned responses; None means the source is down."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        payload = receitaws if "receitaws" in request.url.host else brasilapi
        if payload is None:
            return httpx.Response(503)
        return httpx.Response(200, json=payload)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await lookup_cnpj(cnpj, client)

    return asyncio.run(go()), calls


class TestValidation:

    def test_digits_only(self):
        assert validate_cnpj_input("11.222.333/0001-81") == "11222333000181"

    def test_cpf_is_rejected(self):
        with pytest.raises(ValueError, match="CPF"):
            validate_cnpj_input("123.456.789-09")

    @pytest.mark.parametrize("value", ["", "123", "112223330001810"])
    def test_wrong_length(self, value):
        with pytest.raises(ValueError):
            validate_cnpj_input(value)


class TestLookup:

    def test_receitaws_data_with_brasilapi_complement(self):
        data, calls = run_lookup("11.222.333/0001-81", RECEITAWS_OK, BRASILAPI_OK)
        assert calls == ["www.receitaws.com.br", "brasilapi.com.br"]
        assert data["razao_social"] == "COMERCIO EXEMPLO LTDA"
        assert data["nome_fantasia"] == "EXEMPLO"
        assert data["logradouro"] == "AV PAULISTA"
        assert data["cep"] == "01310-100"
        assert data["codigo_municipio"] == "3550308"
        assert data["inscricao_estadual"] == "123456789"

    def test_receitaws_error_falls_back_to_brasilapi(self):
        erro = {"status": "ERROR", "message": "CNPJ inválido"}
        data, _ = run_lookup("11222333000181", erro, BRASILAPI_OK)
        assert data["razao_social"] == "COMERCIO EXEMPLO LTDA"
        assert data["nome_fantasia"] == "COMERCIO EXEMPLO LTDA"
        assert data["cnae_principal_codigo"] == "4751201"
        assert data["telefone"] == "1133334444"

    def test_receitaws_down(self):
        data, _ = run_lookup("11222333000181", None, BRASILAPI_OK)
        assert data["logradouro"] == "AVENIDA PAULISTA"

    def test_only_receitaws(self):
        data, _ = run_lookup("11222333000181", RECEITAWS_OK, None)
        assert data["cnae_principal_codigo"] == "4751201"
        assert data["codigo_municipio"] == ""

    def test_not_found_anywhere(self):
        with pytest.raises(LookupError):
            run_lookup("11222333000181", None, None)


def test_map_company_data_state_registration_of_other_state_is_ignored():
    data = dict(BRASILAPI_OK, inscricoes_estaduais=[{"inscricao_estadual": "999", "uf": "RJ"}])
    assert map_company_data(data)["inscricao_estadual"] == ""
