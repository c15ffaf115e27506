"""API tests: dashboard figures and monthly reports."""

import fitz

from conftest import EMPRESA_CNPJ
from samples import CHAVE_ENTRADA, CHAVE_SAIDA, cancelamento_nfe, nfe, nfse_nacional

FORNECEDOR = "99888777000166"
CLIENTE = "55444333000122"


def importar(client, base_url, headers, *arquivos):
    files = [("files", (f"{i}.xml", content, "text/xml")) for i, content in enumerate(arquivos)]
    return client.post(f"{base_url}/lancamentos/importar", files=files, headers=headers).json()


class TestDashboard:

    def test_totals_for_period(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers,
                 nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE, total="1500.00"),
                 nfe(CHAVE_ENTRADA, FORNECEDOR, EMPRESA_CNPJ, total="400.00"),
                 nfse_nacional(EMPRESA_CNPJ, CLIENTE))
        client.post(f"{base_url}/funcionarios",
                    json={"nome_completo": "Joao da Silva", "cpf": "12345678909",
                          "data_admissao": "2022-01-10", "salario_base": 3000.00},
                    headers=auth_headers)
        client.post(f"{base_url}/esocial", json={"tipo": "S-1000"}, headers=auth_headers)

        resp = client.get(f"{base_url}/dashboard", params={"periodo": "03/2024"},
                          headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {
            "periodo": "03/2024",
            "total_entradas": 400.00,
            "total_saidas": 1500.00,
            "total_servicos": 1000.00,
            "lancamentos_mes": 3,
            "funcionarios_ativos": 1,
            "eventos_esocial_pendentes": 1,
        }

    def test_cancelled_launches_are_ignored(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers, nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE))
        importar(client, base_url, auth_headers, cancelamento_nfe(CHAVE_SAIDA))
        stats = client.get(f"{base_url}/dashboard", params={"periodo": "03/2024"},
                           headers=auth_headers).json()
        assert stats["total_saidas"] == 0.0
        assert stats["lancamentos_mes"] == 0

    def test_invalid_period(self, client, auth_headers, base_url):
        resp = client.get(f"{base_url}/dashboard", params={"periodo": "13/2024"},
                          headers=auth_headers)
        assert resp.status_code == 400


class TestRelatorios:

    def test_revenue_by_month(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers,
                 nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE, data="2024-03-10"),
                 nfse_nacional(EMPRESA_CNPJ, CLIENTE, data="2024-05-02"),
                 nfe(CHAVE_ENTRADA, FORNECEDOR, EMPRESA_CNPJ, total="400.00"))
        resp = client.get(f"{base_url}/relatorios/faturamento", params={"ano": 2024},
                          headers=auth_headers)
        relatorio = resp.json()
        assert relatorio["ano"] == 2024
        assert len(relatorio["meses"]) == 12
        assert relatorio["meses"][2] == {"mes": 3, "total": 1000.00}
        assert relatorio["meses"][4] == {"mes": 5, "total": 1000.00}
        assert relatorio["total"] == 2000.00

    def test_purchases_by_month(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers,
                 nfe(CHAVE_ENTRADA, FORNECEDOR, EMPRESA_CNPJ, total="400.00"))
        relatorio = client.get(f"{base_url}/relatorios/compras", params={"ano": 2024},
                               headers=auth_headers).json()
        assert relatorio["total"] == 400.00
        assert relatorio["meses"][2]["total"] == 400.00
        assert client.get(f"{base_url}/relatorios/compras", params={"ano": 2023},
                          headers=auth_headers).json()["total"] == 0.0


def pdf_text(resp) -> str:
    assert resp.status_code == 200, resp.text
    assert resp.headers["content-type"] == "application/pdf"
    with fitz.open(stream=resp.content, filetype="pdf") as doc:
        return "".join(page.get_text() for page in doc)


class TestRelatoriosPdf:

    def test_annual_report(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers,
                 nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE, total="1500.00"),
                 nfe(CHAVE_ENTRADA, FORNECEDOR, EMPRESA_CNPJ, total="400.00"))
        resp = client.get(f"{base_url}/relatorios/anual/pdf", params={"ano": 2024},
                          headers=auth_headers)
        assert "relatorio_anual_2024.pdf" in resp.headers["content-disposition"]
        text = pdf_text(resp)
        assert "Anual - 2024" in text
        assert "1.500,00" in text
        assert "1.100,00" in text

    def test_annual_report_counts_cancelled_apart(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers, nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE))
        importar(client, base_url, auth_headers, cancelamento_nfe(CHAVE_SAIDA))
        text = pdf_text(client.get(f"{base_url}/relatorios/anual/pdf", params={"ano": 2024},
                                   headers=auth_headers))
        assert "1.000,00" in text

    def test_annual_report_without_launches(self, client, auth_headers, base_url):
        resp = client.get(f"{base_url}/relatorios/anual/pdf", params={"ano": 2023},
                          headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == \
            "Nenhum lançamento fiscal encontrado para o ano selecionado."

    def test_gross_revenue_statement(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers,
                 nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE, total="1500.00"),
                 nfse_nacional(EMPRESA_CNPJ, CLIENTE),
                 nfe(CHAVE_ENTRADA, FORNECEDOR, EMPRESA_CNPJ, total="400.00"))
        resp = client.get(f"{base_url}/relatorios/receita-bruta/pdf",
                          params={"periodo": "03/2024"}, headers=auth_headers)
        assert "receita_bruta_032024.pdf" in resp.headers["content-disposition"]
        text = pdf_text(resp)
        assert "R$ 1.500,00" in text
        assert "R$ 2.500,00" in text
        assert "400,00" not in text

    def test_gross_revenue_invalid_period(self, client, auth_headers, base_url):
        resp = client.get(f"{base_url}/relatorios/receita-bruta/pdf",
                          params={"periodo": "13/2024"}, headers=auth_headers)
        assert resp.status_code == 400

    def test_purchases(self, client, auth_headers, base_url):
        importar(client, base_url, auth_headers,
                 nfe(CHAVE_ENTRADA, FORNECEDOR, EMPRESA_CNPJ, total="400.00"),
                 nfe(CHAVE_SAIDA, EMPRESA_CNPJ, CLIENTE, total="1500.00"))
        text = pdf_text(client.get(f"{base_url}/relatorios/compras/pdf",
                                   params={"data_inicio": "2024-03-01",
                                           "data_fim": "2024-03-31"},
                                   headers=auth_headers))
        assert CHAVE_ENTRADA in text
        assert CHAVE_SAIDA not in text
        assert "R$ 400,00" in text

        resp = client.get(f"{base_url}/relatorios/compras/pdf",
                          params={"data_inicio": "2024-04-01"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Nenhuma compra encontrada para o período selecionado."
