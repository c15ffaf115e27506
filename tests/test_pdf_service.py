"""Tests for the PDF documents."""

from datetime import date
from types import SimpleNamespace

import fitz
import pytest

from services.payroll_service import calculate_payroll
from services.pdf_service import (
    aviso_ferias_pdf,
    compras_pdf,
    funcionarios_pdf,
    holerite_pdf,
    orcamento_pdf,
    pgdas_pdf,
    plano_contas_pdf,
    rci_pdf,
    receita_bruta_pdf,
    recibo_pdf,
    relatorio_anual_pdf,
    resumo_folha_pdf,
    verbas_pdf,
)
from services.verbas_service import calculate_vacation, periodo_aquisitivo


def pdf_text(data: bytes) -> str:
    assert data.startswith(b"%PDF")
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc)


@pytest.fixture
def empresa():
    return SimpleNamespace(razao_social="Comercio Exemplo Ltda", nome_fantasia="Exemplo",
                           cnpj="11222333000181", logradouro="Av Paulista", numero="1000",
                           bairro="Bela Vista", cidade="Sao Paulo", uf="SP",
                           cnae_principal_codigo="4751201")


@pytest.fixture
def funcionario():
    return SimpleNamespace(id=1, nome_completo="Joao da Silva", cpf="12345678909",
                           cargo="Vendedor", data_admissao=date(2022, 1, 10),
                           salario_base=3000.00)


def test_holerite(empresa, funcionario):
    salario = {"rubrica": {"codigo": "0001", "descricao": "Salário Base", "tipo": "provento",
                           "incide_inss": True, "incide_fgts": True, "incide_irrf": True},
               "referencia": 30, "provento": 3000.00, "desconto": 0.0}
    calc = calculate_payroll([salario])
    folha = SimpleNamespace(periodo="03/2024", eventos=calc["eventos"],
                            total_proventos=calc["total_proventos"],
                            total_descontos=calc["total_descontos"], liquido=calc["liquido"],
                            base_inss=calc["base_inss"], base_fgts=calc["base_fgts"],
                            base_irrf=calc["base_irrf"], valor_fgts=calc["fgts"]["valor"])
    text = pdf_text(holerite_pdf(empresa, funcionario, folha))
    assert "Recibo de Pagamento de Sal" in text
    assert "11.222.333/0001-81" in text
    assert "123.456.789-09" in text
    assert "2.727,98" in text


def test_rci(empresa):
    socio = SimpleNamespace(nome_completo="Ana Socia", cpf="98765432100")
    rci = SimpleNamespace(periodo="03/2024", eventos=[], total_proventos=5000.00,
                          total_descontos=885.15, liquido=4114.85, base_inss=5000.00,
                          base_irrf=4450.00)
    text = pdf_text(rci_pdf(empresa, socio, rci))
    assert "RCI" in text
    assert "4.114,85" in text


def test_vacation_receipt(empresa, funcionario):
    calc = calculate_vacation(3000.00, 30)
    text = pdf_text(verbas_pdf(empresa, funcionario, "Recibo de Férias", calc,
                               [("Período de gozo", "01/04/2024 a 30/04/2024")]))
    assert "3.487,34" in text
    assert "01/04/2024 a 30/04/2024" in text


def test_pgdas(empresa):
    pgdas = SimpleNamespace(periodo="03/2024", anexo="I", rpa=50000.00, rbt12=500000.00,
                            aliquota_nominal=9.5, parcela_deduzir=13860.00,
                            aliquota_efetiva=6.728, valor_das=3364.00)
    text = pdf_text(pgdas_pdf(empresa, pgdas))
    assert "PGDAS-D" in text
    assert "6,7280%" in text
    assert "3.364,00" in text


def test_orcamento(empresa):
    itens = [SimpleNamespace(descricao="Consultoria", quantidade=2, valor_unitario=150.00,
                             valor_total=300.00)]
    orcamento = SimpleNamespace(numero=7, cliente_nome="Cliente Final", data=date(2024, 3, 1),
                                validade=date(2024, 3, 31), itens=itens, valor_total=300.00,
                                observacoes="Pagamento em 30 dias")
    text = pdf_text(orcamento_pdf(empresa, orcamento))
    assert "0007" in text
    assert "Cliente Final" in text
    assert "300,00" in text


def test_recibo(empresa):
    recibo = SimpleNamespace(numero=3, pagador_nome="Cliente Final",
                             pagador_documento="55444333000122", valor=1250.50,
                             data=date(2024, 3, 5), referente="serviços de março", cidade=None)
    data = recibo_pdf(empresa, recibo)
    text = pdf_text(data)
    assert "1.250,50" in text
    assert "Sao Paulo, 05/03/2024" in text


def test_many_rows_span_pages(empresa, funcionario):
    eventos = [{"descricao": f"Evento {i}", "referencia": "", "provento": 10.0, "desconto": 0.0}
               for i in range(120)]
    calc = {"eventos": eventos, "total_proventos": 1200.0, "total_descontos": 0.0,
            "liquido": 1200.0}
    with fitz.open(stream=verbas_pdf(empresa, funcionario, "Recibo", calc), filetype="pdf") as doc:
        assert doc.page_count > 1


# =============================================================================
# Aviso de férias e relatórios da folha
# =============================================================================


def test_vacation_notice(empresa, funcionario):
    ferias = SimpleNamespace(data_inicio=date(2024, 7, 1), dias=20, abono_pecuniario=True,
                             adiantamento_decimo_terceiro=False)
    aquisitivo = periodo_aquisitivo(funcionario.data_admissao, ferias.data_inicio)
    text = pdf_text(aviso_ferias_pdf(empresa, funcionario, ferias, aquisitivo,
                                     emitido_em=date(2024, 6, 1)))
    assert "AVISO DE F" in text
    assert "10/01/2023" in text
    assert "09/01/2024" in text
    assert "20 dias, de 01/07/2024 a 20/07/2024" in text
    assert "21/07/2024" in text
    assert "art. 143" in text
    assert "Sao Paulo, 01/06/2024" in text


def _calc(provento, desconto=0.0):
    eventos = [{"descricao": "Salario", "referencia": "", "provento": provento, "desconto": 0.0}]
    if desconto:
        eventos.append({"descricao": "INSS", "referencia": "", "provento": 0.0,
                        "desconto": desconto})
    return {"eventos": eventos, "total_proventos": provento, "total_descontos": desconto,
            "liquido": provento - desconto}


def test_payroll_summary(empresa, funcionario):
    outro = SimpleNamespace(nome_completo="Ana Lima", cpf="98765432100")
    grupos = [(outro, [("Folha de pagamento", _calc(1000.00))]),
              (funcionario, [("Folha de pagamento", _calc(3000.00, 272.02)),
                             ("Rescisao", _calc(500.00))])]
    text = pdf_text(resumo_folha_pdf(empresa, "03/2024", grupos))
    assert "03/2024" in text
    assert text.index("Ana Lima") < text.index("Joao da Silva")
    assert "3.227,98" in text
    assert "4.500,00" in text
    assert "4.227,98" in text
    assert "Lei 8.036/1990" in text


def test_payroll_summary_without_entries(empresa):
    with pytest.raises(ValueError, match="Nenhum lançamento"):
        resumo_folha_pdf(empresa, "03/2024", [])


def test_active_employees_list(empresa):
    funcionarios = [
        SimpleNamespace(nome_completo="Joao da Silva", cpf="12345678909", cargo="Vendedor",
                        data_admissao=date(2022, 1, 10), ativo=True),
        SimpleNamespace(nome_completo="Pedro Desligado", cpf="11144477735", cargo=None,
                        data_admissao=date(2020, 5, 4), ativo=False),
        SimpleNamespace(nome_completo="ana Lima", cpf="98765432100", cargo="Caixa",
                        data_admissao=date(2023, 2, 1), ativo=True),
    ]
    text = pdf_text(funcionarios_pdf(empresa, funcionarios))
    assert text.index("ana Lima") < text.index("Joao da Silva")
    assert "Pedro Desligado" not in text
    assert "10/01/2022" in text
    assert "Total: 2" in text


def test_active_employees_list_empty(empresa):
    inativo = SimpleNamespace(nome_completo="Pedro", cpf="", cargo=None,
                              data_admissao=date(2020, 5, 4), ativo=False)
    with pytest.raises(ValueError, match="Nenhum funcionário ativo"):
        funcionarios_pdf(empresa, [inativo])


# =============================================================================
# Relatórios contábeis e fiscais
# =============================================================================


def test_chart_of_accounts(empresa):
    contas = [SimpleNamespace(codigo="1", nome="Ativo", tipo="sintetica", natureza="ativo"),
              SimpleNamespace(codigo="1.1.01", nome="Caixa", tipo="analitica", natureza="ativo"),
              SimpleNamespace(codigo="3", nome="Receitas", tipo="sintetica", natureza="receita")]
    text = pdf_text(plano_contas_pdf(empresa, contas))
    assert "Plano de Contas" in text
    assert "1.1.01" in text
    assert "Caixa" in text
    assert "Receita" in text

    with pytest.raises(ValueError):
        plano_contas_pdf(empresa, [])


def test_annual_report(empresa):
    def mes(m, fat=(0.0, 0.0, 0.0), custos=(0.0, 0.0, 0.0)):
        keys = ("total", "normal", "cancelado")
        return {"mes": m, "faturamento": dict(zip(keys, fat)), "custos": dict(zip(keys, custos)),
                "saldo": fat[1] - custos[1]}

    meses = [mes(m) for m in range(1, 13)]
    meses[2] = mes(3, fat=(1500.00, 1000.00, 500.00), custos=(400.00, 400.00, 0.0))
    text = pdf_text(relatorio_anual_pdf(empresa, 2024, meses))
    assert "Anual - 2024" in text
    assert "Janeiro" in text
    assert "Total anual" in text
    assert "1.500,00" in text
    assert "600,00" in text


def test_gross_revenue_statement(empresa):
    text = pdf_text(receita_bruta_pdf(empresa, "03/2024", 1000.00, 250.00,
                                      emitido_em=date(2024, 4, 5)))
    assert "Receitas Brutas" in text
    assert "/ 2024" in text
    assert "R$ 1.000,00" in text
    assert "R$ 250,00" in text
    assert "R$ 1.250,00" in text
    assert "Sao Paulo, 05/04/2024" in text


def test_purchases_report(empresa):
    compras = [
        SimpleNamespace(data=date(2024, 3, 10), emitente_nome="Fornecedor Antigo",
                        chave_nfe="35240399888777000166550010000001231000001230", numero="123",
                        valor_documento=400.00),
        SimpleNamespace(data=date(2024, 3, 20), emitente_nome="Fornecedor Recente",
                        chave_nfe=None, numero="77", valor_documento=100.00),
    ]
    text = pdf_text(compras_pdf(empresa, compras, date(2024, 3, 1), date(2024, 3, 31)))
    assert "01/03/2024 a 31/03/2024" in text
    assert text.index("Fornecedor Recente") < text.index("Fornecedor Antigo")
    assert "35240399888777000166550010000001231000001230" in text
    assert "R$ 500,00" in text

    with pytest.raises(ValueError, match="Nenhuma compra"):
        compras_pdf(empresa, [])
