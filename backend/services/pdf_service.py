"""
PDF documents built with PyMuPDF (fitz): payslip (holerite), pró-labore
receipt (RCI), vacation / termination / 13th receipts, vacation notice, PGDAS
statement, quote and receipt, plus the company reports (payroll summary,
active employees, chart of accounts, annual fiscal report, monthly gross
revenue and purchases).

Every builder returns the PDF bytes; routers stream them back.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import fitz  # PyMuPDF

from services.parser_service import (
    format_brl, format_cnpj, format_cpf, format_date_br, format_decimal, only_digits,
)

logger = logging.getLogger(__name__)

_PAGE_W, _PAGE_H = fitz.paper_size("a4")
_MARGIN = 40
_FONT = "helv"
_FONT_BOLD = "hebo"


class _Writer:
    """Top-to-bottom text cursor over an A4 document."""

    def __init__(self, title: str):
        self.doc = fitz.open()
        self.doc.set_metadata({"title": title, "creator": "contabil"})
        self._new_page()

    def _new_page(self):
        self.page = self.doc.new_page(width=_PAGE_W, height=_PAGE_H)
        self.y = _MARGIN

    def _ensure(self, height: float):
        if self.y + height > _PAGE_H - _MARGIN:
            self._new_page()

    def text(self, text: str, x: float = _MARGIN, size: float = 9, bold: bool = False,
             advance: bool = True):
        self._ensure(size + 4)
        self.page.insert_text((x, self.y + size), text or "", fontname=_FONT_BOLD if bold else _FONT,
                              fontsize=size)
        if advance:
            self.y += size + 5

    def right(self, text: str, x_right: float, size: float = 9, bold: bool = False):
        font = _FONT_BOLD if bold else _FONT
        width = fitz.get_text_length(text, fontname=font, fontsize=size)
        self.page.insert_text((x_right - width, self.y + size), text, fontname=font, fontsize=size)

    def title(self, text: str):
        self.text(text, size=14, bold=True)
        self.y += 4

    def section(self, text: str):
        self.y += 6
        self._ensure(20)
        self.page.draw_rect(fitz.Rect(_MARGIN, self.y, _PAGE_W - _MARGIN, self.y + 15),
                            color=(0.6, 0.6, 0.6), fill=(0.92, 0.92, 0.92))
        self.page.insert_text((_MARGIN + 4, self.y + 11), text, fontname=_FONT_BOLD, fontsize=9)
        self.y += 20

    def rule(self):
        self.page.draw_line((_MARGIN, self.y), (_PAGE_W - _MARGIN, self.y), color=(0.5, 0.5, 0.5))
        self.y += 5

    def pair(self, label: str, value: str):
        self.text(f"{label}:", bold=True, advance=False)
        self.text(value or "-", x=_MARGIN + 150)

    def row(self, columns: List[Tuple[str, float, str]], values: Iterable[str], bold: bool = False):
        self._ensure(14)
        for (_, x, align), value in zip(columns, values):
            if align == "r":
                self.right(value, x, bold=bold)
            else:
                self.text(value, x=x, bold=bold, advance=False)
        self.y += 13

    def table(self, columns: List[Tuple[str, float, str]], rows: Iterable[Iterable[str]]):
        """columns: (header, x, align 'l'|'r'); for 'r' x is the right edge."""
        self.row(columns, [c[0] for c in columns], bold=True)
        self.rule()
        for row in rows:
            self.row(columns, list(row))
        self.rule()

    def textbox(self, text: str, height: float = 60):
        self._ensure(height)
        rect = fitz.Rect(_MARGIN, self.y, _PAGE_W - _MARGIN, self.y + height)
        self.page.insert_textbox(rect, text or "", fontname=_FONT, fontsize=9)
        self.y += height + 4

    def signature(self, label: str):
        self.y += 40
        self._ensure(30)
        x0, x1 = _PAGE_W / 2 - 130, _PAGE_W / 2 + 130
        self.page.draw_line((x0, self.y), (x1, self.y))
        self.y += 4
        width = fitz.get_text_length(label, fontname=_FONT, fontsize=9)
        self.page.insert_text((_PAGE_W / 2 - width / 2, self.y + 9), label, fontname=_FONT, fontsize=9)
        self.y += 15

    def tobytes(self) -> bytes:
        data = self.doc.tobytes()
        self.doc.close()
        return data


def _header(w: _Writer, empresa, title: str, subtitle: Optional[str] = None):
    w.title(title)
    w.text(empresa.razao_social, bold=True)
    w.text(f"CNPJ: {format_cnpj(empresa.cnpj)}")
    endereco = ", ".join(p for p in (empresa.logradouro, empresa.numero, empresa.bairro,
                                     empresa.cidade, empresa.uf) if p)
    if endereco:
        w.text(endereco)
    if subtitle:
        w.text(subtitle, bold=True)
    w.rule()


# ── Events (payroll and verbas share one layout) ─────────────────────────────

def _event_rows(eventos: List[Dict]) -> List[List[str]]:
    rows = []
    for e in eventos:
        rubrica = e.get('rubrica') or {}
        codigo = str(rubrica.get('codigo', '')).upper()
        descricao = rubrica.get('descricao') or e.get('descricao') or ''
        referencia = e.get('referencia')
        if isinstance(referencia, (int, float)):
            referencia = format_decimal(referencia) if referencia else ''
        provento = e.get('provento') or 0.0
        desconto = e.get('desconto') or 0.0
        rows.append([codigo, descricao, referencia or '',
                     format_decimal(provento) if provento else '',
                     format_decimal(desconto) if desconto else ''])
    return rows


_EVENT_COLUMNS = [("Cód.", _MARGIN, "l"), ("Descrição", _MARGIN + 45, "l"),
                  ("Referência", 360, "r"), ("Proventos", 450, "r"),
                  ("Descontos", _PAGE_W - _MARGIN, "r")]


def _event_block(w: _Writer, calc: Dict):
    w.table(_EVENT_COLUMNS, _event_rows(calc.get('eventos') or []))
    w.right(format_decimal(calc.get('total_proventos')), 450, bold=True)
    w.right(format_decimal(calc.get('total_descontos')), _PAGE_W - _MARGIN, bold=True)
    w.text("Totais", bold=True)
    w.text("Valor líquido", bold=True, advance=False)
    w.right(format_brl(calc.get('liquido')), _PAGE_W - _MARGIN, size=11, bold=True)
    w.y += 16


def holerite_pdf(empresa, funcionario, folha) -> bytes:
    w = _Writer(f"Holerite {folha.periodo}")
    _header(w, empresa, "Recibo de Pagamento de Salário", f"Competência: {folha.periodo}")
    w.pair("Funcionário", funcionario.nome_completo)
    w.pair("CPF", format_cpf(funcionario.cpf))
    w.pair("Cargo", funcionario.cargo)
    w.pair("Admissão", format_date_br(funcionario.data_admissao))
    w.section("Demonstrativo")
    _event_block(w, {'eventos': folha.eventos, 'total_proventos': folha.total_proventos,
                     'total_descontos': folha.total_descontos, 'liquido': folha.liquido})
    w.section("Bases")
    w.table([("Salário base", _MARGIN, "l"), ("Base INSS", 230, "r"), ("Base FGTS", 330, "r"),
             ("FGTS do mês", 430, "r"), ("Base IRRF", _PAGE_W - _MARGIN, "r")],
            [[format_decimal(funcionario.salario_base), format_decimal(folha.base_inss),
              format_decimal(folha.base_fgts), format_decimal(folha.valor_fgts),
              format_decimal(folha.base_irrf)]])
    w.signature("Assinatura do funcionário")
    logger.info(f"Holerite gerado: funcionário {funcionario.id} período {folha.periodo}")
    return w.tobytes()


def rci_pdf(empresa, socio, rci) -> bytes:
    w = _Writer(f"RCI {rci.periodo}")
    _header(w, empresa, "Recibo de Pró-labore (RCI)", f"Competência: {rci.periodo}")
    w.pair("Sócio", socio.nome_completo)
    w.pair("CPF", format_cpf(socio.cpf))
    w.section("Demonstrativo")
    _event_block(w, {'eventos': rci.eventos, 'total_proventos': rci.total_proventos,
                     'total_descontos': rci.total_descontos, 'liquido': rci.liquido})
    w.pair("Base INSS", format_decimal(rci.base_inss))
    w.pair("Base IRRF", format_decimal(rci.base_irrf))
    w.signature("Assinatura do sócio")
    return w.tobytes()


def verbas_pdf(empresa, funcionario, titulo: str, calc: Dict,
               detalhes: Optional[List[Tuple[str, str]]] = None) -> bytes:
    """Vacation, termination and 13th salary receipts."""
    w = _Writer(titulo)
    _header(w, empresa, titulo)
    w.pair("Funcionário", funcionario.nome_completo)
    w.pair("CPF", format_cpf(funcionario.cpf))
    w.pair("Admissão", format_date_br(funcionario.data_admissao))
    w.pair("Salário base", format_brl(funcionario.salario_base))
    for label, value in detalhes or []:
        w.pair(label, value)
    w.section("Demonstrativo")
    _event_block(w, calc)
    w.signature("Assinatura do funcionário")
    return w.tobytes()


def aviso_ferias_pdf(empresa, funcionario, ferias, aquisitivo: Tuple[date, date],
                     emitido_em: Optional[date] = None) -> bytes:
    """Vacation notice handed to the employee (CLT art. 135)."""
    inicio_aquisitivo, fim_aquisitivo = aquisitivo
    fim_gozo = ferias.data_inicio + timedelta(days=ferias.dias - 1)
    w = _Writer("Aviso de Férias")
    _header(w, empresa, "AVISO DE FÉRIAS")
    w.pair("Empregado", funcionario.nome_completo)
    w.pair("CPF", format_cpf(funcionario.cpf))
    w.pair("Cargo", funcionario.cargo)
    w.pair("Admissão", format_date_br(funcionario.data_admissao))
    w.y += 6
    w.textbox(f"Nos termos do art. 135 da CLT, comunicamos que as suas férias relativas ao "
              f"período aquisitivo de {format_date_br(inicio_aquisitivo)} a "
              f"{format_date_br(fim_aquisitivo)} serão concedidas a partir de "
              f"{format_date_br(ferias.data_inicio)}, conforme abaixo.", height=45)
    w.pair("Período de gozo", f"{ferias.dias} dias, de {format_date_br(ferias.data_inicio)} "
                              f"a {format_date_br(fim_gozo)}")
    w.pair("Retorno ao trabalho", format_date_br(fim_gozo + timedelta(days=1)))
    if ferias.abono_pecuniario:
        w.pair("Abono pecuniário", "10 dias convertidos em dinheiro (art. 143 da CLT)")
    if ferias.adiantamento_decimo_terceiro:
        w.pair("13º salário", "Adiantamento da 1ª parcela pago com as férias")
    w.y += 10
    w.text(f"{empresa.cidade or ''}, {format_date_br(emitido_em or date.today())}".strip(", "))
    w.signature(empresa.razao_social)
    w.signature(f"Ciente: {funcionario.nome_completo}")
    return w.tobytes()


# ── Payroll reports ──────────────────────────────────────────────────────────

_TOTAIS = ('total_proventos', 'total_descontos', 'liquido')


def resumo_folha_pdf(empresa, periodo: str,
                     grupos: List[Tuple[object, List[Tuple[str, Dict]]]]) -> bytes:
    """
    Payroll summary of one period.

    `grupos` holds, per employee, the (title, calc) pairs of every payroll,
    vacation, 13th salary and termination falling in the period. Each
    employee gets an event table per entry and a subtotal; the report closes
    with the company total.
    """
    if not grupos:
        raise ValueError("Nenhum lançamento encontrado para o período selecionado.")
    w = _Writer(f"Resumo da folha {periodo}")
    _header(w, empresa, "Resumo da Folha de Pagamento", f"Competência: {periodo}")
    geral = dict.fromkeys(_TOTAIS, 0.0)
    for funcionario, secoes in grupos:
        w.section(f"{funcionario.nome_completo}  -  CPF {format_cpf(funcionario.cpf)}")
        totais = dict.fromkeys(_TOTAIS, 0.0)
        for titulo, calc in secoes:
            w.text(titulo, bold=True)
            w.table(_EVENT_COLUMNS, _event_rows(calc.get('eventos') or []))
            for k in _TOTAIS:
                totais[k] += calc.get(k) or 0.0
        w.row(_EVENT_COLUMNS, ["", "Total do funcionário", "",
                               format_decimal(totais['total_proventos']),
                               format_decimal(totais['total_descontos'])], bold=True)
        w.row(_EVENT_COLUMNS, ["", "Líquido", "", "", format_decimal(totais['liquido'])],
              bold=True)
        for k in _TOTAIS:
            geral[k] += totais[k]

    w.section("Total geral da empresa")
    w.pair("Proventos", format_brl(geral['total_proventos']))
    w.pair("Descontos", format_brl(geral['total_descontos']))
    w.pair("Líquido a pagar", format_brl(geral['liquido']))
    w.y += 6
    w.textbox("Valores apurados conforme a CLT (Decreto-Lei 5.452/1943), a Lei 8.212/1991 "
              "(INSS), a Lei 8.036/1990 (FGTS) e a legislação do imposto de renda retido na "
              "fonte vigente na competência.", height=40)
    logger.info(f"Resumo da folha gerado: CNPJ {empresa.cnpj} período {periodo} "
                f"({len(grupos)} funcionário(s))")
    return w.tobytes()


def funcionarios_pdf(empresa, funcionarios) -> bytes:
    ativos = sorted((f for f in funcionarios if f.ativo), key=lambda f: f.nome_completo.lower())
    if not ativos:
        raise ValueError("Nenhum funcionário ativo encontrado.")
    w = _Writer("Funcionários ativos")
    _header(w, empresa, "Lista de Funcionários Ativos")
    w.table([("Nome completo", _MARGIN, "l"), ("CPF", 270, "l"), ("Cargo", 360, "l"),
             ("Admissão", _PAGE_W - _MARGIN, "r")],
            [[f.nome_completo[:45], format_cpf(f.cpf), (f.cargo or "")[:28],
              format_date_br(f.data_admissao)] for f in ativos])
    w.text(f"Total: {len(ativos)} funcionário(s) ativo(s)", bold=True)
    return w.tobytes()


# ── PGDAS ────────────────────────────────────────────────────────────────────

def pgdas_pdf(empresa, pgdas) -> bytes:
    w = _Writer(f"PGDAS {pgdas.periodo}")
    _header(w, empresa, "Extrato do Simples Nacional (PGDAS-D)",
            f"Período de apuração: {pgdas.periodo}")

    w.section("I. Identificação do contribuinte")
    w.pair("Razão social", empresa.razao_social)
    w.pair("CNPJ", format_cnpj(empresa.cnpj))
    w.pair("Nome fantasia", empresa.nome_fantasia)
    w.pair("CNAE principal", empresa.cnae_principal_codigo)

    w.section("II. Receitas")
    w.pair("Receita bruta do período (RPA)", format_brl(pgdas.rpa))
    w.pair("Receita bruta 12 meses (RBT12)", format_brl(pgdas.rbt12))

    anexo = getattr(pgdas.anexo, 'value', pgdas.anexo)
    w.section("III. Cálculo do valor devido")
    w.table([("Anexo", _MARGIN, "l"), ("Alíquota nominal", 230, "r"),
             ("Parcela a deduzir", 340, "r"), ("Alíquota efetiva", 445, "r"),
             ("Valor do DAS", _PAGE_W - _MARGIN, "r")],
            [[anexo, f"{format_decimal(pgdas.aliquota_nominal)}%",
              format_decimal(pgdas.parcela_deduzir),
              f"{format_decimal(pgdas.aliquota_efetiva, 4)}%", format_brl(pgdas.valor_das)]])
    w.textbox("Alíquota efetiva = ((RBT12 × alíquota nominal) - parcela a deduzir) / RBT12. "
              "Valor do DAS = RPA × alíquota efetiva.", height=30)
    return w.tobytes()


# ── Commercial documents ─────────────────────────────────────────────────────

def orcamento_pdf(empresa, orcamento) -> bytes:
    w = _Writer(f"Orçamento {orcamento.numero}")
    _header(w, empresa, f"Orçamento Nº {orcamento.numero:04d}")
    w.pair("Cliente", orcamento.cliente_nome)
    w.pair("Data", format_date_br(orcamento.data))
    w.pair("Validade", format_date_br(orcamento.validade))
    w.section("Itens")
    w.table([("Descrição", _MARGIN, "l"), ("Qtd.", 360, "r"), ("Valor unit.", 450, "r"),
             ("Total", _PAGE_W - _MARGIN, "r")],
            [[i.descricao, format_decimal(i.quantidade), format_decimal(i.valor_unitario),
              format_decimal(i.valor_total)] for i in orcamento.itens])
    w.text("Valor total", bold=True, advance=False)
    w.right(format_brl(orcamento.valor_total), _PAGE_W - _MARGIN, size=11, bold=True)
    w.y += 16
    if orcamento.observacoes:
        w.section("Observações")
        w.textbox(orcamento.observacoes)
    return w.tobytes()


def recibo_pdf(empresa, recibo) -> bytes:
    w = _Writer(f"Recibo {recibo.numero}")
    _header(w, empresa, f"Recibo Nº {recibo.numero:04d}")
    w.text(format_brl(recibo.valor), size=14, bold=True)
    w.y += 6
    doc = only_digits(recibo.pagador_documento)
    documento = format_cnpj(doc) if len(doc) == 14 else format_cpf(doc)
    pagador = recibo.pagador_nome + (f" ({documento})" if documento else "")
    w.textbox(f"Recebemos de {pagador} a importância de {format_brl(recibo.valor)}, "
              f"referente a {recibo.referente}.", height=45)
    data: date = recibo.data
    w.text(f"{recibo.cidade or empresa.cidade or ''}, {format_date_br(data)}".strip(", "))
    w.signature(empresa.razao_social)
    return w.tobytes()


# ── Company reports ──────────────────────────────────────────────────────────

MESES = ("Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho", "Julho", "Agosto",
         "Setembro", "Outubro", "Novembro", "Dezembro")

_NATUREZAS = {'ativo': "Ativo", 'passivo': "Passivo", 'patrimonio_liquido': "Patrimônio Líquido",
              'receita': "Receita", 'despesa': "Despesa"}


def plano_contas_pdf(empresa, contas) -> bytes:
    """Chart of accounts, indented by the depth of each code."""
    if not contas:
        raise ValueError("Nenhuma conta contábil cadastrada.")
    w = _Writer("Plano de Contas")
    _header(w, empresa, "Plano de Contas")
    rows = []
    for c in contas:
        nivel = c.codigo.count('.')
        tipo = "Sintética" if c.tipo == "sintetica" else "Analítica"
        rows.append([c.codigo, ("   " * nivel + c.nome)[:50], tipo,
                     _NATUREZAS.get(c.natureza, c.natureza)])
    w.table([("Código", _MARGIN, "l"), ("Nome da conta", 120, "l"), ("Tipo", 390, "l"),
             ("Natureza", 460, "l")], rows)
    return w.tobytes()


def relatorio_anual_pdf(empresa, ano: int, meses: List[Dict]) -> bytes:
    """
    Annual fiscal report: revenue (saídas + serviços) against costs
    (entradas) per month.

    Each item of `meses` carries 'faturamento' and 'custos' dicts with
    'total', 'normal' and 'cancelado', plus 'saldo' (normal revenue minus
    normal costs).
    """
    w = _Writer(f"Relatório Fiscal Anual {ano}")
    _header(w, empresa, f"Relatório Fiscal Anual - {ano}")
    columns = [("Mês", _MARGIN, "l"), ("Faturamento", 175, "r"), ("Fat. cancelado", 265, "r"),
               ("Custos", 355, "r"), ("Custos cancel.", 445, "r"),
               ("Saldo (normal)", _PAGE_W - _MARGIN, "r")]

    def valores(item):
        return [format_decimal(item['faturamento']['total']),
                format_decimal(item['faturamento']['cancelado']),
                format_decimal(item['custos']['total']),
                format_decimal(item['custos']['cancelado']),
                format_decimal(item['saldo'])]

    w.table(columns, [[MESES[m['mes'] - 1]] + valores(m) for m in meses])
    total = {
        'faturamento': {k: sum(m['faturamento'][k] for m in meses)
                        for k in ('total', 'normal', 'cancelado')},
        'custos': {k: sum(m['custos'][k] for m in meses) for k in ('total', 'normal', 'cancelado')},
        'saldo': sum(m['saldo'] for m in meses),
    }
    w.row(columns, ["Total anual"] + valores(total), bold=True)
    w.y += 6
    w.textbox("Faturamento e custos somam os documentos de todos os status. O saldo considera "
              "somente os documentos normais (sem cancelados ou substituídos).", height=30)
    return w.tobytes()


def receita_bruta_pdf(empresa, periodo: str, comercio: float, servicos: float,
                      industria: float = 0.0, emitido_em: Optional[date] = None) -> bytes:
    """Monthly gross revenue statement (modelo do Simples Nacional)."""
    mes, ano = (int(p) for p in periodo.split("/"))
    w = _Writer(f"Receitas brutas {periodo}")
    _header(w, empresa, "Relatório Mensal das Receitas Brutas",
            f"Período de apuração: {MESES[mes - 1].upper()} / {ano}")
    valor_x = _PAGE_W - _MARGIN

    def linha(texto, valor, bold=False):
        w.text(texto, bold=bold, advance=False)
        w.right(format_brl(valor), valor_x, bold=bold)
        w.y += 14

    w.section("Receita bruta mensal - revenda de mercadorias (comércio)")
    linha("I - Revenda de mercadorias com dispensa de emissão de documento fiscal", 0.0)
    linha("II - Revenda de mercadorias com documento fiscal emitido", comercio)
    linha("III - Total das receitas com revenda de mercadorias (I + II)", comercio, bold=True)
    w.section("Receita bruta mensal - venda de produtos industrializados (indústria)")
    linha("IV - Venda de produtos industrializados com dispensa de documento fiscal", 0.0)
    linha("V - Venda de produtos industrializados com documento fiscal emitido", industria)
    linha("VI - Total das receitas com produtos industrializados (IV + V)", industria, bold=True)
    w.section("Receita bruta mensal - prestação de serviços")
    linha("VII - Prestação de serviços com dispensa de emissão de documento fiscal", 0.0)
    linha("VIII - Prestação de serviços com documento fiscal emitido", servicos)
    linha("IX - Total das receitas com prestação de serviços (VII + VIII)", servicos, bold=True)
    w.rule()
    linha("X - Total geral das receitas brutas no mês (III + VI + IX)",
          comercio + industria + servicos, bold=True)

    w.y += 10
    w.text(f"{empresa.cidade or ''}, {format_date_br(emitido_em or date.today())}".strip(", "))
    w.signature("Assinatura do responsável")
    w.textbox("Anexos: os documentos fiscais comprobatórios das entradas de mercadorias e "
              "serviços tomados referentes ao período e as notas fiscais relativas às operações "
              "ou prestações realizadas eventualmente emitidas.", height=40)
    return w.tobytes()


def compras_pdf(empresa, compras, inicio: Optional[date] = None,
                fim: Optional[date] = None) -> bytes:
    """Purchases (entrada launches), newest first, with the period summary."""
    if not compras:
        raise ValueError("Nenhuma compra encontrada para o período selecionado.")
    compras = sorted(compras, key=lambda l: l.data, reverse=True)
    if inicio and fim:
        periodo = f"Período: {format_date_br(inicio)} a {format_date_br(fim)}"
    else:
        periodo = "Período: todos os lançamentos"
    w = _Writer("Relatório de Compras")
    _header(w, empresa, "Relatório de Compras", periodo)
    w.table([("Data", _MARGIN, "l"), ("Fornecedor", 100, "l"), ("Documento", 265, "l"),
             ("Valor", _PAGE_W - _MARGIN, "r")],
            [[format_date_br(l.data), (l.emitente_nome or "N/A")[:30],
              l.chave_nfe or l.numero or "N/A", format_decimal(l.valor_documento)]
             for l in compras])
    w.section("Resumo do período")
    w.pair("Total de compras", str(len(compras)))
    w.pair("Valor total em compras", format_brl(sum(l.valor_documento for l in compras)))
    return w.tobytes()
