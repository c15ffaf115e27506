from pydantic import AfterValidator, BaseModel, EmailStr, Field
from typing import Annotated, Optional, List, Literal
from datetime import date, datetime
from models.models import (
    UserRole, LicenseType, RegimeTributario, TipoEstabelecimento, TipoParceiro, TipoRubrica,
    TipoLancamento, StatusLancamento, StatusFinanceiro, StatusFolha, AnexoSimples,
    StatusEsocial, EsferaTributaria, StatusTicket,
)
from services.parser_service import only_digits, parse_periodo


# ── Form validation ──────────────────────────────────────────────────────────

def validate_cpf(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    digits = only_digits(value)
    if len(digits) != 11:
        raise ValueError("CPF deve conter 11 dígitos")
    return digits


def validate_cnpj(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    digits = only_digits(value)
    if len(digits) != 14:
        raise ValueError("CNPJ deve conter 14 dígitos")
    return digits


def validate_cpf_cnpj(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    digits = only_digits(value)
    if len(digits) not in (11, 14):
        raise ValueError("Documento deve ser um CPF (11 dígitos) ou CNPJ (14 dígitos)")
    return digits


def validate_periodo(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    month, year = parse_periodo(value)
    return f"{month:02d}/{year}"


CPF = Annotated[str, AfterValidator(validate_cpf)]
CNPJ = Annotated[str, AfterValidator(validate_cnpj)]
CpfCnpj = Annotated[str, AfterValidator(validate_cpf_cnpj)]
Periodo = Annotated[str, AfterValidator(validate_periodo)]


# ── Auth / users ─────────────────────────────────────────────────────────────

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class UserOut(BaseModel):
    id: int
    email: str
    role: UserRole
    disabled: bool
    license_type: Optional[LicenseType] = None
    trial_ends_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str


class UserStatusUpdate(BaseModel):
    disabled: bool


class UserLicencaUpdate(BaseModel):
    license_type: LicenseType


class TicketIn(BaseModel):
    empresa_id: Optional[int] = None
    local_problema: str = Field(min_length=1)
    descricao: str = Field(min_length=1)


class TicketOut(BaseModel):
    id: int
    numero: str
    user_id: int
    empresa_id: Optional[int] = None
    solicitante: str
    empresa_nome: Optional[str] = None
    local_problema: str
    descricao: str
    status: StatusTicket
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class TicketStatusUpdate(BaseModel):
    status: StatusTicket


# ── Empresa ──────────────────────────────────────────────────────────────────

class EmpresaBase(BaseModel):
    razao_social: str = Field(min_length=1)
    nome_fantasia: Optional[str] = None
    cnpj: CNPJ
    inscricao_estadual: Optional[str] = None
    inscricao_municipal: Optional[str] = None
    regime_tributario: RegimeTributario = RegimeTributario.simples
    tipo_estabelecimento: TipoEstabelecimento = TipoEstabelecimento.matriz
    ativo: bool = True
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    codigo_municipio: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    cep: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    cnae_principal_codigo: Optional[str] = None
    cnae_principal_descricao: Optional[str] = None
    anexo_simples: AnexoSimples = AnexoSimples.I
    incidencia_tributaria: Literal["1", "2", "3"] = "1"
    metodo_apropriacao_credito: Literal["1", "2"] = "1"
    tipo_contribuicao: Literal["1", "2"] = "1"
    contador_nome: Optional[str] = None
    contador_cpf: Optional[CPF] = None
    contador_crc: Optional[str] = None
    contador_email: Optional[str] = None
    contador_telefone: Optional[str] = None


class EmpresaCreate(EmpresaBase):
    pass


class EmpresaUpdate(BaseModel):
    razao_social: Optional[str] = None
    nome_fantasia: Optional[str] = None
    cnpj: Optional[CNPJ] = None
    inscricao_estadual: Optional[str] = None
    inscricao_municipal: Optional[str] = None
    regime_tributario: Optional[RegimeTributario] = None
    tipo_estabelecimento: Optional[TipoEstabelecimento] = None
    ativo: Optional[bool] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    codigo_municipio: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    cep: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    cnae_principal_codigo: Optional[str] = None
    cnae_principal_descricao: Optional[str] = None
    anexo_simples: Optional[AnexoSimples] = None
    incidencia_tributaria: Optional[Literal["1", "2", "3"]] = None
    metodo_apropriacao_credito: Optional[Literal["1", "2"]] = None
    tipo_contribuicao: Optional[Literal["1", "2"]] = None
    contador_nome: Optional[str] = None
    contador_cpf: Optional[CPF] = None
    contador_crc: Optional[str] = None
    contador_email: Optional[str] = None
    contador_telefone: Optional[str] = None


class EmpresaOut(EmpresaBase):
    id: int
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class EstabelecimentoIn(BaseModel):
    aliq_rat: float = Field(default=0, ge=0, le=3)
    fap: float = Field(default=1, ge=0.5, le=2)
    contrata_pcd: bool = False
    nr_insc_apr: Optional[str] = None
    nr_caepf: Optional[str] = None
    contato_nome: Optional[str] = None
    contato_cpf: Optional[CPF] = None
    contato_fone: Optional[str] = None
    software_house_cnpj: Optional[CNPJ] = None
    software_house_razao_social: Optional[str] = None
    software_house_nome_contato: Optional[str] = None
    software_house_telefone: Optional[str] = None
    situacao_pj: Literal["0", "1", "2", "3", "4"] = "0"


class EstabelecimentoOut(EstabelecimentoIn):
    id: int
    empresa_id: int
    class Config:
        from_attributes = True


# ── Parceiros ────────────────────────────────────────────────────────────────

class ParceiroCreate(BaseModel):
    tipo: TipoParceiro
    razao_social: str = Field(min_length=1)
    nome_fantasia: Optional[str] = None
    cpf_cnpj: CpfCnpj
    inscricao_estadual: Optional[str] = None
    cep: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    email: Optional[str] = None
    telefone: Optional[str] = None


class ParceiroUpdate(BaseModel):
    tipo: Optional[TipoParceiro] = None
    razao_social: Optional[str] = None
    nome_fantasia: Optional[str] = None
    cpf_cnpj: Optional[CpfCnpj] = None
    inscricao_estadual: Optional[str] = None
    cep: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    email: Optional[str] = None
    telefone: Optional[str] = None


class ParceiroOut(ParceiroCreate):
    id: int
    class Config:
        from_attributes = True


# ── Funcionários / sócios / rubricas ─────────────────────────────────────────

class DependenteIn(BaseModel):
    nome: str = Field(min_length=1)
    cpf: Optional[CPF] = None
    data_nascimento: Optional[date] = None
    parentesco: Optional[str] = None
    is_irrf: bool = False
    is_salario_familia: bool = False


class DependenteOut(DependenteIn):
    id: int
    class Config:
        from_attributes = True


class FuncionarioBase(BaseModel):
    nome_completo: str = Field(min_length=1)
    data_nascimento: Optional[date] = None
    cpf: CPF
    rg: Optional[str] = None
    estado_civil: Optional[str] = None
    sexo: Optional[str] = None
    nome_mae: Optional[str] = None
    nome_pai: Optional[str] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    cep: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    data_admissao: date
    cargo: Optional[str] = None
    departamento: Optional[str] = None
    salario_base: float = Field(gt=0)
    tipo_contrato: str = "clt"
    jornada_trabalho: str = "44h semanais"
    ativo: bool = True


class FuncionarioCreate(FuncionarioBase):
    dependentes: List[DependenteIn] = []


class FuncionarioUpdate(BaseModel):
    nome_completo: Optional[str] = None
    data_nascimento: Optional[date] = None
    cpf: Optional[CPF] = None
    rg: Optional[str] = None
    estado_civil: Optional[str] = None
    sexo: Optional[str] = None
    nome_mae: Optional[str] = None
    nome_pai: Optional[str] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    cep: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    data_admissao: Optional[date] = None
    cargo: Optional[str] = None
    departamento: Optional[str] = None
    salario_base: Optional[float] = Field(default=None, gt=0)
    tipo_contrato: Optional[str] = None
    jornada_trabalho: Optional[str] = None
    ativo: Optional[bool] = None
    dependentes: Optional[List[DependenteIn]] = None


class FuncionarioOut(FuncionarioBase):
    id: int
    dependentes: List[DependenteOut] = []
    class Config:
        from_attributes = True


class SocioCreate(BaseModel):
    nome_completo: str = Field(min_length=1)
    cpf: CPF
    data_nascimento: Optional[date] = None
    participacao: float = Field(default=0, ge=0, le=100)
    pro_labore: float = Field(default=0, ge=0)
    dependentes_irrf: int = Field(default=0, ge=0)
    data_entrada: Optional[date] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    cep: Optional[str] = None


class SocioUpdate(BaseModel):
    nome_completo: Optional[str] = None
    cpf: Optional[CPF] = None
    data_nascimento: Optional[date] = None
    participacao: Optional[float] = Field(default=None, ge=0, le=100)
    pro_labore: Optional[float] = Field(default=None, ge=0)
    dependentes_irrf: Optional[int] = Field(default=None, ge=0)
    data_entrada: Optional[date] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = Field(default=None, max_length=2)
    cep: Optional[str] = None


class SocioOut(SocioCreate):
    id: int
    class Config:
        from_attributes = True


class RubricaCreate(BaseModel):
    codigo: str = Field(min_length=1)
    descricao: str = Field(min_length=1)
    tipo: TipoRubrica
    incide_inss: bool = False
    incide_fgts: bool = False
    incide_irrf: bool = False


class RubricaUpdate(BaseModel):
    codigo: Optional[str] = None
    descricao: Optional[str] = None
    tipo: Optional[TipoRubrica] = None
    incide_inss: Optional[bool] = None
    incide_fgts: Optional[bool] = None
    incide_irrf: Optional[bool] = None


class RubricaOut(RubricaCreate):
    id: int
    class Config:
        from_attributes = True


# ── Lançamentos fiscais ──────────────────────────────────────────────────────

class ItemLancamentoIn(BaseModel):
    codigo: Optional[str] = None
    descricao: Optional[str] = None
    ncm: Optional[str] = None
    cfop: Optional[str] = None
    unidade: Optional[str] = None
    quantidade: float = 0
    valor_unitario: float = 0
    valor_total: float = 0


class ItemLancamentoOut(ItemLancamentoIn):
    id: int
    class Config:
        from_attributes = True


class LancamentoBase(BaseModel):
    tipo: TipoLancamento
    status: StatusLancamento = StatusLancamento.normal
    data: date
    chave_nfe: Optional[str] = None
    numero_nfse: Optional[str] = None
    numero: Optional[str] = None
    serie: Optional[str] = None
    status_financeiro: StatusFinanceiro = StatusFinanceiro.pendente
    observacoes: Optional[str] = None
    emitente_nome: Optional[str] = None
    emitente_cnpj: Optional[CpfCnpj] = None
    destinatario_nome: Optional[str] = None
    destinatario_cnpj: Optional[CpfCnpj] = None
    prestador_nome: Optional[str] = None
    prestador_cnpj: Optional[CpfCnpj] = None
    tomador_nome: Optional[str] = None
    tomador_cnpj: Optional[CpfCnpj] = None
    discriminacao: Optional[str] = None
    item_lc116: Optional[str] = None
    valor_servicos: float = 0
    valor_liquido: float = 0
    valor_iss: float = 0
    valor_ir: float = 0
    valor_inss: float = 0
    valor_csll: float = 0
    valor_produtos: float = 0
    valor_total_nota: float = 0
    valor_desconto: float = 0
    valor_frete: float = 0
    valor_ipi: float = 0
    valor_icms: float = 0
    valor_pis: float = 0
    valor_cofins: float = 0


class LancamentoCreate(LancamentoBase):
    itens: List[ItemLancamentoIn] = []


class LancamentoUpdate(BaseModel):
    status: Optional[StatusLancamento] = None
    data: Optional[date] = None
    status_financeiro: Optional[StatusFinanceiro] = None
    observacoes: Optional[str] = None
    discriminacao: Optional[str] = None
    valor_servicos: Optional[float] = None
    valor_liquido: Optional[float] = None
    valor_iss: Optional[float] = None
    valor_ir: Optional[float] = None
    valor_inss: Optional[float] = None
    valor_csll: Optional[float] = None
    valor_produtos: Optional[float] = None
    valor_total_nota: Optional[float] = None
    valor_desconto: Optional[float] = None
    valor_frete: Optional[float] = None
    valor_ipi: Optional[float] = None
    valor_icms: Optional[float] = None
    valor_pis: Optional[float] = None
    valor_cofins: Optional[float] = None


class LancamentoOut(LancamentoBase):
    id: int
    emitente_cnpj: Optional[str] = None
    destinatario_cnpj: Optional[str] = None
    prestador_cnpj: Optional[str] = None
    tomador_cnpj: Optional[str] = None
    arquivo_nome: Optional[str] = None
    created_at: Optional[datetime] = None
    itens: List[ItemLancamentoOut] = []
    class Config:
        from_attributes = True


class ImportacaoResultado(BaseModel):
    importados: int = 0
    duplicados: int = 0
    cancelados: int = 0
    desconhecidos: List[str] = []
    erros: List[str] = []


# ── Folha, RCI e verbas ──────────────────────────────────────────────────────

class EventoIn(BaseModel):
    rubrica_id: int
    referencia: float = 0
    provento: float = Field(default=0, ge=0)
    desconto: float = Field(default=0, ge=0)


class FolhaCalculoIn(BaseModel):
    funcionario_id: int
    periodo: Periodo
    eventos: List[EventoIn] = []


class FolhaOut(BaseModel):
    id: int
    funcionario_id: int
    periodo: Periodo
    status: StatusFolha
    eventos: list
    total_proventos: float
    total_descontos: float
    liquido: float
    base_inss: float
    base_irrf: float
    base_fgts: float
    valor_inss: float
    valor_irrf: float
    valor_fgts: float
    updated_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class RciCalculoIn(BaseModel):
    socio_id: int
    periodo: Periodo
    eventos: List[EventoIn] = []


class RciOut(BaseModel):
    id: int
    socio_id: int
    periodo: Periodo
    eventos: list
    total_proventos: float
    total_descontos: float
    liquido: float
    base_inss: float
    base_irrf: float
    valor_inss: float
    valor_irrf: float
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class FeriasIn(BaseModel):
    funcionario_id: int
    data_inicio: date
    dias: int = Field(default=30, ge=5, le=30)
    abono_pecuniario: bool = False
    adiantamento_decimo_terceiro: bool = False


class FeriasOut(FeriasIn):
    id: int
    eventos: list
    total_proventos: float
    total_descontos: float
    liquido: float
    class Config:
        from_attributes = True


class RescisaoIn(BaseModel):
    funcionario_id: int
    data_rescisao: date
    motivo: Literal["dispensa_sem_justa_causa", "pedido_demissao", "justa_causa"]
    tipo_aviso: Literal["indenizado", "trabalhado"] = "indenizado"
    saldo_fgts: float = Field(default=0, ge=0)


class RescisaoOut(RescisaoIn):
    id: int
    eventos: list
    total_proventos: float
    total_descontos: float
    liquido: float
    dias_aviso: Optional[int] = None
    fgts_rescisao: Optional[float] = None
    multa_fgts: Optional[float] = None
    class Config:
        from_attributes = True


class DecimoTerceiroIn(BaseModel):
    funcionario_id: int
    ano: int = Field(ge=2000, le=2100)
    parcela: Literal["primeira", "segunda", "unica"]
    meses_trabalhados: Optional[int] = Field(default=None, ge=1, le=12)


class DecimoTerceiroOut(BaseModel):
    id: int
    funcionario_id: int
    ano: int
    parcela: str
    meses_trabalhados: int
    eventos: list
    total_proventos: float
    total_descontos: float
    liquido: float
    class Config:
        from_attributes = True


# ── Obrigações ───────────────────────────────────────────────────────────────

class PgdasIn(BaseModel):
    periodo: Periodo
    anexo: Optional[Literal["I", "II", "III", "IV", "V", "auto"]] = None
    rpa: Optional[float] = Field(default=None, ge=0)
    rbt12: Optional[float] = Field(default=None, ge=0)
    folha_12m: Optional[float] = Field(default=None, ge=0)


class PgdasOut(BaseModel):
    id: int
    periodo: Periodo
    anexo: AnexoSimples
    rpa: float
    rbt12: float
    aliquota_nominal: float
    parcela_deduzir: float
    aliquota_efetiva: float
    valor_das: float
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class EfdIn(BaseModel):
    periodo: Periodo
    sem_movimento: bool = False
    tipo_escrituracao: Literal["0", "1"] = "0"
    recibo_anterior: Optional[str] = None


class ReinfIn(BaseModel):
    periodo: Periodo


class ArquivoEfdOut(BaseModel):
    id: int
    nome_arquivo: str
    periodo: Periodo
    tipo_escrituracao: str
    sem_movimento: bool
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class ArquivoReinfOut(BaseModel):
    id: int
    nome_arquivo: str
    periodo: Periodo
    tipo: str
    status: str
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class EsocialIn(BaseModel):
    tipo: Literal["S-1000", "S-1005", "S-1010", "S-1200", "S-1299"]
    periodo: Optional[Periodo] = None
    folha_id: Optional[int] = None


class EventoEsocialOut(BaseModel):
    id: int
    tipo: str
    event_id: str
    status: StatusEsocial
    periodo: Optional[Periodo] = None
    payload: str
    error_details: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    class Config:
        from_attributes = True


# ── Contábil / comercial ─────────────────────────────────────────────────────

class ContaContabilCreate(BaseModel):
    codigo: str = Field(min_length=1)
    nome: str = Field(min_length=1)
    tipo: Literal["sintetica", "analitica"] = "analitica"
    natureza: Literal["ativo", "passivo", "patrimonio_liquido", "receita", "despesa"]


class ContaContabilOut(ContaContabilCreate):
    id: int
    class Config:
        from_attributes = True


class AliquotaCreate(BaseModel):
    esfera: EsferaTributaria
    nome_do_imposto: str = Field(min_length=1)
    descricao: Optional[str] = None
    aliquota: float = Field(ge=0, le=100)


class AliquotaOut(AliquotaCreate):
    id: int
    class Config:
        from_attributes = True


class ItemOrcamentoIn(BaseModel):
    descricao: str = Field(min_length=1)
    quantidade: float = Field(default=1, gt=0)
    valor_unitario: float = Field(default=0, ge=0)


class ItemOrcamentoOut(ItemOrcamentoIn):
    id: int
    valor_total: float
    class Config:
        from_attributes = True


class OrcamentoCreate(BaseModel):
    cliente_id: Optional[int] = None
    cliente_nome: Optional[str] = None
    data: date
    validade: Optional[date] = None
    observacoes: Optional[str] = None
    itens: List[ItemOrcamentoIn] = Field(min_length=1)


class OrcamentoOut(BaseModel):
    id: int
    numero: int
    cliente_id: Optional[int] = None
    cliente_nome: str
    data: date
    validade: Optional[date] = None
    valor_total: float
    observacoes: Optional[str] = None
    itens: List[ItemOrcamentoOut] = []
    class Config:
        from_attributes = True


class ReciboCreate(BaseModel):
    pagador_nome: str = Field(min_length=1)
    pagador_documento: Optional[CpfCnpj] = None
    valor: float = Field(gt=0)
    data: date
    referente: str = Field(min_length=1)
    cidade: Optional[str] = None


class ReciboOut(ReciboCreate):
    id: int
    numero: int
    class Config:
        from_attributes = True


# ── Dashboard / relatórios ───────────────────────────────────────────────────

class DashboardStats(BaseModel):
    periodo: Periodo
    total_entradas: float
    total_saidas: float
    total_servicos: float
    lancamentos_mes: int
    funcionarios_ativos: int
    eventos_esocial_pendentes: int


class ValorMensal(BaseModel):
    mes: int
    total: float


class RelatorioMensal(BaseModel):
    ano: int
    meses: List[ValorMensal]
    total: float


class BackupOut(BaseModel):
    nome_arquivo: str
    caminho: str
    tabelas: dict
