from sqlalchemy import (Column, Integer, String, Float, Date, DateTime, ForeignKey, Enum,
                        Boolean, Text, JSON)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from db import Base


class UserRole(str, enum.Enum):
    admin = "admin"
    usuario = "usuario"


class LicenseType(str, enum.Enum):
    trial = "trial"
    basica = "basica"
    profissional = "profissional"
    premium = "premium"


class RegimeTributario(str, enum.Enum):
    simples = "simples"
    presumido = "presumido"
    real = "real"
    mei = "mei"


class TipoEstabelecimento(str, enum.Enum):
    matriz = "matriz"
    filial = "filial"


class TipoParceiro(str, enum.Enum):
    cliente = "cliente"
    fornecedor = "fornecedor"
    transportadora = "transportadora"


class TipoRubrica(str, enum.Enum):
    provento = "provento"
    desconto = "desconto"


class TipoLancamento(str, enum.Enum):
    entrada = "entrada"
    saida = "saida"
    servico = "servico"


class StatusLancamento(str, enum.Enum):
    normal = "normal"
    cancelado = "cancelado"
    substituida = "substituida"


class StatusFinanceiro(str, enum.Enum):
    pendente = "pendente"
    pago = "pago"
    vencido = "vencido"


class StatusFolha(str, enum.Enum):
    rascunho = "rascunho"
    calculada = "calculada"
    finalizada = "finalizada"


class AnexoSimples(str, enum.Enum):
    I = "I"
    II = "II"
    III = "III"
    IV = "IV"
    V = "V"


class StatusEsocial(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    success = "success"
    error = "error"


class EsferaTributaria(str, enum.Enum):
    municipal = "municipal"
    estadual = "estadual"
    federal = "federal"


class StatusTicket(str, enum.Enum):
    aberto = "aberto"
    em_andamento = "em_andamento"
    fechado = "fechado"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.usuario)
    disabled = Column(Boolean, default=False, nullable=False)
    license_type = Column(Enum(LicenseType), default=LicenseType.trial)
    trial_ends_at = Column(DateTime(timezone=True))
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    empresas = relationship("Empresa", back_populates="owner", cascade="all, delete-orphan")


class Empresa(Base):
    __tablename__ = "empresas"
    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    razao_social = Column(String, nullable=False)
    nome_fantasia = Column(String)
    cnpj = Column(String, nullable=False)
    inscricao_estadual = Column(String)
    inscricao_municipal = Column(String)
    regime_tributario = Column(Enum(RegimeTributario), default=RegimeTributario.simples)
    tipo_estabelecimento = Column(Enum(TipoEstabelecimento), default=TipoEstabelecimento.matriz)
    ativo = Column(Boolean, default=True, nullable=False)
    logradouro = Column(String)
    numero = Column(String)
    complemento = Column(String)
    bairro = Column(String)
    cidade = Column(String)
    codigo_municipio = Column(String)  # IBGE, 7 dígitos
    uf = Column(String(2))
    cep = Column(String)
    telefone = Column(String)
    email = Column(String)
    cnae_principal_codigo = Column(String)
    cnae_principal_descricao = Column(String)
    anexo_simples = Column(Enum(AnexoSimples), default=AnexoSimples.I)
    # PIS/COFINS (registro 0110 da EFD-Contribuições)
    incidencia_tributaria = Column(String, default="1")
    metodo_apropriacao_credito = Column(String, default="1")
    tipo_contribuicao = Column(String, default="1")
    # Contabilista responsável
    contador_nome = Column(String)
    contador_cpf = Column(String)
    contador_crc = Column(String)
    contador_email = Column(String)
    contador_telefone = Column(String)
    # último sequencial usado no Id dos eventos eSocial
    esocial_seq = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    owner = relationship("User", back_populates="empresas")
    estabelecimento = relationship("Estabelecimento", back_populates="empresa", uselist=False,
                                   cascade="all, delete-orphan")


class Estabelecimento(Base):
    __tablename__ = "estabelecimentos"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), unique=True, nullable=False)
    aliq_rat = Column(Float, default=0)
    fap = Column(Float, default=1)
    contrata_pcd = Column(Boolean, default=False)
    nr_insc_apr = Column(String)
    nr_caepf = Column(String)
    contato_nome = Column(String)
    contato_cpf = Column(String)
    contato_fone = Column(String)
    software_house_cnpj = Column(String)
    software_house_razao_social = Column(String)
    software_house_nome_contato = Column(String)
    software_house_telefone = Column(String)
    situacao_pj = Column(String, default="0")
    empresa = relationship("Empresa", back_populates="estabelecimento")


class Parceiro(Base):
    __tablename__ = "parceiros"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    tipo = Column(Enum(TipoParceiro), nullable=False)
    razao_social = Column(String, nullable=False)
    nome_fantasia = Column(String)
    cpf_cnpj = Column(String, nullable=False)
    inscricao_estadual = Column(String)
    cep = Column(String)
    logradouro = Column(String)
    numero = Column(String)
    complemento = Column(String)
    bairro = Column(String)
    cidade = Column(String)
    uf = Column(String(2))
    email = Column(String)
    telefone = Column(String)


class Funcionario(Base):
    __tablename__ = "funcionarios"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    nome_completo = Column(String, nullable=False)
    data_nascimento = Column(Date)
    cpf = Column(String, nullable=False)
    rg = Column(String)
    estado_civil = Column(String)
    sexo = Column(String)
    nome_mae = Column(String)
    nome_pai = Column(String)
    email = Column(String)
    telefone = Column(String)
    cep = Column(String)
    logradouro = Column(String)
    numero = Column(String)
    complemento = Column(String)
    bairro = Column(String)
    cidade = Column(String)
    uf = Column(String(2))
    data_admissao = Column(Date, nullable=False)
    cargo = Column(String)
    departamento = Column(String)
    salario_base = Column(Float, nullable=False)
    tipo_contrato = Column(String, default="clt")
    jornada_trabalho = Column(String, default="44h semanais")
    ativo = Column(Boolean, default=True, nullable=False)
    dependentes = relationship("Dependente", back_populates="funcionario",
                               cascade="all, delete-orphan")

    @property
    def dependentes_irrf(self) -> int:
        return sum(1 for d in self.dependentes if d.is_irrf)

    @property
    def dependentes_salario_familia(self) -> int:
        return sum(1 for d in self.dependentes if d.is_salario_familia)


class Dependente(Base):
    __tablename__ = "dependentes"
    id = Column(Integer, primary_key=True)
    funcionario_id = Column(Integer, ForeignKey("funcionarios.id"), nullable=False)
    nome = Column(String, nullable=False)
    cpf = Column(String)
    data_nascimento = Column(Date)
    parentesco = Column(String)
    is_irrf = Column(Boolean, default=False)
    is_salario_familia = Column(Boolean, default=False)
    funcionario = relationship("Funcionario", back_populates="dependentes")


class Socio(Base):
    __tablename__ = "socios"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    nome_completo = Column(String, nullable=False)
    cpf = Column(String, nullable=False)
    data_nascimento = Column(Date)
    participacao = Column(Float, default=0)  # percentual do capital social
    pro_labore = Column(Float, default=0)
    dependentes_irrf = Column(Integer, default=0)
    data_entrada = Column(Date)
    email = Column(String)
    telefone = Column(String)
    logradouro = Column(String)
    numero = Column(String)
    bairro = Column(String)
    cidade = Column(String)
    uf = Column(String(2))
    cep = Column(String)


class Rubrica(Base):
    __tablename__ = "rubricas"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    codigo = Column(String, nullable=False)
    descricao = Column(String, nullable=False)
    tipo = Column(Enum(TipoRubrica), nullable=False)
    incide_inss = Column(Boolean, default=False)
    incide_fgts = Column(Boolean, default=False)
    incide_irrf = Column(Boolean, default=False)


class Lancamento(Base):
    __tablename__ = "lancamentos"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    tipo = Column(Enum(TipoLancamento), nullable=False)
    status = Column(Enum(StatusLancamento), default=StatusLancamento.normal, nullable=False)
    data = Column(Date, nullable=False)
    arquivo_nome = Column(String)
    chave_nfe = Column(String, index=True)
    numero_nfse = Column(String, index=True)
    numero = Column(String)
    serie = Column(String)
    status_financeiro = Column(Enum(StatusFinanceiro), default=StatusFinanceiro.pendente)
    observacoes = Column(String)
    # Partes
    emitente_nome = Column(String)
    emitente_cnpj = Column(String)
    destinatario_nome = Column(String)
    destinatario_cnpj = Column(String)
    prestador_nome = Column(String)
    prestador_cnpj = Column(String)
    tomador_nome = Column(String)
    tomador_cnpj = Column(String)
    # NFS-e
    discriminacao = Column(Text)
    item_lc116 = Column(String)
    valor_servicos = Column(Float, default=0)
    valor_liquido = Column(Float, default=0)
    valor_iss = Column(Float, default=0)
    valor_ir = Column(Float, default=0)
    valor_inss = Column(Float, default=0)
    valor_csll = Column(Float, default=0)
    # NF-e
    valor_produtos = Column(Float, default=0)
    valor_total_nota = Column(Float, default=0)
    valor_desconto = Column(Float, default=0)
    valor_frete = Column(Float, default=0)
    valor_ipi = Column(Float, default=0)
    valor_icms = Column(Float, default=0)
    # Ambos
    valor_pis = Column(Float, default=0)
    valor_cofins = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    itens = relationship("ItemLancamento", back_populates="lancamento",
                         cascade="all, delete-orphan")

    @property
    def chave(self) -> str | None:
        return self.chave_nfe or self.numero_nfse

    @property
    def valor_documento(self) -> float:
        if self.tipo == TipoLancamento.servico:
            return self.valor_servicos or 0.0
        return self.valor_total_nota or self.valor_servicos or 0.0


class ItemLancamento(Base):
    __tablename__ = "itens_lancamento"
    id = Column(Integer, primary_key=True)
    lancamento_id = Column(Integer, ForeignKey("lancamentos.id"), nullable=False)
    codigo = Column(String)
    descricao = Column(String)
    ncm = Column(String)
    cfop = Column(String)
    unidade = Column(String)
    quantidade = Column(Float, default=0)
    valor_unitario = Column(Float, default=0)
    valor_total = Column(Float, default=0)
    lancamento = relationship("Lancamento", back_populates="itens")


class FolhaPagamento(Base):
    __tablename__ = "folhas_pagamento"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    funcionario_id = Column(Integer, ForeignKey("funcionarios.id"), nullable=False)
    periodo = Column(String(7), nullable=False)  # "MM/YYYY"
    status = Column(Enum(StatusFolha), default=StatusFolha.calculada, nullable=False)
    eventos = Column(JSON, default=list)
    total_proventos = Column(Float, default=0)
    total_descontos = Column(Float, default=0)
    liquido = Column(Float, default=0)
    base_inss = Column(Float, default=0)
    base_irrf = Column(Float, default=0)
    base_fgts = Column(Float, default=0)
    valor_inss = Column(Float, default=0)
    valor_irrf = Column(Float, default=0)
    valor_fgts = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    funcionario = relationship("Funcionario")


class Rci(Base):
    __tablename__ = "rcis"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    socio_id = Column(Integer, ForeignKey("socios.id"), nullable=False)
    periodo = Column(String(7), nullable=False)
    eventos = Column(JSON, default=list)
    total_proventos = Column(Float, default=0)
    total_descontos = Column(Float, default=0)
    liquido = Column(Float, default=0)
    base_inss = Column(Float, default=0)
    base_irrf = Column(Float, default=0)
    valor_inss = Column(Float, default=0)
    valor_irrf = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    socio = relationship("Socio")


class Ferias(Base):
    __tablename__ = "ferias"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    funcionario_id = Column(Integer, ForeignKey("funcionarios.id"), nullable=False)
    data_inicio = Column(Date, nullable=False)
    dias = Column(Integer, nullable=False)
    abono_pecuniario = Column(Boolean, default=False)
    adiantamento_decimo_terceiro = Column(Boolean, default=False)
    eventos = Column(JSON, default=list)
    total_proventos = Column(Float, default=0)
    total_descontos = Column(Float, default=0)
    liquido = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    funcionario = relationship("Funcionario")


class Rescisao(Base):
    __tablename__ = "rescisoes"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    funcionario_id = Column(Integer, ForeignKey("funcionarios.id"), nullable=False)
    data_rescisao = Column(Date, nullable=False)
    motivo = Column(String, nullable=False)
    tipo_aviso = Column(String, nullable=False)
    saldo_fgts = Column(Float, default=0)
    dias_aviso = Column(Integer, default=0)
    fgts_rescisao = Column(Float, default=0)
    multa_fgts = Column(Float, default=0)
    eventos = Column(JSON, default=list)
    total_proventos = Column(Float, default=0)
    total_descontos = Column(Float, default=0)
    liquido = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    funcionario = relationship("Funcionario")


class DecimoTerceiro(Base):
    __tablename__ = "decimos_terceiros"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    funcionario_id = Column(Integer, ForeignKey("funcionarios.id"), nullable=False)
    ano = Column(Integer, nullable=False)
    parcela = Column(String, nullable=False)  # primeira | segunda | unica
    meses_trabalhados = Column(Integer, nullable=False)
    eventos = Column(JSON, default=list)
    total_proventos = Column(Float, default=0)
    total_descontos = Column(Float, default=0)
    liquido = Column(Float, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    funcionario = relationship("Funcionario")


class Pgdas(Base):
    __tablename__ = "pgdas"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    periodo = Column(String(7), nullable=False)
    anexo = Column(Enum(AnexoSimples), nullable=False)
    rpa = Column(Float, nullable=False)
    rbt12 = Column(Float, nullable=False)
    aliquota_nominal = Column(Float, nullable=False)  # percentual
    parcela_deduzir = Column(Float, nullable=False)
    aliquota_efetiva = Column(Float, nullable=False)  # percentual
    valor_das = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class EventoEsocial(Base):
    __tablename__ = "eventos_esocial"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    tipo = Column(String, nullable=False)
    event_id = Column(String(36), nullable=False)
    status = Column(Enum(StatusEsocial), default=StatusEsocial.pending, nullable=False)
    periodo = Column(String(7))
    payload = Column(Text, nullable=False)
    error_details = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ArquivoReinf(Base):
    __tablename__ = "arquivos_reinf"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    nome_arquivo = Column(String, nullable=False)
    periodo = Column(String(7), nullable=False)
    tipo = Column(String, default="R-2099")
    status = Column(String, default="pending")
    conteudo = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ArquivoEfd(Base):
    __tablename__ = "arquivos_efd"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    nome_arquivo = Column(String, nullable=False)
    periodo = Column(String(7), nullable=False)
    tipo_escrituracao = Column(String(1), default="0")  # 0 original, 1 retificadora
    sem_movimento = Column(Boolean, default=False)
    conteudo = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ContaContabil(Base):
    __tablename__ = "contas_contabeis"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    codigo = Column(String, nullable=False)
    nome = Column(String, nullable=False)
    tipo = Column(String, default="analitica")  # sintetica | analitica
    natureza = Column(String, nullable=False)  # ativo | passivo | patrimonio_liquido | receita | despesa


class Orcamento(Base):
    __tablename__ = "orcamentos"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    numero = Column(Integer, nullable=False)
    cliente_id = Column(Integer, ForeignKey("parceiros.id"))
    cliente_nome = Column(String, nullable=False)
    data = Column(Date, nullable=False)
    validade = Column(Date)
    valor_total = Column(Float, default=0)
    observacoes = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    itens = relationship("ItemOrcamento", back_populates="orcamento",
                         cascade="all, delete-orphan")


class ItemOrcamento(Base):
    __tablename__ = "itens_orcamento"
    id = Column(Integer, primary_key=True)
    orcamento_id = Column(Integer, ForeignKey("orcamentos.id"), nullable=False)
    descricao = Column(String, nullable=False)
    quantidade = Column(Float, default=1)
    valor_unitario = Column(Float, default=0)
    valor_total = Column(Float, default=0)
    orcamento = relationship("Orcamento", back_populates="itens")


class Recibo(Base):
    __tablename__ = "recibos"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    numero = Column(Integer, nullable=False)
    pagador_nome = Column(String, nullable=False)
    pagador_documento = Column(String)
    valor = Column(Float, nullable=False)
    data = Column(Date, nullable=False)
    referente = Column(String, nullable=False)
    cidade = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Aliquota(Base):
    __tablename__ = "aliquotas"
    id = Column(Integer, primary_key=True)
    empresa_id = Column(Integer, ForeignKey("empresas.id"), nullable=False)
    esfera = Column(Enum(EsferaTributaria), nullable=False)
    nome_do_imposto = Column(String, nullable=False)
    descricao = Column(String)
    aliquota = Column(Float, nullable=False)


class Ticket(Base):
    __tablename__ = "tickets"
    id = Column(Integer, primary_key=True)
    numero = Column(String, unique=True)  # "T-000042"
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    empresa_id = Column(Integer, ForeignKey("empresas.id"))
    solicitante = Column(String, nullable=False)
    empresa_nome = Column(String)
    local_problema = Column(String, nullable=False)
    descricao = Column(Text, nullable=False)
    status = Column(Enum(StatusTicket), default=StatusTicket.aberto, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
