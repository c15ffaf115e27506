"""Tests for company backups and data removal."""

import json
from datetime import date, datetime

import pytest

from models.models import (
    Dependente,
    Empresa,
    Funcionario,
    ItemLancamento,
    Lancamento,
    Parceiro,
    TipoLancamento,
    TipoParceiro,
    User,
)
from services import backup_service


@pytest.fixture(autouse=True)
def backup_root(tmp_path, monkeypatch):
    monkeypatch.setattr(backup_service, "BACKUP_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def empresa(db):
    user = User(email="dono@contabil.com.br", hashed_password="x")
    db.add(user)
    db.flush()
    empresa = Empresa(owner_id=user.id, razao_social="Comercio Exemplo Ltda", cnpj="11222333000181")
    db.add(empresa)
    db.flush()
    funcionario = Funcionario(empresa_id=empresa.id, nome_completo="Joao da Silva",
                              cpf="12345678909", data_admissao=date(2022, 1, 10),
                              salario_base=3000.00)
    funcionario.dependentes.append(Dependente(nome="Pedro", is_irrf=True))
    lancamento = Lancamento(empresa_id=empresa.id, tipo=TipoLancamento.saida,
                            data=date(2024, 3, 10), chave_nfe="1" * 44, valor_total_nota=100.0)
    lancamento.itens.append(ItemLancamento(descricao="Caderno", quantidade=1, valor_total=100.0))
    db.add_all([
        funcionario,
        lancamento,
        Parceiro(empresa_id=empresa.id, tipo=TipoParceiro.cliente, razao_social="Cliente",
                 cpf_cnpj="55444333000122"),
    ])
    db.commit()
    return empresa


class TestCreateBackup:

    def test_writes_every_company_table(self, db, empresa, backup_root):
        result = backup_service.create_backup(db, empresa, now=datetime(2024, 3, 15, 10, 20, 30))
        assert result["nome_arquivo"] == f"backup_{empresa.id}_2024-03-15_10-20-30.json"
        assert result["caminho"].startswith(str(backup_root))
        assert result["tabelas"] == {"empresas": 1, "funcionarios": 1, "parceiros": 1,
                                     "lancamentos": 1, "dependentes": 1, "itens_lancamento": 1}

        with open(result["caminho"], encoding="utf-8") as fp:
            content = json.load(fp)
        assert content["empresa_id"] == empresa.id
        lancamento = content["dados"]["lancamentos"][0]
        assert lancamento["tipo"] == "saida"
        assert lancamento["data"] == "2024-03-10"

    def test_backup_path(self, db, empresa):
        result = backup_service.create_backup(db, empresa)
        assert backup_service.backup_path(empresa, result["nome_arquivo"]) == result["caminho"]

    def test_backup_path_missing_file(self, empresa):
        with pytest.raises(LookupError):
            backup_service.backup_path(empresa, "backup_1_2024-01-01_00-00-00.json")

    @pytest.mark.parametrize("nome", ["../segredo.json", "backup.txt", "a/b.json"])
    def test_backup_path_rejects_invalid_names(self, empresa, nome):
        with pytest.raises(ValueError):
            backup_service.backup_path(empresa, nome)


class TestDeleteCompanyData:

    def test_removes_children_and_company_rows(self, db, empresa):
        backup_service.delete_company_data(db, empresa)
        db.commit()
        assert db.query(Funcionario).count() == 0
        assert db.query(Dependente).count() == 0
        assert db.query(Lancamento).count() == 0
        assert db.query(ItemLancamento).count() == 0
        assert db.query(Parceiro).count() == 0
        assert db.query(Empresa).count() == 1
