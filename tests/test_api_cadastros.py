"""API tests: companies, establishment record, partners, employees, sócios and rubricas."""

import routers.cnpj
from conftest import EMPRESA_CNPJ, EMPRESA_DATA, login

FUNCIONARIO = {
    "nome_completo": "Joao da Silva",
    "cpf": "123.456.789-09",
    "data_admissao": "2022-01-10",
    "cargo": "Vendedor",
    "salario_base": 3000.00,
    "dependentes": [
        {"nome": "Pedro da Silva", "data_nascimento": "2015-05-01", "parentesco": "filho",
         "is_irrf": True, "is_salario_familia": True},
    ],
}


# =============================================================================
# Empresas
# =============================================================================


class TestEmpresas:

    def test_create_normalizes_documents_and_seeds_rubricas(self, client, auth_headers, empresa,
                                                            base_url):
        assert empresa["cnpj"] == EMPRESA_CNPJ
        assert empresa["contador_cpf"] == "12345678909"
        rubricas = client.get(f"{base_url}/rubricas", headers=auth_headers).json()
        assert len(rubricas) == 9
        assert rubricas[0]["codigo"] == "0001"

    def test_duplicate_cnpj(self, client, auth_headers, empresa):
        resp = client.post("/api/empresas", json=EMPRESA_DATA, headers=auth_headers)
        assert resp.status_code == 400

    def test_invalid_cnpj(self, client, auth_headers):
        data = dict(EMPRESA_DATA, cnpj="123")
        assert client.post("/api/empresas", json=data, headers=auth_headers).status_code == 422

    def test_list_and_update(self, client, auth_headers, empresa, base_url):
        resp = client.put(base_url, json={"nome_fantasia": "Novo Nome", "anexo_simples": "III"},
                          headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["nome_fantasia"] == "Novo Nome"
        assert resp.json()["razao_social"] == EMPRESA_DATA["razao_social"]
        empresas = client.get("/api/empresas", headers=auth_headers).json()
        assert [e["anexo_simples"] for e in empresas] == ["III"]

    def test_other_users_cannot_see_the_company(self, client, empresa, base_url):
        client.post("/api/auth/register", json={"email": "outro@contabil.com.br",
                                                "password": "senha123"})
        outro = login(client, "outro@contabil.com.br", "senha123")
        assert client.get(base_url, headers=outro).status_code == 404
        assert client.get(f"{base_url}/funcionarios", headers=outro).status_code == 404
        assert client.get("/api/empresas", headers=outro).json() == []

    def test_delete_removes_company_data(self, client, auth_headers, empresa, base_url):
        client.post(f"{base_url}/funcionarios", json=FUNCIONARIO, headers=auth_headers)
        assert client.delete(base_url, headers=auth_headers).json() == {"ok": True}
        assert client.get(base_url, headers=auth_headers).status_code == 404


class TestEstabelecimento:

    def test_missing_record(self, client, auth_headers, base_url):
        assert client.get(f"{base_url}/estabelecimento", headers=auth_headers).status_code == 404

    def test_save_and_update(self, client, auth_headers, base_url):
        data = {"aliq_rat": 2, "fap": 1.05, "contato_nome": "Joao Responsavel",
                "contato_cpf": "987.654.321-00"}
        resp = client.put(f"{base_url}/estabelecimento", json=data, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["contato_cpf"] == "98765432100"

        data["fap"] = 0.8
        resp = client.put(f"{base_url}/estabelecimento", json=data, headers=auth_headers)
        first_id = resp.json()["id"]
        resp = client.get(f"{base_url}/estabelecimento", headers=auth_headers)
        assert resp.json()["fap"] == 0.8
        assert resp.json()["id"] == first_id

    def test_fap_out_of_range(self, client, auth_headers, base_url):
        resp = client.put(f"{base_url}/estabelecimento", json={"fap": 3}, headers=auth_headers)
        assert resp.status_code == 422


class TestBackup:

    def test_create_and_download(self, client, auth_headers, base_url):
        resp = client.post(f"{base_url}/backup", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["tabelas"]["rubricas"] == 9

        resp = client.get(f"{base_url}/backup/{body['nome_arquivo']}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["dados"]["empresas"][0]["cnpj"] == EMPRESA_CNPJ

    def test_unknown_backup(self, client, auth_headers, base_url):
        resp = client.get(f"{base_url}/backup/backup_0_2000-01-01_00-00-00.json",
                          headers=auth_headers)
        assert resp.status_code == 404


# =============================================================================
# Parceiros
# =============================================================================


class TestParceiros:

    def test_crud(self, client, auth_headers, base_url):
        url = f"{base_url}/parceiros"
        data = {"tipo": "cliente", "razao_social": "Cliente Final Ltda",
                "cpf_cnpj": "55.444.333/0001-22"}
        resp = client.post(url, json=data, headers=auth_headers)
        assert resp.status_code == 201
        parceiro = resp.json()
        assert parceiro["cpf_cnpj"] == "55444333000122"

        assert client.post(url, json=data, headers=auth_headers).status_code == 400
        # same document as supplier is a different partner
        fornecedor = dict(data, tipo="fornecedor")
        assert client.post(url, json=fornecedor, headers=auth_headers).status_code == 201

        clientes = client.get(url, params={"tipo": "cliente"}, headers=auth_headers).json()
        assert [c["id"] for c in clientes] == [parceiro["id"]]

        resp = client.put(f"{url}/{parceiro['id']}", json={"cidade": "Campinas"},
                          headers=auth_headers)
        assert resp.json()["cidade"] == "Campinas"
        assert client.delete(f"{url}/{parceiro['id']}", headers=auth_headers).json() == {"ok": True}
        assert client.get(f"{url}/{parceiro['id']}", headers=auth_headers).status_code == 404


# =============================================================================
# Funcionários, sócios e rubricas
# =============================================================================


class TestFuncionarios:

    def test_create_with_dependents(self, client, auth_headers, base_url):
        resp = client.post(f"{base_url}/funcionarios", json=FUNCIONARIO, headers=auth_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["cpf"] == "12345678909"
        assert body["ativo"] is True
        assert [d["nome"] for d in body["dependentes"]] == ["Pedro da Silva"]

    def test_duplicate_cpf(self, client, auth_headers, base_url):
        client.post(f"{base_url}/funcionarios", json=FUNCIONARIO, headers=auth_headers)
        resp = client.post(f"{base_url}/funcionarios", json=FUNCIONARIO, headers=auth_headers)
        assert resp.status_code == 400

    def test_update_replaces_dependents(self, client, auth_headers, base_url):
        func_id = client.post(f"{base_url}/funcionarios", json=FUNCIONARIO,
                              headers=auth_headers).json()["id"]
        resp = client.put(f"{base_url}/funcionarios/{func_id}",
                          json={"salario_base": 3500.00, "dependentes": []}, headers=auth_headers)
        assert resp.json()["salario_base"] == 3500.00
        assert resp.json()["dependentes"] == []

    def test_filter_by_active(self, client, auth_headers, base_url):
        func_id = client.post(f"{base_url}/funcionarios", json=FUNCIONARIO,
                              headers=auth_headers).json()["id"]
        client.put(f"{base_url}/funcionarios/{func_id}", json={"ativo": False},
                   headers=auth_headers)
        ativos = client.get(f"{base_url}/funcionarios", params={"ativo": True},
                            headers=auth_headers).json()
        assert ativos == []
        todos = client.get(f"{base_url}/funcionarios", headers=auth_headers).json()
        assert len(todos) == 1

    def test_salary_must_be_positive(self, client, auth_headers, base_url):
        data = dict(FUNCIONARIO, salario_base=0)
        assert client.post(f"{base_url}/funcionarios", json=data,
                           headers=auth_headers).status_code == 422

    def test_delete(self, client, auth_headers, base_url):
        func_id = client.post(f"{base_url}/funcionarios", json=FUNCIONARIO,
                              headers=auth_headers).json()["id"]
        resp = client.delete(f"{base_url}/funcionarios/{func_id}", headers=auth_headers)
        assert resp.json() == {"ok": True}


class TestSocios:

    def test_crud(self, client, auth_headers, base_url):
        data = {"nome_completo": "Ana Socia", "cpf": "987.654.321-00", "participacao": 50,
                "pro_labore": 5000.00}
        resp = client.post(f"{base_url}/socios", json=data, headers=auth_headers)
        assert resp.status_code == 201
        socio_id = resp.json()["id"]
        resp = client.put(f"{base_url}/socios/{socio_id}", json={"pro_labore": 6000.00},
                          headers=auth_headers)
        assert resp.json()["pro_labore"] == 6000.00
        assert len(client.get(f"{base_url}/socios", headers=auth_headers).json()) == 1
        assert client.delete(f"{base_url}/socios/{socio_id}",
                             headers=auth_headers).json() == {"ok": True}

    def test_participation_over_100(self, client, auth_headers, base_url):
        data = {"nome_completo": "Ana Socia", "cpf": "98765432100", "participacao": 120}
        assert client.post(f"{base_url}/socios", json=data, headers=auth_headers).status_code == 422


class TestRubricas:

    def test_create_duplicate_and_update(self, client, auth_headers, base_url):
        url = f"{base_url}/rubricas"
        data = {"codigo": "0100", "descricao": "Comissão", "tipo": "provento",
                "incide_inss": True, "incide_fgts": True, "incide_irrf": True}
        resp = client.post(url, json=data, headers=auth_headers)
        assert resp.status_code == 201
        assert client.post(url, json=data, headers=auth_headers).status_code == 400

        rubrica_id = resp.json()["id"]
        resp = client.put(f"{url}/{rubrica_id}", json={"descricao": "Comissões"},
                          headers=auth_headers)
        assert resp.json()["descricao"] == "Comissões"
        assert client.delete(f"{url}/{rubrica_id}", headers=auth_headers).json() == {"ok": True}


# =============================================================================
# Consulta de CNPJ
# =============================================================================


class TestConsultaCnpj:

    def test_lookup(self, client, auth_headers, monkeypatch):
        async def fake_lookup(cnpj):
            return {"razao_social": "EMPRESA CONSULTADA", "cnpj": cnpj}

        monkeypatch.setattr(routers.cnpj, "lookup_cnpj", fake_lookup)
        resp = client.get("/api/cnpj/11222333000181", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["razao_social"] == "EMPRESA CONSULTADA"

    def test_cpf_is_rejected(self, client, auth_headers):
        resp = client.get("/api/cnpj/12345678909", headers=auth_headers)
        assert resp.status_code == 400

    def test_not_found(self, client, auth_headers, monkeypatch):
        async def fake_lookup(cnpj):
            raise LookupError("Não foi possível obter os dados do CNPJ.")

        monkeypatch.setattr(routers.cnpj, "lookup_cnpj", fake_lookup)
        assert client.get("/api/cnpj/11222333000181", headers=auth_headers).status_code == 404
