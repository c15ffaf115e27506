"""API tests: quotes, receipts and the chart of accounts."""

ORCAMENTO = {
    "cliente_nome": "Cliente Final Ltda",
    "data": "2024-03-01",
    "validade": "2024-03-31",
    "itens": [
        {"descricao": "Consultoria", "quantidade": 2, "valor_unitario": 150.00},
        {"descricao": "Treinamento", "quantidade": 1, "valor_unitario": 99.90},
    ],
}


class TestOrcamentos:

    def test_numbering_and_totals(self, client, auth_headers, base_url):
        url = f"{base_url}/orcamentos"
        resp = client.post(url, json=ORCAMENTO, headers=auth_headers)
        assert resp.status_code == 201
        primeiro = resp.json()
        assert primeiro["numero"] == 1
        assert [i["valor_total"] for i in primeiro["itens"]] == [300.00, 99.90]
        assert primeiro["valor_total"] == 399.90

        segundo = client.post(url, json=ORCAMENTO, headers=auth_headers).json()
        assert segundo["numero"] == 2
        numeros = [o["numero"] for o in client.get(url, headers=auth_headers).json()]
        assert numeros == [2, 1]

    def test_client_from_partner(self, client, auth_headers, base_url):
        parceiro = client.post(f"{base_url}/parceiros",
                               json={"tipo": "cliente", "razao_social": "Parceiro Cliente SA",
                                     "cpf_cnpj": "55444333000122"},
                               headers=auth_headers).json()
        data = dict(ORCAMENTO, cliente_nome=None, cliente_id=parceiro["id"])
        resp = client.post(f"{base_url}/orcamentos", json=data, headers=auth_headers)
        assert resp.json()["cliente_nome"] == "Parceiro Cliente SA"

    def test_client_is_required(self, client, auth_headers, base_url):
        data = dict(ORCAMENTO, cliente_nome=None)
        resp = client.post(f"{base_url}/orcamentos", json=data, headers=auth_headers)
        assert resp.status_code == 400

    def test_items_are_required(self, client, auth_headers, base_url):
        data = dict(ORCAMENTO, itens=[])
        resp = client.post(f"{base_url}/orcamentos", json=data, headers=auth_headers)
        assert resp.status_code == 422

    def test_update_replaces_items(self, client, auth_headers, base_url):
        url = f"{base_url}/orcamentos"
        orcamento = client.post(url, json=ORCAMENTO, headers=auth_headers).json()
        data = dict(ORCAMENTO, itens=[{"descricao": "Auditoria", "valor_unitario": 1000.00}])
        resp = client.put(f"{url}/{orcamento['id']}", json=data, headers=auth_headers)
        assert resp.json()["numero"] == 1
        assert resp.json()["valor_total"] == 1000.00
        assert [i["descricao"] for i in resp.json()["itens"]] == ["Auditoria"]

    def test_pdf_and_delete(self, client, auth_headers, base_url):
        url = f"{base_url}/orcamentos"
        orcamento = client.post(url, json=ORCAMENTO, headers=auth_headers).json()
        resp = client.get(f"{url}/{orcamento['id']}/pdf", headers=auth_headers)
        assert resp.headers["content-type"] == "application/pdf"
        assert "orcamento_0001.pdf" in resp.headers["content-disposition"]
        assert client.delete(f"{url}/{orcamento['id']}", headers=auth_headers).json() == {"ok": True}


class TestRecibos:

    def test_crud_and_pdf(self, client, auth_headers, base_url):
        url = f"{base_url}/recibos"
        data = {"pagador_nome": "Cliente Final Ltda", "pagador_documento": "55.444.333/0001-22",
                "valor": 1250.50, "data": "2024-03-05", "referente": "serviços de março"}
        resp = client.post(url, json=data, headers=auth_headers)
        assert resp.status_code == 201
        recibo = resp.json()
        assert recibo["numero"] == 1
        assert recibo["pagador_documento"] == "55444333000122"

        resp = client.put(f"{url}/{recibo['id']}", json=dict(data, valor=1300.00),
                          headers=auth_headers)
        assert resp.json()["valor"] == 1300.00

        resp = client.get(f"{url}/{recibo['id']}/pdf", headers=auth_headers)
        assert resp.content.startswith(b"%PDF")
        assert client.delete(f"{url}/{recibo['id']}", headers=auth_headers).json() == {"ok": True}

    def test_value_must_be_positive(self, client, auth_headers, base_url):
        data = {"pagador_nome": "Cliente", "valor": 0, "data": "2024-03-05", "referente": "x"}
        assert client.post(f"{base_url}/recibos", json=data,
                           headers=auth_headers).status_code == 422


class TestContasContabeis:

    def test_crud(self, client, auth_headers, base_url):
        url = f"{base_url}/contas"
        caixa = {"codigo": "1.1.01", "nome": "Caixa", "natureza": "ativo"}
        ativo = {"codigo": "1", "nome": "Ativo", "tipo": "sintetica", "natureza": "ativo"}
        resp = client.post(url, json=caixa, headers=auth_headers)
        assert resp.status_code == 201
        conta_id = resp.json()["id"]
        assert resp.json()["tipo"] == "analitica"
        client.post(url, json=ativo, headers=auth_headers)

        assert client.post(url, json=caixa, headers=auth_headers).status_code == 400
        codigos = [c["codigo"] for c in client.get(url, headers=auth_headers).json()]
        assert codigos == ["1", "1.1.01"]

        resp = client.put(f"{url}/{conta_id}", json=dict(caixa, nome="Caixa Geral"),
                          headers=auth_headers)
        assert resp.json()["nome"] == "Caixa Geral"
        assert client.delete(f"{url}/{conta_id}", headers=auth_headers).json() == {"ok": True}
        assert client.get(f"{url}/{conta_id}", headers=auth_headers).status_code == 404

    def test_invalid_nature(self, client, auth_headers, base_url):
        data = {"codigo": "9", "nome": "Outros", "natureza": "compensacao"}
        assert client.post(f"{base_url}/contas", json=data,
                           headers=auth_headers).status_code == 422

    def test_chart_pdf(self, client, auth_headers, base_url):
        url = f"{base_url}/contas"
        assert client.get(f"{url}/relatorio/pdf", headers=auth_headers).status_code == 400
        client.post(url, json={"codigo": "1.1.01", "nome": "Caixa", "natureza": "ativo"},
                    headers=auth_headers)
        resp = client.get(f"{url}/relatorio/pdf", headers=auth_headers)
        assert resp.status_code == 200
        assert "plano_de_contas.pdf" in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF")
