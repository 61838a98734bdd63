# tests/fiscal/api/test_eventos_api.py

import logging
from datetime import timedelta

import pytest

URL_CANCELAMENTO = "/api/v1/fiscal/eventos/cancelamento/validar"
URL_ENCERRAMENTO = "/api/v1/fiscal/eventos/encerramento/validar"
URL_CARTA_CORRECAO = "/api/v1/fiscal/eventos/carta-correcao/validar"
URL_INUTILIZACAO = "/api/v1/fiscal/eventos/inutilizacao/validar"
URL_TRANSICAO = "/api/v1/fiscal/documentos/transicao"

JUSTIFICATIVA_OK = "Cliente desistiu da compra após a emissão"


@pytest.fixture
def evento_payload(agora, chave_nfe):
    def _build(*, tipo="NFE", horas=2, status="autorizado", chave=None, **kwargs):
        return {
            "tipo": tipo,
            "status": status,
            "emitido_em": (agora - timedelta(hours=horas)).isoformat(),
            "chave_acesso": chave or chave_nfe,
            "solicitado_em": agora.isoformat(),
            **kwargs,
        }

    return _build


# ---------------------------------------------------------------------------
# Cancelamento
# ---------------------------------------------------------------------------


def test_cancelamento_dentro_do_prazo(api_client, evento_payload, caplog):
    with caplog.at_level(logging.INFO, logger="emissor.fiscal"):
        resp = api_client.post(
            URL_CANCELAMENTO,
            data=evento_payload(justificativa=JUSTIFICATIVA_OK),
            format="json",
        )

    assert resp.status_code == 200, resp.content
    body = resp.json()
    assert body["valido"] is True
    assert body["prazo"] == {
        "valido": True,
        "horas_restantes": 22,
        "mensagem": "22 horas restantes para cancelamento",
    }

    registros = [
        r for r in caplog.records if getattr(r, "event", None) == "fiscal_cancelamento_validar"
    ]
    assert registros
    assert registros[-1].outcome == "success"


def test_cancelamento_fora_do_prazo(api_client, evento_payload):
    resp = api_client.post(
        URL_CANCELAMENTO,
        data=evento_payload(horas=30, justificativa=JUSTIFICATIVA_OK),
        format="json",
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["valido"] is False
    assert body["erros"] == ["Prazo de 24 horas para cancelamento expirado"]
    assert body["prazo"]["horas_restantes"] == 0


def test_cancelamento_cte_mesmo_tempo_ainda_no_prazo(api_client, evento_payload, chave_cte):
    resp = api_client.post(
        URL_CANCELAMENTO,
        data=evento_payload(tipo="CT-e", horas=30, chave=chave_cte, justificativa=JUSTIFICATIVA_OK),
        format="json",
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["valido"] is True
    assert body["prazo"]["horas_restantes"] == 138


def test_cancelamento_emissao_no_futuro(api_client, evento_payload):
    resp = api_client.post(
        URL_CANCELAMENTO,
        data=evento_payload(horas=-10, justificativa=JUSTIFICATIVA_OK),
        format="json",
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["valido"] is False
    assert body["erros"] == ["Data de emissão posterior à solicitação de cancelamento"]
    assert body["prazo"]["horas_restantes"] == 0


def test_cancelamento_sem_emitido_em_e_400(api_client, evento_payload):
    data = evento_payload(justificativa=JUSTIFICATIVA_OK)
    data.pop("emitido_em")

    resp = api_client.post(URL_CANCELAMENTO, data=data, format="json")

    assert resp.status_code == 400
    assert "emitido_em" in resp.json()


# ---------------------------------------------------------------------------
# Encerramento
# ---------------------------------------------------------------------------


def test_encerramento_mdfe(api_client, evento_payload, chave_mdfe):
    resp = api_client.post(
        URL_ENCERRAMENTO,
        data=evento_payload(tipo="MDFE", horas=10, chave=chave_mdfe),
        format="json",
    )

    assert resp.status_code == 200, resp.content
    assert resp.json()["prazo"]["mensagem"] == "14 horas restantes para encerramento"


def test_encerramento_de_nfe_e_400_fiscal(api_client, evento_payload):
    resp = api_client.post(URL_ENCERRAMENTO, data=evento_payload(), format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "FISCAL_4001"


# ---------------------------------------------------------------------------
# Carta de correção
# ---------------------------------------------------------------------------


def test_carta_correcao_campo_nao_elegivel(api_client):
    resp = api_client.post(
        URL_CARTA_CORRECAO,
        data={"campo": "valor_total", "correcao": "Valor correto é R$ 150,00"},
        format="json",
    )

    assert resp.status_code == 200
    assert resp.json()["erros"] == [
        "Campo 'valor_total' não pode ser corrigido por carta de correção."
    ]


def test_carta_correcao_valida_para_nfe_autorizada(api_client):
    resp = api_client.post(
        URL_CARTA_CORRECAO,
        data={
            "campo": "informacoes_complementares",
            "correcao": "Pedido de compra número 4521",
            "tipo": "NFE",
            "status": "autorizado",
        },
        format="json",
    )

    assert resp.status_code == 200
    assert resp.json()["valido"] is True


def test_carta_correcao_mdfe_nao_admite(api_client):
    resp = api_client.post(
        URL_CARTA_CORRECAO,
        data={
            "campo": "informacoes_complementares",
            "correcao": "Pedido de compra número 4521",
            "tipo": "MDFE",
            "status": "autorizado",
        },
        format="json",
    )

    assert resp.json()["erros"] == [
        "Manifesto Eletrônico de Documentos Fiscais não admite carta de correção."
    ]


def test_carta_correcao_tipo_sem_status_e_400(api_client):
    resp = api_client.post(
        URL_CARTA_CORRECAO,
        data={"campo": "dados_produto", "correcao": "Lote 2024-11 validade 12/2026", "tipo": "NFE"},
        format="json",
    )

    assert resp.status_code == 400
    assert "status" in resp.json()


# ---------------------------------------------------------------------------
# Inutilização
# ---------------------------------------------------------------------------


def test_inutilizacao_devolve_todos_os_erros(api_client):
    resp = api_client.post(
        URL_INUTILIZACAO,
        data={"serie": 1, "numero_inicial": 120, "numero_final": 100, "justificativa": "1234567890"},
        format="json",
    )

    assert resp.status_code == 200
    assert resp.json()["erros"] == [
        "Número inicial não pode ser maior que o número final.",
        "Justificativa de inutilização muito curta (mínimo 15 caracteres).",
    ]


def test_inutilizacao_com_numero_ja_emitido(api_client):
    resp = api_client.post(
        URL_INUTILIZACAO,
        data={
            "serie": 1,
            "numero_inicial": 100,
            "numero_final": 110,
            "justificativa": "Falha de sequência no sistema",
            "numeros_emitidos": [99, 105],
        },
        format="json",
    )

    body = resp.json()
    assert body["valido"] is False
    assert body["erros"] == ["Não é possível inutilizar faixa com documentos já emitidos: 105"]


def test_inutilizacao_valida(api_client):
    resp = api_client.post(
        URL_INUTILIZACAO,
        data={"serie": 0, "numero_inicial": 5, "numero_final": 9, "justificativa": "Falha de sequência no sistema"},
        format="json",
    )

    assert resp.status_code == 200
    assert resp.json() == {"valido": True, "erros": [], "avisos": []}


# ---------------------------------------------------------------------------
# Transição de status
# ---------------------------------------------------------------------------


def test_transicao_permitida(api_client, evento_payload):
    resp = api_client.post(
        URL_TRANSICAO,
        data=evento_payload(status="rascunho", status_novo="pendente"),
        format="json",
    )

    assert resp.status_code == 200, resp.content
    assert resp.json() == {"tipo": "NFE", "status_anterior": "rascunho", "status": "pendente"}


def test_transicao_pulando_estado_e_409(api_client, evento_payload):
    resp = api_client.post(
        URL_TRANSICAO,
        data=evento_payload(status="rascunho", status_novo="autorizado"),
        format="json",
    )

    assert resp.status_code == 409
    assert resp.json() == {
        "code": "FISCAL_4020",
        "message": "Transição de rascunho para autorizado não é permitida.",
    }


def test_transicao_estado_terminal_e_409(api_client, evento_payload):
    resp = api_client.post(
        URL_TRANSICAO,
        data=evento_payload(status="cancelado", status_novo="autorizado"),
        format="json",
    )

    assert resp.status_code == 409
