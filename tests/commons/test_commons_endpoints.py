# tests/commons/test_commons_endpoints.py

import logging

import pytest


def test_liveness(client):
    resp = client.get("/health/liveness")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


@pytest.mark.django_db
def test_readiness_lista_documentos(client):
    resp = client.get("/health/readiness")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "documentos": ["CTE", "MDFE", "NFE"]}


def test_time_now_no_timezone_do_projeto(client):
    resp = client.get("/time/now")

    body = resp.json()
    assert resp.status_code == 200
    assert body["timezone"] == "America/Sao_Paulo"
    assert "T" in body["now"]


def test_middleware_gera_request_id_e_loga(client, caplog):
    with caplog.at_level(logging.INFO, logger="django.request"):
        resp = client.get("/health/liveness")

    request_id = resp["X-Request-ID"]
    assert request_id

    registros = [r for r in caplog.records if getattr(r, "event", None) == "http_request"]
    assert registros
    log = registros[-1]
    assert log.request_id == request_id
    assert log.path == "/health/liveness"
    assert log.status == 200


def test_schema_openapi(client):
    resp = client.get("/api/schema/")

    assert resp.status_code == 200
    assert b"/api/v1/fiscal/tributos/calcular" in resp.content
