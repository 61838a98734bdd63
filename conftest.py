# conftest.py (na raiz do projeto)

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from fiscal.documentos import StatusDocumento, TipoDocumento
from fiscal.services.dto import DocumentoFiscal
from fiscal.services.identificadores_service import montar_chave_acesso


# CNPJ válido de exemplo (DVs 8 e 1)
CNPJ_EMITENTE = "11222333000181"

EMITENTE_TESTE = {
    "nome": "Emissor Teste Comércio LTDA",
    "cnpj": CNPJ_EMITENTE,
    "inscricao_estadual": "110042490114",
    "regime_tributario": 3,
    "endereco": {
        "cep": "01311000",
        "logradouro": "Avenida Paulista",
        "numero": "1000",
        "bairro": "Bela Vista",
        "municipio": "São Paulo",
        "codigo_municipio": "3550308",
        "uf": "SP",
    },
}


# =============================================================================
# RELÓGIO FIXO
# =============================================================================

@pytest.fixture
def agora():
    """
    Instante fixo (aware, UTC) usado como "agora" nos testes de prazo.
    """
    return datetime(2026, 10, 19, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def relogio(agora):
    return lambda: agora


# =============================================================================
# CHAVES DE ACESSO / DOCUMENTOS
# =============================================================================

def _chave(modelo: str, numero: int, emitido_em: datetime) -> str:
    return montar_chave_acesso(
        codigo_uf="35",
        emitido_em=emitido_em,
        cnpj=CNPJ_EMITENTE,
        modelo=modelo,
        serie=1,
        numero=numero,
        codigo_numerico="12345678",
    )


@pytest.fixture
def chave_nfe(agora):
    return _chave("55", 123, agora)


@pytest.fixture
def chave_cte(agora):
    return _chave("57", 456, agora)


@pytest.fixture
def chave_mdfe(agora):
    return _chave("58", 789, agora)


@pytest.fixture
def documento_autorizado(agora, chave_nfe):
    """
    Fábrica de DocumentoFiscal autorizado, emitido `horas` antes de `agora`.

    Uso:
        doc = documento_autorizado(horas=2)
        doc = documento_autorizado(tipo=TipoDocumento.CTE, horas=30)
    """

    def _build(*, tipo=TipoDocumento.NFE, horas=2, status=StatusDocumento.AUTORIZADO, **kwargs):
        kwargs.setdefault("chave_acesso", chave_nfe)
        kwargs.setdefault("valor_total", Decimal("100.00"))
        return DocumentoFiscal(
            tipo=tipo,
            status=status,
            emitido_em=agora - timedelta(hours=horas),
            **kwargs,
        )

    return _build


# =============================================================================
# CONFIGURAÇÃO / API
# =============================================================================

@pytest.fixture
def dados_emitente():
    return {**EMITENTE_TESTE, "endereco": dict(EMITENTE_TESTE["endereco"])}


@pytest.fixture
def emitente_configurado(settings):
    """
    Configura settings.FISCAL_EMITENTE (restaurado ao fim do teste).
    """
    settings.FISCAL_EMITENTE = dict(EMITENTE_TESTE)
    return settings.FISCAL_EMITENTE


@pytest.fixture
def sem_emitente(settings):
    settings.FISCAL_EMITENTE = None


@pytest.fixture
def api_client():
    return APIClient()
