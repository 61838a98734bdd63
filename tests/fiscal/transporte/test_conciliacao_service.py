# tests/fiscal/transporte/test_conciliacao_service.py

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from fiscal.documentos import StatusDocumento, TipoDocumento
from fiscal.exceptions import EstruturaInvalidaError
from fiscal.services.conciliacao_service import (
    conciliar_manifesto,
    gerar_observacoes,
    gerar_observacoes_cte,
    gerar_observacoes_mdfe,
    pre_validar,
    recomendacoes_modal_cte,
    recomendacoes_modal_mdfe,
    validar_dados_cte,
    validar_dados_mdfe,
    validar_vinculo_temporal,
    validar_vinculos_temporais,
)
from fiscal.services.dto import DocumentoFiscal, DocumentoVinculado


@pytest.fixture
def manifesto(agora, chave_mdfe):
    def _build(valor="500.00", peso="1000.00", **kwargs):
        return DocumentoFiscal(
            tipo=TipoDocumento.MDFE,
            status=StatusDocumento.RASCUNHO,
            emitido_em=agora,
            valor_total=Decimal(valor),
            peso_total=Decimal(peso),
            chave_acesso=chave_mdfe,
            **kwargs,
        )

    return _build


@pytest.fixture
def vinculado(chave_cte):
    def _build(valor, peso, tipo="CTE", chave=None, emitido_em=None):
        return DocumentoVinculado(
            tipo=tipo,
            chave_acesso=chave if chave is not None else chave_cte,
            valor=Decimal(valor),
            peso=Decimal(peso),
            emitido_em=emitido_em,
        )

    return _build


# ---------------------------------------------------------------------------
# Conciliação valor / peso
# ---------------------------------------------------------------------------


def test_conciliacao_fecha(manifesto, vinculado):
    resultado = conciliar_manifesto(
        manifesto(),
        [vinculado("300.00", "600"), vinculado("200.00", "400")],
    )

    assert resultado.valido
    assert resultado.avisos == ()


def test_divergencia_de_valor_cita_os_dois_totais(manifesto, vinculado):
    resultado = conciliar_manifesto(
        manifesto(),
        [vinculado("300.00", "600"), vinculado("150.00", "400")],
    )

    assert len(resultado.erros) == 1
    assert "500.00" in resultado.erros[0]
    assert "450.00" in resultado.erros[0]
    assert resultado.erros[0] == "Divergência no valor total: MDFe R$ 500.00 vs Documentos R$ 450.00"


def test_divergencia_de_peso(manifesto, vinculado):
    resultado = conciliar_manifesto(
        manifesto(),
        [vinculado("300.00", "600"), vinculado("200.00", "350")],
    )

    assert resultado.erros == (
        "Divergência no peso total: MDFe 1000.00kg vs Documentos 950.00kg",
    )


def test_tolerancia_de_um_centavo(manifesto, vinculado):
    dentro = conciliar_manifesto(
        manifesto(), [vinculado("300.00", "600"), vinculado("200.01", "400.01")]
    )
    fora = conciliar_manifesto(
        manifesto(), [vinculado("300.00", "600"), vinculado("200.02", "400")]
    )

    assert dentro.valido
    assert not fora.valido


def test_excesso_de_capacidade_e_aviso_nao_erro(manifesto, vinculado):
    resultado = conciliar_manifesto(
        manifesto(),
        [vinculado("300.00", "600"), vinculado("200.00", "400")],
        capacidade_kg=Decimal("800"),
    )

    assert resultado.valido
    assert resultado.avisos == (
        "Peso total (1000.00kg) excede capacidade do veículo (800.00kg)",
    )


def test_capacidade_suficiente_sem_aviso(manifesto, vinculado):
    resultado = conciliar_manifesto(
        manifesto(),
        [vinculado("300.00", "600"), vinculado("200.00", "400")],
        capacidade_kg="1000",
    )
    assert resultado.avisos == ()


def test_chave_invalida_de_vinculado(manifesto, vinculado, chave_nfe):
    resultado = conciliar_manifesto(
        manifesto(),
        [vinculado("300.00", "600", tipo="NFE", chave=chave_nfe), vinculado("200.00", "400", chave="123")],
    )

    assert resultado.erros == ("Documento vinculado 2 (CTE): Chave de acesso deve ter 44 dígitos",)


def test_manifesto_sem_vinculados_diverge(manifesto):
    resultado = conciliar_manifesto(manifesto(), [])

    assert len(resultado.erros) == 2


def test_conciliacao_exige_mdfe(manifesto, vinculado, agora):
    nfe = DocumentoFiscal(
        tipo=TipoDocumento.NFE,
        status=StatusDocumento.AUTORIZADO,
        emitido_em=agora,
        valor_total=Decimal("500"),
    )

    with pytest.raises(EstruturaInvalidaError):
        conciliar_manifesto(nfe, [vinculado("500", "0")])

    with pytest.raises(EstruturaInvalidaError):
        conciliar_manifesto(manifesto(), None)


def test_conciliacao_loga_outcome(manifesto, vinculado, caplog):
    with caplog.at_level(logging.INFO, logger="emissor.fiscal"):
        conciliar_manifesto(manifesto(), [vinculado("450.00", "1000")])

    registros = [
        r for r in caplog.records if getattr(r, "event", None) == "fiscal_conciliacao_manifesto"
    ]
    assert registros[0].outcome == "divergente"
    assert registros[0].valor_documentos == "450.00"


# ---------------------------------------------------------------------------
# Regra temporal do vínculo
# ---------------------------------------------------------------------------


def test_vinculo_temporal_ok(agora):
    assert validar_vinculo_temporal(agora - timedelta(days=3), agora).valido
    assert validar_vinculo_temporal(agora, agora).valido
    assert validar_vinculo_temporal(agora - timedelta(days=7), agora).valido


def test_componente_emitido_depois_do_manifesto(agora):
    resultado = validar_vinculo_temporal(agora + timedelta(hours=1), agora)
    assert resultado.erros == ("CTe não pode ser emitido após o MDFe",)


def test_componente_com_mais_de_sete_dias(agora):
    resultado = validar_vinculo_temporal(agora - timedelta(days=8), agora)
    assert resultado.erros == (
        "CTe não pode ser vinculado a MDFe com mais de 7 dias de diferença",
    )


def test_vinculos_temporais_sem_repetir_mensagem(manifesto, vinculado, agora):
    vinculados = [
        vinculado("100", "1", emitido_em=agora - timedelta(days=9)),
        vinculado("100", "1", emitido_em=agora - timedelta(days=10)),
        vinculado("100", "1", emitido_em=agora - timedelta(days=1)),
        vinculado("100", "1"),
    ]

    resultado = validar_vinculos_temporais(manifesto(), vinculados)

    assert resultado.erros == (
        "CTe não pode ser vinculado a MDFe com mais de 7 dias de diferença",
    )


# ---------------------------------------------------------------------------
# Pré-validação CT-e / MDF-e
# ---------------------------------------------------------------------------

CTE_OK = {
    "modal": "rodoviario",
    "peso": "1200.5",
    "valor_carga": "15000.00",
    "valor_frete": "850.00",
    "valor_total_servico": "850.00",
    "distancia": 430,
}

MDFE_OK = {
    "modal": "rodoviario",
    "placa_veiculo": "ABC1D23",
    "cpf_condutor": "52998224725",
    "peso_total": "1200.5",
    "valor_total": "15000.00",
}


def test_pre_validar_cte_ok():
    resultado = pre_validar("CT-e", CTE_OK)

    assert resultado.valido
    assert resultado.avisos == ()


def test_pre_validar_cte_vazio_lista_tudo():
    resultado = pre_validar(TipoDocumento.CTE, {})

    assert resultado.erros == (
        "Campo obrigatório não informado: modal",
        "Campo obrigatório não informado: peso",
        "Campo obrigatório não informado: valor_carga",
        "Campo obrigatório não informado: valor_frete",
        "Campo obrigatório não informado: valor_total_servico",
        "Peso da carga deve ser maior que zero",
        "Valor da carga deve ser maior que zero",
        "Valor do frete deve ser maior que zero",
    )


def test_recomendacoes_modal_cte_sao_avisos():
    sem_distancia = validar_dados_cte({**CTE_OK, "distancia": None})
    assert sem_distancia.valido
    assert sem_distancia.avisos == ("Distância não informada para modal rodoviário",)

    assert recomendacoes_modal_cte({"modal": "aereo"}).avisos == (
        "Peso aferido recomendado para modal aéreo",
    )
    assert recomendacoes_modal_cte({"modal": "aquaviario"}).avisos == (
        "Cubagem recomendada para modal aquaviário",
    )
    assert recomendacoes_modal_cte({"modal": "ferroviario"}).avisos == ()


def test_modal_desconhecido_levanta():
    with pytest.raises(EstruturaInvalidaError):
        recomendacoes_modal_cte({"modal": "espacial"})


def test_pre_validar_mdfe_ok():
    assert pre_validar("MDFE", MDFE_OK).valido


def test_mdfe_placa_e_condutor():
    resultado = validar_dados_mdfe({**MDFE_OK, "placa_veiculo": "AB1", "cpf_condutor": "11111111111"})

    assert resultado.erros == ("Placa do veículo inválida", "CPF do condutor inválido")


def test_mdfe_rodoviario_sem_placa_e_erro():
    resultado = recomendacoes_modal_mdfe({"modal": "rodoviario"})
    assert resultado.erros == ("Placa do veículo obrigatória para modal rodoviário",)


def test_mdfe_aereo_sem_capacidade_e_aviso():
    resultado = validar_dados_mdfe({**MDFE_OK, "modal": "aereo"})

    assert resultado.valido
    assert resultado.avisos == ("Capacidade de peso recomendada para modal aéreo",)


def test_mdfe_valores_zerados():
    resultado = validar_dados_mdfe({**MDFE_OK, "peso_total": "0", "valor_total": None})

    assert resultado.erros == (
        "Peso total deve ser maior que zero",
        "Valor total deve ser maior que zero",
    )


def test_pre_validar_nfe_usa_validacao_de_dados():
    resultado = pre_validar("NF-e", {})

    assert "Campo obrigatório não informado: destinatario" in resultado.erros
    assert "Pelo menos um item é obrigatório" in resultado.erros


def test_dados_none_levanta():
    with pytest.raises(EstruturaInvalidaError):
        validar_dados_cte(None)
    with pytest.raises(EstruturaInvalidaError):
        validar_dados_mdfe(None)


# ---------------------------------------------------------------------------
# Observações CT-e / MDF-e
# ---------------------------------------------------------------------------

LEGISLACAO = (
    "Documento emitido conforme legislação vigente 2025",
    "Sistema preparado para Reforma Tributária 2026",
)


def test_observacoes_cte_subcontratacao():
    dados = {
        **CTE_OK,
        "tipo_servico": "subcontratacao",
        "tipo_frete": "FOB",
        "codigo_rastreamento": "BR123456789",
    }

    assert gerar_observacoes_cte(dados) == (
        "Serviço de transporte subcontratado",
        "Responsabilidade solidária conforme art. 31 da Lei 11.442/2007",
        "Modal rodoviário",
        "Frete por conta do destinatário (FOB)",
        "Código de rastreamento: BR123456789",
        *LEGISLACAO,
    )


def test_observacoes_cte_sem_servico_nem_frete():
    assert gerar_observacoes_cte({"modal": "aereo", "tipo_servico": "outro"}) == (
        "Modal aéreo",
        *LEGISLACAO,
    )


def test_observacoes_mdfe_rodoviario_com_carreta():
    dados = {
        **MDFE_OK,
        "tipo_emitente": "transportadora",
        "placa_carreta": "XYZ9K87",
        "uf_inicio": "SP",
        "uf_fim": "PR",
        "municipios_percurso": ["Registro", "Curitiba"],
        "quantidade_cte": 2,
        "quantidade_nfe": "3",
    }

    assert gerar_observacoes_mdfe(dados) == (
        "Transportadora autorizada para transporte de cargas",
        "Modal rodoviário",
        "Veículo: ABC1D23 + Carreta: XYZ9K87",
        "Percurso: SP → PR",
        "Municípios: Registro, Curitiba",
        "Documentos vinculados: 2 CTe + 3 NFe",
        *LEGISLACAO,
    )


def test_observacoes_mdfe_rodoviario_so_cavalo():
    observacoes = gerar_observacoes_mdfe({**MDFE_OK, "tipo_emitente": "carga_propria"})

    assert observacoes[:3] == (
        "Transporte de carga própria",
        "Modal rodoviário",
        "Veículo: ABC1D23",
    )


def test_observacoes_por_tipo():
    assert gerar_observacoes("CT-e", CTE_OK) == ("Modal rodoviário", *LEGISLACAO)
    assert gerar_observacoes("NFE", {}) == ()


def test_observacoes_quantidade_invalida_levanta():
    with pytest.raises(EstruturaInvalidaError):
        gerar_observacoes_mdfe({**MDFE_OK, "quantidade_cte": "duas"})
