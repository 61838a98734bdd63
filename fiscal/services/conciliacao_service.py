# fiscal/services/conciliacao_service.py
"""
Consistência entre documentos de transporte.

- Pré-validação por tipo (campos obrigatórios, checagens básicas de
  CT-e e MDF-e, recomendações por modal).
- Observações de CT-e e MDF-e (serviço, modal, frete, percurso).
- Conciliação do MDF-e com os documentos vinculados (valor, peso,
  capacidade do veículo, chaves de acesso).
- Regra temporal do vínculo (componente x manifesto).
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from django.db import models

from fiscal.documentos import TipoDocumento, get_regras_documento
from fiscal.exceptions import EstruturaInvalidaError
from fiscal.services.dto import DocumentoFiscal, DocumentoVinculado
from fiscal.services.identificadores_service import (
    TipoIdentificador,
    validar_cpf,
    verificar_identificador,
)
from fiscal.services.resultado import OK, ResultadoValidacao, aviso, combinar, erro
from fiscal.services.validacao_nfe_service import validar_dados_nfe
from fiscal.services.valores import TOLERANCIA, formatar_moeda, para_datetime, para_decimal

logger = logging.getLogger("emissor.fiscal")

ZERO = Decimal("0")
DIFERENCA_MAXIMA_VINCULO = timedelta(days=7)
TAMANHO_MINIMO_PLACA = 7


class Modal(models.TextChoices):
    RODOVIARIO = "rodoviario", "Rodoviário"
    AEREO = "aereo", "Aéreo"
    AQUAVIARIO = "aquaviario", "Aquaviário"
    FERROVIARIO = "ferroviario", "Ferroviário"
    DUTOVIARIO = "dutoviario", "Dutoviário"


def _vazio(valor) -> bool:
    return valor is None or (isinstance(valor, str) and not valor.strip())


def _positivo(dados: Mapping, campo: str, mensagem: str) -> ResultadoValidacao:
    valor = para_decimal(dados.get(campo), campo)
    if valor is None or valor <= ZERO:
        return erro(mensagem)
    return OK


def _modal(dados: Mapping) -> Optional[Modal]:
    valor = dados.get("modal")
    if _vazio(valor):
        return None
    try:
        return Modal(str(valor).strip().lower())
    except ValueError:
        raise EstruturaInvalidaError(f"Modal desconhecido: {valor!r}.")


# ---------------------------------------------------------------------------
# Pré-validação por tipo
# ---------------------------------------------------------------------------


def verificar_campos_obrigatorios(tipo, dados: Mapping) -> ResultadoValidacao:
    regras = get_regras_documento(tipo)
    faltando = sorted(c for c in regras.campos_obrigatorios if _vazio(dados.get(c)))
    return combinar(erro(f"Campo obrigatório não informado: {campo}") for campo in faltando)


def recomendacoes_modal_cte(dados: Mapping) -> ResultadoValidacao:
    modal = _modal(dados)
    if modal == Modal.RODOVIARIO and not dados.get("distancia"):
        return aviso("Distância não informada para modal rodoviário")
    if modal == Modal.AEREO and not dados.get("peso_aferido"):
        return aviso("Peso aferido recomendado para modal aéreo")
    if modal == Modal.AQUAVIARIO and not dados.get("cubagem"):
        return aviso("Cubagem recomendada para modal aquaviário")
    return OK


def recomendacoes_modal_mdfe(dados: Mapping) -> ResultadoValidacao:
    modal = _modal(dados)
    if modal == Modal.RODOVIARIO and _vazio(dados.get("placa_veiculo")):
        return erro("Placa do veículo obrigatória para modal rodoviário")
    if modal == Modal.AEREO and not dados.get("capacidade_kg"):
        return aviso("Capacidade de peso recomendada para modal aéreo")
    if modal == Modal.AQUAVIARIO and not dados.get("capacidade_m3"):
        return aviso("Capacidade volumétrica recomendada para modal aquaviário")
    return OK


def validar_dados_cte(dados: Mapping) -> ResultadoValidacao:
    """
    Checagens básicas do CT-e antes do cálculo:
    peso, valor da carga e valor do frete positivos, mais as
    recomendações do modal (avisos).
    """
    if dados is None:
        raise EstruturaInvalidaError("Dados do CT-e não informados.")

    return combinar(
        [
            _positivo(dados, "peso", "Peso da carga deve ser maior que zero"),
            _positivo(dados, "valor_carga", "Valor da carga deve ser maior que zero"),
            _positivo(dados, "valor_frete", "Valor do frete deve ser maior que zero"),
            recomendacoes_modal_cte(dados),
        ]
    )


def validar_dados_mdfe(dados: Mapping) -> ResultadoValidacao:
    """
    Checagens básicas do MDF-e: peso e valor positivos, placa com pelo
    menos 7 caracteres, CPF do condutor válido e regras do modal.
    """
    if dados is None:
        raise EstruturaInvalidaError("Dados do MDF-e não informados.")

    resultados = [
        _positivo(dados, "peso_total", "Peso total deve ser maior que zero"),
        _positivo(dados, "valor_total", "Valor total deve ser maior que zero"),
    ]

    placa = str(dados.get("placa_veiculo") or "").strip()
    if placa and len(placa) < TAMANHO_MINIMO_PLACA:
        resultados.append(erro("Placa do veículo inválida"))

    cpf_condutor = dados.get("cpf_condutor")
    if _vazio(cpf_condutor) or not validar_cpf(cpf_condutor):
        resultados.append(erro("CPF do condutor inválido"))

    resultados.append(recomendacoes_modal_mdfe(dados))
    return combinar(resultados)


# ---------------------------------------------------------------------------
# Observações do documento
# ---------------------------------------------------------------------------

OBSERVACOES_TIPO_SERVICO_CTE: Mapping[str, tuple[str, ...]] = {
    "normal": ("Transporte normal de cargas",),
    "subcontratacao": (
        "Serviço de transporte subcontratado",
        "Responsabilidade solidária conforme art. 31 da Lei 11.442/2007",
    ),
    "redespacho": ("Serviço de redespacho",),
    "intermediacao": ("Serviço de intermediação",),
    "multimodal": ("Transporte multimodal de cargas",),
}

OBSERVACOES_FRETE_CTE: Mapping[str, str] = {
    "cif": "Frete por conta do remetente (CIF)",
    "fob": "Frete por conta do destinatário (FOB)",
    "terceiros": "Frete por conta de terceiros",
    "proprio_remetente": "Transporte próprio por conta do remetente",
    "proprio_destinatario": "Transporte próprio por conta do destinatário",
}

OBSERVACOES_EMITENTE_MDFE: Mapping[str, str] = {
    "transportadora": "Transportadora autorizada para transporte de cargas",
    "carga_propria": "Transporte de carga própria",
}

OBSERVACOES_LEGISLACAO = (
    "Documento emitido conforme legislação vigente 2025",
    "Sistema preparado para Reforma Tributária 2026",
)


def _chave(dados: Mapping, campo: str) -> str:
    return str(dados.get(campo) or "").strip().lower()


def _observacao_modal(modal: Optional[Modal]) -> list[str]:
    if modal is None:
        return []
    return [f"Modal {modal.label.lower()}"]


def _observacoes_finais(dados: Mapping) -> list[str]:
    observacoes = []
    rastreamento = str(dados.get("codigo_rastreamento") or "").strip()
    if rastreamento:
        observacoes.append(f"Código de rastreamento: {rastreamento}")
    observacoes.extend(OBSERVACOES_LEGISLACAO)
    return observacoes


def gerar_observacoes_cte(dados: Mapping) -> tuple[str, ...]:
    """
    Observações do CT-e: tipo de serviço, modal, responsável pelo frete,
    rastreamento e o texto legal fixo.
    """
    observacoes = list(OBSERVACOES_TIPO_SERVICO_CTE.get(_chave(dados, "tipo_servico"), ()))
    observacoes.extend(_observacao_modal(_modal(dados)))

    frete = OBSERVACOES_FRETE_CTE.get(_chave(dados, "tipo_frete"))
    if frete:
        observacoes.append(frete)

    observacoes.extend(_observacoes_finais(dados))
    return tuple(observacoes)


def gerar_observacoes_mdfe(dados: Mapping) -> tuple[str, ...]:
    """
    Observações do MDF-e: tipo de emitente, modal (com placas no
    rodoviário), percurso, documentos transportados e texto legal.
    """
    observacoes = []

    emitente = OBSERVACOES_EMITENTE_MDFE.get(_chave(dados, "tipo_emitente"))
    if emitente:
        observacoes.append(emitente)

    modal = _modal(dados)
    observacoes.extend(_observacao_modal(modal))
    placa = str(dados.get("placa_veiculo") or "").strip()
    if modal == Modal.RODOVIARIO and placa:
        carreta = str(dados.get("placa_carreta") or "").strip()
        observacoes.append(
            f"Veículo: {placa} + Carreta: {carreta}" if carreta else f"Veículo: {placa}"
        )

    uf_inicio = str(dados.get("uf_inicio") or "").strip()
    uf_fim = str(dados.get("uf_fim") or "").strip()
    if uf_inicio and uf_fim:
        observacoes.append(f"Percurso: {uf_inicio} → {uf_fim}")

    municipios = dados.get("municipios_percurso") or []
    if municipios:
        observacoes.append(f"Municípios: {', '.join(str(m) for m in municipios)}")

    quantidade_cte = para_decimal(dados.get("quantidade_cte"), "quantidade_cte")
    quantidade_nfe = para_decimal(dados.get("quantidade_nfe"), "quantidade_nfe")
    if quantidade_cte is not None or quantidade_nfe is not None:
        observacoes.append(
            f"Documentos vinculados: {int(quantidade_cte or ZERO)} CTe"
            f" + {int(quantidade_nfe or ZERO)} NFe"
        )

    observacoes.extend(_observacoes_finais(dados))
    return tuple(observacoes)


def gerar_observacoes(tipo, dados: Mapping) -> tuple[str, ...]:
    regras = get_regras_documento(tipo)
    if regras.tipo == TipoDocumento.CTE:
        return gerar_observacoes_cte(dados)
    if regras.tipo == TipoDocumento.MDFE:
        return gerar_observacoes_mdfe(dados)
    return ()


def pre_validar(tipo, dados: Mapping) -> ResultadoValidacao:
    """
    Ponto único de pré-validação: campos obrigatórios do tipo +
    checagens específicas (dados da NF-e, básicas de CT-e e MDF-e).
    """
    regras = get_regras_documento(tipo)
    resultado = verificar_campos_obrigatorios(regras.tipo, dados)

    if regras.tipo == TipoDocumento.CTE:
        resultado = resultado + validar_dados_cte(dados)
    elif regras.tipo == TipoDocumento.MDFE:
        resultado = resultado + validar_dados_mdfe(dados)
    elif regras.tipo == TipoDocumento.NFE:
        resultado = resultado + validar_dados_nfe(dados)
    return resultado


# ---------------------------------------------------------------------------
# Conciliação MDF-e x documentos vinculados
# ---------------------------------------------------------------------------


def _validar_chaves(vinculados: Sequence[DocumentoVinculado]) -> ResultadoValidacao:
    return combinar(
        verificar_identificador(
            TipoIdentificador.CHAVE_ACESSO,
            doc.chave_acesso,
            f"Documento vinculado {i} ({doc.tipo})",
        )
        for i, doc in enumerate(vinculados, start=1)
    )


def conciliar_manifesto(
    manifesto: DocumentoFiscal,
    vinculados: Sequence[DocumentoVinculado],
    *,
    capacidade_kg=None,
) -> ResultadoValidacao:
    """
    Confere o MDF-e contra os documentos que ele transporta.

    - Σ valor dos vinculados == valor_total do MDF-e (tolerância 0,01)
    - Σ peso dos vinculados == peso_total do MDF-e (tolerância 0,01)
    - peso acima da capacidade do veículo vira aviso
    - cada chave de acesso vinculada é validada
    """
    if manifesto is None or vinculados is None:
        raise EstruturaInvalidaError("Manifesto e documentos vinculados são obrigatórios.")

    regras = get_regras_documento(manifesto.tipo)
    if regras.tipo != TipoDocumento.MDFE:
        raise EstruturaInvalidaError(
            f"Conciliação de carga se aplica apenas a MDF-e (recebido {regras.tipo})."
        )

    valor_manifesto = para_decimal(manifesto.valor_total, "valor_total") or ZERO
    peso_manifesto = para_decimal(manifesto.peso_total, "peso_total") or ZERO

    valor_documentos = sum(
        (para_decimal(d.valor, "valor") or ZERO for d in vinculados), ZERO
    )
    peso_documentos = sum(
        (para_decimal(d.peso, "peso") or ZERO for d in vinculados), ZERO
    )

    resultados = []

    if abs(valor_documentos - valor_manifesto) > TOLERANCIA:
        resultados.append(
            erro(
                f"Divergência no valor total: MDFe R$ {formatar_moeda(valor_manifesto)} "
                f"vs Documentos R$ {formatar_moeda(valor_documentos)}"
            )
        )

    if abs(peso_documentos - peso_manifesto) > TOLERANCIA:
        resultados.append(
            erro(
                f"Divergência no peso total: MDFe {formatar_moeda(peso_manifesto)}kg "
                f"vs Documentos {formatar_moeda(peso_documentos)}kg"
            )
        )

    capacidade = para_decimal(capacidade_kg, "capacidade_kg")
    if capacidade and peso_manifesto > capacidade:
        resultados.append(
            aviso(
                f"Peso total ({formatar_moeda(peso_manifesto)}kg) excede capacidade "
                f"do veículo ({formatar_moeda(capacidade)}kg)"
            )
        )

    resultados.append(_validar_chaves(vinculados))
    resultado = combinar(resultados)

    logger.info(
        "fiscal_conciliacao_manifesto",
        extra={
            "event": "fiscal_conciliacao_manifesto",
            "chave_acesso": manifesto.chave_acesso,
            "documentos": len(vinculados),
            "valor_manifesto": str(valor_manifesto),
            "valor_documentos": str(valor_documentos),
            "peso_manifesto": str(peso_manifesto),
            "peso_documentos": str(peso_documentos),
            "outcome": "conciliado" if resultado.valido else "divergente",
        },
    )
    return resultado


# ---------------------------------------------------------------------------
# Regra temporal do vínculo
# ---------------------------------------------------------------------------


def validar_vinculo_temporal(componente_emitido_em, agregado_emitido_em) -> ResultadoValidacao:
    """
    Um CT-e só pode ser vinculado a um MDF-e emitido depois dele e com
    no máximo 7 dias de diferença.
    """
    componente = para_datetime(componente_emitido_em, "componente_emitido_em")
    agregado = para_datetime(agregado_emitido_em, "agregado_emitido_em")

    if componente > agregado:
        return erro("CTe não pode ser emitido após o MDFe")
    if agregado - componente > DIFERENCA_MAXIMA_VINCULO:
        return erro("CTe não pode ser vinculado a MDFe com mais de 7 dias de diferença")
    return OK


def validar_vinculos_temporais(
    manifesto: DocumentoFiscal,
    vinculados: Sequence[DocumentoVinculado],
) -> ResultadoValidacao:
    """
    Aplica a regra temporal a todos os vinculados que têm data de
    emissão. Mensagens repetidas aparecem uma única vez.
    """
    if manifesto is None or vinculados is None:
        raise EstruturaInvalidaError("Manifesto e documentos vinculados são obrigatórios.")

    erros: list[str] = []
    for doc in vinculados:
        if doc.emitido_em is None:
            continue
        for mensagem in validar_vinculo_temporal(doc.emitido_em, manifesto.emitido_em).erros:
            if mensagem not in erros:
                erros.append(mensagem)

    return ResultadoValidacao(erros=tuple(erros))
