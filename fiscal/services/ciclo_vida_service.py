# fiscal/services/ciclo_vida_service.py
"""
Ciclo de vida dos documentos fiscais.

- Máquina de estados do documento (rascunho → pendente → autorizado → ...).
- Prazos legais de eventos (cancelamento, encerramento).
- Carta de correção (campos corrigíveis).
- Inutilização de faixa numérica.

Nada aqui persiste ou conversa com a SEFAZ: cada função recebe os
dados, devolve um ResultadoValidacao (ou um novo DocumentoFiscal) e
registra um log estruturado.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from django.utils import timezone

from fiscal.documentos import StatusDocumento, get_regras_documento
from fiscal.exceptions import EstruturaInvalidaError, TransicaoStatusInvalidaError
from fiscal.services.dto import DocumentoFiscal, ResultadoEvento, ResultadoPrazo
from fiscal.services.identificadores_service import TipoIdentificador, verificar_identificador
from fiscal.services.resultado import OK, ResultadoValidacao, combinar, erro
from fiscal.services.valores import para_datetime

logger = logging.getLogger("emissor.fiscal")

Relogio = Callable[[], datetime]

TAMANHO_MINIMO_JUSTIFICATIVA = 15
TAMANHO_MINIMO_CORRECAO = 15
TAMANHO_MAXIMO_CORRECAO = 1000

EVENTO_CANCELAMENTO = "cancelamento"
EVENTO_ENCERRAMENTO = "encerramento"


# Matriz de transições permitidas.
# Inutilização não aparece aqui: ela se aplica a faixas de numeração,
# não a um documento já emitido (ver validar_inutilizacao).
TRANSICOES_VALIDAS: dict[str, set[str]] = {
    StatusDocumento.RASCUNHO: {StatusDocumento.PENDENTE},
    StatusDocumento.PENDENTE: {StatusDocumento.AUTORIZADO},
    StatusDocumento.AUTORIZADO: {
        StatusDocumento.CANCELADO,
        StatusDocumento.REJEITADO,
    },
    # Estados terminais: não saem para lugar nenhum
    StatusDocumento.CANCELADO: set(),
    StatusDocumento.REJEITADO: set(),
    StatusDocumento.INUTILIZADO: set(),
}


def _agora(relogio: Optional[Relogio]) -> datetime:
    return para_datetime((relogio or timezone.now)(), "agora")


def _texto(valor) -> str:
    return (valor or "").strip()


# ---------------------------------------------------------------------------
# Máquina de estados
# ---------------------------------------------------------------------------


def validar_transicao(status_atual, status_novo) -> ResultadoValidacao:
    try:
        atual = StatusDocumento(status_atual)
        novo = StatusDocumento(status_novo)
    except ValueError:
        raise EstruturaInvalidaError(
            f"Status desconhecido na transição {status_atual!r} → {status_novo!r}."
        )

    if novo in TRANSICOES_VALIDAS[atual]:
        return OK
    return erro(f"Transição de {atual.value} para {novo.value} não é permitida.")


class DocumentoStateMachine:
    """
    ÚNICO ponto autorizado a trocar o status de um DocumentoFiscal.

    O documento é imutável: a troca devolve uma cópia com o novo status.
    """

    @classmethod
    def mudar_status(
        cls,
        documento: DocumentoFiscal,
        novo_status: str,
        *,
        motivo: str | None = None,
    ) -> DocumentoFiscal:
        """
        - Valida se a transição é permitida (baseado no status atual).
        - É idempotente (se já estiver no status solicitado, devolve o mesmo documento).
        """
        if documento is None:
            raise EstruturaInvalidaError("Documento não informado para troca de status.")

        status_atual = documento.status

        if status_atual == novo_status:
            logger.debug(
                "Transição de status idempotente ignorada.",
                extra={
                    "event": "fiscal_status_idempotente",
                    "tipo": str(documento.tipo),
                    "status_atual": str(status_atual),
                },
            )
            return documento

        resultado = validar_transicao(status_atual, novo_status)
        if not resultado.valido:
            raise TransicaoStatusInvalidaError(
                resultado.erros[0],
                status_atual=status_atual,
                status_novo=novo_status,
            )

        novo = replace(documento, status=StatusDocumento(novo_status))

        logger.info(
            "fiscal_status_transicao",
            extra={
                "event": "fiscal_status_transicao",
                "tipo": str(documento.tipo),
                "chave_acesso": documento.chave_acesso,
                "status_anterior": str(status_atual),
                "status_novo": str(novo.status),
                "motivo": motivo,
            },
        )
        return novo

    # Atalhos para melhorar leitura nos services:

    @classmethod
    def para_pendente(cls, documento: DocumentoFiscal, **kwargs) -> DocumentoFiscal:
        return cls.mudar_status(documento, StatusDocumento.PENDENTE, **kwargs)

    @classmethod
    def para_autorizado(cls, documento: DocumentoFiscal, **kwargs) -> DocumentoFiscal:
        return cls.mudar_status(documento, StatusDocumento.AUTORIZADO, **kwargs)

    @classmethod
    def para_cancelado(cls, documento: DocumentoFiscal, **kwargs) -> DocumentoFiscal:
        return cls.mudar_status(documento, StatusDocumento.CANCELADO, **kwargs)

    @classmethod
    def para_rejeitado(cls, documento: DocumentoFiscal, **kwargs) -> DocumentoFiscal:
        return cls.mudar_status(documento, StatusDocumento.REJEITADO, **kwargs)


# ---------------------------------------------------------------------------
# Prazos legais
# ---------------------------------------------------------------------------


def _janela_horas(tipo, evento: str) -> int:
    regras = get_regras_documento(tipo)
    if evento == EVENTO_CANCELAMENTO:
        return regras.janela_cancelamento_horas
    if evento == EVENTO_ENCERRAMENTO and regras.janela_encerramento_horas is not None:
        return regras.janela_encerramento_horas
    raise EstruturaInvalidaError(f"{regras.descricao} não possui prazo de {evento}.")


def validar_prazo(
    tipo,
    emitido_em,
    *,
    evento: str = EVENTO_CANCELAMENTO,
    solicitado_em=None,
    relogio: Optional[Relogio] = None,
) -> ResultadoPrazo:
    """
    Verifica se o evento ainda está dentro da janela legal.

    Janela por tipo (ver fiscal/documentos): NF-e 24h, CT-e 168h,
    MDF-e 24h (cancelamento e encerramento).

    horas_restantes é truncado para baixo, nunca fica negativo e nunca
    passa da janela: emissão posterior ao pedido é inválida.
    `solicitado_em` permite avaliar um pedido já registrado; sem ele,
    usa o relógio (timezone.now por padrão).
    """
    janela = _janela_horas(tipo, evento)
    emitido_em = para_datetime(emitido_em, "emitido_em")
    if solicitado_em is not None:
        momento = para_datetime(solicitado_em, "solicitado_em")
    else:
        momento = _agora(relogio)

    limite = emitido_em + timedelta(hours=janela)
    restante = limite - momento
    emissao_futura = emitido_em > momento
    valido = restante > timedelta(0) and not emissao_futura
    horas_restantes = int(restante.total_seconds() // 3600) if valido else 0

    if emissao_futura:
        mensagem = f"Data de emissão posterior à solicitação de {evento}"
        outcome = "emissao_futura"
    elif valido:
        mensagem = f"{horas_restantes} horas restantes para {evento}"
        outcome = "dentro_prazo"
    else:
        mensagem = f"Prazo de {janela} horas para {evento} expirado"
        outcome = "prazo_expirado"

    logger.info(
        "fiscal_prazo_evento",
        extra={
            "event": "fiscal_prazo_evento",
            "tipo": str(get_regras_documento(tipo).tipo),
            "evento": evento,
            "janela_horas": janela,
            "horas_restantes": horas_restantes,
            "outcome": outcome,
        },
    )

    return ResultadoPrazo(valido=valido, horas_restantes=horas_restantes, mensagem=mensagem)


def _validar_justificativa(justificativa, evento: str) -> ResultadoValidacao:
    if len(_texto(justificativa)) < TAMANHO_MINIMO_JUSTIFICATIVA:
        return erro(
            f"Justificativa de {evento} muito curta "
            f"(mínimo {TAMANHO_MINIMO_JUSTIFICATIVA} caracteres)."
        )
    return OK


def _exigir_autorizado(documento: DocumentoFiscal, evento: str) -> ResultadoValidacao:
    if documento.status != StatusDocumento.AUTORIZADO:
        return erro(
            f"Documento em status '{documento.status}' não pode receber {evento}."
        )
    return OK


def _validar_chave(documento: DocumentoFiscal) -> ResultadoValidacao:
    if documento.chave_acesso is None:
        return erro("Chave de acesso do documento é obrigatória para eventos.")
    return verificar_identificador(
        TipoIdentificador.CHAVE_ACESSO, documento.chave_acesso, "Chave de acesso"
    )


def validar_cancelamento(
    documento: DocumentoFiscal,
    justificativa: str,
    *,
    solicitado_em=None,
    relogio: Optional[Relogio] = None,
) -> ResultadoEvento:
    """
    Regras do evento de cancelamento:
      - Só cancela documentos com status 'autorizado'.
      - Chave de acesso válida.
      - Justificativa com no mínimo 15 caracteres.
      - Dentro da janela legal do tipo de documento.

    Todos os erros aplicáveis são devolvidos juntos.
    """
    if documento is None:
        raise EstruturaInvalidaError("Documento não informado para cancelamento.")

    prazo = validar_prazo(
        documento.tipo,
        documento.emitido_em,
        evento=EVENTO_CANCELAMENTO,
        solicitado_em=solicitado_em,
        relogio=relogio,
    )

    resultado = combinar(
        [
            _exigir_autorizado(documento, EVENTO_CANCELAMENTO),
            _validar_chave(documento),
            _validar_justificativa(justificativa, EVENTO_CANCELAMENTO),
            OK if prazo.valido else erro(prazo.mensagem),
        ]
    )
    return ResultadoEvento(resultado=resultado, prazo=prazo)


def validar_encerramento(
    documento: DocumentoFiscal,
    *,
    solicitado_em=None,
    relogio: Optional[Relogio] = None,
) -> ResultadoEvento:
    """
    Encerramento do MDF-e: documento autorizado e dentro da janela.
    Tipos sem prazo de encerramento levantam EstruturaInvalidaError.
    """
    if documento is None:
        raise EstruturaInvalidaError("Documento não informado para encerramento.")

    prazo = validar_prazo(
        documento.tipo,
        documento.emitido_em,
        evento=EVENTO_ENCERRAMENTO,
        solicitado_em=solicitado_em,
        relogio=relogio,
    )
    resultado = combinar(
        [
            _exigir_autorizado(documento, EVENTO_ENCERRAMENTO),
            _validar_chave(documento),
            OK if prazo.valido else erro(prazo.mensagem),
        ]
    )
    return ResultadoEvento(resultado=resultado, prazo=prazo)


# ---------------------------------------------------------------------------
# Carta de correção
# ---------------------------------------------------------------------------

CAMPOS_CORRIGIVEIS = frozenset(
    {
        "endereco_entrega",
        "dados_destinatario",
        "dados_produto",
        "informacoes_complementares",
    }
)

# Identificação do destinatário não se corrige por CC-e
SUBCAMPOS_DESTINATARIO_BLOQUEADOS = frozenset(
    {"cpf", "cnpj", "cnpj_cpf", "documento", "inscricao_estadual"}
)


def validar_carta_correcao(
    campo: str,
    correcao: str,
    *,
    subcampo: str | None = None,
    documento: DocumentoFiscal | None = None,
) -> ResultadoValidacao:
    """
    Valida um pedido de carta de correção eletrônica (CC-e).

    Campos permitidos: endereço de entrega, dados do destinatário
    (exceto CNPJ/CPF e IE), dados adicionais do produto e informações
    complementares. O texto da correção deve ter entre 15 e 1000
    caracteres.
    """
    if campo is None:
        raise EstruturaInvalidaError("Campo da carta de correção não informado.")

    resultados = []

    campo_normalizado = campo.strip().lower()
    if campo_normalizado not in CAMPOS_CORRIGIVEIS:
        resultados.append(
            erro(f"Campo '{campo}' não pode ser corrigido por carta de correção.")
        )
    elif (
        campo_normalizado == "dados_destinatario"
        and subcampo
        and subcampo.strip().lower() in SUBCAMPOS_DESTINATARIO_BLOQUEADOS
    ):
        resultados.append(
            erro(
                f"Campo '{subcampo}' do destinatário não pode ser corrigido por "
                "carta de correção (CNPJ/CPF e inscrição estadual)."
            )
        )

    tamanho = len(_texto(correcao))
    if tamanho < TAMANHO_MINIMO_CORRECAO:
        resultados.append(
            erro(f"Texto da correção muito curto (mínimo {TAMANHO_MINIMO_CORRECAO} caracteres).")
        )
    elif tamanho > TAMANHO_MAXIMO_CORRECAO:
        resultados.append(
            erro(f"Texto da correção muito longo (máximo {TAMANHO_MAXIMO_CORRECAO} caracteres).")
        )

    if documento is not None:
        regras = get_regras_documento(documento.tipo)
        if not regras.aceita_carta_correcao:
            resultados.append(erro(f"{regras.descricao} não admite carta de correção."))
        resultados.append(_exigir_autorizado(documento, "carta de correção"))

    return combinar(resultados)


# ---------------------------------------------------------------------------
# Inutilização de faixa
# ---------------------------------------------------------------------------


def _exigir_inteiro(valor, campo: str) -> int:
    if valor is None or isinstance(valor, bool):
        raise EstruturaInvalidaError(f"{campo} não informado.")
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise EstruturaInvalidaError(f"{campo} deve ser inteiro ({valor!r}).")


def validar_inutilizacao(
    *,
    serie,
    numero_inicial,
    numero_final,
    justificativa: str,
) -> ResultadoValidacao:
    """
    Inutilização de faixa numérica.

    Regras (cada uma gera o seu próprio erro, todas reportadas juntas):
      - série >= 0
      - numero_inicial > 0 e numero_final > 0
      - numero_inicial <= numero_final
      - justificativa com no mínimo 15 caracteres
    """
    serie = _exigir_inteiro(serie, "serie")
    numero_inicial = _exigir_inteiro(numero_inicial, "numero_inicial")
    numero_final = _exigir_inteiro(numero_final, "numero_final")

    resultados: list[ResultadoValidacao] = []

    if serie < 0:
        resultados.append(erro("Série deve ser maior ou igual a zero."))
    if numero_inicial <= 0:
        resultados.append(erro("Número inicial deve ser maior que zero."))
    if numero_final <= 0:
        resultados.append(erro("Número final deve ser maior que zero."))
    if numero_inicial > numero_final:
        resultados.append(erro("Número inicial não pode ser maior que o número final."))

    resultados.append(_validar_justificativa(justificativa, "inutilização"))

    resultado = combinar(resultados)

    logger.info(
        "fiscal_inutilizacao_validada",
        extra={
            "event": "fiscal_inutilizacao_validada",
            "serie": serie,
            "numero_inicial": numero_inicial,
            "numero_final": numero_final,
            "outcome": "valido" if resultado.valido else "invalido",
            "errors": list(resultado.erros),
        },
    )
    return resultado


def documentos_na_faixa(
    numeros_emitidos: Iterable[int],
    *,
    numero_inicial: int,
    numero_final: int,
) -> ResultadoValidacao:
    """
    Não é possível inutilizar faixa que contenha números já emitidos.
    A lista de números emitidos vem do chamador (persistência é externa).
    """
    conflitos = sorted(n for n in numeros_emitidos if numero_inicial <= n <= numero_final)
    if conflitos:
        return erro(
            "Não é possível inutilizar faixa com documentos já emitidos: "
            + ", ".join(str(n) for n in conflitos)
        )
    return OK
