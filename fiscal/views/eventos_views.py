# fiscal/views/eventos_views.py
"""
Validação de eventos do ciclo de vida (cancelamento, encerramento,
carta de correção, inutilização) e transição de status.

Nada é transmitido: as respostas dizem se o evento PODE ser enviado.
Regra de negócio violada → 200 com valido=false e a lista de erros.
"""

from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from fiscal.serializers import ResultadoValidacaoOutputSerializer
from fiscal.serializers_eventos import (
    EventoComPrazoOutputSerializer,
    TransicaoStatusInputSerializer,
    TransicaoStatusOutputSerializer,
    ValidarCancelamentoInputSerializer,
    ValidarCartaCorrecaoInputSerializer,
    ValidarEncerramentoInputSerializer,
    ValidarInutilizacaoInputSerializer,
)
from fiscal.services.ciclo_vida_service import (
    DocumentoStateMachine,
    documentos_na_faixa,
    validar_cancelamento,
    validar_carta_correcao,
    validar_encerramento,
    validar_inutilizacao,
)
from fiscal.services.dto import DocumentoFiscal
from fiscal.views.base import endpoint_fiscal


def _documento(data) -> DocumentoFiscal:
    return DocumentoFiscal(
        tipo=data["tipo"],
        status=data["status"],
        emitido_em=data["emitido_em"],
        valor_total=data.get("valor_total") or Decimal("0"),
        chave_acesso=data.get("chave_acesso"),
    )


def _resposta_evento(evento) -> Response:
    ser_out = EventoComPrazoOutputSerializer(
        {
            **evento.resultado.as_dict(),
            "prazo": evento.prazo,
        }
    )
    return Response(ser_out.data, status=status.HTTP_200_OK)


@api_view(["POST"])
@endpoint_fiscal("fiscal_cancelamento_validar")
def validar_cancelamento_view(request):
    """
    POST /api/v1/fiscal/eventos/cancelamento/validar
    """
    ser_in = ValidarCancelamentoInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    evento = validar_cancelamento(
        _documento(data),
        data["justificativa"],
        solicitado_em=data.get("solicitado_em"),
    )
    return _resposta_evento(evento)


@api_view(["POST"])
@endpoint_fiscal("fiscal_encerramento_validar")
def validar_encerramento_view(request):
    """
    POST /api/v1/fiscal/eventos/encerramento/validar (MDF-e)
    """
    ser_in = ValidarEncerramentoInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    evento = validar_encerramento(_documento(data), solicitado_em=data.get("solicitado_em"))
    return _resposta_evento(evento)


@api_view(["POST"])
@endpoint_fiscal("fiscal_carta_correcao_validar")
def validar_carta_correcao_view(request):
    """
    POST /api/v1/fiscal/eventos/carta-correcao/validar
    """
    ser_in = ValidarCartaCorrecaoInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    documento = None
    if data.get("tipo"):
        documento = DocumentoFiscal(
            tipo=data["tipo"],
            status=data["status"],
            emitido_em=None,
            valor_total=Decimal("0"),
        )

    resultado = validar_carta_correcao(
        data["campo"],
        data["correcao"],
        subcampo=data.get("subcampo"),
        documento=documento,
    )
    ser_out = ResultadoValidacaoOutputSerializer(resultado.as_dict())
    return Response(ser_out.data, status=status.HTTP_200_OK)


@api_view(["POST"])
@endpoint_fiscal("fiscal_inutilizacao_validar")
def validar_inutilizacao_view(request):
    """
    POST /api/v1/fiscal/eventos/inutilizacao/validar

    Todas as regras violadas voltam juntas em `erros`.
    """
    ser_in = ValidarInutilizacaoInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    resultado = validar_inutilizacao(
        serie=data["serie"],
        numero_inicial=data["numero_inicial"],
        numero_final=data["numero_final"],
        justificativa=data["justificativa"],
    )
    if data["numeros_emitidos"]:
        resultado = resultado + documentos_na_faixa(
            data["numeros_emitidos"],
            numero_inicial=data["numero_inicial"],
            numero_final=data["numero_final"],
        )

    ser_out = ResultadoValidacaoOutputSerializer(resultado.as_dict())
    return Response(ser_out.data, status=status.HTTP_200_OK)


@api_view(["POST"])
@endpoint_fiscal("fiscal_transicao_api")
def transicao_status_view(request):
    """
    POST /api/v1/fiscal/documentos/transicao

    Transição não permitida → 409 com code FISCAL_4020.
    """
    ser_in = TransicaoStatusInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    documento = _documento(data)
    novo = DocumentoStateMachine.mudar_status(
        documento, data["status_novo"], motivo=data.get("motivo")
    )

    ser_out = TransicaoStatusOutputSerializer(
        {
            "tipo": str(novo.tipo),
            "status_anterior": str(documento.status),
            "status": str(novo.status),
        }
    )
    return Response(ser_out.data, status=status.HTTP_200_OK)
