# fiscal/views/tributos_views.py

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from fiscal.documentos import get_regras_documento
from fiscal.serializers_tributos import (
    SIGLAS_TRIBUTOS,
    CalcularTributosInputSerializer,
    CalcularTributosOutputSerializer,
)
from fiscal.services.tributos_service import (
    calcular_documento,
    calcular_tributos_por_regime,
    gerar_observacoes_legais,
)
from fiscal.views.base import endpoint_fiscal


def _dados_documento(data) -> dict:
    regras = get_regras_documento(data["tipo"])
    dados = {regras.campo_valor_base: data.get("valor_base")}
    for sigla in SIGLAS_TRIBUTOS:
        dados[f"base_calculo_{sigla}"] = data.get(f"base_calculo_{sigla}")
        dados[f"aliquota_{sigla}"] = data.get(f"aliquota_{sigla}")
    return dados


@api_view(["POST"])
@endpoint_fiscal("fiscal_tributos_calcular")
def calcular_tributos_view(request):
    """
    POST /api/v1/fiscal/tributos/calcular

    Fluxo:
      1) Valida o shape com CalcularTributosInputSerializer.
      2) Calcula a composição (ICMS legado + IBS/CBS/IS) e o total.
      3) Se `regime` vier, anexa a sugestão por regime tributário.
    """
    ser_in = CalcularTributosInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    calculo = calcular_documento(data["tipo"], _dados_documento(data))
    tributos = calculo.tributos

    saida = {
        "tipo": data["tipo"],
        "valor_base": calculo.valor_base,
        "tributos": {
            "icms": tributos.icms,
            "ibs": tributos.ibs,
            "cbs": tributos.cbs,
            "is": tributos.is_,
            "total": tributos.total,
        },
        "valor_total": calculo.valor_total,
        "observacoes": list(calculo.observacoes),
        "regime": None,
    }

    regime = data.get("regime")
    if regime:
        sugestao = calcular_tributos_por_regime(
            calculo.valor_base,
            regime,
            anexo=data["anexo"],
            uf=data["uf"],
        )
        saida["regime"] = {
            "regime": regime,
            "icms": sugestao.icms,
            "pis": sugestao.pis,
            "cofins": sugestao.cofins,
            "total_tributos": sugestao.total_tributos,
            "observacoes_legais": gerar_observacoes_legais(regime),
        }

    ser_out = CalcularTributosOutputSerializer(saida)
    return Response(ser_out.data, status=status.HTTP_200_OK)
