# fiscal/views/nfe_views.py

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from fiscal.serializers_nfe import PrepararNfeInputSerializer, PrepararNfeOutputSerializer
from fiscal.services.conversao_service import converter_para_payload
from fiscal.views.base import endpoint_fiscal


@api_view(["POST"])
@endpoint_fiscal("fiscal_nfe_preparar")
def preparar_nfe_view(request):
    """
    POST /api/v1/fiscal/nfe/preparar

    Fluxo:
      1) Valida o shape com PrepararNfeInputSerializer.
      2) converter_para_payload: emitente configurado, destinatário,
         códigos da operação, validação, tributos e total.
      3) Emitente não configurado → 503 (FISCAL_4010).
    """
    ser_in = PrepararNfeInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)

    preparado = converter_para_payload(ser_in.validated_data)

    ser_out = PrepararNfeOutputSerializer(
        {
            **preparado.resultado.as_dict(),
            "payload": preparado.dados,
            "tributos": preparado.tributos.presentes(),
            "total": preparado.total,
        }
    )
    return Response(ser_out.data, status=status.HTTP_200_OK)
