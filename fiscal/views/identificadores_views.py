# fiscal/views/identificadores_views.py

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from fiscal.serializers_identificadores import (
    ValidarIdentificadorInputSerializer,
    ValidarIdentificadorOutputSerializer,
)
from fiscal.services.identificadores_service import (
    formatar_identificador,
    verificar_identificador,
)
from fiscal.views.base import endpoint_fiscal


@api_view(["POST"])
@endpoint_fiscal("fiscal_identificador_validar")
def validar_identificador_view(request):
    """
    POST /api/v1/fiscal/identificadores/validar

    Corpo: {"tipo": "CPF|CNPJ|CEP|CHAVE_ACESSO", "valor": "..."}
    Resposta: resultado da validação + valor com a máscara canônica.
    """
    ser_in = ValidarIdentificadorInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    resultado = verificar_identificador(data["tipo"], data["valor"], "valor")

    ser_out = ValidarIdentificadorOutputSerializer(
        {
            **resultado.as_dict(),
            "tipo": data["tipo"],
            "valor": data["valor"],
            "formatado": formatar_identificador(data["tipo"], data["valor"]),
        }
    )
    return Response(ser_out.data, status=status.HTTP_200_OK)
