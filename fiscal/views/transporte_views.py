# fiscal/views/transporte_views.py

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from fiscal.documentos import StatusDocumento, TipoDocumento
from fiscal.serializers import ResultadoValidacaoOutputSerializer
from fiscal.serializers_transporte import (
    ConciliarMdfeInputSerializer,
    PreValidarDocumentoInputSerializer,
    PreValidarDocumentoOutputSerializer,
)
from fiscal.services.conciliacao_service import (
    conciliar_manifesto,
    gerar_observacoes,
    pre_validar,
    recomendacoes_modal_mdfe,
    validar_vinculos_temporais,
)
from fiscal.services.dto import DocumentoFiscal, DocumentoVinculado
from fiscal.views.base import endpoint_fiscal


@api_view(["POST"])
@endpoint_fiscal("fiscal_mdfe_conciliar")
def conciliar_mdfe_view(request):
    """
    POST /api/v1/fiscal/mdfe/conciliar

    Confere valor/peso do MDF-e contra os documentos vinculados, a
    capacidade do veículo, as chaves de acesso e a regra temporal do
    vínculo. Quando `modal` vem no manifesto, aplica também as regras
    do modal.
    """
    ser_in = ConciliarMdfeInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data
    manifesto_in = data["manifesto"]

    manifesto = DocumentoFiscal(
        tipo=TipoDocumento.MDFE,
        status=StatusDocumento.RASCUNHO,
        emitido_em=manifesto_in["emitido_em"],
        valor_total=manifesto_in["valor_total"],
        peso_total=manifesto_in["peso_total"],
        chave_acesso=manifesto_in.get("chave_acesso"),
    )
    vinculados = [
        DocumentoVinculado(
            tipo=v["tipo"],
            chave_acesso=v["chave_acesso"],
            valor=v["valor"],
            peso=v["peso"],
            emitido_em=v.get("emitido_em"),
        )
        for v in data["vinculados"]
    ]

    resultado = conciliar_manifesto(
        manifesto, vinculados, capacidade_kg=manifesto_in.get("capacidade_kg")
    )
    resultado = resultado + validar_vinculos_temporais(manifesto, vinculados)
    if manifesto_in.get("modal"):
        resultado = resultado + recomendacoes_modal_mdfe(manifesto_in)

    ser_out = ResultadoValidacaoOutputSerializer(resultado.as_dict())
    return Response(ser_out.data, status=status.HTTP_200_OK)


@api_view(["POST"])
@endpoint_fiscal("fiscal_documento_pre_validar")
def pre_validar_documento_view(request):
    """
    POST /api/v1/fiscal/documentos/pre-validar

    Campos obrigatórios do tipo + checagens básicas (CT-e / MDF-e),
    mais as observações que irão no documento.
    """
    ser_in = PreValidarDocumentoInputSerializer(data=request.data)
    ser_in.is_valid(raise_exception=True)
    data = ser_in.validated_data

    resultado = pre_validar(data["tipo"], data["dados"])
    observacoes = gerar_observacoes(data["tipo"], data["dados"])

    ser_out = PreValidarDocumentoOutputSerializer(
        {**resultado.as_dict(), "observacoes": list(observacoes)}
    )
    return Response(ser_out.data, status=status.HTTP_200_OK)
