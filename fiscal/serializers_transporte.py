# fiscal/serializers_transporte.py
from rest_framework import serializers

from fiscal.serializers import (
    ResultadoValidacaoOutputSerializer,
    TipoDocumentoField,
    valor_decimal,
    valor_opcional,
)


class DocumentoVinculadoInputSerializer(serializers.Serializer):
    tipo = serializers.ChoiceField(choices=["CTE", "NFE"])
    chave_acesso = serializers.CharField(allow_blank=True)
    valor = valor_decimal(min_value=0)
    peso = valor_decimal(min_value=0)
    emitido_em = serializers.DateTimeField(required=False, allow_null=True)


class ManifestoInputSerializer(serializers.Serializer):
    emitido_em = serializers.DateTimeField()
    valor_total = valor_decimal()
    peso_total = valor_decimal()
    chave_acesso = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    modal = serializers.ChoiceField(
        choices=["rodoviario", "aereo", "aquaviario", "ferroviario"],
        required=False,
        allow_null=True,
    )
    placa_veiculo = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    capacidade_kg = valor_opcional(min_value=0)
    capacidade_m3 = valor_opcional(min_value=0)


class ConciliarMdfeInputSerializer(serializers.Serializer):
    """
    MDF-e + documentos que ele transporta. Lista vazia é aceita (e
    resulta em divergência se o manifesto declarar valor/peso).
    """

    manifesto = ManifestoInputSerializer()
    vinculados = DocumentoVinculadoInputSerializer(many=True, allow_empty=True)


class PreValidarDocumentoInputSerializer(serializers.Serializer):
    """
    Pré-validação de CT-e / MDF-e digitado. `dados` segue os nomes de
    campo do documento (peso, valor_carga, modal, placa_veiculo...).
    """

    tipo = TipoDocumentoField()
    dados = serializers.DictField()


class PreValidarDocumentoOutputSerializer(ResultadoValidacaoOutputSerializer):
    observacoes = serializers.ListField(child=serializers.CharField())
