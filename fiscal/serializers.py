# fiscal/serializers.py
from rest_framework import serializers

from fiscal.documentos import normalizar_tipo
from fiscal.exceptions import EstruturaInvalidaError


class TipoDocumentoField(serializers.CharField):
    """
    Aceita 'NFE', 'nfe', 'NF-e', 'CT-e', 'MDFE'... e devolve TipoDocumento.
    """

    def to_internal_value(self, data):
        valor = super().to_internal_value(data)
        try:
            return normalizar_tipo(valor)
        except EstruturaInvalidaError as exc:
            raise serializers.ValidationError(exc.mensagem)

    def to_representation(self, value):
        return str(normalizar_tipo(value))


class ResultadoValidacaoOutputSerializer(serializers.Serializer):
    """
    Formato comum de resposta: erros bloqueiam, avisos só informam.
    """

    valido = serializers.BooleanField()
    erros = serializers.ListField(child=serializers.CharField())
    avisos = serializers.ListField(child=serializers.CharField())


class PrazoOutputSerializer(serializers.Serializer):
    valido = serializers.BooleanField()
    horas_restantes = serializers.IntegerField()
    mensagem = serializers.CharField()


def valor_decimal(**kwargs):
    # dinheiro/peso/alíquota digitados: até 4 casas, sem float
    kwargs.setdefault("max_digits", 17)
    kwargs.setdefault("decimal_places", 4)
    return serializers.DecimalField(**kwargs)


def valor_opcional(**kwargs):
    kwargs.setdefault("required", False)
    kwargs.setdefault("allow_null", True)
    return valor_decimal(**kwargs)
