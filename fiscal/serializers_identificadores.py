# fiscal/serializers_identificadores.py
from rest_framework import serializers

from fiscal.serializers import ResultadoValidacaoOutputSerializer
from fiscal.services.identificadores_service import TipoIdentificador


class ValidarIdentificadorInputSerializer(serializers.Serializer):
    """
    Um identificador por chamada. `valor` pode vir com ou sem máscara.
    """

    tipo = serializers.ChoiceField(choices=TipoIdentificador.choices)
    valor = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ValidarIdentificadorOutputSerializer(ResultadoValidacaoOutputSerializer):
    tipo = serializers.CharField()
    valor = serializers.CharField(allow_blank=True)
    formatado = serializers.CharField(allow_blank=True)
