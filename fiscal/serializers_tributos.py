# fiscal/serializers_tributos.py
from rest_framework import serializers

from fiscal.serializers import TipoDocumentoField, valor_opcional
from fiscal.services.tributos_service import RegimeTributario

SIGLAS_TRIBUTOS = ("icms", "ibs", "cbs", "is")


class CalcularTributosInputSerializer(serializers.Serializer):
    """
    Pares base/alíquota opcionais por tributo. Par incompleto = tributo
    fora da composição.

    `regime` (opcional) pede também a sugestão por regime tributário
    sobre o valor base.
    """

    tipo = TipoDocumentoField()
    valor_base = valor_opcional(min_value=0)

    base_calculo_icms = valor_opcional(min_value=0)
    aliquota_icms = valor_opcional(min_value=0, max_value=100)
    base_calculo_ibs = valor_opcional(min_value=0)
    aliquota_ibs = valor_opcional(min_value=0, max_value=100)
    base_calculo_cbs = valor_opcional(min_value=0)
    aliquota_cbs = valor_opcional(min_value=0, max_value=100)
    base_calculo_is = valor_opcional(min_value=0)
    aliquota_is = valor_opcional(min_value=0, max_value=100)

    regime = serializers.ChoiceField(
        choices=RegimeTributario.choices, required=False, allow_null=True
    )
    uf = serializers.CharField(required=False, max_length=2, default="SP")
    anexo = serializers.ChoiceField(
        choices=["I", "II", "III", "IV", "V"], required=False, default="I"
    )


class TributosOutputSerializer(serializers.Serializer):
    icms = serializers.DecimalField(max_digits=17, decimal_places=2, allow_null=True)
    ibs = serializers.DecimalField(max_digits=17, decimal_places=2, allow_null=True)
    cbs = serializers.DecimalField(max_digits=17, decimal_places=2, allow_null=True)
    # "is" é palavra reservada: declarado via fields abaixo
    total = serializers.DecimalField(max_digits=17, decimal_places=2)

    def get_fields(self):
        fields = super().get_fields()
        fields["is"] = serializers.DecimalField(max_digits=17, decimal_places=2, allow_null=True)
        return fields


class ComponenteRegimeOutputSerializer(serializers.Serializer):
    base_calculo = serializers.DecimalField(max_digits=17, decimal_places=2)
    aliquota = serializers.DecimalField(max_digits=9, decimal_places=4)
    valor = serializers.DecimalField(max_digits=17, decimal_places=2)
    cst = serializers.CharField(allow_null=True)
    credito = serializers.DecimalField(max_digits=17, decimal_places=2, allow_null=True)


class CalculoRegimeOutputSerializer(serializers.Serializer):
    regime = serializers.CharField()
    icms = ComponenteRegimeOutputSerializer()
    pis = ComponenteRegimeOutputSerializer()
    cofins = ComponenteRegimeOutputSerializer()
    total_tributos = serializers.DecimalField(max_digits=17, decimal_places=2)
    observacoes_legais = serializers.CharField()


class CalcularTributosOutputSerializer(serializers.Serializer):
    tipo = serializers.CharField()
    valor_base = serializers.DecimalField(max_digits=17, decimal_places=2)
    tributos = TributosOutputSerializer()
    valor_total = serializers.DecimalField(max_digits=17, decimal_places=2)
    observacoes = serializers.ListField(child=serializers.CharField())
    regime = CalculoRegimeOutputSerializer(required=False, allow_null=True)
