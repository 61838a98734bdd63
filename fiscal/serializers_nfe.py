# fiscal/serializers_nfe.py
from rest_framework import serializers

from fiscal.serializers import ResultadoValidacaoOutputSerializer, valor_opcional


class EnderecoInputSerializer(serializers.Serializer):
    cep = serializers.CharField(required=False, allow_blank=True)
    logradouro = serializers.CharField(required=False, allow_blank=True)
    numero = serializers.CharField(required=False, allow_blank=True)
    complemento = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    bairro = serializers.CharField(required=False, allow_blank=True)
    municipio = serializers.CharField(required=False, allow_blank=True)
    cidade = serializers.CharField(required=False, allow_blank=True)
    uf = serializers.CharField(required=False, allow_blank=True)


class DestinatarioInputSerializer(serializers.Serializer):
    tipo = serializers.ChoiceField(choices=["pf", "pj"], required=False, allow_null=True)
    nome = serializers.CharField(required=False, allow_blank=True)
    documento = serializers.CharField(required=False, allow_blank=True)
    inscricao_estadual = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    telefone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    endereco = EnderecoInputSerializer(required=False, allow_null=True)


class ItemNfeInputSerializer(serializers.Serializer):
    codigo = serializers.CharField(required=False, allow_blank=True)
    descricao = serializers.CharField(required=False, allow_blank=True)
    gtin = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ncm = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cfop = serializers.CharField(required=False, allow_blank=True)
    unidade = serializers.CharField(required=False, allow_blank=True, default="UN")
    quantidade = valor_opcional(max_digits=20)
    valor_unitario = valor_opcional(max_digits=20, decimal_places=10)
    valor_total = valor_opcional(max_digits=20)
    ibs = valor_opcional(min_value=0)
    cbs = valor_opcional(min_value=0)

    def get_fields(self):
        fields = super().get_fields()
        # "is" é palavra reservada, não dá para declarar como atributo
        fields["is"] = valor_opcional(min_value=0)
        return fields


class PrepararNfeInputSerializer(serializers.Serializer):
    """
    NF-e como digitada. O serializer só garante o shape: regras de
    negócio (tamanhos, CFOP, totais) voltam como erros do resultado.
    """

    natureza_operacao = serializers.CharField(required=False, allow_blank=True)
    serie = serializers.CharField(required=False, allow_blank=True)
    tipo_operacao = serializers.CharField(required=False, allow_null=True)
    finalidade = serializers.CharField(required=False, allow_null=True)
    presenca_comprador = serializers.CharField(required=False, allow_null=True)
    consumidor_final = serializers.BooleanField(required=False, allow_null=True, default=None)
    data_emissao = serializers.DateTimeField(required=False, allow_null=True)
    data_saida = serializers.DateTimeField(required=False, allow_null=True)

    destinatario = DestinatarioInputSerializer(required=False, allow_null=True)
    itens = ItemNfeInputSerializer(many=True, required=False, allow_empty=True)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    base_calculo_icms = valor_opcional(min_value=0)
    aliquota_icms = valor_opcional(min_value=0, max_value=100)
    base_calculo_ibs = valor_opcional(min_value=0)
    aliquota_ibs = valor_opcional(min_value=0, max_value=100)
    base_calculo_cbs = valor_opcional(min_value=0)
    aliquota_cbs = valor_opcional(min_value=0, max_value=100)
    base_calculo_is = valor_opcional(min_value=0)
    aliquota_is = valor_opcional(min_value=0, max_value=100)


class PrepararNfeOutputSerializer(ResultadoValidacaoOutputSerializer):
    payload = serializers.DictField()
    tributos = serializers.DictField(
        child=serializers.DecimalField(max_digits=17, decimal_places=2)
    )
    total = serializers.DecimalField(max_digits=17, decimal_places=2)
