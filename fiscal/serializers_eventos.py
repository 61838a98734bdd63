# fiscal/serializers_eventos.py
from rest_framework import serializers

from fiscal.documentos import StatusDocumento
from fiscal.serializers import (
    PrazoOutputSerializer,
    ResultadoValidacaoOutputSerializer,
    TipoDocumentoField,
    valor_opcional,
)


class DocumentoEventoInputSerializer(serializers.Serializer):
    """
    Dados mínimos do documento alvo de um evento.
    O documento não é buscado em lugar nenhum: o chamador informa o estado.
    """

    tipo = TipoDocumentoField()
    status = serializers.ChoiceField(choices=StatusDocumento.choices)
    emitido_em = serializers.DateTimeField()
    chave_acesso = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    valor_total = valor_opcional(min_value=0)


class ValidarCancelamentoInputSerializer(DocumentoEventoInputSerializer):
    justificativa = serializers.CharField(allow_blank=True)
    # momento do pedido; sem ele vale o relógio do servidor
    solicitado_em = serializers.DateTimeField(required=False, allow_null=True)


class ValidarEncerramentoInputSerializer(DocumentoEventoInputSerializer):
    solicitado_em = serializers.DateTimeField(required=False, allow_null=True)


class EventoComPrazoOutputSerializer(ResultadoValidacaoOutputSerializer):
    prazo = PrazoOutputSerializer()


class ValidarCartaCorrecaoInputSerializer(serializers.Serializer):
    """
    `tipo`/`status` são opcionais: quando informados, também valida se o
    documento admite CC-e no estado atual.
    """

    campo = serializers.CharField()
    subcampo = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    correcao = serializers.CharField(allow_blank=True, trim_whitespace=False)

    tipo = TipoDocumentoField(required=False, allow_null=True)
    status = serializers.ChoiceField(
        choices=StatusDocumento.choices, required=False, allow_null=True
    )

    def validate(self, attrs):
        if bool(attrs.get("tipo")) != bool(attrs.get("status")):
            raise serializers.ValidationError(
                {"status": "Informe tipo e status do documento juntos."}
            )
        return attrs


class ValidarInutilizacaoInputSerializer(serializers.Serializer):
    """
    Sem min_value: série negativa, faixa invertida etc. voltam como
    erros de negócio acumulados, não como 400.
    """

    serie = serializers.IntegerField()
    numero_inicial = serializers.IntegerField()
    numero_final = serializers.IntegerField()
    justificativa = serializers.CharField(allow_blank=True)
    numeros_emitidos = serializers.ListField(
        child=serializers.IntegerField(), required=False, default=list
    )


class TransicaoStatusInputSerializer(DocumentoEventoInputSerializer):
    status_novo = serializers.ChoiceField(choices=StatusDocumento.choices)
    motivo = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TransicaoStatusOutputSerializer(serializers.Serializer):
    tipo = serializers.CharField()
    status_anterior = serializers.CharField()
    status = serializers.CharField()
