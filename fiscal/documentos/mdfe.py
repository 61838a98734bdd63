# fiscal/documentos/mdfe.py
from __future__ import annotations

from .base import RegrasDocumento, TipoDocumento


CONFIG = RegrasDocumento(
    tipo=TipoDocumento.MDFE,
    modelo="58",
    descricao="Manifesto Eletrônico de Documentos Fiscais",
    janela_cancelamento_horas=24,
    # encerramento obrigatório em 24h quando vinculado a CT-e
    janela_encerramento_horas=24,
    campo_valor_base="valor_total",
    tributo_legado=None,
    aceita_carta_correcao=False,
    campos_obrigatorios=frozenset(
        {"modal", "placa_veiculo", "cpf_condutor", "peso_total", "valor_total"}
    ),
)
