# fiscal/documentos/nfe.py
from __future__ import annotations

from .base import RegrasDocumento, TipoDocumento


CONFIG = RegrasDocumento(
    tipo=TipoDocumento.NFE,
    modelo="55",
    descricao="Nota Fiscal Eletrônica",
    # 24h após a autorização (algumas UFs aceitam até 168h, não modelado aqui)
    janela_cancelamento_horas=24,
    campo_valor_base="valor_produtos",
    tributo_legado="ICMS",
    campos_obrigatorios=frozenset({"destinatario", "itens"}),
)
