# fiscal/documentos/cte.py
from __future__ import annotations

from .base import RegrasDocumento, TipoDocumento


CONFIG = RegrasDocumento(
    tipo=TipoDocumento.CTE,
    modelo="57",
    descricao="Conhecimento de Transporte Eletrônico",
    janela_cancelamento_horas=168,
    campo_valor_base="valor_total_servico",
    tributo_legado="ICMS sobre prestação de serviço de transporte",
    campos_obrigatorios=frozenset(
        {"modal", "peso", "valor_carga", "valor_frete", "valor_total_servico"}
    ),
)
