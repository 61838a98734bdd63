# fiscal/documentos/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from django.db import models


class TipoDocumento(models.TextChoices):
    NFE = "NFE", "NF-e (nota fiscal eletrônica)"
    CTE = "CTE", "CT-e (conhecimento de transporte eletrônico)"
    MDFE = "MDFE", "MDF-e (manifesto eletrônico de documentos fiscais)"


class StatusDocumento(models.TextChoices):
    RASCUNHO = "rascunho", "Rascunho"
    PENDENTE = "pendente", "Pendente de autorização"
    AUTORIZADO = "autorizado", "Autorizado"
    CANCELADO = "cancelado", "Cancelado"
    REJEITADO = "rejeitado", "Rejeitado"
    INUTILIZADO = "inutilizado", "Inutilizado"


@dataclass(frozen=True)
class RegrasDocumento:
    """
    Regras fiscais de um tipo de documento, utilizadas por:

      - Validação de prazos (cancelamento / encerramento).
      - Campos obrigatórios na pré-validação.
      - Cálculo do total (qual campo é a base de valor do documento).

    Essa config não calcula nada sozinha; ela só organiza os metadados
    que os services consultam, no lugar de comparações de string
    espalhadas pelo código.
    """

    tipo: str
    modelo: str  # '55' NF-e, '57' CT-e, '58' MDF-e
    descricao: str

    # Prazos legais (em horas, contados a partir da emissão)
    janela_cancelamento_horas: int
    janela_encerramento_horas: Optional[int] = None

    # Campo do registro digitado que carrega o valor base do documento
    campo_valor_base: str = "valor_total"

    # ICMS próprio do documento (None = documento sem tributo legado)
    tributo_legado: Optional[str] = None

    # Carta de correção eletrônica (CC-e) existe para NF-e e CT-e
    aceita_carta_correcao: bool = True

    campos_obrigatorios: FrozenSet[str] = frozenset()
