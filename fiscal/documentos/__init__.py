# fiscal/documentos/__init__.py
from __future__ import annotations

from typing import Dict

from fiscal.exceptions import EstruturaInvalidaError

from .base import RegrasDocumento, StatusDocumento, TipoDocumento
from . import cte, mdfe, nfe


# Registry interno, 1:1 por tipo de documento
_REGRAS: Dict[str, RegrasDocumento] = {
    nfe.CONFIG.tipo: nfe.CONFIG,
    cte.CONFIG.tipo: cte.CONFIG,
    mdfe.CONFIG.tipo: mdfe.CONFIG,
}


def normalizar_tipo(tipo) -> TipoDocumento:
    """
    Aceita 'nfe', 'NF-e', 'CTE', TipoDocumento.CTE, etc.

    Diferente do registry de UFs, aqui não existe fallback: um tipo de
    documento desconhecido é erro de estrutura do chamador.
    """
    if tipo is None:
        raise EstruturaInvalidaError("Tipo de documento não informado.")

    key = str(tipo).strip().upper().replace("-", "")
    try:
        return TipoDocumento(key)
    except ValueError:
        raise EstruturaInvalidaError(f"Tipo de documento desconhecido: {tipo!r}.")


def get_regras_documento(tipo) -> RegrasDocumento:
    """
    Retorna as regras fiscais do tipo de documento informado.

    Mudanças de prazo ou de campos obrigatórios ficam isoladas nos
    arquivos respectivos (nfe.py, cte.py, mdfe.py).
    """
    return _REGRAS[normalizar_tipo(tipo)]


__all__ = [
    "RegrasDocumento",
    "StatusDocumento",
    "TipoDocumento",
    "get_regras_documento",
    "normalizar_tipo",
]
