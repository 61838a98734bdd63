# fiscal/services/valores.py
"""
Conversões de valores digitados para os tipos usados pelo motor fiscal.

- Dinheiro/peso sempre em Decimal (nunca float binário).
- Datas sempre aware (timezone do projeto quando vier naive).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from fiscal.exceptions import EstruturaInvalidaError

CENTAVOS = Decimal("0.01")
TOLERANCIA = Decimal("0.01")

_NAO_DIGITOS = re.compile(r"\D")


def somente_digitos(valor: str) -> str:
    if valor is None:
        raise EstruturaInvalidaError("Valor de identificador não informado (None).")
    return _NAO_DIGITOS.sub("", str(valor))


def para_decimal(valor, campo: str = "valor") -> Decimal | None:
    """
    Converte int/str/float/Decimal em Decimal.

    float passa por str() para não carregar o erro binário
    (0.1 vira Decimal('0.1'), não 0.1000000000000000055...).
    None e string vazia viram None (campo não informado).
    """
    if valor is None or valor == "":
        return None
    if isinstance(valor, Decimal):
        return valor
    if isinstance(valor, bool):
        raise EstruturaInvalidaError(f"{campo}: booleano não é valor numérico.")
    try:
        if isinstance(valor, float):
            return Decimal(str(valor))
        return Decimal(str(valor).strip().replace(",", "."))
    except InvalidOperation:
        raise EstruturaInvalidaError(f"{campo}: valor numérico inválido ({valor!r}).")


def quantizar(valor: Decimal, casas: Decimal = CENTAVOS) -> Decimal:
    # arredondamento comercial (meio para cima)
    return valor.quantize(casas, rounding=ROUND_HALF_UP)


def formatar_moeda(valor: Decimal) -> str:
    return f"{quantizar(valor):.2f}"


def para_datetime(valor, campo: str = "data") -> datetime:
    """
    Aceita datetime, string ISO-8601 ou epoch (segundos).
    """
    if valor is None or valor == "":
        raise EstruturaInvalidaError(f"{campo}: data não informada.")

    if isinstance(valor, datetime):
        dt = valor
    elif isinstance(valor, (int, float)) and not isinstance(valor, bool):
        dt = datetime.fromtimestamp(valor, tz=dt_timezone.utc)
    elif isinstance(valor, str):
        dt = parse_datetime(valor.strip())
        if dt is None:
            raise EstruturaInvalidaError(f"{campo}: data em formato inválido ({valor!r}).")
    else:
        raise EstruturaInvalidaError(f"{campo}: tipo de data não suportado ({type(valor).__name__}).")

    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, timezone.get_default_timezone())
    return dt
