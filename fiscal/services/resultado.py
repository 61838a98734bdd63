# fiscal/services/resultado.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class ResultadoValidacao:
    """
    Resultado imutável de uma passada de validação.

    - erros: bloqueiam a transmissão (documento fiscalmente inválido).
    - avisos: apenas informativos; a transmissão pode seguir.

    Os validadores nunca recebem uma lista para preencher: cada regra
    devolve o seu próprio ResultadoValidacao e o chamador combina tudo
    com `+` ou `combinar(...)`.
    """

    erros: Tuple[str, ...] = ()
    avisos: Tuple[str, ...] = ()

    @property
    def valido(self) -> bool:
        return not self.erros

    def __add__(self, other: "ResultadoValidacao") -> "ResultadoValidacao":
        if not isinstance(other, ResultadoValidacao):
            return NotImplemented
        return ResultadoValidacao(
            erros=self.erros + other.erros,
            avisos=self.avisos + other.avisos,
        )

    def as_dict(self) -> dict:
        return {
            "valido": self.valido,
            "erros": list(self.erros),
            "avisos": list(self.avisos),
        }


OK = ResultadoValidacao()


def erro(*mensagens: str) -> ResultadoValidacao:
    return ResultadoValidacao(erros=tuple(mensagens))


def aviso(*mensagens: str) -> ResultadoValidacao:
    return ResultadoValidacao(avisos=tuple(mensagens))


def combinar(resultados: Iterable[ResultadoValidacao]) -> ResultadoValidacao:
    total = OK
    for r in resultados:
        total = total + r
    return total
