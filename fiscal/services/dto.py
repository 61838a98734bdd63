# fiscal/services/dto.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from fiscal.documentos import StatusDocumento, TipoDocumento
from fiscal.services.resultado import ResultadoValidacao


@dataclass(frozen=True)
class TributoEntrada:
    """
    Par (base de cálculo, alíquota %) informado para um tributo.
    """

    base: Optional[Decimal]
    aliquota: Optional[Decimal]


@dataclass(frozen=True)
class ComposicaoTributos:
    """
    Valor calculado por tributo. None = tributo não informado
    (não confundir com zero: a ausência importa para exibição e conciliação).

    - icms: tributo legado do documento (mercadoria na NF-e,
      prestação de transporte no CT-e).
    - ibs / cbs / is_: reforma tributária (informativos até a obrigatoriedade).
    """

    icms: Optional[Decimal] = None
    ibs: Optional[Decimal] = None
    cbs: Optional[Decimal] = None
    is_: Optional[Decimal] = None

    def presentes(self) -> dict:
        return {
            nome: valor
            for nome, valor in (
                ("icms", self.icms),
                ("ibs", self.ibs),
                ("cbs", self.cbs),
                ("is", self.is_),
            )
            if valor is not None
        }

    @property
    def total(self) -> Decimal:
        return sum(self.presentes().values(), Decimal("0"))

    @property
    def tem_reforma(self) -> bool:
        return any(v is not None for v in (self.ibs, self.cbs, self.is_))


@dataclass(frozen=True)
class DocumentoVinculado:
    tipo: str  # 'CTE' | 'NFE'
    chave_acesso: str
    valor: Decimal
    peso: Decimal
    emitido_em: Optional[datetime] = None


@dataclass(frozen=True)
class DocumentoFiscal:
    tipo: TipoDocumento
    status: StatusDocumento
    emitido_em: datetime
    valor_total: Decimal
    peso_total: Optional[Decimal] = None
    chave_acesso: Optional[str] = None
    tributos: ComposicaoTributos = field(default_factory=ComposicaoTributos)


@dataclass(frozen=True)
class ResultadoPrazo:
    valido: bool
    horas_restantes: int
    mensagem: str


@dataclass(frozen=True)
class ResultadoCalculo:
    """
    Resultado do cálculo de um documento: tributos, total e observações
    legais geradas no caminho.
    """

    tributos: ComposicaoTributos
    valor_base: Decimal
    valor_total: Decimal
    observacoes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResultadoEvento:
    """
    Validação de um evento com prazo (cancelamento, encerramento):
    o resultado das regras e a situação do prazo legal.
    """

    resultado: ResultadoValidacao
    prazo: ResultadoPrazo

    @property
    def valido(self) -> bool:
        return self.resultado.valido
