# fiscal/services/tributos_service.py
"""
Cálculo de tributos por documento.

Dois blocos:

1) Cálculo por documento (NF-e / CT-e / MDF-e): cada tributo recebe um
   par (base, alíquota) opcional; valor = base × alíquota / 100,
   arredondado em 2 casas (ROUND_HALF_UP). Sem par completo, o tributo
   fica fora da composição (None, não zero).

2) Cálculo por regime tributário (Simples, Presumido, Real, ST e a
   simulação da reforma 2026), usado para sugerir valores na digitação.

Nenhuma função aqui levanta erro de negócio: valores negativos ou
inconsistentes são validados na camada de ciclo de vida / validação.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from django.db import models

from fiscal.documentos import get_regras_documento
from fiscal.services.dto import ComposicaoTributos, ResultadoCalculo, TributoEntrada
from fiscal.services.valores import formatar_moeda, para_decimal, quantizar

logger = logging.getLogger("emissor.fiscal")

CEM = Decimal("100")
ZERO = Decimal("0")

# Alíquotas internas de ICMS por UF (simplificado)
ALIQUOTAS_ICMS: dict[str, Decimal] = {
    uf: Decimal(aliquota)
    for uf, aliquota in {
        "AC": "17", "AL": "17", "AP": "18", "AM": "18", "BA": "18",
        "CE": "18", "DF": "18", "ES": "17", "GO": "17", "MA": "18",
        "MT": "17", "MS": "17", "MG": "18", "PA": "17", "PB": "18",
        "PR": "18", "PE": "18", "PI": "18", "RJ": "20", "RN": "18",
        "RS": "18", "RO": "17.5", "RR": "17", "SC": "17", "SP": "18",
        "SE": "18", "TO": "18",
    }.items()
}
ALIQUOTA_ICMS_PADRAO = Decimal("18")


def _faixas(*valores: str) -> tuple[Decimal, ...]:
    return tuple(Decimal(v) for v in valores)


# Alíquota efetiva do Simples Nacional por anexo e faixa de receita (0..19)
ALIQUOTAS_SIMPLES: dict[str, tuple[Decimal, ...]] = {
    "I": _faixas(
        "4.0", "7.3", "9.5", "10.7", "11.2", "11.7", "12.2", "12.7", "13.2", "13.7",
        "14.2", "14.7", "15.2", "15.7", "16.2", "16.7", "17.2", "17.7", "18.2", "18.7",
    ),
    "II": _faixas(
        "4.5", "7.8", "10.0", "11.2", "11.7", "12.2", "12.7", "13.2", "13.7", "14.2",
        "14.7", "15.2", "15.7", "16.2", "16.7", "17.2", "17.7", "18.2", "18.7", "19.2",
    ),
    "III": _faixas("6.0", "11.2", "13.5", "16.0", *(["21.0"] * 16)),
    "IV": _faixas("4.5", "9.0", "10.2", "14.0", *(["22.0"] * 16)),
    "V": _faixas(*(["15.5"] * 20)),
}

# Partilha simplificada do DAS entre ICMS / PIS / COFINS
PARTILHA_SIMPLES = {
    "icms": Decimal("0.34"),
    "pis": Decimal("0.08"),
    "cofins": Decimal("0.37"),
}

# Estimativas da reforma tributária (EC 132/2023)
ALIQUOTAS_REFORMA = {
    "ibs": Decimal("8.8"),
    "cbs": Decimal("8.8"),
    "is": Decimal("1.0"),
}
PERCENTUAL_CREDITO_REFORMA = Decimal("0.9")
# Imposto Seletivo só incide sobre produtos específicos (fumo, NCM 2402)
PREFIXOS_NCM_SELETIVO = ("2402",)


class RegimeTributario(models.TextChoices):
    SIMPLES = "simples", "Simples Nacional"
    PRESUMIDO = "presumido", "Lucro Presumido"
    REAL = "real", "Lucro Real"
    SUBSTITUICAO = "substituicao", "Substituição Tributária"


# ---------------------------------------------------------------------------
# Cálculo por documento
# ---------------------------------------------------------------------------


def calcular_tributo(base, aliquota) -> Optional[Decimal]:
    """
    base × alíquota / 100, em centavos.

    Retorna None quando base ou alíquota não foram informadas (ou vieram
    zeradas): o tributo simplesmente não entra na composição.
    """
    base = para_decimal(base, "base de cálculo")
    aliquota = para_decimal(aliquota, "alíquota")
    if not base or not aliquota:
        return None
    return quantizar(base * aliquota / CEM)


def _calcular_entrada(entrada: Optional[TributoEntrada]) -> Optional[Decimal]:
    if entrada is None:
        return None
    return calcular_tributo(entrada.base, entrada.aliquota)


def calcular_composicao(
    *,
    icms: Optional[TributoEntrada] = None,
    ibs: Optional[TributoEntrada] = None,
    cbs: Optional[TributoEntrada] = None,
    is_: Optional[TributoEntrada] = None,
) -> ComposicaoTributos:
    return ComposicaoTributos(
        icms=_calcular_entrada(icms),
        ibs=_calcular_entrada(ibs),
        cbs=_calcular_entrada(cbs),
        is_=_calcular_entrada(is_),
    )


def _entrada(dados: Mapping, sufixo: str) -> TributoEntrada:
    return TributoEntrada(
        base=para_decimal(dados.get(f"base_calculo_{sufixo}"), f"base_calculo_{sufixo}"),
        aliquota=para_decimal(dados.get(f"aliquota_{sufixo}"), f"aliquota_{sufixo}"),
    )


def entradas_tributos(tipo, dados: Mapping) -> dict[str, TributoEntrada]:
    """
    Lê os pares base/alíquota do registro digitado.

    Os campos têm o mesmo nome nos três documentos
    (base_calculo_ibs / aliquota_ibs, ...). O ICMS só é lido quando o
    tipo de documento tem tributo legado (MDF-e não tem).
    """
    regras = get_regras_documento(tipo)
    entradas = {
        "ibs": _entrada(dados, "ibs"),
        "cbs": _entrada(dados, "cbs"),
        "is_": _entrada(dados, "is"),
    }
    if regras.tributo_legado:
        entradas["icms"] = _entrada(dados, "icms")
    return entradas


def _observacao(nome: str, entrada: TributoEntrada, valor: Decimal) -> str:
    return (
        f"{nome}: Base R$ {formatar_moeda(entrada.base)} x "
        f"{entrada.aliquota.normalize():f}% = R$ {formatar_moeda(valor)}"
    )


def calcular_documento(tipo, dados: Mapping) -> ResultadoCalculo:
    """
    Calcula a composição de tributos e o total de um documento.

    total = valor base do documento (mercadorias / serviço / carga)
            + todos os tributos presentes.
    """
    regras = get_regras_documento(tipo)
    entradas = entradas_tributos(tipo, dados)
    tributos = calcular_composicao(**entradas)

    valor_base = para_decimal(dados.get(regras.campo_valor_base), regras.campo_valor_base) or ZERO

    observacoes: list[str] = []
    rotulos = (
        ("icms", "ICMS", tributos.icms),
        ("ibs", "IBS 2026", tributos.ibs),
        ("cbs", "CBS 2026", tributos.cbs),
        ("is_", "IS 2026", tributos.is_),
    )
    for chave, rotulo, valor in rotulos:
        if valor is not None:
            observacoes.append(_observacao(rotulo, entradas[chave], valor))

    if tributos.tem_reforma:
        observacoes.append(
            "Valores IBS/CBS/IS calculados conforme Reforma Tributária 2026 "
            "(Lei Complementar nº 212/2024)"
        )

    valor_total = valor_base + tributos.total

    logger.debug(
        "fiscal_calculo_documento",
        extra={
            "event": "fiscal_calculo_documento",
            "tipo": str(regras.tipo),
            "valor_base": str(valor_base),
            "tributos": {k: str(v) for k, v in tributos.presentes().items()},
            "valor_total": str(valor_total),
        },
    )

    return ResultadoCalculo(
        tributos=tributos,
        valor_base=valor_base,
        valor_total=valor_total,
        observacoes=tuple(observacoes),
    )


# ---------------------------------------------------------------------------
# Cálculo por regime tributário
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponenteTributo:
    base_calculo: Decimal
    aliquota: Decimal
    valor: Decimal
    cst: Optional[str] = None
    credito: Optional[Decimal] = None
    origem: Optional[str] = None


@dataclass(frozen=True)
class CalculoRegime:
    icms: ComponenteTributo
    pis: ComponenteTributo
    cofins: ComponenteTributo
    total_tributos: Decimal
    ibs: Optional[ComponenteTributo] = None
    cbs: Optional[ComponenteTributo] = None
    is_: Optional[ComponenteTributo] = None


def _aliquota_icms(uf: Optional[str]) -> Decimal:
    if not uf:
        return ALIQUOTA_ICMS_PADRAO
    return ALIQUOTAS_ICMS.get(uf.strip().upper(), ALIQUOTA_ICMS_PADRAO)


def _componente(base: Decimal, aliquota: Decimal, cst: str, **extra) -> ComponenteTributo:
    return ComponenteTributo(
        base_calculo=base,
        aliquota=aliquota,
        valor=quantizar(base * aliquota / CEM),
        cst=cst,
        **extra,
    )


def calcular_simples_nacional(valor_total, anexo: str = "I", faixa_receita: int = 0) -> CalculoRegime:
    valor_total = para_decimal(valor_total) or ZERO
    aliquotas = ALIQUOTAS_SIMPLES.get((anexo or "I").upper(), ALIQUOTAS_SIMPLES["I"])
    aliquota_total = aliquotas[max(0, min(faixa_receita, len(aliquotas) - 1))]

    icms = _componente(valor_total, aliquota_total * PARTILHA_SIMPLES["icms"], "101", origem="0")
    pis = _componente(valor_total, aliquota_total * PARTILHA_SIMPLES["pis"], "49")
    cofins = _componente(valor_total, aliquota_total * PARTILHA_SIMPLES["cofins"], "49")

    return CalculoRegime(
        icms=icms,
        pis=pis,
        cofins=cofins,
        total_tributos=quantizar(valor_total * aliquota_total / CEM),
    )


def calcular_lucro_presumido(valor_total, uf: str = "SP") -> CalculoRegime:
    valor_total = para_decimal(valor_total) or ZERO

    # PIS/COFINS cumulativo
    icms = _componente(valor_total, _aliquota_icms(uf), "00", origem="0")
    pis = _componente(valor_total, Decimal("0.65"), "01")
    cofins = _componente(valor_total, Decimal("3.0"), "01")

    return CalculoRegime(
        icms=icms,
        pis=pis,
        cofins=cofins,
        total_tributos=icms.valor + pis.valor + cofins.valor,
    )


def calcular_lucro_real(valor_total, uf: str = "SP", tem_credito: bool = True) -> CalculoRegime:
    valor_total = para_decimal(valor_total) or ZERO

    # PIS/COFINS não cumulativo
    icms = _componente(valor_total, _aliquota_icms(uf), "00" if tem_credito else "40", origem="0")
    pis = _componente(valor_total, Decimal("1.65"), "01")
    cofins = _componente(valor_total, Decimal("7.6"), "01")

    return CalculoRegime(
        icms=icms,
        pis=pis,
        cofins=cofins,
        total_tributos=icms.valor + pis.valor + cofins.valor,
    )


def calcular_substituicao_tributaria(valor_total, mva=Decimal("30"), uf: str = "SP") -> CalculoRegime:
    valor_total = para_decimal(valor_total) or ZERO
    mva = para_decimal(mva, "mva") or ZERO

    base_st = valor_total * (1 + mva / CEM)
    icms = _componente(base_st, _aliquota_icms(uf), "60", origem="0")
    pis = _componente(valor_total, ZERO, "04")
    cofins = _componente(valor_total, ZERO, "04")

    return CalculoRegime(icms=icms, pis=pis, cofins=cofins, total_tributos=icms.valor)


def calcular_reforma_2026(valor_total, ncm: str = "", tem_credito: bool = True) -> CalculoRegime:
    """
    Simulação IBS/CBS/IS. ICMS/PIS/COFINS zerados (CST 41 / 07).
    """
    valor_total = para_decimal(valor_total) or ZERO

    def _com_credito(sigla: str) -> ComponenteTributo:
        valor = quantizar(valor_total * ALIQUOTAS_REFORMA[sigla] / CEM)
        credito = quantizar(valor * PERCENTUAL_CREDITO_REFORMA) if tem_credito else ZERO
        return ComponenteTributo(
            base_calculo=valor_total,
            aliquota=ALIQUOTAS_REFORMA[sigla],
            valor=valor,
            credito=credito,
        )

    ibs = _com_credito("ibs")
    cbs = _com_credito("cbs")

    seletivo = (ncm or "").startswith(PREFIXOS_NCM_SELETIVO)
    is_ = ComponenteTributo(
        base_calculo=valor_total,
        aliquota=ALIQUOTAS_REFORMA["is"],
        valor=quantizar(valor_total * ALIQUOTAS_REFORMA["is"] / CEM) if seletivo else ZERO,
    )

    total = ibs.valor + cbs.valor + is_.valor - ibs.credito - cbs.credito

    return CalculoRegime(
        icms=ComponenteTributo(ZERO, ZERO, ZERO, cst="41", origem="0"),
        pis=ComponenteTributo(ZERO, ZERO, ZERO, cst="07"),
        cofins=ComponenteTributo(ZERO, ZERO, ZERO, cst="07"),
        ibs=ibs,
        cbs=cbs,
        is_=is_,
        total_tributos=total,
    )


def calcular_tributos_por_regime(
    valor_total,
    regime,
    *,
    anexo: str = "I",
    uf: str = "SP",
    mva=Decimal("30"),
) -> CalculoRegime:
    """
    Despacha para o cálculo do regime. Regime desconhecido cai em
    Lucro Presumido.
    """
    if regime == RegimeTributario.SIMPLES:
        return calcular_simples_nacional(valor_total, anexo)
    if regime == RegimeTributario.REAL:
        return calcular_lucro_real(valor_total, uf)
    if regime == RegimeTributario.SUBSTITUICAO:
        return calcular_substituicao_tributaria(valor_total, mva, uf)
    return calcular_lucro_presumido(valor_total, uf)


_OBSERVACOES_REGIME = {
    RegimeTributario.SIMPLES: (
        "Documento emitido por ME/EPP optante pelo Simples Nacional.",
        "Não gera direito a crédito fiscal de IPI.",
        "Não gera direito a crédito fiscal de ICMS.",
    ),
    RegimeTributario.PRESUMIDO: (
        "Empresa tributada pelo Lucro Presumido.",
        "Base legal: Lei nº 9.718/98 e alterações.",
    ),
    RegimeTributario.REAL: (
        "Empresa tributada pelo Lucro Real.",
        "Permite aproveitamento de créditos de PIS/COFINS.",
    ),
    RegimeTributario.SUBSTITUICAO: (
        "ICMS retido por substituição tributária.",
        "Base legal: Lei Complementar nº 87/96.",
    ),
}


def gerar_observacoes_legais(regime) -> str:
    try:
        linhas = list(_OBSERVACOES_REGIME[RegimeTributario(regime)])
    except ValueError:
        linhas = []
    linhas += [
        "",
        "PREPARAÇÃO REFORMA TRIBUTÁRIA 2026:",
        "Sistema preparado para IBS/CBS/IS conforme EC 132/2023.",
    ]
    return "\n".join(linhas)


# ---------------------------------------------------------------------------
# Frete
# ---------------------------------------------------------------------------

# Distâncias aproximadas entre UFs (km)
DISTANCIAS_UF = {
    frozenset(("SP", "RJ")): 430,
    frozenset(("SP", "MG")): 580,
    frozenset(("SP", "PR")): 400,
    frozenset(("SP", "SC")): 550,
    frozenset(("SP", "RS")): 1100,
    frozenset(("RJ", "MG")): 430,
    frozenset(("RJ", "ES")): 520,
    frozenset(("MG", "GO")): 900,
    frozenset(("PR", "SC")): 300,
    frozenset(("SC", "RS")): 460,
}
DISTANCIA_PADRAO_KM = 1000


def calcular_distancia_uf(uf_origem: str, uf_destino: str) -> int:
    chave = frozenset((uf_origem.strip().upper(), uf_destino.strip().upper()))
    return DISTANCIAS_UF.get(chave, DISTANCIA_PADRAO_KM)


def calcular_frete(
    peso,
    distancia,
    valor_por_km=Decimal("2.5"),
    valor_minimo=Decimal("50.00"),
) -> Decimal:
    """
    Frete estimado = peso × distância × (valor_por_km / 1000), com piso.
    """
    peso = para_decimal(peso, "peso") or ZERO
    distancia = para_decimal(distancia, "distancia") or ZERO
    valor_por_km = para_decimal(valor_por_km, "valor_por_km")
    valor_minimo = para_decimal(valor_minimo, "valor_minimo")

    calculado = peso * distancia * (valor_por_km / Decimal("1000"))
    return quantizar(max(calculado, valor_minimo))
