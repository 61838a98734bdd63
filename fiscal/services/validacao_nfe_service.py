# fiscal/services/validacao_nfe_service.py
"""
Validação dos dados digitados de uma NF-e (destinatário, endereço, itens).

Erros bloqueiam a emissão; avisos apenas sinalizam valores fora do
comum (unitário muito baixo, total alto, muitos itens, observação longa).

Cada item passa pelos códigos fiscais obrigatórios (GTIN, NCM, CFOP) com
as mesmas regras de identificadores_service; a descrição do CFOP e a
presença de campos IBS/CBS/IS voltam como aviso.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Mapping, Sequence

from fiscal.exceptions import EstruturaInvalidaError
from fiscal.services.identificadores_service import (
    validar_cep,
    validar_cfop,
    validar_cnpj,
    validar_cpf,
    validar_email,
    validar_gtin,
    validar_ncm,
)
from fiscal.services.resultado import OK, ResultadoValidacao, aviso, combinar, erro
from fiscal.services.valores import TOLERANCIA, formatar_moeda, para_decimal, quantizar, somente_digitos

logger = logging.getLogger("emissor.fiscal")

ZERO = Decimal("0")

MAXIMO_ITENS = 990
LIMITE_AVISO_ITENS = 100
QUANTIDADE_MAXIMA = Decimal("999999999.9999")
VALOR_UNITARIO_MINIMO = Decimal("0.01")
LIMITE_AVISO_TOTAL = Decimal("100000")
LIMITE_AVISO_OBSERVACOES = 5000
CAMPOS_REFORMA = ("ibs", "cbs", "is")

_UF_RE = re.compile(r"^[A-Z]{2}$")


def _texto(valor) -> str:
    return str(valor or "").strip()


# ---------------------------------------------------------------------------
# Destinatário / endereço
# ---------------------------------------------------------------------------


def validar_documento_destinatario(cnpj_cpf) -> ResultadoValidacao:
    if not _texto(cnpj_cpf):
        return erro("CNPJ ou CPF do destinatário é obrigatório")

    digitos = somente_digitos(cnpj_cpf)
    if len(digitos) == 14:
        return OK if validar_cnpj(digitos) else erro("CNPJ do destinatário inválido")
    if len(digitos) == 11:
        return OK if validar_cpf(digitos) else erro("CPF do destinatário inválido")
    return erro("CNPJ/CPF deve ter 11 ou 14 dígitos")


def validar_endereco(endereco: Mapping | None, tipo: str = "destinatário") -> ResultadoValidacao:
    if not endereco:
        return erro(f"Endereço do {tipo} é obrigatório")

    erros: list[str] = []

    logradouro = _texto(endereco.get("logradouro"))
    if len(logradouro) < 2:
        erros.append(f"Logradouro do {tipo} é obrigatório (mín. 2 caracteres)")
    elif len(logradouro) > 60:
        erros.append(f"Logradouro do {tipo} deve ter no máximo 60 caracteres")

    if not _texto(endereco.get("numero")):
        erros.append(f"Número do endereço do {tipo} é obrigatório")

    if len(_texto(endereco.get("bairro"))) < 2:
        erros.append(f"Bairro do {tipo} é obrigatório (mín. 2 caracteres)")

    cep = _texto(endereco.get("cep"))
    if not cep:
        erros.append(f"CEP do {tipo} é obrigatório")
    elif not validar_cep(cep):
        erros.append(f"CEP do {tipo} inválido")

    if len(_texto(endereco.get("cidade") or endereco.get("municipio"))) < 2:
        erros.append(f"Cidade do {tipo} é obrigatória")

    uf = _texto(endereco.get("uf"))
    if not uf:
        erros.append(f"UF do {tipo} é obrigatória")
    elif not _UF_RE.match(uf):
        erros.append(f"UF do {tipo} deve ter 2 letras maiúsculas")

    return ResultadoValidacao(erros=tuple(erros))


def validar_destinatario(destinatario: Mapping | None) -> ResultadoValidacao:
    if not destinatario:
        return erro("Dados do destinatário são obrigatórios")

    resultados = []

    nome = _texto(destinatario.get("nome"))
    if len(nome) < 2:
        resultados.append(
            erro("Nome/Razão Social do destinatário é obrigatório (mín. 2 caracteres)")
        )
    elif len(nome) > 60:
        resultados.append(
            erro("Nome/Razão Social do destinatário deve ter no máximo 60 caracteres")
        )

    resultados.append(
        validar_documento_destinatario(
            destinatario.get("cnpj_cpf") or destinatario.get("documento")
        )
    )

    email = _texto(destinatario.get("email"))
    if email and not validar_email(email):
        resultados.append(erro("Email do destinatário inválido"))

    resultados.append(validar_endereco(destinatario.get("endereco")))
    return combinar(resultados)


# ---------------------------------------------------------------------------
# Itens
# ---------------------------------------------------------------------------


def validar_item(item: Mapping, posicao: int) -> ResultadoValidacao:
    if item is None:
        raise EstruturaInvalidaError(f"Item {posicao} não informado (None).")

    prefixo = f"Item {posicao}"
    erros: list[str] = []
    avisos: list[str] = []

    codigo = _texto(item.get("codigo"))
    if not codigo:
        erros.append(f"{prefixo}: Código do produto é obrigatório")
    elif len(codigo) > 60:
        erros.append(f"{prefixo}: Código do produto deve ter no máximo 60 caracteres")

    descricao = _texto(item.get("descricao"))
    if not descricao:
        erros.append(f"{prefixo}: Descrição do produto é obrigatória")
    elif len(descricao) > 120:
        erros.append(f"{prefixo}: Descrição deve ter no máximo 120 caracteres")

    quantidade = para_decimal(item.get("quantidade"), f"{prefixo}: quantidade")
    if quantidade is None or quantidade <= ZERO:
        erros.append(f"{prefixo}: Quantidade deve ser maior que zero")
    elif quantidade > QUANTIDADE_MAXIMA:
        erros.append(f"{prefixo}: Quantidade muito alta")

    unitario = para_decimal(item.get("valor_unitario"), f"{prefixo}: valor_unitario")
    if unitario is None or unitario <= ZERO:
        erros.append(f"{prefixo}: Valor unitário deve ser maior que zero")
    elif unitario < VALOR_UNITARIO_MINIMO:
        avisos.append(f"{prefixo}: Valor unitário muito baixo (R$ {formatar_moeda(unitario)})")

    total = para_decimal(item.get("valor_total"), f"{prefixo}: valor_total")
    if total is None or total <= ZERO:
        erros.append(f"{prefixo}: Valor total deve ser maior que zero")

    if quantidade and unitario and total:
        if abs(quantizar(quantidade * unitario) - total) > TOLERANCIA:
            erros.append(f"{prefixo}: Valor total não confere com quantidade × valor unitário")

    fiscais = combinar(
        [
            validar_gtin(item.get("gtin")),
            _codigo_obrigatorio(item, "ncm", "NCM", validar_ncm),
            _codigo_obrigatorio(item, "cfop", "CFOP", validar_cfop),
            validar_campos_reforma(item),
        ]
    )
    erros.extend(f"{prefixo}: {mensagem}" for mensagem in fiscais.erros)
    avisos.extend(f"{prefixo}: {mensagem}" for mensagem in fiscais.avisos)

    return ResultadoValidacao(erros=tuple(erros), avisos=tuple(avisos))


def _codigo_obrigatorio(item: Mapping, campo: str, nome: str, validador) -> ResultadoValidacao:
    valor = _texto(item.get(campo))
    if not valor:
        return erro(f"{nome} é obrigatório")
    return validador(valor)


def validar_campos_reforma(item: Mapping) -> ResultadoValidacao:
    """
    IBS/CBS/IS são facultativos no item até a Reforma Tributária;
    quando vierem preenchidos apenas sinalizamos.
    """
    if any(item.get(campo) is not None for campo in CAMPOS_REFORMA):
        return aviso(
            "Campos IBS/CBS/IS detectados - Sistema preparado para Reforma Tributária 2026"
        )
    return OK


def validar_itens(itens: Sequence[Mapping] | None) -> ResultadoValidacao:
    if not itens:
        return erro("Pelo menos um item é obrigatório")

    resultados = []
    if len(itens) > MAXIMO_ITENS:
        resultados.append(erro(f"Máximo de {MAXIMO_ITENS} itens permitidos"))
    if len(itens) > LIMITE_AVISO_ITENS:
        resultados.append(aviso(f"Muitos itens na NFe: {len(itens)} itens"))

    resultados.extend(validar_item(item, i) for i, item in enumerate(itens, start=1))

    total = sum(
        (para_decimal(item.get("valor_total"), "valor_total") or ZERO for item in itens),
        ZERO,
    )
    if total > LIMITE_AVISO_TOTAL:
        resultados.append(aviso(f"Valor total alto: R$ {formatar_moeda(total)}"))

    return combinar(resultados)


# ---------------------------------------------------------------------------
# Validação principal
# ---------------------------------------------------------------------------


def validar_dados_nfe(dados: Mapping) -> ResultadoValidacao:
    """
    Valida destinatário, itens e observações de uma NF-e digitada.

    Formato esperado (chaves em snake_case):
        {
          "destinatario": {"nome", "cnpj_cpf", "email", "endereco": {...}},
          "itens": [{"codigo", "descricao", "quantidade", "valor_unitario",
                     "valor_total", "ncm", "cfop"}, ...],
          "observacoes": "...",
        }
    """
    if dados is None:
        raise EstruturaInvalidaError("Dados da NF-e não informados.")

    resultados = [
        validar_destinatario(dados.get("destinatario")),
        validar_itens(dados.get("itens")),
    ]

    if len(dados.get("observacoes") or "") > LIMITE_AVISO_OBSERVACOES:
        resultados.append(
            aviso("Observações muito longas podem causar problemas na transmissão")
        )

    resultado = combinar(resultados)

    logger.info(
        "fiscal_validacao_nfe",
        extra={
            "event": "fiscal_validacao_nfe",
            "itens": len(dados.get("itens") or ()),
            "outcome": "valido" if resultado.valido else "invalido",
            "errors": list(resultado.erros),
            "warnings": len(resultado.avisos),
        },
    )
    return resultado
