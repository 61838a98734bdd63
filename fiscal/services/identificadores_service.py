# fiscal/services/identificadores_service.py
"""
Validação e formatação de identificadores fiscais.

- CPF (11 dígitos) e CNPJ (14 dígitos) com dígitos verificadores mód. 11.
- CEP (8 dígitos, sem DV).
- Chave de acesso (44 dígitos, DV mód. 11 com pesos 2..9 da direita
  para a esquerda).
- NCM, CFOP e GTIN, usados na validação de itens.

Todas as funções são puras. Entrada malformada devolve False / erro no
resultado; apenas None (estrutura ausente) levanta EstruturaInvalidaError.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Sequence

from django.db import models

from fiscal.exceptions import EstruturaInvalidaError
from fiscal.services.resultado import OK, ResultadoValidacao, aviso, erro
from fiscal.services.valores import somente_digitos


class TipoIdentificador(models.TextChoices):
    CPF = "CPF", "CPF (pessoa física, 11 dígitos)"
    CNPJ = "CNPJ", "CNPJ (pessoa jurídica, 14 dígitos)"
    CEP = "CEP", "CEP (8 dígitos)"
    CHAVE_ACESSO = "CHAVE_ACESSO", "Chave de acesso (44 dígitos)"


TAMANHOS = {
    TipoIdentificador.CPF: 11,
    TipoIdentificador.CNPJ: 14,
    TipoIdentificador.CEP: 8,
    TipoIdentificador.CHAVE_ACESSO: 44,
}

_NOMES = {
    TipoIdentificador.CPF: ("CPF", "inválido"),
    TipoIdentificador.CNPJ: ("CNPJ", "inválido"),
    TipoIdentificador.CEP: ("CEP", "inválido"),
    TipoIdentificador.CHAVE_ACESSO: ("Chave de acesso", "inválida"),
}

PESOS_CNPJ_DV1 = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
PESOS_CNPJ_DV2 = (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _todos_iguais(digitos: str) -> bool:
    return len(set(digitos)) == 1


def _dv_modulo11(digitos: str, pesos: Sequence[int]) -> int:
    soma = sum(int(d) * p for d, p in zip(digitos, pesos))
    resto = soma % 11
    return 0 if resto < 2 else 11 - resto


# ---------------------------------------------------------------------------
# CNPJ / CPF
# ---------------------------------------------------------------------------


def validar_cnpj(cnpj: str) -> bool:
    digitos = somente_digitos(cnpj)

    if len(digitos) != 14 or _todos_iguais(digitos):
        return False

    if _dv_modulo11(digitos[:12], PESOS_CNPJ_DV1) != int(digitos[12]):
        return False

    return _dv_modulo11(digitos[:13], PESOS_CNPJ_DV2) == int(digitos[13])


def _dv_cpf(digitos: str) -> int:
    # pesos decrescentes a partir de len+1 (10..2 para o DV1, 11..2 para o DV2)
    peso_inicial = len(digitos) + 1
    soma = sum(int(d) * (peso_inicial - i) for i, d in enumerate(digitos))
    resto = (soma * 10) % 11
    return 0 if resto in (10, 11) else resto


def calcular_dvs_cpf(base9: str) -> str:
    """
    Recalcula os dois dígitos verificadores a partir dos 9 primeiros dígitos.
    """
    digitos = somente_digitos(base9)[:9]
    dv1 = _dv_cpf(digitos)
    dv2 = _dv_cpf(digitos + str(dv1))
    return f"{dv1}{dv2}"


def validar_cpf(cpf: str) -> bool:
    digitos = somente_digitos(cpf)

    if len(digitos) != 11 or _todos_iguais(digitos):
        return False

    if _dv_cpf(digitos[:9]) != int(digitos[9]):
        return False

    return _dv_cpf(digitos[:10]) == int(digitos[10])


# ---------------------------------------------------------------------------
# CEP / chave de acesso
# ---------------------------------------------------------------------------


def validar_cep(cep: str) -> bool:
    return len(somente_digitos(cep)) == 8


def calcular_dv_chave(base43: str) -> int:
    """
    DV da chave de acesso: pesos 2..9 aplicados da direita para a
    esquerda, voltando a 2 depois do 9.
    """
    digitos = somente_digitos(base43)
    soma = 0
    peso = 2
    for d in reversed(digitos):
        soma += int(d) * peso
        peso = 2 if peso == 9 else peso + 1
    resto = soma % 11
    return 0 if resto < 2 else 11 - resto


def validar_chave_acesso(chave: str) -> bool:
    if chave is None:
        raise EstruturaInvalidaError("Chave de acesso não informada (None).")
    # espaços da formatação em blocos são tolerados; letras ('NFe...') não
    texto = str(chave).replace(" ", "")
    if not texto.isdigit() or len(texto) != 44:
        return False
    return calcular_dv_chave(texto[:43]) == int(texto[43])


def montar_chave_acesso(
    *,
    codigo_uf: str,
    emitido_em: datetime,
    cnpj: str,
    modelo: str,
    serie: int,
    numero: int,
    codigo_numerico: str,
    tipo_emissao: str = "1",
) -> str:
    """
    Monta a chave de acesso de 44 dígitos:

        cUF(2) + AAMM(4) + CNPJ(14) + modelo(2) + série(3) + número(9)
        + tpEmis(1) + cNF(8) + DV(1)

    O código numérico (cNF) vem do chamador para manter a função pura.
    """
    base = (
        str(codigo_uf).zfill(2)
        + emitido_em.strftime("%y%m")
        + somente_digitos(cnpj).zfill(14)
        + str(modelo).zfill(2)
        + str(serie).zfill(3)
        + str(numero).zfill(9)
        + str(tipo_emissao)
        + somente_digitos(codigo_numerico).zfill(8)
    )
    return base + str(calcular_dv_chave(base))


# ---------------------------------------------------------------------------
# Dispatch por tipo
# ---------------------------------------------------------------------------

_VALIDADORES = {
    TipoIdentificador.CPF: validar_cpf,
    TipoIdentificador.CNPJ: validar_cnpj,
    TipoIdentificador.CEP: validar_cep,
    TipoIdentificador.CHAVE_ACESSO: validar_chave_acesso,
}


def validar_identificador(tipo, valor: str) -> bool:
    return _VALIDADORES[TipoIdentificador(tipo)](valor)


def verificar_identificador(tipo, valor: str, campo: str) -> ResultadoValidacao:
    """
    Versão para uso dentro de uma validação maior: devolve um resultado
    com a mensagem específica do campo.
    """
    tipo = TipoIdentificador(tipo)
    if validar_identificador(tipo, valor):
        return OK

    nome, invalido = _NOMES[tipo]
    tamanho = TAMANHOS[tipo]
    if len(somente_digitos(valor)) != tamanho:
        return erro(f"{campo}: {nome} deve ter {tamanho} dígitos")
    return erro(f"{campo}: {nome} {invalido}")


# ---------------------------------------------------------------------------
# NCM / CFOP / GTIN / e-mail
# ---------------------------------------------------------------------------

_AVISOS_CFOP = {
    "1": "Entrada - Aquisição dentro do estado",
    "2": "Entrada - Aquisição de outros estados",
    "3": "Entrada - Aquisição do exterior",
    "5": "Saída - Venda dentro do estado",
    "6": "Saída - Venda para outros estados",
    "7": "Saída - Venda para o exterior",
}


def validar_ncm(ncm: str) -> ResultadoValidacao:
    digitos = somente_digitos(ncm)
    if len(digitos) != 8:
        return erro("NCM deve ter 8 dígitos")

    capitulo = int(digitos[:2])
    if capitulo < 1 or capitulo > 97:
        return erro("Capítulo NCM inválido (01-97)")
    return OK


def validar_cfop(cfop: str) -> ResultadoValidacao:
    digitos = somente_digitos(cfop)
    if len(digitos) != 4:
        return erro("CFOP deve ter 4 dígitos")

    descricao = _AVISOS_CFOP.get(digitos[0])
    if descricao is None:
        return erro("CFOP inválido - primeiro dígito deve ser 1, 2, 3, 5, 6 ou 7")
    return aviso(f"CFOP {digitos}: {descricao}")


def validar_gtin(gtin: str) -> ResultadoValidacao:
    if gtin is None or str(gtin).strip() == "":
        return erro("GTIN é obrigatório a partir de 2025")

    digitos = somente_digitos(gtin)
    if len(digitos) not in (8, 12, 13, 14):
        return erro("GTIN deve ter 8, 12, 13 ou 14 dígitos")

    # GS1: pesos 3,1,3,1... a partir do dígito mais à direita antes do DV
    corpo = digitos[:-1]
    soma = sum(
        int(d) * (3 if i % 2 == 0 else 1) for i, d in enumerate(reversed(corpo))
    )
    dv = (10 - soma % 10) % 10
    if dv != int(digitos[-1]):
        return erro("GTIN inválido - dígito verificador incorreto")
    return OK


def validar_email(email: str, tamanho_maximo: int = 254) -> bool:
    if not email:
        return False
    return bool(_EMAIL_RE.match(email)) and len(email) <= tamanho_maximo


# ---------------------------------------------------------------------------
# Formatação / máscaras
# ---------------------------------------------------------------------------


def _mascarar(digitos: str, grupos: Sequence[tuple[int, str]]) -> str:
    """
    Aplica a máscara progressivamente: cada grupo só entra quando há
    dígitos para ele, então entrada parcial nunca quebra.
    """
    partes = []
    pos = 0
    for tamanho, separador in grupos:
        trecho = digitos[pos:pos + tamanho]
        if not trecho:
            break
        partes.append((separador if partes else "") + trecho)
        pos += tamanho
    return "".join(partes)


def formatar_cpf(cpf: str) -> str:
    digitos = somente_digitos(cpf)
    if len(digitos) > 11:
        return cpf
    return _mascarar(digitos, [(3, ""), (3, "."), (3, "."), (2, "-")])


def formatar_cnpj(cnpj: str) -> str:
    digitos = somente_digitos(cnpj)
    if len(digitos) > 14:
        return cnpj
    return _mascarar(digitos, [(2, ""), (3, "."), (3, "."), (4, "/"), (2, "-")])


def formatar_cep(cep: str) -> str:
    digitos = somente_digitos(cep)
    if len(digitos) > 8:
        return cep
    return _mascarar(digitos, [(5, ""), (3, "-")])


def formatar_chave_acesso(chave: str) -> str:
    digitos = somente_digitos(chave)
    if len(digitos) > 44:
        return chave
    return _mascarar(digitos, [(4, " ")] * 11)


def formatar_documento(documento: str) -> str:
    """
    CPF até 11 dígitos, CNPJ acima disso (máscara de campo único).
    """
    digitos = somente_digitos(documento)
    if len(digitos) <= 11:
        return formatar_cpf(documento)
    return formatar_cnpj(documento)


def formatar_ncm(ncm: str) -> str:
    digitos = somente_digitos(ncm)
    if len(digitos) != 8:
        return ncm
    return f"{digitos[:4]}.{digitos[4:]}"


def formatar_cfop(cfop: str) -> str:
    digitos = somente_digitos(cfop)
    if len(digitos) != 4:
        return cfop
    return f"{digitos[0]}.{digitos[1:]}"


_FORMATADORES = {
    TipoIdentificador.CPF: formatar_cpf,
    TipoIdentificador.CNPJ: formatar_cnpj,
    TipoIdentificador.CEP: formatar_cep,
    TipoIdentificador.CHAVE_ACESSO: formatar_chave_acesso,
}


def formatar_identificador(tipo, valor: str) -> str:
    return _FORMATADORES[TipoIdentificador(tipo)](valor)
