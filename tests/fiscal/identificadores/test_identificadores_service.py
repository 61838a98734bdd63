# tests/fiscal/identificadores/test_identificadores_service.py

import pytest

from fiscal.exceptions import EstruturaInvalidaError
from fiscal.services.identificadores_service import (
    TipoIdentificador,
    calcular_dv_chave,
    calcular_dvs_cpf,
    formatar_cep,
    formatar_cfop,
    formatar_chave_acesso,
    formatar_cnpj,
    formatar_cpf,
    formatar_documento,
    formatar_identificador,
    formatar_ncm,
    validar_cep,
    validar_cfop,
    validar_chave_acesso,
    validar_cnpj,
    validar_cpf,
    validar_email,
    validar_gtin,
    validar_identificador,
    validar_ncm,
    verificar_identificador,
)

CNPJ_VALIDO = "11222333000181"
CPF_VALIDO = "52998224725"


# ---------------------------------------------------------------------------
# CNPJ
# ---------------------------------------------------------------------------


def test_cnpj_valido_com_e_sem_mascara():
    assert validar_cnpj(CNPJ_VALIDO) is True
    assert validar_cnpj("11.222.333/0001-81") is True


@pytest.mark.parametrize("posicao", range(14))
def test_cnpj_trocar_qualquer_digito_invalida(posicao):
    digito = int(CNPJ_VALIDO[posicao])
    alterado = CNPJ_VALIDO[:posicao] + str((digito + 1) % 10) + CNPJ_VALIDO[posicao + 1:]

    assert validar_cnpj(alterado) is False


@pytest.mark.parametrize("digito", "0123456789")
def test_cnpj_digitos_repetidos_sempre_invalido(digito):
    assert validar_cnpj(digito * 14) is False


def test_cnpj_tamanho_errado():
    assert validar_cnpj(CNPJ_VALIDO[:-1]) is False
    assert validar_cnpj(CNPJ_VALIDO + "0") is False


def test_none_e_estrutura_invalida():
    with pytest.raises(EstruturaInvalidaError):
        validar_cnpj(None)


# ---------------------------------------------------------------------------
# CPF
# ---------------------------------------------------------------------------


def test_cpf_valido():
    assert validar_cpf(CPF_VALIDO) is True
    assert validar_cpf("529.982.247-25") is True


def test_cpf_recalcula_dvs_a_partir_dos_9_primeiros_digitos():
    assert calcular_dvs_cpf(CPF_VALIDO[:9]) == CPF_VALIDO[9:]


@pytest.mark.parametrize("cpf", ["52998224724", "11111111111", "5299822472", ""])
def test_cpf_invalido(cpf):
    assert validar_cpf(cpf) is False


# ---------------------------------------------------------------------------
# CEP / chave de acesso
# ---------------------------------------------------------------------------


def test_cep_apenas_tamanho():
    assert validar_cep("01310-100") is True
    assert validar_cep("0131010") is False


def test_chave_montada_e_valida(chave_nfe):
    assert len(chave_nfe) == 44
    assert chave_nfe.isdigit()
    # cUF + AAMM + CNPJ + modelo
    assert chave_nfe[:2] == "35"
    assert chave_nfe[2:6] == "2610"
    assert chave_nfe[6:20] == CNPJ_VALIDO
    assert chave_nfe[20:22] == "55"
    assert validar_chave_acesso(chave_nfe) is True
    assert calcular_dv_chave(chave_nfe[:43]) == int(chave_nfe[43])


def test_chave_com_dv_errado_invalida(chave_nfe):
    errada = chave_nfe[:43] + str((int(chave_nfe[43]) + 1) % 10)
    assert validar_chave_acesso(errada) is False


@pytest.mark.parametrize("ajuste", [-1, 1])
def test_chave_tamanho_diferente_de_44_sempre_invalida(chave_nfe, ajuste):
    chave = chave_nfe[:43] if ajuste < 0 else chave_nfe + "0"
    assert validar_chave_acesso(chave) is False


def test_chave_formatada_em_blocos_e_tolerada(chave_nfe):
    formatada = formatar_chave_acesso(chave_nfe)

    assert formatada.count(" ") == 10
    assert validar_chave_acesso(formatada) is True


def test_chave_com_letras_e_rejeitada(chave_nfe):
    assert validar_chave_acesso("NFe" + chave_nfe[3:]) is False


def test_chave_none_levanta():
    with pytest.raises(EstruturaInvalidaError):
        validar_chave_acesso(None)


# ---------------------------------------------------------------------------
# Dispatch / mensagens
# ---------------------------------------------------------------------------


def test_validar_identificador_por_tipo(chave_cte):
    assert validar_identificador("CPF", CPF_VALIDO) is True
    assert validar_identificador(TipoIdentificador.CNPJ, CNPJ_VALIDO) is True
    assert validar_identificador("CHAVE_ACESSO", chave_cte) is True


def test_verificar_identificador_mensagens():
    assert verificar_identificador("CPF", CPF_VALIDO, "condutor").valido

    tamanho = verificar_identificador("CPF", "123", "condutor")
    assert tamanho.erros == ("condutor: CPF deve ter 11 dígitos",)

    invalido = verificar_identificador("CNPJ", "11222333000182", "destinatário")
    assert invalido.erros == ("destinatário: CNPJ inválido",)

    chave = verificar_identificador("CHAVE_ACESSO", "1" * 44, "Chave")
    assert chave.erros == ("Chave: Chave de acesso inválida",)


# ---------------------------------------------------------------------------
# NCM / CFOP / GTIN / e-mail
# ---------------------------------------------------------------------------


def test_ncm():
    assert validar_ncm("22029900").valido
    assert validar_ncm("2202.99.00").valido
    assert validar_ncm("12345").erros == ("NCM deve ter 8 dígitos",)
    assert validar_ncm("99001122").erros == ("Capítulo NCM inválido (01-97)",)


def test_cfop_valido_gera_aviso_com_descricao():
    resultado = validar_cfop("5102")

    assert resultado.valido
    assert resultado.avisos == ("CFOP 5102: Saída - Venda dentro do estado",)


def test_cfop_invalido():
    assert not validar_cfop("4102").valido
    assert validar_cfop("51").erros == ("CFOP deve ter 4 dígitos",)


def test_gtin():
    assert validar_gtin("4006381333931").valido
    assert validar_gtin("4006381333932").erros == (
        "GTIN inválido - dígito verificador incorreto",
    )
    assert validar_gtin("123").erros == ("GTIN deve ter 8, 12, 13 ou 14 dígitos",)
    assert not validar_gtin("").valido


def test_email():
    assert validar_email("compras@cliente.com.br") is True
    assert validar_email("sem-arroba.com") is False
    assert validar_email("") is False


# ---------------------------------------------------------------------------
# Formatação
# ---------------------------------------------------------------------------


def test_formatacao_completa():
    assert formatar_cpf(CPF_VALIDO) == "529.982.247-25"
    assert formatar_cnpj(CNPJ_VALIDO) == "11.222.333/0001-81"
    assert formatar_cep("01310100") == "01310-100"
    assert formatar_ncm("22029900") == "2202.9900"
    assert formatar_cfop("5102") == "5.102"


def test_formatacao_progressiva_nao_quebra_com_entrada_parcial():
    assert formatar_cpf("5299") == "529.9"
    assert formatar_cnpj("11222") == "11.222"
    assert formatar_cep("0131") == "0131"
    assert formatar_cpf("") == ""


def test_formatar_documento_escolhe_mascara_pelo_tamanho():
    assert formatar_documento(CPF_VALIDO) == "529.982.247-25"
    assert formatar_documento(CNPJ_VALIDO) == "11.222.333/0001-81"


def test_formatar_identificador_por_tipo():
    assert formatar_identificador("CEP", "01310100") == "01310-100"
    assert formatar_identificador(TipoIdentificador.CPF, CPF_VALIDO) == "529.982.247-25"
