# fiscal/services/conversao_service.py
"""
Conversão dos dados digitados para o payload codificado da NF-e.

- Enums textuais → códigos da NF-e (tipo de operação, finalidade,
  presença do comprador, consumidor final), sempre com valor padrão.
- Destinatário: CPF ou CNPJ pelo tamanho do documento; código IBGE do
  município pela tabela de municípios.
- Totais: subtotal de mercadorias + tributos (tributos_service).
- Emitente: vem de um provedor injetado. Sem configuração, erro;
  nunca preenchemos identidade fiscal fictícia.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Protocol, Sequence

from django.conf import settings

from fiscal.documentos import TipoDocumento
from fiscal.exceptions import EmitenteNaoConfiguradoError, EstruturaInvalidaError
from fiscal.services.dto import ComposicaoTributos
from fiscal.services.identificadores_service import validar_cnpj
from fiscal.services.resultado import OK, ResultadoValidacao, aviso
from fiscal.services.tributos_service import calcular_documento
from fiscal.services.validacao_nfe_service import validar_dados_nfe
from fiscal.services.valores import para_decimal, quantizar, somente_digitos

logger = logging.getLogger("emissor.fiscal")

ZERO = Decimal("0")

CODIGO_MUNICIPIO_PADRAO = "3550308"  # São Paulo
UF_PADRAO = "SP"


# ---------------------------------------------------------------------------
# Tabelas de códigos
# ---------------------------------------------------------------------------


def _congelar(mapa: Mapping[str, int]) -> Mapping[str, int]:
    return MappingProxyType(dict(mapa))


@dataclass(frozen=True)
class TabelasConversao:
    """
    Tabelas de conversão texto → código da NF-e.

    Injetável: testes e chamadores podem passar tabelas próprias, mas a
    instância em si é somente leitura.
    """

    tipo_operacao: Mapping[str, int] = field(
        default_factory=lambda: _congelar({"entrada": 0, "saida": 1})
    )
    finalidade: Mapping[str, int] = field(
        default_factory=lambda: _congelar(
            {"normal": 1, "complementar": 2, "ajuste": 3, "devolucao": 4}
        )
    )
    presenca_comprador: Mapping[str, int] = field(
        default_factory=lambda: _congelar(
            {
                "nao_se_aplica": 0,
                "presencial": 1,
                "internet": 2,
                "teleatendimento": 3,
                "nfce_entrega_domicilio": 4,
                "presencial_fora_estabelecimento": 5,
                "outros": 9,
            }
        )
    )
    consumidor_final: Mapping[str, int] = field(
        default_factory=lambda: _congelar(
            {
                "true": 1,
                "1": 1,
                "sim": 1,
                "s": 1,
                "false": 0,
                "0": 0,
                "nao": 0,
                "não": 0,
                "n": 0,
            }
        )
    )

    tipo_operacao_padrao: int = 1
    finalidade_padrao: int = 1
    presenca_comprador_padrao: int = 1
    # não informado = consumidor final
    consumidor_final_padrao: int = 1

    @staticmethod
    def _buscar(tabela: Mapping[str, int], valor, padrao: int) -> int:
        if valor is None:
            return padrao
        return tabela.get(str(valor).strip().lower(), padrao)

    def codigo_tipo_operacao(self, valor) -> int:
        return self._buscar(self.tipo_operacao, valor, self.tipo_operacao_padrao)

    def codigo_finalidade(self, valor) -> int:
        return self._buscar(self.finalidade, valor, self.finalidade_padrao)

    def codigo_presenca_comprador(self, valor) -> int:
        return self._buscar(self.presenca_comprador, valor, self.presenca_comprador_padrao)

    def codigo_consumidor_final(self, valor) -> int:
        if isinstance(valor, bool):
            return int(valor)
        return self._buscar(self.consumidor_final, valor, self.consumidor_final_padrao)


TABELAS_PADRAO = TabelasConversao()


# ---------------------------------------------------------------------------
# Municípios
# ---------------------------------------------------------------------------

MUNICIPIOS_PADRAO: Mapping[tuple[str, str], str] = MappingProxyType(
    {
        ("São Paulo", "SP"): "3550308",
        ("Rio de Janeiro", "RJ"): "3304557",
        ("Belo Horizonte", "MG"): "3106200",
        ("Brasília", "DF"): "5300108",
        ("Salvador", "BA"): "2927408",
        ("Fortaleza", "CE"): "2304400",
        ("Curitiba", "PR"): "4106902",
        ("Recife", "PE"): "2611606",
        ("Porto Alegre", "RS"): "4314902",
        ("Manaus", "AM"): "1302603",
        ("Belém", "PA"): "1501402",
        ("Goiânia", "GO"): "5208707",
        ("Guarulhos", "SP"): "3518800",
        ("Campinas", "SP"): "3509502",
        ("São Luís", "MA"): "2111300",
        ("São Gonçalo", "RJ"): "3304904",
        ("Maceió", "AL"): "2704302",
        ("Duque de Caxias", "RJ"): "3301702",
        ("Natal", "RN"): "2408102",
        ("Teresina", "PI"): "2211001",
    }
)


def _chave_municipio(municipio: str, uf: str) -> tuple[str, str]:
    return ((municipio or "").strip().casefold(), (uf or "").strip().upper())


class TabelaMunicipios:
    """
    Código IBGE por (município, UF).

    Leitura sem lock. A única mutação é `registrar`, explícita e
    serializada pelo lock da instância.
    """

    def __init__(
        self,
        iniciais: Optional[Mapping[tuple[str, str], str]] = None,
        *,
        codigo_padrao: str = CODIGO_MUNICIPIO_PADRAO,
    ):
        self.codigo_padrao = codigo_padrao
        self._lock = threading.Lock()
        self._codigos: dict[tuple[str, str], str] = {}
        for (municipio, uf), codigo in (iniciais if iniciais is not None else MUNICIPIOS_PADRAO).items():
            self._codigos[_chave_municipio(municipio, uf)] = codigo

    @classmethod
    def from_settings(cls) -> "TabelaMunicipios":
        """
        Tabela padrão + FISCAL_MUNICIPIOS_EXTRA, no formato
        {"Cidade-UF": "codigo"}.
        """
        tabela = cls()
        extras = getattr(settings, "FISCAL_MUNICIPIOS_EXTRA", None) or {}
        for chave, codigo in extras.items():
            municipio, _, uf = str(chave).rpartition("-")
            tabela.registrar(municipio, uf, codigo)
        return tabela

    def buscar(self, municipio: str, uf: str) -> Optional[str]:
        return self._codigos.get(_chave_municipio(municipio, uf))

    def resolver(self, municipio: str, uf: str) -> tuple[str, ResultadoValidacao]:
        """
        Código do município ou, se não estiver na tabela, o código padrão
        acompanhado de um aviso.
        """
        codigo = self.buscar(municipio, uf)
        if codigo is not None:
            return codigo, OK

        logger.warning(
            "fiscal_municipio_nao_mapeado",
            extra={
                "event": "fiscal_municipio_nao_mapeado",
                "municipio": municipio,
                "uf": uf,
                "codigo_padrao": self.codigo_padrao,
            },
        )
        return self.codigo_padrao, aviso(
            f"Município '{municipio}-{uf}' sem código IBGE cadastrado; "
            f"usando código padrão {self.codigo_padrao}"
        )

    def registrar(self, municipio: str, uf: str, codigo: str) -> None:
        if not (municipio or "").strip() or not (uf or "").strip():
            raise EstruturaInvalidaError("Município e UF são obrigatórios para registro.")
        digitos = somente_digitos(codigo)
        if len(digitos) != 7:
            raise EstruturaInvalidaError(
                f"Código IBGE de município deve ter 7 dígitos ({codigo!r})."
            )
        with self._lock:
            self._codigos[_chave_municipio(municipio, uf)] = digitos

    def __len__(self) -> int:
        return len(self._codigos)


_tabela_municipios: Optional[TabelaMunicipios] = None
_tabela_municipios_lock = threading.Lock()


def get_tabela_municipios() -> TabelaMunicipios:
    global _tabela_municipios
    with _tabela_municipios_lock:
        if _tabela_municipios is None:
            _tabela_municipios = TabelaMunicipios.from_settings()
        return _tabela_municipios


# ---------------------------------------------------------------------------
# Emitente
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DadosEmitente:
    nome: str
    cnpj: str
    inscricao_estadual: str
    endereco: dict
    regime_tributario: int
    inscricao_municipal: Optional[str] = None


class ProvedorEmitente(Protocol):
    def obter(self) -> DadosEmitente:
        ...


CAMPOS_EMITENTE = ("nome", "cnpj", "inscricao_estadual", "endereco", "regime_tributario")


def montar_emitente(dados: Mapping | None) -> DadosEmitente:
    if not dados:
        raise EmitenteNaoConfiguradoError()

    faltando = [c for c in CAMPOS_EMITENTE if not dados.get(c)]
    if faltando:
        raise EmitenteNaoConfiguradoError(
            "Dados do emitente incompletos: " + ", ".join(faltando) + "."
        )

    cnpj = somente_digitos(dados["cnpj"])
    if not validar_cnpj(cnpj):
        raise EmitenteNaoConfiguradoError("CNPJ do emitente configurado é inválido.")

    return DadosEmitente(
        nome=str(dados["nome"]).strip(),
        cnpj=cnpj,
        inscricao_estadual=str(dados["inscricao_estadual"]).strip(),
        endereco=dict(dados["endereco"]),
        regime_tributario=int(dados["regime_tributario"]),
        inscricao_municipal=dados.get("inscricao_municipal"),
    )


class ProvedorEmitenteFixo:
    """
    Provedor com os dados em memória (uso típico: testes e chamadas
    que já trazem o perfil do emitente).
    """

    def __init__(self, dados: Mapping):
        self._emitente = montar_emitente(dados)

    def obter(self) -> DadosEmitente:
        return self._emitente


class ProvedorEmitenteSettings:
    """
    Lê settings.FISCAL_EMITENTE a cada chamada (override_settings funciona).
    """

    def obter(self) -> DadosEmitente:
        return montar_emitente(getattr(settings, "FISCAL_EMITENTE", None))


# ---------------------------------------------------------------------------
# Destinatário / itens / totais
# ---------------------------------------------------------------------------


def classificar_documento(documento, tipo: str | None = None) -> dict[str, str]:
    """
    {'cnpj': ...} quando tipo == 'pj' ou o documento tem 14 dígitos;
    {'cpf': ...} nos demais casos.
    """
    digitos = somente_digitos(documento or "")
    if tipo == "pj" or len(digitos) == 14:
        return {"cnpj": digitos}
    return {"cpf": digitos}


def preparar_destinatario(
    destinatario: Mapping | None,
    municipios: TabelaMunicipios,
) -> tuple[dict, ResultadoValidacao]:
    if not destinatario:
        raise EstruturaInvalidaError("Dados do destinatário são obrigatórios.")

    endereco = destinatario.get("endereco") or {}
    municipio = endereco.get("municipio") or endereco.get("cidade") or ""
    uf = endereco.get("uf") or UF_PADRAO
    codigo_municipio, resultado = municipios.resolver(municipio, uf)

    documento = destinatario.get("documento") or destinatario.get("cnpj_cpf")
    identificacao = classificar_documento(documento, destinatario.get("tipo"))

    preparado = {
        "nome": destinatario.get("nome") or "",
        "email": destinatario.get("email"),
        "telefone": destinatario.get("telefone"),
        **identificacao,
        "endereco": {
            "cep": somente_digitos(endereco.get("cep") or ""),
            "logradouro": endereco.get("logradouro") or "",
            "numero": endereco.get("numero") or "",
            "complemento": endereco.get("complemento"),
            "bairro": endereco.get("bairro") or "",
            "municipio": municipio,
            "uf": uf,
            "codigo_municipio": codigo_municipio,
        },
    }
    # IE só faz sentido para pessoa jurídica
    if "cnpj" in identificacao and destinatario.get("inscricao_estadual"):
        preparado["inscricao_estadual"] = destinatario["inscricao_estadual"]

    return preparado, resultado


def _valor_item(item: Mapping) -> Decimal:
    total = para_decimal(item.get("valor_total"), "valor_total")
    if total:
        return total
    quantidade = para_decimal(item.get("quantidade"), "quantidade") or ZERO
    unitario = para_decimal(item.get("valor_unitario"), "valor_unitario") or ZERO
    return quantidade * unitario


def calcular_totais(itens: Sequence[Mapping] | None) -> Decimal:
    """
    Subtotal de mercadorias: Σ valor_total do item (ou quantidade ×
    valor unitário quando o total não veio).
    """
    return quantizar(sum((_valor_item(item) for item in (itens or ())), ZERO))


# ---------------------------------------------------------------------------
# Montagem do payload
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayloadDocumento:
    dados: dict
    resultado: ResultadoValidacao
    tributos: ComposicaoTributos
    total: Decimal

    @property
    def valido(self) -> bool:
        return self.resultado.valido


def converter_para_payload(
    dados: Mapping,
    *,
    provedor_emitente: Optional[ProvedorEmitente] = None,
    tabelas: TabelasConversao = TABELAS_PADRAO,
    municipios: Optional[TabelaMunicipios] = None,
) -> PayloadDocumento:
    """
    Monta o payload codificado da NF-e a partir dos dados digitados.

    1) Emitente do provedor (EmitenteNaoConfiguradoError se ausente).
    2) Destinatário com CPF/CNPJ separado e código do município.
    3) Códigos da operação.
    4) Validação dos dados + cálculo dos tributos e do total.
    """
    if dados is None:
        raise EstruturaInvalidaError("Dados da NF-e não informados.")

    emitente = (provedor_emitente or ProvedorEmitenteSettings()).obter()
    municipios = municipios or get_tabela_municipios()

    destinatario, resultado_municipio = preparar_destinatario(dados.get("destinatario"), municipios)
    itens = list(dados.get("itens") or [])
    valor_produtos = calcular_totais(itens)

    calculo = calcular_documento(
        TipoDocumento.NFE,
        {**dados, "valor_produtos": valor_produtos},
    )

    resultado = validar_dados_nfe(dados) + resultado_municipio

    payload = {
        "natureza_operacao": dados.get("natureza_operacao") or "Venda",
        "serie": str(dados.get("serie") or "1"),
        "tipo_operacao": tabelas.codigo_tipo_operacao(dados.get("tipo_operacao")),
        "finalidade": tabelas.codigo_finalidade(dados.get("finalidade")),
        "presenca_comprador": tabelas.codigo_presenca_comprador(dados.get("presenca_comprador")),
        "consumidor_final": tabelas.codigo_consumidor_final(dados.get("consumidor_final")),
        "data_emissao": dados.get("data_emissao"),
        "data_saida": dados.get("data_saida"),
        "emitente": asdict(emitente),
        "destinatario": destinatario,
        "itens": itens,
        "totais": {
            "valor_produtos": valor_produtos,
            **{f"valor_{nome}": valor for nome, valor in calculo.tributos.presentes().items()},
            "valor_total": calculo.valor_total,
        },
        "observacoes": dados.get("observacoes"),
        "observacoes_fiscais": list(calculo.observacoes),
    }

    logger.info(
        "fiscal_payload_preparado",
        extra={
            "event": "fiscal_payload_preparado",
            "emitente_cnpj": emitente.cnpj,
            "itens": len(itens),
            "valor_total": str(calculo.valor_total),
            "outcome": "valido" if resultado.valido else "invalido",
        },
    )

    return PayloadDocumento(
        dados=payload,
        resultado=resultado,
        tributos=calculo.tributos,
        total=calculo.valor_total,
    )
