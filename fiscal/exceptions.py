# fiscal/exceptions.py


class FiscalError(Exception):
    """
    Erro genérico do motor fiscal.
    Base para erros específicos.

    Carrega um código no formato 'FISCAL_4xxx', o mesmo usado no
    payload {"code", "message"} devolvido pela API.
    """

    code = "FISCAL_4000"

    def __init__(self, mensagem: str, *, code: str | None = None):
        self.mensagem = mensagem
        if code:
            self.code = code
        super().__init__(mensagem)

    def as_detail(self) -> dict:
        return {"code": self.code, "message": self.mensagem}


class EstruturaInvalidaError(FiscalError):
    """
    O chamador não entregou a estrutura esperada (sub-objeto ausente,
    tipo errado, valor None onde é obrigatório).

    Não é violação de regra de negócio: indica erro de programação
    na camada que chamou o motor.
    """

    code = "FISCAL_4001"


class EmitenteNaoConfiguradoError(FiscalError):
    """
    Perfil do emitente (razão social, CNPJ, endereço, regime) não está
    configurado. Nunca montamos documento com identidade fiscal fictícia.
    """

    code = "FISCAL_4010"

    def __init__(self, mensagem: str = "Dados do emitente não configurados."):
        super().__init__(mensagem)


class TransicaoStatusInvalidaError(FiscalError):
    """
    Tentativa de mudar o status do documento para um estado não permitido
    a partir do status atual.
    """

    code = "FISCAL_4020"

    def __init__(self, mensagem: str, status_atual=None, status_novo=None):
        self.status_atual = status_atual
        self.status_novo = status_novo
        super().__init__(mensagem)
