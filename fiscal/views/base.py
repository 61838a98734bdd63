# fiscal/views/base.py
"""
Tratamento de erros e log padrão dos endpoints fiscais.

Todas as views seguem o mesmo fluxo: serializer de entrada → service →
serializer de saída. Erros do motor (FiscalError) viram respostas
{"code", "message"}; qualquer outra exceção vira FISCAL_5999.
"""

import functools
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError

from fiscal.exceptions import (
    EmitenteNaoConfiguradoError,
    EstruturaInvalidaError,
    FiscalError,
    TransicaoStatusInvalidaError,
)

logger = logging.getLogger("emissor.fiscal")


class FiscalAPIException(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "fiscal_error"

    def __init__(self, exc: FiscalError, status_code: int | None = None):
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail=exc.as_detail())


# Do mais específico para o mais genérico
_STATUS_POR_ERRO = (
    (EstruturaInvalidaError, status.HTTP_400_BAD_REQUEST),
    (TransicaoStatusInvalidaError, status.HTTP_409_CONFLICT),
    (EmitenteNaoConfiguradoError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (FiscalError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def status_para_erro(exc: FiscalError) -> int:
    for classe, codigo in _STATUS_POR_ERRO:
        if isinstance(exc, classe):
            return codigo
    return status.HTTP_422_UNPROCESSABLE_ENTITY


def _request_id(request):
    return getattr(request, "request_id", None) or request.headers.get("X-Request-ID")


def endpoint_fiscal(evento: str):
    """
    Envolve uma view fiscal com o log de outcome e a conversão de erros.

    Uso (abaixo do @api_view):

        @api_view(["POST"])
        @endpoint_fiscal("fiscal_tributos_calcular")
        def calcular_tributos_view(request): ...
    """

    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            request_id = _request_id(request)

            try:
                response = view(request, *args, **kwargs)

            except DRFValidationError as exc:
                logger.warning(
                    f"{evento}_validacao",
                    extra={
                        "event": evento,
                        "request_id": request_id,
                        "errors": exc.detail,
                        "outcome": "validation_error",
                    },
                )
                raise

            except FiscalError as exc:
                logger.warning(
                    f"{evento}_erro_fiscal",
                    extra={
                        "event": evento,
                        "request_id": request_id,
                        "code": exc.code,
                        "detail": exc.mensagem,
                        "outcome": "fiscal_error",
                    },
                )
                raise FiscalAPIException(exc, status_code=status_para_erro(exc))

            except APIException as exc:
                logger.error(
                    f"{evento}_api_exception",
                    extra={
                        "event": evento,
                        "request_id": request_id,
                        "detail": str(exc.detail),
                        "outcome": "api_exception",
                    },
                )
                raise

            except Exception as exc:
                logger.exception(
                    f"{evento}_erro",
                    extra={
                        "event": evento,
                        "request_id": request_id,
                        "error": str(exc),
                    },
                )
                raise APIException(
                    detail={
                        "code": "FISCAL_5999",
                        "message": "Erro inesperado no motor fiscal.",
                    }
                )

            data = response.data if isinstance(response.data, dict) else {}
            logger.info(
                evento,
                extra={
                    "event": evento,
                    "request_id": request_id,
                    "valido": data.get("valido"),
                    "outcome": "success",
                },
            )
            return response

        return wrapper

    return decorator
