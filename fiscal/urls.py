# fiscal/urls.py

from django.urls import re_path

from fiscal.views.eventos_views import (
    transicao_status_view,
    validar_cancelamento_view,
    validar_carta_correcao_view,
    validar_encerramento_view,
    validar_inutilizacao_view,
)
from fiscal.views.identificadores_views import validar_identificador_view
from fiscal.views.nfe_views import preparar_nfe_view
from fiscal.views.transporte_views import conciliar_mdfe_view, pre_validar_documento_view
from fiscal.views.tributos_views import calcular_tributos_view

app_name = "fiscal"

# tolerância a barra final: "/validar" e "/validar/" caem na mesma view
urlpatterns = [
    re_path(r"^identificadores/validar/?$", validar_identificador_view, name="identificador_validar"),
    re_path(r"^tributos/calcular/?$", calcular_tributos_view, name="tributos_calcular"),

    # eventos
    re_path(r"^eventos/cancelamento/validar/?$", validar_cancelamento_view, name="cancelamento_validar"),
    re_path(r"^eventos/encerramento/validar/?$", validar_encerramento_view, name="encerramento_validar"),
    re_path(r"^eventos/carta-correcao/validar/?$", validar_carta_correcao_view, name="carta_correcao_validar"),
    re_path(r"^eventos/inutilizacao/validar/?$", validar_inutilizacao_view, name="inutilizacao_validar"),

    # documentos
    re_path(r"^documentos/transicao/?$", transicao_status_view, name="documento_transicao"),
    re_path(r"^documentos/pre-validar/?$", pre_validar_documento_view, name="documento_pre_validar"),
    re_path(r"^mdfe/conciliar/?$", conciliar_mdfe_view, name="mdfe_conciliar"),
    re_path(r"^nfe/preparar/?$", preparar_nfe_view, name="nfe_preparar"),
]
