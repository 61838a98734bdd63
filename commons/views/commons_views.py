from django.http import JsonResponse
from django.db import DatabaseError, connection
from django.utils import timezone

from fiscal.documentos import TipoDocumento, get_regras_documento


def liveness(request):
    return JsonResponse({"ok": True})


def readiness(request):
    """
    Pronto = banco responde e o registry de documentos carrega.
    """
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
    except DatabaseError as e:
        return JsonResponse({"ok": False, "error": str(e)}, status=503)

    documentos = sorted(str(get_regras_documento(t).tipo) for t in TipoDocumento)
    return JsonResponse({"ok": True, "documentos": documentos})


def time_now(request):
    now = timezone.localtime(timezone.now())
    return JsonResponse({"now": now.isoformat(), "timezone": str(now.tzinfo)})
