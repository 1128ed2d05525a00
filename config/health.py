from __future__ import annotations

from typing import Any

from django.db import connection
from django.http import JsonResponse

from roll_call.attendance.session import live_session


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def check_live_session() -> dict[str, Any]:
    snapshot = live_session.snapshot()
    return {
        "ok": True,
        "state": "active" if snapshot.is_active else "idle",
        "finalizing": live_session.is_finalizing,
    }


def health(request):
    db = check_db()
    components = {"db": db, "live_session": check_live_session()}

    all_ok = all(v.get("ok", False) for v in components.values())
    some_ok = any(v.get("ok", False) for v in components.values())

    status = "ok" if all_ok else ("degraded" if some_ok else "down")
    http_status = 200 if all_ok else 503

    return JsonResponse(
        {"status": status, "components": components},
        status=http_status,
    )
