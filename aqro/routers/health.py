# aqro/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + (optionally) notification webhook reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from aqro.database import get_db
from aqro.services.notification_service import BestEffortNotifier, get_notifier
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(check_webhook: bool = False, db: Session = Depends(get_db),
                 notifier: BestEffortNotifier = Depends(get_notifier)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Notification webhook: disabled | configured | ok | http_<code> | unreachable
    A webhook problem never degrades the overall status.
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "notifications": "configured" if notifier.enabled else "disabled",
        "pendingNotifications": notifier.pending,
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if check_webhook and notifier.enabled:
        try:
            resp = requests.head(notifier.webhook_url, timeout=3)
            result["notifications"] = "ok" if resp.status_code < 500 else f"http_{resp.status_code}"
        except requests.exceptions.ConnectionError:
            result["notifications"] = "unreachable"
        except Exception as e:
            result["notifications"] = f"error: {str(e)}"

    return result
