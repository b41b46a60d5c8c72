# scripts/test/simulate_scan.py
"""
Drive the container workflow against a running backend, the way the mobile
app does: customer registers a scanned code, staff processes return/rebate.

Usage:
  python scripts/test/simulate_scan.py register --qr AQRO-1A2B3C-123456 --token <customer-token>
  python scripts/test/simulate_scan.py rebate   --qr AQRO-1A2B3C-123456 --token <staff-token>
  python scripts/test/simulate_scan.py return   --qr AQRO-1A2B3C-123456 --token <staff-token>
"""

import argparse
import sys

import requests

BACKEND_URL = "http://localhost:8080/api/v1"
QR_PREFIX = "AQRO-"


def _headers(token):
    return {"Authorization": f"Bearer {token}"}


def _show(label, resp):
    mark = "✅" if resp.ok else "❌"
    print(f"{mark} {label} → HTTP {resp.status_code}: {resp.json()}")


def register(qr_code, token):
    resp = requests.post(f"{BACKEND_URL}/containers/register", json={"qrCode": qr_code},
                         headers=_headers(token), timeout=10)
    _show(f"register {qr_code}", resp)
    if resp.ok and resp.json().get("alreadyRegistered") and not resp.json().get("ownedByCurrentUser"):
        print("   ℹ️  Container belongs to another customer")


def staff_action(action, qr_code, token):
    lookup = requests.get(f"{BACKEND_URL}/containers/qr/{qr_code}", headers=_headers(token), timeout=10)
    if not lookup.ok:
        _show(f"lookup {qr_code}", lookup)
        return
    container_id = lookup.json()["id"]
    resp = requests.post(f"{BACKEND_URL}/containers/{container_id}/{action}", headers=_headers(token), timeout=10)
    _show(f"{action} {qr_code}", resp)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate container scans for testing")
    parser.add_argument("action", choices=["register", "return", "rebate"])
    parser.add_argument("--qr", required=True)
    parser.add_argument("--token", required=True)
    parser.add_argument("--url", default=BACKEND_URL)
    args = parser.parse_args()

    BACKEND_URL = args.url.rstrip("/")

    # Same client-side guard as the mobile scanner
    if not args.qr.startswith(QR_PREFIX):
        print(f"❌ Not an aQRo code (expected prefix {QR_PREFIX}): {args.qr}")
        sys.exit(1)

    if args.action == "register":
        register(args.qr, args.token)
    else:
        staff_action(args.action, args.qr, args.token)
