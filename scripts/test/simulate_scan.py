"""Send a scanned QR payload to the backend, as a guard-post scanner would."""

import argparse
import requests

BACKEND_URL = "http://localhost:8080/api/v1/verify/scan"

PAYLOAD_FORMATS = {
    "url": "http://localhost:8080/verify-visitor/{token}",
    "bare": "{token}",
    "legacy": "Visitor Pass\nPass ID: {token}",
}


def simulate_scan(payload: str, api_key: str = None):
    headers = {"X-API-Key": api_key} if api_key else {}
    resp = requests.post(BACKEND_URL, json={"payload": payload}, headers=headers, timeout=10)
    data = resp.json()
    print(f"HTTP {resp.status_code} → {data.get('headline')} ({data.get('state')})")
    if data.get("message"):
        print(f"  {data['message']}")
    invitation = data.get("invitation")
    if invitation:
        print(f"  Visitor : {invitation['visitor_name']} ({invitation['vehicle_plate']})")
        print(f"  Host    : {invitation['host_name']}")
        print(f"  Date    : {invitation['scheduled_date']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate a QR scan at the gate")
    parser.add_argument("token", help="pass_token of the invitation, or any raw text")
    parser.add_argument("--format", default="url", choices=list(PAYLOAD_FORMATS.keys()) + ["raw"])
    parser.add_argument("--url", default=BACKEND_URL)
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args()

    BACKEND_URL = args.url
    payload = args.token if args.format == "raw" else PAYLOAD_FORMATS[args.format].format(token=args.token)
    simulate_scan(payload, args.api_key)
