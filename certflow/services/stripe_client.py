"""
Stripe REST helpers.

Checkout sessions are created with plain HTTP calls against the Stripe API;
webhook payloads are authenticated with the ``Stripe-Signature`` header.
"""
import hashlib
import hmac
import json
import time

import requests
from flask import current_app

from certflow.services import ProviderError

DEFAULT_TOLERANCE = 300


class WebhookSignatureError(Exception):
    pass


def _headers():
    secret_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not secret_key:
        raise ProviderError("STRIPE_SECRET_KEY is not configured")
    return {"Authorization": f"Bearer {secret_key}"}


def _flatten(data, prefix=""):
    """Encode nested dicts/lists the way Stripe expects form fields (``a[b][0][c]``)."""
    items = []
    if isinstance(data, dict):
        pairs = data.items()
    else:
        pairs = enumerate(data)
    for key, value in pairs:
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            items.extend(_flatten(value, name))
        elif isinstance(value, bool):
            items.append((name, "true" if value else "false"))
        else:
            items.append((name, str(value)))
    return items


def _request(method, path, **kwargs):
    base = current_app.config.get("STRIPE_API_BASE", "https://api.stripe.com/v1")
    try:
        response = requests.request(method, f"{base}{path}", headers=_headers(), timeout=10, **kwargs)
    except requests.exceptions.RequestException as e:
        current_app.logger.error(f"Stripe request failed: {e}")
        raise ProviderError("Could not reach Stripe. Try again.")

    data = response.json() if response.content else {}
    if response.status_code != 200:
        current_app.logger.error(f"Stripe error {response.status_code}: {data}")
        raise ProviderError("Stripe request failed", details=data.get("error", data))
    return data


def find_customer(email):
    data = _request("GET", "/customers", params={"email": email, "limit": 1})
    customers = data.get("data") or []
    return customers[0]["id"] if customers else None


def line_items_for(level, price_id=None):
    if price_id:
        return [{"price": price_id, "quantity": 1}]

    pricing = current_app.config.get("CERTIFICATION_PRICING", {}).get(level)
    if not pricing:
        raise ProviderError(f"No pricing configured for level {level}")

    return [{
        "price_data": {
            "currency": "usd",
            "product_data": {
                "name": pricing["name"],
                "description": f"Level {level} Certification",
            },
            "unit_amount": pricing["amount"],
        },
        "quantity": 1,
    }]


def create_checkout_session(user_id, level, email, workflow_id, price_id=None):
    """Create a one-off payment checkout session.

    Returns ``(session_id, checkout_url)``.
    """
    customer_id = find_customer(email)
    frontend = current_app.config.get("FRONTEND_URL", "http://localhost:3000")

    payload = {
        "mode": "payment",
        "line_items": line_items_for(level, price_id or current_app.config.get("STRIPE_PRICE_ID")),
        "success_url": f"{frontend}/certification-success?level={level}",
        "cancel_url": f"{frontend}/certification-payment?level={level}",
        "client_reference_id": f"{user_id}-{level}",
        "metadata": {
            "user_id": user_id,
            "level": level,
            "workflow_id": workflow_id,
        },
    }
    if customer_id:
        payload["customer"] = customer_id
    else:
        payload["customer_email"] = email

    session = _request("POST", "/checkout/sessions", data=_flatten(payload))
    if not session.get("id") or not session.get("url"):
        raise ProviderError("Stripe returned an incomplete checkout session", details=session)
    return session["id"], session["url"]


def retrieve_checkout_session(session_id):
    return _request("GET", f"/checkout/sessions/{session_id}")


def _signature_parts(header):
    timestamp = None
    signatures = []
    for item in (header or "").split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


def compute_signature(payload, timestamp, secret):
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    signed = f"{timestamp}.{payload}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_webhook(payload, signature_header, secret, tolerance=DEFAULT_TOLERANCE, now=None):
    """Check the signature and return the decoded event."""
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not signature_header:
        raise WebhookSignatureError("Missing Stripe signature")

    timestamp, signatures = _signature_parts(signature_header)
    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed Stripe signature header")

    expected = compute_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Invalid webhook signature")

    current = now if now is not None else time.time()
    try:
        age = current - int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Malformed Stripe signature timestamp")
    if tolerance and age > tolerance:
        raise WebhookSignatureError("Webhook signature timestamp outside tolerance")

    try:
        return json.loads(payload)
    except ValueError:
        raise WebhookSignatureError("Webhook payload is not valid JSON")
