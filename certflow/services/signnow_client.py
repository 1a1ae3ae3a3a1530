"""
SignNow REST helpers.

A signing session is a copy of the configured contract template plus a
signing link for that copy. The signed/declined outcome arrives later
through the SignNow webhook.
"""
import requests
from flask import current_app

from certflow.services import ProviderError

PAGE_SIZE = 50
MAX_DOCUMENTS = 500


def _headers():
    api_key = current_app.config.get("SIGNNOW_API_KEY")
    if not api_key:
        raise ProviderError("SIGNNOW_API_KEY is not configured")
    return {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
    }


def _url(path):
    return current_app.config.get("SIGNNOW_API_BASE", "https://api.signnow.com") + path


def _post(path, payload):
    try:
        response = requests.post(_url(path), json=payload, headers=_headers(), timeout=10)
    except requests.exceptions.RequestException as e:
        current_app.logger.error(f"SignNow request failed: {e}")
        raise ProviderError("Could not reach SignNow. Try again.")

    if response.status_code not in (200, 201):
        current_app.logger.error(f"SignNow error {response.status_code}: {response.text}")
        raise ProviderError("SignNow request failed", details=response.text)
    return response.json()


def create_signing_session(user_email, level, template_id=None):
    """Copy the contract template and create a signing link.

    Returns ``(document_id, signing_url)``.
    """
    template_id = template_id or current_app.config.get("SIGNNOW_TEMPLATE_ID")
    if not template_id:
        raise ProviderError("SIGNNOW_TEMPLATE_ID is not configured")

    document = _post(
        f"/template/{template_id}/copy",
        {"document_name": f"Level {level} Certification Contract - {user_email}"},
    )
    document_id = document.get("id")
    if not document_id:
        raise ProviderError("SignNow did not return a document id", details=document)

    link = _post("/link", {"document_id": document_id})
    signing_url = link.get("url") or link.get("url_no_signup")
    if not signing_url:
        raise ProviderError("SignNow did not return a signing link", details=link)

    return document_id, signing_url


def _is_template(doc):
    return bool(
        doc.get("is_template") is True
        or doc.get("template") is True
        or doc.get("type") == "template"
        or doc.get("document_type") == "template"
    )


def _items(raw):
    if isinstance(raw, list):
        return raw
    for key in ("data", "documents", "results"):
        if isinstance(raw.get(key), list):
            return raw[key]
    return []


def list_templates():
    """Page through the account's documents and keep the templates."""
    documents = []
    offset = 0
    while len(documents) < MAX_DOCUMENTS:
        try:
            response = requests.get(
                _url("/user/documents"),
                params={"offset": offset, "limit": PAGE_SIZE},
                headers=_headers(),
                timeout=10,
            )
        except requests.exceptions.RequestException as e:
            current_app.logger.error(f"SignNow request failed: {e}")
            raise ProviderError("Could not reach SignNow. Try again.")

        if response.status_code != 200:
            raise ProviderError(f"SignNow API error ({response.status_code})", details=response.text)

        items = _items(response.json())
        documents.extend(items)
        if len(items) < PAGE_SIZE:
            break
        offset += PAGE_SIZE

    return [
        {
            "id": doc.get("id") or doc.get("document_id"),
            "name": doc.get("name") or doc.get("document_name") or doc.get("original_filename"),
            "updated": doc.get("updated") or doc.get("updated_at"),
        }
        for doc in documents
        if _is_template(doc)
    ]
