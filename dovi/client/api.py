from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests

DEFAULT_TIMEOUT = 30


@dataclass
class APIError(Exception):
    status_code: int
    message: str
    error_code: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.error_code or self.status_code}: {self.message}"


class DoviAPI:
    """Thin synchronous client for the HTTP API.

    Errors come back as ``APIError`` with the server's ``errorCode`` and extra
    fields. A transport failure or timeout is reported as ``CONNECTION_ERROR``
    with status 0; writes on the server are atomic, so such calls may be retried.
    """

    def __init__(
        self,
        base_url: str,
        token_getter: Callable[[], str | None] | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_getter = token_getter or (lambda: None)
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, auth: bool) -> dict[str, str]:
        h = {"Accept": "application/json"}
        if auth:
            token = self.token_getter()
            if token:
                h["Authorization"] = f"Bearer {token}"
        return h

    def request(
        self,
        method: str,
        path: str,
        *,
        auth: bool = True,
        params: dict | None = None,
        json: dict | None = None,
        data: dict | None = None,
    ) -> Any:
        try:
            resp = self.session.request(
                method=method.upper(),
                url=f"{self.base_url}{path}",
                headers=self._headers(auth),
                params=params,
                json=json,
                data=data,
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise APIError(0, "Request timed out", "CONNECTION_ERROR") from None
        except requests.RequestException as e:
            raise APIError(0, f"Connection failed: {e}", "CONNECTION_ERROR") from None

        try:
            payload = resp.json()
        except ValueError:
            payload = resp.text

        if resp.status_code >= 400:
            if isinstance(payload, dict):
                extra = {k: v for k, v in payload.items() if k not in ("errorCode", "message")}
                raise APIError(
                    resp.status_code,
                    payload.get("message") or f"HTTP {resp.status_code}",
                    payload.get("errorCode"),
                    extra,
                )
            raise APIError(resp.status_code, f"HTTP {resp.status_code}")

        return payload

    # --- Auth ---
    def register(self, name: str, email: str, password: str) -> str:
        payload = self.request(
            "POST", "/auth/register", auth=False, json={"name": name, "email": email, "password": password}
        )
        return payload["access_token"]

    def token(self, email: str, password: str) -> str:
        payload = self.request("POST", "/auth/token", auth=False, data={"username": email, "password": password})
        return payload["access_token"]

    def me(self) -> Any:
        return self.request("GET", "/me")

    def review_eligibility(self) -> Any:
        return self.request("GET", "/me/review-eligibility")

    # --- Companies ---
    def categories(self) -> Any:
        return self.request("GET", "/categories", auth=False)

    def companies(self, **filters) -> Any:
        return self.request(
            "GET", "/companies", auth=False, params={k: v for k, v in filters.items() if v not in (None, "")}
        )

    def company(self, slug: str) -> Any:
        return self.request("GET", f"/companies/{slug}", auth=False)

    def company_reviews(self, slug: str, **params) -> Any:
        return self.request(
            "GET", f"/companies/{slug}/reviews", auth=False, params={k: v for k, v in params.items() if v is not None}
        )

    def propose_company(self, **fields) -> Any:
        return self.request("POST", "/companies/propose", json=fields)

    # --- Reviews ---
    def create_review(
        self,
        company_slug: str,
        rating: int,
        title: str,
        text: str,
        pros: str | None = None,
        cons: str | None = None,
    ) -> Any:
        body = {"companySlug": company_slug, "rating": rating, "title": title, "text": text}
        if pros:
            body["pros"] = pros
        if cons:
            body["cons"] = cons
        return self.request("POST", "/reviews", json=body)

    def my_reviews(self) -> Any:
        return self.request("GET", "/reviews/me")

    def review(self, review_id: str) -> Any:
        return self.request("GET", f"/reviews/{review_id}")

    def delete_review(self, review_id: str) -> Any:
        return self.request("DELETE", f"/reviews/{review_id}")

    def react(self, review_id: str, value: int) -> Any:
        return self.request("POST", f"/reviews/{review_id}/react", json={"value": value})

    def report(self, review_id: str, reason: str, comment: str | None = None) -> Any:
        return self.request("POST", f"/reviews/{review_id}/report", json={"reason": reason, "comment": comment})

    # --- Admin ---
    def pending_reviews(self, **params) -> Any:
        return self.request("GET", "/admin/reviews", params=params or None)

    def approve_review(self, review_id: str) -> Any:
        return self.request("POST", f"/admin/reviews/{review_id}/approve")

    def reject_review(self, review_id: str) -> Any:
        return self.request("POST", f"/admin/reviews/{review_id}/reject")

    def admin_delete_review(self, review_id: str) -> Any:
        return self.request("DELETE", f"/admin/reviews/{review_id}")

    def reports(self, **params) -> Any:
        return self.request("GET", "/admin/reports", params=params or None)

    def resolve_report(self, report_id: str, action: str) -> Any:
        return self.request("POST", f"/admin/reports/{report_id}/resolve", json={"action": action})

    def proposals(self, **params) -> Any:
        return self.request("GET", "/admin/companies/proposals", params=params or None)

    def approve_proposal(self, proposal_id: str, **overrides) -> Any:
        return self.request("POST", f"/admin/companies/proposals/{proposal_id}/approve", json=overrides or None)

    def reject_proposal(self, proposal_id: str) -> Any:
        return self.request("POST", f"/admin/companies/proposals/{proposal_id}/reject")
