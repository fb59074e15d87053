"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    true_user_id: str | None = None,
    org_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict.

    `true_user_id` is only meaningful while impersonating and is dropped
    when it equals `user_id`.
    """
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if true_user_id and true_user_id != user_id:
        context["true_user_id"] = true_user_id
    if org_id:
        context["org_id"] = org_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
