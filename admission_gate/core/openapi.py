"""OpenAPI metadata and customization utilities.

Enriches the generated schema with the credential security scheme, the
rate-limit response headers and tag descriptions, keeping documentation
concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_RATE_LIMIT_HEADERS: Dict[str, str] = {
    "X-RateLimit-Limit": "Requests allowed per window for the caller's tier.",
    "X-RateLimit-Remaining": "Requests left in the current window.",
    "X-RateLimit-Window": "Window length in seconds.",
    "X-RateLimit-Tier": "Resolved subscription tier.",
    "X-RateLimit-Reset": "UNIX time at which the current window ends.",
    "X-RateLimit-Degraded": "Present ('true') when the counting store was unavailable.",
}

_TAGS = [
    {"name": "Resource", "description": "Rate limited endpoints."},
    {"name": "Health", "description": "Liveness and readiness checks."},
    {"name": "Debug", "description": "Read-only counter introspection (disabled by default)."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security and rate limit docs.

    - Injects an API key security scheme (header ``X-API-Key``)
    - Requires it on rate limited operations, exempts health and debug
    - Documents the 429 response and rate limit headers on limited operations
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Caller credential. Unknown keys get the most restrictive tier.",
            },
        )

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(t for t in _TAGS if t["name"] not in known)

        headers = {name: {"description": text, "schema": {"type": "string"}} for name, text in _RATE_LIMIT_HEADERS.items()}

        for path, methods in schema.get("paths", {}).items():
            exempt = path.startswith("/health") or path.startswith("/debug")
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if exempt:
                    method_obj["security"] = []
                    continue
                method_obj["security"] = [{"ApiKeyAuth": []}]
                responses = method_obj.setdefault("responses", {})
                responses.setdefault("200", {}).setdefault("headers", {}).update(headers)
                responses.setdefault(
                    "429",
                    {
                        "description": "Rate limit exceeded for the current window.",
                        "headers": {
                            **headers,
                            "Retry-After": {
                                "description": "Seconds to wait (the window length).",
                                "schema": {"type": "integer"},
                            },
                        },
                    },
                )
                responses.setdefault("401", {"description": "Missing credential."})

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
