"""OpenAPI customization utilities.

Enriches the generated schema with tag metadata and documents the 429
response that admission control can return on every non-exempt operation.
Keeps documentation concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from admission.schemas.admission import RejectionBody

_TAGS = [
    {
        "name": "Admission",
        "description": "Inspection of the admission control configuration.",
    },
    {
        "name": "Health",
        "description": "Liveness checks (exempt from admission control).",
    },
]


def _too_many_requests_response() -> Dict[str, Any]:
    return {
        "description": "Rate limit exceeded for the caller under the matched rule.",
        "headers": {
            "Retry-After": {
                "description": "Seconds until the current window resets.",
                "schema": {"type": "integer"},
            },
        },
        "content": {
            "application/json": {"schema": {"$ref": "#/components/schemas/RejectionBody"}},
        },
    }


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and 429 documentation.

    Exempt paths (read from ``app.state.exempt_paths``) are left without the
    429 response since admission control never runs for them.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        schemas.setdefault("RejectionBody", RejectionBody.model_json_schema())

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        exempt = getattr(app.state, "exempt_paths", frozenset())
        for path, methods in schema.get("paths", {}).items():
            if path in exempt:
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429", _too_many_requests_response()
                    )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
