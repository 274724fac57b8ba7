"""OpenAPI customization.

Adds a bearer security scheme, applies it to every operation by default,
and exempts the endpoints that are reachable without logging in (health,
signup/login and the recipient's token-gated order link).
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

PUBLIC_PATH_PREFIXES = ("/health", "/v1/public/", "/v1/auth/signup", "/v1/auth/login")

TAGS_METADATA = [
    {"name": "Auth", "description": "Signup, login and the current session."},
    {"name": "Orders", "description": "Owner-side order management and item suggestions."},
    {"name": "Addresses", "description": "Saved delivery addresses and destinations."},
    {
        "name": "Public",
        "description": "Token-gated order link used by recipients; no login required.",
    },
    {"name": "Holidays", "description": "Public holiday calendar for delivery scheduling."},
    {"name": "Health", "description": "Liveness checks."},
]


def _is_public(path: str) -> bool:
    return path.startswith(PUBLIC_PATH_PREFIXES)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and bearer security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Token returned by POST /v1/auth/login.",
            },
        )
        schema.setdefault("security", [{"BearerAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            if not _is_public(path):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
