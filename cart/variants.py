"""Canonical identity for cart line variants.

A variant is ``{"name": ..., "options": [{"name": ..., "value": ...}]}``. Two
variants are the same line when their options match regardless of ordering.
"""

import hashlib
import json


def canonical_variant(variant: dict | None) -> dict | None:
    if not variant:
        return None
    options = sorted(
        ({"name": str(o.get("name", "")), "value": str(o.get("value", ""))} for o in variant.get("options") or []),
        key=lambda o: (o["name"], o["value"]),
    )
    name = str(variant.get("name") or "")
    if not name and not options:
        return None
    return {"name": name, "options": options}


def variant_key(variant: dict | None) -> str:
    """Stable sha256 hex of the canonical variant; empty string for none."""

    canonical = canonical_variant(variant)
    if canonical is None:
        return ""
    encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
