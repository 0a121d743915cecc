"""Indonesian phone number normalization for the WhatsApp channel."""

import re

_SEPARATORS = re.compile(r"[\s\-.]")


def normalize_phone(raw: str | None) -> str | None:
    """Convert a locally formatted phone number to +62 form.

    Rules, first match wins:
    - "08..."  -> "+628..."
    - "62..."  -> "+62..."
    - "+62..." -> unchanged
    - no leading "+" -> "+62" prefixed (bare local number)

    Numbers with another "+" country code are returned cleaned only. Length
    and digits are not validated; the provider rejects malformed numbers.
    """
    if not raw:
        return None

    cleaned = _SEPARATORS.sub("", raw)
    if not cleaned:
        return None

    if cleaned.startswith("08"):
        return "+62" + cleaned[1:]
    if cleaned.startswith("62"):
        return "+" + cleaned
    if cleaned.startswith("+62"):
        return cleaned
    if not cleaned.startswith("+"):
        return "+62" + cleaned
    return cleaned


def phone_variants(raw: str | None) -> list[str]:
    """Every stored spelling that normalizes to the same number as raw.

    Covers "+62...", "62...", "08..." and the bare local form, all without
    separators. Empty when raw has no usable digits.
    """
    normalized = normalize_phone(raw)
    if not normalized:
        return []
    variants = {normalized}
    if normalized.startswith("+62"):
        national = normalized[3:]
        variants.update({"62" + national, "0" + national, national})
    return sorted(variants)
