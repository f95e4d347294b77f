"""
General helper functions (non-domain specific utilities)

Note: Domain-specific business logic should be in services/
"""
import re


def normalize_mobile(mobile, country_code="+91"):
    """
    Normalize a mobile number for exact matching against users.mobile.

    Spaces, dashes and brackets are dropped. Numbers without a leading "+"
    get the default country code, and a leading 0 trunk prefix is removed.
    Returns None for blank input.
    """
    if not mobile:
        return None

    digits = re.sub(r"[\s\-().]", "", str(mobile))
    if not digits:
        return None

    if digits.startswith("+"):
        return digits

    if digits.startswith("00"):
        return "+" + digits[2:]

    digits = digits.lstrip("0")
    if country_code and digits.startswith(country_code.lstrip("+")) and len(digits) > 10:
        return "+" + digits
    return f"{country_code}{digits}"


def mobile_variants(mobile, country_code="+91"):
    """
    Every form a mobile may have been stored under in users.mobile.

    The normalized number comes first, then the raw input, then the
    national number with and without its trunk 0.
    """
    normalized = normalize_mobile(mobile, country_code)
    if not normalized:
        return []

    variants = [normalized, str(mobile).strip()]
    if country_code and normalized.startswith(country_code):
        national = normalized[len(country_code):]
        variants.extend([national, "0" + national])

    seen = []
    for variant in variants:
        if variant not in seen:
            seen.append(variant)
    return seen


def parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
