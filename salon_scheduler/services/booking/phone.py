import re


def normalize_phone(phone: str | None) -> str:
    """
    Keep digits and a leading "+"; prefix "0" when the number has neither.

    "+64 21 555 1234" -> "+64215551234"
    "021-555-1234"    -> "0215551234"
    "21 555 1234"     -> "0215551234"
    """
    if not phone:
        return ""
    raw = phone.strip()
    if raw.startswith("+"):
        digits = re.sub(r"\D", "", raw[1:])
        return "+" + digits if digits else ""
    digits = re.sub(r"\D", "", raw)
    if not digits:
        return ""
    if not digits.startswith("0"):
        digits = "0" + digits
    return digits
