"""
Display-only redaction of personal data
"""

import ipaddress

MASK = "***"


def mask_email(email: str) -> str:
    """ab***@example.com: keep two characters of the local part and the domain"""
    if not isinstance(email, str) or "@" not in email:
        return MASK
    local, _, domain = email.rpartition("@")
    return f"{local[:2]}{MASK}@{domain}"


def mask_phone(phone: str) -> str:
    if not isinstance(phone, str) or len(phone) <= 3:
        return MASK
    return f"{phone[:3]}{MASK}{phone[-2:]}"


def _mask_card(number: str) -> str:
    if not isinstance(number, str) or len(number) <= 8:
        return MASK
    return f"{number[:4]}{MASK}{number[-4:]}"


def mask_id_card(id_card: str) -> str:
    return _mask_card(id_card)


def mask_bank_card(card_number: str) -> str:
    return _mask_card(card_number)


def mask_ip(ip: str) -> str:
    """192.168.***.*** for IPv4, first two hextets for IPv6, *** otherwise"""
    if not isinstance(ip, str):
        return MASK
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return MASK

    if address.version == 4:
        octets = str(address).split(".")
        return f"{octets[0]}.{octets[1]}.{MASK}.{MASK}"

    hextets = address.exploded.split(":")
    return f"{hextets[0]}:{hextets[1]}:{MASK}"
