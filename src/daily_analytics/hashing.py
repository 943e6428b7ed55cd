"""
Pseudonymous visitor and session tokens.

Identifiers sent by the tracking script never reach storage verbatim. They are
folded into a short token with the classic 31-multiplier string hash over
32-bit signed integers:

    acc = acc * 31 + code_unit    (wrapping at 2**32, two's complement)
    token = "u" + base36(abs(acc))

Code units are UTF-16 and the wraparound is bit-exact, so tokens stay
comparable with batches already on disk.

This is obfuscation, not cryptography. Collisions are possible and simply make
unique visitor counts slightly low.
"""

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_UINT32_MASK = 0xFFFFFFFF


def _utf16_code_units(value: str):
    data = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def hash_id(value: str) -> str:
    """Map an opaque identifier to a stable pseudonymous token.

    Args:
        value: Visitor or session identifier as sent by the client

    Returns:
        Token like "u1k2j3h", identical for identical input across runs
    """
    acc = 0
    for unit in _utf16_code_units(value):
        acc = (acc * 31 + unit) & _UINT32_MASK

    # Reinterpret as signed 32-bit
    if acc & 0x80000000:
        acc -= 0x100000000

    return "u" + _to_base36(abs(acc))
