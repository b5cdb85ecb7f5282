"""Parsing of duration strings such as ``300ms``, ``1.5h`` or ``2h45m``."""

_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek small letter mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class DurationError(ValueError):
    pass


def _take_digits(s: str) -> tuple[str, str]:
    i = 0
    while i < len(s) and s[i].isascii() and s[i].isdigit():
        i += 1
    return s[:i], s[i:]


def parse_duration(text: str) -> float:
    """Return the duration in seconds.

    A duration is an optional sign followed by a sequence of decimal numbers,
    each with an optional fraction and a required unit suffix. ``"0"`` on its
    own needs no unit.
    """
    orig = text
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return 0.0
    if not s:
        raise DurationError(f'time: invalid duration "{orig}"')

    total = 0.0
    while s:
        if not (s[0] == "." or (s[0].isascii() and s[0].isdigit())):
            raise DurationError(f'time: invalid duration "{orig}"')

        whole, s = _take_digits(s)
        fraction = ""
        has_fraction = False
        if s.startswith("."):
            has_fraction = True
            fraction, s = _take_digits(s[1:])
        if not whole and not fraction:
            # "." or "-.s"
            raise DurationError(f'time: invalid duration "{orig}"')

        i = 0
        while i < len(s) and s[i] != "." and not (s[i].isascii() and s[i].isdigit()):
            i += 1
        unit, s = s[:i], s[i:]
        if not unit:
            raise DurationError(f'time: missing unit in duration "{orig}"')
        if unit not in _UNITS:
            raise DurationError(f'time: unknown unit "{unit}" in duration "{orig}"')

        value = float(whole or "0")
        if has_fraction and fraction:
            value += int(fraction) / (10 ** len(fraction))
        total += value * _UNITS[unit]

    return -total if negative else total
