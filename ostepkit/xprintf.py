"""The minimal printf formats used by user programs and by the kernel console.

Integers are treated as 32-bit values: ``%d`` is signed, ``%x`` and ``%p``
unsigned hexadecimal.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

_MASK = 0xFFFFFFFF
_USER_DIGITS = "0123456789ABCDEF"
_KERNEL_DIGITS = "0123456789abcdef"


def _format_int(value: int, base: int, signed: bool, digits: str) -> str:
    x = value & _MASK
    negative = signed and bool(x & 0x80000000)
    if negative:
        x = (-(x - (1 << 32))) & _MASK
    out = []
    while True:
        x, digit = divmod(x, base)
        out.append(digits[digit])
        if x == 0:
            break
    if negative:
        out.append("-")
    return "".join(reversed(out))


def _next_arg(args: Iterator[Any]) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _format(fmt: str, args: tuple[Any, ...], digits: str, allow_char: bool) -> str:
    remaining = iter(args)
    chars = iter(fmt)
    out = []
    for ch in chars:
        if ch != "%":
            out.append(ch)
            continue
        spec = next(chars, None)
        if spec is None:
            break
        if spec == "d":
            out.append(_format_int(_next_arg(remaining), 10, True, digits))
        elif spec in ("x", "p"):
            out.append(_format_int(_next_arg(remaining), 16, False, digits))
        elif spec == "s":
            text = _next_arg(remaining)
            out.append("(null)" if text is None else str(text))
        elif spec == "c" and allow_char:
            value = _next_arg(remaining)
            out.append(value[:1] if isinstance(value, str) else chr(value & 0xFF))
        elif spec == "%":
            out.append("%")
        else:
            out.append("%" + spec)
    return "".join(out)


def format_user(fmt: str, *args: Any) -> str:
    """Format like the user-space printf: ``%d %x %p %s %c %%``."""
    return _format(fmt, args, _USER_DIGITS, allow_char=True)


def format_kernel(fmt: str, *args: Any) -> str:
    """Format like the kernel's cprintf: ``%d %x %p %s %%``."""
    if fmt is None:
        raise ValueError("null fmt")
    return _format(fmt, args, _KERNEL_DIGITS, allow_char=False)