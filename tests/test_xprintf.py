import pytest

from ostepkit.xprintf import format_kernel, format_user


def test_user_hex_uses_uppercase_digits():
    assert format_user("%x", 255) == "FF"


def test_kernel_hex_uses_lowercase_digits():
    assert format_kernel("%x", 255) == "ff"


@pytest.mark.parametrize("fmt_fn", [format_user, format_kernel])
def test_decimal_keeps_sign(fmt_fn):
    assert fmt_fn("%d and %d", -5, 42) == "-5 and 42"


@pytest.mark.parametrize("fmt_fn", [format_user, format_kernel])
def test_hex_is_unsigned(fmt_fn):
    assert fmt_fn("%x", -1).lower() == "ffffffff"


@pytest.mark.parametrize("fmt_fn", [format_user, format_kernel])
def test_null_string(fmt_fn):
    assert fmt_fn("[%s]", None) == "[(null)]"


@pytest.mark.parametrize("fmt_fn", [format_user, format_kernel])
def test_unknown_sequence_is_echoed(fmt_fn):
    assert fmt_fn("a%zb") == "a%zb"


@pytest.mark.parametrize("fmt_fn", [format_user, format_kernel])
def test_percent_literal_and_trailing_percent(fmt_fn):
    assert fmt_fn("100%%") == "100%"
    assert fmt_fn("abc%") == "abc"


def test_user_char():
    assert format_user("%c%c", 72, "i") == "Hi"


def test_kernel_has_no_char_conversion():
    assert format_kernel("%c", 72) == "%c"


def test_pointer_formats_as_hex():
    assert format_user("%p", 255) == format_user("%x", 255)


def test_kernel_rejects_null_format():
    with pytest.raises(ValueError):
        format_kernel(None)


def test_missing_argument_raises():
    with pytest.raises(TypeError):
        format_user("%d %d", 1)


def test_decimal_round_trips_through_int():
    for value in (0, 7, -7, 123456, -2147483648, 2147483647):
        assert int(format_kernel("%d", value)) == value