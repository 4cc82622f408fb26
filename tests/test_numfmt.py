import pytest

from apnaos.numfmt import atoi, int_to_dec, int_to_hex, int_to_str, itoa


@pytest.mark.parametrize(
    "text, expected",
    [("123", 123), ("-45", -45), ("12abc", 12), ("", 0), ("abc", 0), ("-", 0)],
)
def test_atoi(text, expected):
    assert atoi(text) == expected


def test_atoi_does_not_skip_whitespace():
    assert atoi(" 7") == 0


@pytest.mark.parametrize("n", [0, 1, 9, 10, 4096, -1, -30, 2**31 - 1])
def test_itoa_atoi_round_trip(n):
    assert atoi(itoa(n)) == n


def test_itoa_negative_sign_first():
    assert itoa(-30).startswith("-")
    assert itoa(-30)[1:] == itoa(30)


def test_int_to_hex_multiboot_magic():
    assert int_to_hex(0x1BADB002) == "0x1BADB002"


def test_int_to_hex_pads_to_eight_digits():
    assert int_to_hex(0) == "0x00000000"
    assert len(int_to_hex(0x12345678)) == 10


def test_int_to_hex_wraps_negative():
    assert int_to_hex(-1) == "0xFFFFFFFF"


@pytest.mark.parametrize("n", [0, 1, 4096, 0x12345678])
def test_int_to_hex_round_trip(n):
    assert int(int_to_hex(n), 16) == n


@pytest.mark.parametrize("n", [0, 7, 4096, 2**32 - 1])
def test_int_to_dec_round_trip(n):
    assert int(int_to_dec(n)) == n


def test_int_to_dec_zero():
    assert int_to_dec(0) == "0"


def test_int_to_dec_wraps_negative():
    assert int(int_to_dec(-1)) == 2**32 - 1


@pytest.mark.parametrize("n", [0, 1, 30, 4096])
def test_int_to_str_round_trip(n):
    assert atoi(int_to_str(n)) == n


def test_int_to_str_rejects_negative():
    with pytest.raises(ValueError):
        int_to_str(-5)