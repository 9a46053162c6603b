import re

from eventreg.auth.tokens import (
    BASE_31_ALPHABET,
    generate_numeric_code,
    generate_token,
    to_base31,
)


def test_alphabet_has_31_unambiguous_symbols():
    assert len(BASE_31_ALPHABET) == 31
    assert len(set(BASE_31_ALPHABET)) == 31
    for vowel in "aeiou":
        assert vowel not in BASE_31_ALPHABET


def test_to_base31_is_least_significant_first():
    assert to_base31(0) == ""
    assert to_base31(30) == "z"
    assert to_base31(31) == "01"


def test_tokens_have_requested_length_and_alphabet():
    for length in (12, 24):
        tok = generate_token(length)
        assert len(tok) == length
        assert set(tok) <= set(BASE_31_ALPHABET)


def test_tokens_do_not_repeat():
    tags = {generate_token(12) for _ in range(2000)}
    assert len(tags) == 2000


def test_numeric_code_is_six_digits():
    for _ in range(50):
        assert re.fullmatch(r"\d{6}", generate_numeric_code())


def test_development_code_is_fixed():
    assert generate_numeric_code(development=True) == "123456"
