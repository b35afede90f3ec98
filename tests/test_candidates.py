import pytest

from src.geodispatch.services.geocoding.candidates import (
    build_candidates,
    remove_leading_house_number,
    strip_administrative,
)

COUNTRY = "Việt Nam"
CITY = "Hồ Chí Minh"


def _build(address, cap=10):
    return build_candidates(address, country_suffix=COUNTRY, default_city=CITY, cap=cap)


def test_candidates_for_abbreviated_saigon_address():
    candidates = _build("123 Nguyen Trai, Q.5, TP.HCM")

    assert candidates == [
        "123 Nguyen Trai, Quận 5, Hồ Chí Minh, Việt Nam",
        "123 Nguyen Trai, Quận 5, Hồ Chí Minh",
        "123 Nguyen Trai, Hồ Chí Minh, Việt Nam",
        "Nguyen Trai, Hồ Chí Minh, Việt Nam",
        "123 Nguyen Trai, Quan 5, Ho Chi Minh, Viet Nam",
    ]
    assert candidates[0].endswith(", Việt Nam")


def test_candidates_are_unique_ignoring_case():
    candidates = _build("12 Lê Lợi, Việt Nam")

    assert candidates[0] == "12 Lê Lợi, Việt Nam"
    lowered = [candidate.casefold() for candidate in candidates]
    assert len(lowered) == len(set(lowered))


def test_candidates_respect_cap():
    assert len(_build("123 Nguyen Trai, Q.5, TP.HCM", cap=2)) == 2
    assert _build("123 Nguyen Trai", cap=0) == []


@pytest.mark.parametrize("address", [None, "", "  ,  "])
def test_candidates_for_empty_input(address):
    assert _build(address) == []


def test_candidates_do_not_repeat_suffix_already_present():
    candidates = _build("45 Hai Bà Trưng, Hồ Chí Minh, Viet Nam")

    assert all(candidate.count("Nam") == 1 for candidate in candidates)


def test_strip_administrative_keeps_main_city():
    stripped = strip_administrative(
        "12 Lê Lợi, Phường Bến Nghé, Quận 1, Thành phố Hồ Chí Minh",
        keep_city=CITY,
    )
    assert stripped == "12 Lê Lợi, Thành phố Hồ Chí Minh"
    assert strip_administrative("12 Lê Lợi, Thành phố Thủ Đức", keep_city=CITY) == "12 Lê Lợi"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123 Nguyen Trai", "Nguyen Trai"),
        ("12/3A Lê Lợi", "Lê Lợi"),
        ("45-47 Pasteur", "Pasteur"),
        ("Nguyen Trai", "Nguyen Trai"),
    ],
)
def test_remove_leading_house_number(text, expected):
    assert remove_leading_house_number(text) == expected
