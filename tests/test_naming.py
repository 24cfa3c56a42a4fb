import pytest

from bizdash.naming import parse_name_meta


def test_printed_cover_with_dimensions():
    meta = parse_name_meta("Double Side Tri Colour 10x12 Cover")
    assert meta.side == "Double"
    assert meta.colour == "Tri"
    assert meta.type == "Double | Tri"
    assert meta.size == "10x12"
    assert meta.dimensions == "10x12"
    assert meta.area == 120
    assert meta.base == "Cover"


def test_non_printed_parcel():
    meta = parse_name_meta("NON-PRINTED Parcel Bag 16 X 20")
    assert (meta.side, meta.colour, meta.type) == ("Non-Printed", "None", "Non-Printed")
    assert meta.base == "Parcel"
    assert meta.size == "16x20"
    assert meta.area == 320


@pytest.mark.parametrize(
    "name, colour",
    [
        ("Single Side Double Color 8x10", "Double"),
        ("single side single colour 8x10", "Single"),
        ("Single Side Tri Color", "Tri"),
    ],
)
def test_colour_spellings(name, colour):
    assert parse_name_meta(name).colour == colour


def test_unparsed_name_defaults():
    meta = parse_name_meta("Plain Bag")
    assert meta.side == "Unknown"
    assert meta.colour == "Unknown"
    assert meta.size == "Unknown"
    assert meta.area == 0
    assert meta.type == "Unknown | Unknown"


def test_missing_name():
    assert parse_name_meta(None).base == "Cover"
