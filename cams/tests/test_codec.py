import pytest

from cams.data.codec import (
    EMPTY_SENTINEL,
    check_map_key,
    check_raw_value,
    decode_bool,
    decode_list,
    decode_map,
    decode_optional,
    encode_list,
    encode_map,
    encode_optional,
)


def test_list_round_trip():
    camps = ["CAMP1", "CAMP2", "Camp Three"]

    assert encode_list(camps) == "CAMP1|CAMP2|Camp Three"
    assert decode_list(encode_list(camps)) == camps


def test_list_of_ids_casts_items():
    assert decode_list("3|1|2", int) == [3, 1, 2]


def test_empty_list_uses_sentinel():
    assert encode_list([]) == EMPTY_SENTINEL
    assert decode_list(EMPTY_SENTINEL) == []


def test_map_encoding_matches_file_format():
    mapping = {"Camp A": [1, 2], "Camp B": [3]}

    assert encode_map(mapping) == "Camp A=1|2*Camp B=3"
    assert decode_map("Camp A=1|2*Camp B=3") == mapping


def test_empty_map_uses_sentinel():
    assert encode_map({}) == "#NULL!"
    assert decode_map("#NULL!") == {}


def test_map_key_with_empty_value_list():
    assert encode_map({"Camp A": []}) == "Camp A=#NULL!"
    assert decode_map("Camp A=#NULL!") == {"Camp A": []}


@pytest.mark.parametrize("item", ["a|b", "a,b", EMPTY_SENTINEL])
def test_list_items_cannot_hold_reserved_text(item):
    with pytest.raises(ValueError):
        encode_list([item])


@pytest.mark.parametrize("key", ["a=b", "a*b", "a|b", "a,b"])
def test_map_keys_cannot_hold_delimiters(key):
    with pytest.raises(ValueError):
        encode_map({key: [1]})


def test_decode_map_rejects_entry_without_key_delimiter():
    with pytest.raises(ValueError):
        decode_map("Camp A:1|2")


def test_decode_map_rejects_duplicate_keys():
    with pytest.raises(ValueError):
        decode_map("Camp A=1*Camp A=2")


def test_decode_map_rejects_non_integer_ids():
    with pytest.raises(ValueError):
        decode_map("Camp A=one")


def test_scalar_values_cannot_span_lines():
    with pytest.raises(ValueError):
        check_raw_value("first\nsecond")


def test_optional_values_use_empty_field():
    assert encode_optional(None) == ""
    assert decode_optional("") is None
    assert encode_optional("Thanks") == "Thanks"
    with pytest.raises(ValueError):
        encode_optional("")


def test_decode_bool():
    assert decode_bool("TRUE") is True
    assert decode_bool("false") is False
    with pytest.raises(ValueError):
        decode_bool("maybe")


def test_map_keys_reject_every_delimiter_tier():
    assert check_map_key("Camp A") == "Camp A"
    for key in ("a=b", "a*b", "a|b", "a,b"):
        with pytest.raises(ValueError):
            check_map_key(key)
