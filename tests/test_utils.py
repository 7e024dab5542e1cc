import pytest

from agritrack.utils import paginate, parse_reference_id, parse_reference_name, split_full_name


def test_split_single_word():
    assert split_full_name("Juan") == ("Juan", None, None, None)


def test_split_first_and_surname():
    assert split_full_name("Maria Santos") == ("Maria", None, "Santos", None)


def test_split_three_words_has_middle_name():
    parts = split_full_name("Jose Reyes Santos")
    assert parts.firstname == "Jose"
    assert parts.middlename == "Reyes"
    assert parts.surname == "Santos"
    assert parts.extension is None


def test_split_short_trailing_token_is_extension():
    parts = split_full_name("Jose Maria Reyes Santos Jr")
    assert parts == ("Jose", "Maria Reyes", "Santos", "Jr")


def test_split_long_trailing_token_is_surname():
    parts = split_full_name("Maria Luisa Reyes Fernandez")
    assert parts == ("Maria", "Luisa Reyes", "Fernandez", None)


def test_split_collapses_whitespace():
    assert split_full_name("  Ana   Lopez ") == ("Ana", None, "Lopez", None)


def test_split_empty_name():
    with pytest.raises(ValueError):
        split_full_name("   ")


def test_parse_reference_id():
    assert parse_reference_id("12: Corn") == 12
    assert parse_reference_id(" 7 ") == 7
    assert parse_reference_id(5) == 5


@pytest.mark.parametrize("reference", ["Corn", "", True])
def test_parse_reference_id_rejects_non_numeric(reference):
    with pytest.raises(ValueError):
        parse_reference_id(reference)


def test_parse_reference_name():
    assert parse_reference_name("129: Corn") == "Corn"
    assert parse_reference_name("Tilapia") == "Tilapia"


def test_paginate_second_page():
    page = paginate(list(range(5)), page=2, per_page=2)
    assert page.items == [2, 3]
    assert page.meta.total == 5
    assert page.meta.total_pages == 3
