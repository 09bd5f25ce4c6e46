import re

import pytest

from mdlens.slug import slugify


def test_slugify_punctuation_and_case():
    assert slugify("Hello, World!") == "hello-world"


@pytest.mark.parametrize(
    "text",
    ["Hello, World!", "  --Already--Slugged--  ", "Use `render()` now", "Café au lait", "2. Setup & Install"],
)
def test_slugify_is_idempotent(text):
    once = slugify(text)
    assert slugify(once) == once
    assert re.fullmatch(r"(?:[a-z0-9]+(?:-[a-z0-9]+)*)?", once)


def test_slugify_maps_non_ascii_letters_to_separators():
    assert slugify("Café au lait") == "caf-au-lait"


def test_slugify_empty_results():
    assert slugify("") == ""
    assert slugify("!!! ???") == ""


def test_repeated_headings_share_a_slug():
    assert slugify("Notes") == slugify("notes") == "notes"
