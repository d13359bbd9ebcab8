import pytest

from pluqqy.errors import MalformedError
from pluqqy.store.frontmatter import parse_component_text, render_component_text


def test_plain_markdown_has_no_frontmatter() -> None:
    parsed = parse_component_text("# Title\n\nBody\n")

    assert parsed.has_frontmatter is False
    assert parsed.name is None
    assert parsed.tags == []
    assert parsed.body == "# Title\n\nBody\n"


def test_frontmatter_fields_and_unknown_keys() -> None:
    text = "---\nname: Parser\ntags:\n- go\n- api\nauthor: sam\n---\n\nParse things.\n"

    parsed = parse_component_text(text)

    assert parsed.name == "Parser"
    assert parsed.tags == ["go", "api"]
    assert parsed.extra == {"author": "sam"}
    assert parsed.body == "Parse things.\n"


def test_single_tag_string_is_accepted() -> None:
    parsed = parse_component_text("---\ntags: solo\n---\nBody")
    assert parsed.tags == ["solo"]
    assert parsed.body == "Body"


def test_unterminated_frontmatter() -> None:
    with pytest.raises(MalformedError):
        parse_component_text("---\nname: x\n\nbody\n", "components/prompts/x.md")


def test_frontmatter_must_be_mapping() -> None:
    with pytest.raises(MalformedError):
        parse_component_text("---\n- a\n- b\n---\nbody")


def test_render_without_metadata_is_body() -> None:
    assert render_component_text("Just text\n") == "Just text\n"


def test_render_then_parse_keeps_everything() -> None:
    text = render_component_text("Body line\n", name="Name", tags=["x"], extra={"version": 2})

    assert text.startswith("---\nname: Name\n")
    parsed = parse_component_text(text)
    assert parsed.name == "Name"
    assert parsed.tags == ["x"]
    assert parsed.extra == {"version": 2}
    assert parsed.body == "Body line\n"


def test_body_starting_with_delimiter_survives() -> None:
    body = "---\nnot frontmatter\n"

    text = render_component_text(body)
    parsed = parse_component_text(text)

    assert text != body
    assert parsed.body == body
