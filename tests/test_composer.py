from pathlib import Path

import pytest

from pluqqy.composer import (
    MISSING_MARKER,
    compose_component,
    compose_pipeline,
    estimate_tokens,
    format_token_count,
    normalize_output,
    output_path_for,
    token_limit_status,
    write_composed_output,
)
from pluqqy.errors import BrokenReferenceError
from pluqqy.models import ComponentRef, Pipeline, Section, Settings
from pluqqy.store import Store


def test_compose_minimal_pipeline(store: Store, make_component, make_pipeline) -> None:
    ctx = make_component("contexts", "ctx", "A")
    pr = make_component("prompts", "pr", "B")
    path = make_pipeline("p", [ctx, pr])

    composition = compose_pipeline(store, store.read_pipeline(path), Settings())

    assert composition.text == "## CONTEXTS\n\nA\n\n## PROMPTS\n\nB\n"
    assert composition.broken_references == []


def test_compose_groups_by_section_and_sorts_by_order(store: Store, make_component) -> None:
    make_component("rules", "r", "Rule")
    make_component("contexts", "c1", "First context")
    make_component("contexts", "c2", "Second context\n\n")
    pipeline = Pipeline(
        name="p",
        path="pipelines/p.yaml",
        components=[
            ComponentRef("rules", "../components/rules/r.md", 1),
            ComponentRef("contexts", "../components/contexts/c2.md", 3),
            ComponentRef("contexts", "../components/contexts/c1.md", 2),
        ],
    )

    text = compose_pipeline(store, pipeline, Settings()).text

    assert text == "## CONTEXTS\n\nFirst context\n\nSecond context\n\n## RULES\n\nRule\n"


def test_compose_is_deterministic(store: Store, make_component, make_pipeline) -> None:
    path = make_pipeline("p", [make_component("prompts", "x", "X  \r\nY\t\n")])
    pipeline = store.read_pipeline(path)

    first = compose_pipeline(store, pipeline, Settings()).text
    second = compose_pipeline(store, pipeline, Settings()).text

    assert first == second == "## PROMPTS\n\nX\nY\n"


def test_compose_without_headings_and_custom_sections(store: Store, make_component, make_pipeline) -> None:
    path = make_pipeline(
        "p",
        [make_component("contexts", "c", "C"), make_component("prompts", "q", "Q")],
    )
    settings = Settings(show_headings=False, sections=[Section("prompts", "# Ask"), Section("contexts", "# Know")])

    assert compose_pipeline(store, store.read_pipeline(path), settings).text == "Q\n\nC\n"


def test_blank_bodies_keep_their_section_heading(store: Store, make_component, make_pipeline) -> None:
    path = make_pipeline(
        "p",
        [make_component("contexts", "empty", "\n\n  \n"), make_component("rules", "r", "R")],
    )

    assert compose_pipeline(store, store.read_pipeline(path), Settings()).text == "## CONTEXTS\n\n## RULES\n\nR\n"


def test_kinds_without_components_are_omitted(store: Store, make_component, make_pipeline) -> None:
    path = make_pipeline("p", [make_component("rules", "r", "R")])

    assert compose_pipeline(store, store.read_pipeline(path), Settings()).text == "## RULES\n\nR\n"


def test_empty_pipeline_composes_to_empty_text(store: Store, make_pipeline) -> None:
    path = make_pipeline("empty", [])
    assert compose_pipeline(store, store.read_pipeline(path), Settings()).text == ""


def test_broken_reference_in_active_pipeline(store: Store, make_component, make_pipeline) -> None:
    path = make_pipeline("p", [make_component("prompts", "ok", "OK"), "components/rules/missing.md"])

    with pytest.raises(BrokenReferenceError) as excinfo:
        compose_pipeline(store, store.read_pipeline(path), Settings())

    assert excinfo.value.missing == ["../components/rules/missing.md"]
    assert "pipelines/p.yaml" in str(excinfo.value)


def test_archived_pipeline_lists_missing_components(store: Store, make_component, make_pipeline) -> None:
    path = make_pipeline(
        "old",
        [make_component("prompts", "ok", "OK"), "components/rules/missing.md"],
        archived=True,
    )

    composition = compose_pipeline(store, store.read_pipeline(path), Settings())

    assert composition.text == (
        "## PROMPTS\n\nOK\n\n---\n" + MISSING_MARKER + "\n- ../components/rules/missing.md\n"
    )
    assert composition.broken_references == ["../components/rules/missing.md"]


def test_compose_component(store: Store, make_component) -> None:
    component = store.read_component(make_component("rules", "r", "Be nice.\n"))

    assert compose_component(component, Settings()) == "## RULES\n\nBe nice.\n"
    assert compose_component(component, Settings(show_headings=False)) == "Be nice.\n"


def test_normalize_output() -> None:
    assert normalize_output("a  \r\nb\r\n\r\n\r\n") == "a\nb\n"
    assert normalize_output("\n\n") == ""


@pytest.mark.parametrize("text,tokens", [("", 0), ("abcd", 1), ("abcde", 2), ("é", 1)])
def test_estimate_tokens(text: str, tokens: int) -> None:
    assert estimate_tokens(text) == tokens


def test_format_token_count() -> None:
    assert format_token_count(999) == "999"
    assert format_token_count(1234) == "1.2k"
    assert format_token_count(2_500_000) == "2.5M"


def test_token_limit_status() -> None:
    assert token_limit_status(40_000) == (40, 100_000, "good")
    assert token_limit_status(50_000) == (50, 100_000, "warning")
    assert token_limit_status(80_000) == (80, 100_000, "danger")
    assert token_limit_status(10, limit=10)[2] == "danger"


def test_output_path_for(tmp_path: Path) -> None:
    settings = Settings()
    pipeline = Pipeline(name="p", path="pipelines/p.yaml")

    assert output_path_for(pipeline, settings) == Path("PLUQQY.md")
    assert output_path_for(pipeline, settings, base=tmp_path) == tmp_path / "PLUQQY.md"

    pipeline.output_path = "out/"
    assert output_path_for(pipeline, settings, base=tmp_path) == tmp_path / "out" / "PLUQQY.md"

    pipeline.output_path = "docs/PROMPT.md"
    assert output_path_for(pipeline, settings, base=tmp_path) == tmp_path / "docs" / "PROMPT.md"


def test_write_composed_output_resolves_from_project_dir(store: Store) -> None:
    pipeline = Pipeline(name="p", path="pipelines/p.yaml")

    target = write_composed_output(store, "hello\n", pipeline, Settings(export_path="build"))

    assert target == store.root.parent / "build" / "PLUQQY.md"
    assert target.read_text(encoding="utf-8") == "hello\n"


def test_refs_into_archive_resolve_in_archive_tree(store: Store, make_component) -> None:
    make_component("rules", "kept", "Archived rule", archived=True)
    pipeline = Pipeline(
        name="p",
        path="pipelines/p.yaml",
        components=[ComponentRef("rules", "../archive/components/rules/kept.md", 1)],
    )

    assert compose_pipeline(store, pipeline, Settings()).text == "## RULES\n\nArchived rule\n"
