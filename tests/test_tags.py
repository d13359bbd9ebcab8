from pathlib import Path

import pytest
import yaml

from pluqqy.errors import InvalidNameError, MalformedError
from pluqqy.store import Store
from pluqqy.tags import (
    PALETTE,
    TagRegistry,
    all_tag_usage,
    count_tag_usage,
    normalize_tag_list,
    normalize_tag_name,
    tag_color,
)
from pluqqy.tags.names import fnv1a_32
from pluqqy.tags.registry import parse_registry


def test_normalize_tag_name() -> None:
    assert normalize_tag_name("  Code Review ") == "code-review"
    assert normalize_tag_name("API") == "api"
    with pytest.raises(InvalidNameError):
        normalize_tag_name("   ")


def test_normalize_tag_list_drops_blanks_and_duplicates() -> None:
    assert normalize_tag_list(["Go", "go", " ", "API", "api "]) == ["go", "api"]


def test_fnv1a_known_values() -> None:
    assert fnv1a_32(b"") == 0x811C9DC5
    assert fnv1a_32(b"a") == 0xE40C292C


def test_tag_color_is_deterministic() -> None:
    assert tag_color("Go") == tag_color("go")
    assert tag_color("go") in PALETTE
    assert tag_color("go") == PALETTE[fnv1a_32(b"go") % len(PALETTE)]


def test_get_or_create_persists(store: Store) -> None:
    registry = TagRegistry(store)

    tag = registry.get_or_create_tag("Code Review")

    assert tag.name == "code-review"
    assert tag.display_name == "Code Review"
    assert tag.color == tag_color("code-review")
    data = yaml.safe_load((store.root / "tags.yaml").read_text(encoding="utf-8"))
    assert data == {"code-review": {"display_name": "Code Review", "color": tag.color}}

    fresh = TagRegistry(store)
    assert fresh.get_tag("code review") == tag
    assert fresh.get_or_create_tag("code-review") == tag


def test_register_tags_returns_new_names(registry: TagRegistry) -> None:
    registry.get_or_create_tag("go")

    created = registry.register_tags(["go", "API", "", "api"])

    assert created == ["api"]
    assert [t.name for t in registry.list_tags()] == ["go", "api"]


def test_remove_tag(registry: TagRegistry, store: Store) -> None:
    registry.register_tags(["go"])

    assert registry.remove_tag("GO") is True
    assert registry.remove_tag("go") is False
    assert (store.root / "tags.yaml").read_text(encoding="utf-8") == "{}\n"


def test_parse_legacy_registry() -> None:
    tags = parse_registry({"tags": [{"name": "Go", "color": "#000000"}, {"name": "api"}]})

    assert tags["go"].color == "#000000"
    assert tags["api"].color == tag_color("api")


def test_registry_must_be_mapping(store: Store) -> None:
    (store.root / "tags.yaml").write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(MalformedError):
        TagRegistry(store).list_tags()


def test_usage_counts_only_active_files(store: Store, make_component, make_pipeline) -> None:
    make_component("prompts", "a", "A", tags=["go"])
    make_component("rules", "b", "B", tags=["Go", "style"])
    make_component("prompts", "old", "O", tags=["go"], archived=True)
    make_pipeline("p", [], tags=["go"])

    usage = count_tag_usage(store, "go")

    assert usage.component_count == 2
    assert usage.pipeline_count == 1
    assert usage.total == 3
    assert "archive/components/prompts/old.md" not in usage.referencing_paths
    assert all_tag_usage(store)["style"].component_count == 1


def test_orphan_sweep_is_idempotent(store: Store, registry: TagRegistry, make_component) -> None:
    keep = make_component("prompts", "keep", "K", tags=["shared"])
    gone = make_component("prompts", "gone", "G", tags=["shared", "lonely"])
    registry.register_tags(["shared", "lonely"])

    store.archive(gone)

    assert registry.sweep_orphans(["shared", "lonely"]) == ["lonely"]
    assert registry.sweep_orphans(["shared", "lonely"]) == []
    assert registry.contains("shared")
    assert not registry.contains("lonely")
    assert store.read_component(keep).tags == ["shared"]


def test_reload_registers_tags_in_use(store: Store, registry: TagRegistry, make_component, make_pipeline) -> None:
    registry.get_or_create_tag("existing")
    make_component("contexts", "c", "C", tags=["existing", "new-one"])
    make_pipeline("p", [], tags=["Pipeline Tag"])
    make_component("prompts", "archived", "A", tags=["hidden"], archived=True)
    (store.root / "components" / "rules" / "broken.md").write_text("---\nname: [x\n---\nbody", encoding="utf-8")

    report = registry.reload()

    assert report.components_scanned == 2
    assert report.pipelines_scanned == 1
    assert report.new_tags == ["new-one", "pipeline-tag"]
    assert list(report.failed_files) == ["components/rules/broken.md"]
    assert not registry.contains("hidden")


def test_reload_picks_up_external_edits(tmp_path: Path) -> None:
    store = Store(tmp_path / ".pluqqy")
    store.init()
    registry = TagRegistry(store)
    registry.get_or_create_tag("one")

    (store.root / "tags.yaml").write_text("two:\n  display_name: Two\n  color: '#ffffff'\n", encoding="utf-8")
    registry.reload()

    assert [t.name for t in registry.list_tags()] == ["two"]
