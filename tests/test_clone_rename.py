import pytest
import yaml

from pluqqy.audit_log import read_operations
from pluqqy.errors import CollisionError, InvalidNameError, PartialRenameError, StoreIOError
from pluqqy.models import ComponentRef
from pluqqy.operations import clone_item, rename_item, suggest_clone_name
from pluqqy.store import Store
from pluqqy.tags import TagRegistry


def test_suggest_clone_name() -> None:
    assert suggest_clone_name("Foo") == "(Copy) Foo"
    assert suggest_clone_name("Foo", 2) == "(Copy 2) Foo"
    assert suggest_clone_name("(Copy) Foo") == "(Copy 2) Foo"
    assert suggest_clone_name("(Copy 7) Foo") == "(Copy 8) Foo"
    assert suggest_clone_name("(Copyright) Foo") == "(Copy) (Copyright) Foo"


def test_clone_collision_picks_copy_names(store: Store, make_component) -> None:
    source = make_component("prompts", "foo", "Foo body\n", name="Foo", tags=["x"])

    first = clone_item(store, source, "Foo")
    second = clone_item(store, source, "Foo")

    assert first.name == "(Copy) Foo"
    assert first.path == "components/prompts/copy-foo.md"
    assert second.name == "(Copy 2) Foo"
    assert second.path == "components/prompts/copy-2-foo.md"
    clone = store.read_component(second.path)
    assert clone.body == "Foo body\n"
    assert clone.tags == ["x"]
    assert any("already taken" in m for m in first.messages)


def test_cloning_a_copy_name_renumbers_it(store: Store, make_component) -> None:
    source = make_component("contexts", "foo", "Foo body\n", name="Foo")
    clone_item(store, source, "Foo")

    again = clone_item(store, source, "(Copy) Foo")

    assert again.name == "(Copy 2) Foo"
    assert again.path == "components/contexts/copy-2-foo.md"


def test_clone_without_auto_suffix(store: Store, make_component) -> None:
    source = make_component("prompts", "foo", "body", name="Foo")
    with pytest.raises(CollisionError):
        clone_item(store, source, "foo", auto_suffix=False)


def test_clone_rejects_empty_name(store: Store, make_component) -> None:
    source = make_component("prompts", "foo", "body")
    with pytest.raises(InvalidNameError):
        clone_item(store, source, "   ")
    with pytest.raises(InvalidNameError):
        clone_item(store, source, "???")


def test_clone_registers_tags_only_for_active_target(store: Store, registry: TagRegistry, make_component) -> None:
    source = make_component("rules", "r", "body", tags=["alpha"])

    archived = clone_item(store, source, "Kept", target_archived=True, registry=registry)
    assert archived.path == "archive/components/rules/kept.md"
    assert not registry.contains("alpha")

    clone_item(store, source, "Live", registry=registry)
    assert registry.contains("alpha")


def test_clone_pipeline_keeps_refs_and_consistent_path(store: Store, make_component, make_pipeline) -> None:
    ref = make_component("prompts", "p", "P")
    source = make_pipeline("build", [ref], name="Build", tags=["ci"], output_path="out/")

    result = clone_item(store, source, "Build Copy")

    assert result.path == "pipelines/build-copy.yaml"
    data = yaml.safe_load(store.absolute(result.path).read_text(encoding="utf-8"))
    assert data["name"] == "Build Copy"
    assert data["path"] == "build-copy.yaml"
    assert data["output_path"] == "out/"
    assert data["components"] == [{"type": "prompts", "path": "../components/prompts/p.md", "order": 1}]


def test_clone_from_archive(store: Store, make_component) -> None:
    make_component("contexts", "old", "Old", archived=True)

    result = clone_item(store, "components/contexts/old.md", "Revived", source_archived=True)

    assert result.path == "components/contexts/revived.md"
    assert store.exists("archive/components/contexts/old.md")


def test_clone_is_journaled(store: Store, make_component) -> None:
    source = make_component("prompts", "foo", "body")
    clone_item(store, source, "Bar")

    (entry,) = read_operations(store.root)
    assert entry.operation == "clone"
    assert entry.created.paths == ["components/prompts/bar.md"]


def test_rename_rewrites_referring_pipelines(store: Store, make_component, make_pipeline) -> None:
    old = make_component("rules", "a", "Rule body\n", name="a", tags=["t"])
    make_pipeline("p", [ComponentRef("rules", "components/rules/a.md", 1)])
    make_pipeline("legacy", [old], archived=True)
    make_pipeline("other", [make_component("rules", "z", "Z")])

    result = rename_item(store, old, "b")

    assert result.new_path == "components/rules/b.md"
    assert not store.exists("components/rules/a.md")
    renamed = store.read_component("components/rules/b.md")
    assert renamed.body == "Rule body\n"
    assert renamed.name == "b"
    assert renamed.tags == ["t"]

    assert store.read_pipeline("pipelines/p.yaml").components[0].path == "components/rules/b.md"
    assert store.read_pipeline("archive/pipelines/legacy.yaml").components[0].path == "../components/rules/b.md"
    assert sorted(result.updated_pipelines) == ["archive/pipelines/legacy.yaml", "pipelines/p.yaml"]
    assert store.read_pipeline("pipelines/other.yaml").components[0].path == "../components/rules/z.md"


def test_rename_same_slug_only_changes_display_name(store: Store, make_component) -> None:
    path = make_component("prompts", "debug", "body", name="debug")

    result = rename_item(store, path, "Debug")

    assert result.new_path == path
    assert store.read_component(path).name == "Debug"
    assert result.erased.files == 0


def test_rename_rejects_unchanged_and_colliding_names(store: Store, make_component) -> None:
    path = make_component("prompts", "one", "1", name="One")
    make_component("prompts", "two", "2", name="Two")

    with pytest.raises(InvalidNameError):
        rename_item(store, path, "One")
    with pytest.raises(InvalidNameError):
        rename_item(store, path, "")
    with pytest.raises(CollisionError):
        rename_item(store, path, "two")
    assert store.read_component(path).body == "1"


def test_rename_pipeline(store: Store, make_pipeline) -> None:
    path = make_pipeline("build", [], name="Build")

    result = rename_item(store, path, "Release Build")

    assert result.new_path == "pipelines/release-build.yaml"
    assert not store.exists(path)
    data = yaml.safe_load(store.absolute(result.new_path).read_text(encoding="utf-8"))
    assert data["name"] == "Release Build"
    assert data["path"] == "release-build.yaml"


def test_partial_rename_keeps_old_file(store: Store, make_component, make_pipeline, monkeypatch) -> None:
    old = make_component("rules", "a", "body", name="a")
    make_pipeline("good", [old])
    bad = make_pipeline("bad", [old])

    original = Store.write_pipeline

    def failing_write(self, pipeline):
        if pipeline.path == bad:
            raise StoreIOError("disk full", pipeline.path)
        return original(self, pipeline)

    monkeypatch.setattr(Store, "write_pipeline", failing_write)

    with pytest.raises(PartialRenameError) as excinfo:
        rename_item(store, old, "b")

    assert excinfo.value.stale_paths == [bad]
    assert store.exists("components/rules/a.md")
    assert store.exists("components/rules/b.md")
    assert store.read_pipeline("pipelines/good.yaml").components[0].path == "../components/rules/b.md"
    assert store.read_pipeline(bad).components[0].path == "../components/rules/a.md"
    assert read_operations(store.root)[-1].metadata["partial"] is True


def test_journal_survives_unwritable_log(store: Store, make_component) -> None:
    (store.root / "operations.log").mkdir()
    source = make_component("prompts", "foo", "body")

    result = clone_item(store, source, "Bar")

    assert result.path == "components/prompts/bar.md"
