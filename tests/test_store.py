from pathlib import Path

import pytest

from pluqqy.errors import CollisionError, MalformedError, NotFoundError
from pluqqy.store import Store, write_atomic


def test_init_is_idempotent(tmp_path: Path) -> None:
    store = Store(tmp_path / ".pluqqy")

    created = store.init()

    assert (tmp_path / ".pluqqy" / "components" / "contexts").is_dir()
    assert (tmp_path / ".pluqqy" / "archive" / "components" / "rules").is_dir()
    assert (tmp_path / ".pluqqy" / "pipelines").is_dir()
    assert created
    assert store.init() == []


def test_component_round_trip_keeps_unknown_keys(store: Store) -> None:
    path = "components/prompts/debug.md"
    store.write_component(path, "Find the bug.\n", name="Debug", tags=["go", "api"], extra={"author": "sam"})

    component = store.read_component(path)

    assert component.name == "Debug"
    assert component.kind == "prompts"
    assert component.body == "Find the bug.\n"
    assert component.tags == ["go", "api"]
    assert component.extra == {"author": "sam"}
    assert component.archived is False


def test_name_falls_back_to_filename(store: Store) -> None:
    (store.root / "components" / "contexts" / "auth-context.md").write_text("Auth details\n", encoding="utf-8")

    component = store.read_component("components/contexts/auth-context.md")

    assert component.name == "Auth Context"
    assert component.body == "Auth details\n"
    assert component.tags == []


def test_update_tags_preserves_body_and_extra(store: Store) -> None:
    path = "components/rules/style.md"
    store.write_component(path, "Use tabs.\n\n---\nfooter\n", name="Style", tags=["a"], extra={"owner": "x"})

    store.update_component_tags(path, ["b", "c"])
    component = store.read_component(path)

    assert component.tags == ["b", "c"]
    assert component.body == "Use tabs.\n\n---\nfooter\n"
    assert component.extra == {"owner": "x"}
    assert component.name == "Style"


def test_read_missing_raises_not_found(store: Store) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        store.read_component("components/prompts/nope.md")
    assert "components/prompts/nope.md" in str(excinfo.value)


def test_read_rejects_invalid_utf8(store: Store) -> None:
    (store.root / "components" / "prompts" / "bin.md").write_bytes(b"\xff\xfe\x00bad")

    with pytest.raises(MalformedError):
        store.read_component("components/prompts/bin.md")


def test_read_rejects_oversize_file(store: Store, monkeypatch) -> None:
    monkeypatch.setattr("pluqqy.store.store.MAX_FILE_SIZE", 8)
    (store.root / "components" / "prompts" / "big.md").write_text("0123456789", encoding="utf-8")

    with pytest.raises(MalformedError):
        store.read_component("components/prompts/big.md")


def test_write_rejects_binary_body(store: Store) -> None:
    with pytest.raises(MalformedError):
        store.write_component("components/prompts/x.md", "a\x00b")
    assert not store.exists("components/prompts/x.md")


def test_paths_must_stay_inside_root(store: Store) -> None:
    with pytest.raises(MalformedError):
        store.read_component("../outside.md")
    with pytest.raises(MalformedError):
        store.read_component("/etc/passwd")


def test_listing_skips_dotfiles_and_other_suffixes(store: Store) -> None:
    prompts = store.root / "components" / "prompts"
    (prompts / "b.md").write_text("b", encoding="utf-8")
    (prompts / "a.md").write_text("a", encoding="utf-8")
    (prompts / ".hidden.md").write_text("h", encoding="utf-8")
    (prompts / "notes.txt").write_text("t", encoding="utf-8")

    assert store.list_components("prompt") == ["a.md", "b.md"]
    assert store.component_paths(kind="prompts") == ["components/prompts/a.md", "components/prompts/b.md"]


def test_listing_missing_directory_is_empty(tmp_path: Path) -> None:
    store = Store(tmp_path / "empty")
    assert store.list_pipelines() == []
    assert store.component_paths(archived=True) == []


def test_iter_reports_unreadable_files(store: Store) -> None:
    (store.root / "components" / "rules" / "ok.md").write_text("fine", encoding="utf-8")
    (store.root / "components" / "rules" / "bad.md").write_text("---\nname: x\nno end\n", encoding="utf-8")

    entries = {entry.path: entry for entry in store.iter_components()}

    assert entries["components/rules/ok.md"].item is not None
    assert isinstance(entries["components/rules/bad.md"].error, MalformedError)


def test_archive_and_restore_are_byte_identical(store: Store) -> None:
    path = "components/contexts/ctx.md"
    store.write_component(path, "Context body\n", name="Ctx", tags=["t"])
    original = store.absolute(path).read_bytes()

    archived = store.archive(path)
    assert archived == "archive/components/contexts/ctx.md"
    assert not store.exists(path)
    assert store.list_archived_components("contexts") == ["ctx.md"]
    assert store.read_component(archived).archived is True

    restored = store.unarchive(archived)
    assert restored == path
    assert store.absolute(path).read_bytes() == original


def test_archive_refuses_to_overwrite(store: Store) -> None:
    store.write_component("components/prompts/p.md", "active")
    store.write_component("archive/components/prompts/p.md", "archived")

    with pytest.raises(CollisionError):
        store.archive("components/prompts/p.md")
    assert store.read_component("components/prompts/p.md").body == "active"


def test_delete_returns_bytes_erased(store: Store) -> None:
    store.write_component("components/prompts/gone.md", "12345")

    assert store.delete("components/prompts/gone.md") == 5
    with pytest.raises(NotFoundError):
        store.delete("components/prompts/gone.md")


def test_pipeline_path_field_follows_filename(store: Store, make_pipeline) -> None:
    path = make_pipeline("build", ["components/prompts/p.md"], name="Build")

    raw = store.absolute(path).read_text(encoding="utf-8")
    pipeline = store.read_pipeline(path)

    assert "path: build.yaml" in raw
    assert pipeline.name == "Build"
    assert pipeline.components[0].path == "../components/prompts/p.md"
    assert pipeline.components[0].type == "prompts"


def test_pipeline_accepts_singular_kinds_and_keeps_extra(store: Store) -> None:
    (store.root / "pipelines" / "old.yaml").write_text(
        "name: Old\n"
        "description: kept\n"
        "components:\n"
        "  - type: context\n"
        "    path: ../components/contexts/c.md\n"
        "    order: 1\n",
        encoding="utf-8",
    )

    pipeline = store.read_pipeline("pipelines/old.yaml")
    store.write_pipeline(pipeline)

    assert pipeline.components[0].type == "contexts"
    assert store.read_pipeline("pipelines/old.yaml").extra == {"description": "kept"}


def test_invalid_pipeline_yaml(store: Store) -> None:
    (store.root / "pipelines" / "bad.yaml").write_text("name: [oops\n", encoding="utf-8")

    with pytest.raises(MalformedError):
        store.read_pipeline("pipelines/bad.yaml")


def test_write_atomic_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "out" / "file.md"

    written = write_atomic(target, "héllo")

    assert written == len("héllo".encode("utf-8"))
    assert target.read_text(encoding="utf-8") == "héllo"
    assert [p.name for p in target.parent.iterdir()] == ["file.md"]
