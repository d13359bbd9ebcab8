from pathlib import Path

import pytest

from pluqqy.errors import MalformedError
from pluqqy.models import Section
from pluqqy.settings import load_settings, save_settings, settings_path


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path)

    assert settings.export_path == "./"
    assert settings.default_filename == "PLUQQY.md"
    assert settings.show_headings is True
    assert [s.kind for s in settings.sections] == ["contexts", "prompts", "rules"]
    assert settings.sections[0].heading == "## CONTEXTS"


def test_partial_file_merges_defaults(tmp_path: Path) -> None:
    settings_path(tmp_path).write_text(
        "output:\n"
        "  default_filename: PROMPT.md\n"
        "  formatting:\n"
        "    show_headings: false\n"
        "    sections:\n"
        "      - type: rules\n"
        "        heading: '# Rules first'\n"
        "      - type: prompt\n"
        "        heading: '# Ask'\n"
        "ui:\n"
        "  theme: dark\n",
        encoding="utf-8",
    )

    settings = load_settings(tmp_path)

    assert settings.export_path == "./"
    assert settings.default_filename == "PROMPT.md"
    assert settings.show_headings is False
    assert settings.sections == [Section("rules", "# Rules first"), Section("prompts", "# Ask")]
    assert settings.extra == {"ui": {"theme": "dark"}}


def test_save_keeps_other_sections(tmp_path: Path) -> None:
    settings_path(tmp_path).write_text("ui:\n  theme: dark\n", encoding="utf-8")
    settings = load_settings(tmp_path)
    settings.export_path = "out/"

    save_settings(tmp_path, settings)
    reloaded = load_settings(tmp_path)

    assert reloaded.export_path == "out/"
    assert reloaded.extra == {"ui": {"theme": "dark"}}


def test_invalid_yaml(tmp_path: Path) -> None:
    settings_path(tmp_path).write_text("output: [broken\n", encoding="utf-8")
    with pytest.raises(MalformedError):
        load_settings(tmp_path)


def test_unknown_section_kind(tmp_path: Path) -> None:
    settings_path(tmp_path).write_text(
        "output:\n  formatting:\n    sections:\n      - type: widgets\n        heading: x\n",
        encoding="utf-8",
    )
    with pytest.raises(MalformedError):
        load_settings(tmp_path)
