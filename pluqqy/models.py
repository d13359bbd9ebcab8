"""Data models for components, pipelines, tags and settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Literal

from .errors import MalformedError

# Directory names double as the canonical kind identifiers
ComponentKind = Literal["contexts", "prompts", "rules"]

COMPONENT_KINDS: tuple[str, ...] = ("contexts", "prompts", "rules")

# Accepted spellings -> canonical kind. Older pipeline files use the singular forms.
KIND_ALIASES = {
    "context": "contexts",
    "contexts": "contexts",
    "prompt": "prompts",
    "prompts": "prompts",
    "rule": "rules",
    "rules": "rules",
}

# Singular labels used by search results and the CLI
KIND_LABELS = {
    "contexts": "context",
    "prompts": "prompt",
    "rules": "rules",
}


def normalize_kind(value: str) -> str:
    """Map a kind spelling to its canonical plural form.

    Raises:
        MalformedError: If the value is not a known component kind.
    """
    kind = KIND_ALIASES.get(str(value).strip().lower())
    if kind is None:
        raise MalformedError(f"unknown component kind '{value}': must be one of context, prompt, rules")
    return kind


@dataclass
class Component:
    """A single reusable prompt fragment."""

    path: str  # repository-relative, e.g. components/prompts/debug.md
    kind: str  # contexts, prompts or rules
    name: str  # display name
    body: str  # markdown after frontmatter
    tags: list[str] = field(default_factory=list)
    archived: bool = False
    extra: dict[str, Any] = field(default_factory=dict)  # unknown frontmatter keys
    modified: float | None = field(default=None, compare=False)  # mtime

    @property
    def slug(self) -> str:
        return PurePosixPath(self.path).stem

    @property
    def filename(self) -> str:
        return PurePosixPath(self.path).name


@dataclass
class ComponentRef:
    """An ordered slot in a pipeline pointing at a component file."""

    type: str
    path: str  # relative to the pipeline file, e.g. ../components/rules/a.md
    order: int

    @property
    def target(self) -> str:
        """Repository-relative path of the referenced component."""
        return ref_target(self.path)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path, "order": self.order}


def ref_target(ref_path: str) -> str:
    """Resolve a pipeline-relative component path to a repository-relative one."""
    path = str(ref_path).replace("\\", "/").strip()
    while path.startswith("../"):
        path = path[3:]
    while path.startswith("./"):
        path = path[2:]
    return str(PurePosixPath(path)) if path else ""


def ref_path_for(component_path: str) -> str:
    """Pipeline-relative path for a repository-relative component path."""
    return "../" + ref_target(component_path)


@dataclass
class Pipeline:
    """A named, ordered list of component references."""

    name: str
    path: str  # repository-relative, e.g. pipelines/debug.yaml
    components: list[ComponentRef] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    output_path: str = ""
    archived: bool = False
    extra: dict[str, Any] = field(default_factory=dict)
    modified: float | None = field(default=None, compare=False)

    @property
    def slug(self) -> str:
        return PurePosixPath(self.path).stem

    @property
    def filename(self) -> str:
        return PurePosixPath(self.path).name

    def sorted_components(self) -> list[ComponentRef]:
        """References in rendering order (stable for equal order values)."""
        return sorted(self.components, key=lambda ref: ref.order)

    def references(self, component_path: str) -> bool:
        target = ref_target(component_path)
        return any(ref.target == target for ref in self.components)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk YAML mapping."""
        data: dict[str, Any] = dict(self.extra)
        data["name"] = self.name
        # The filename is authoritative; keep the informational field in step with it.
        data["path"] = self.filename
        data["tags"] = list(self.tags)
        if self.output_path:
            data["output_path"] = self.output_path
        data["components"] = [ref.to_dict() for ref in self.components]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str, archived: bool = False) -> "Pipeline":
        """Build from a parsed YAML mapping.

        Raises:
            MalformedError: If the mapping has the wrong shape.
        """
        if not isinstance(data, dict):
            raise MalformedError(f"pipeline '{path}' is not a YAML mapping", path)

        refs: list[ComponentRef] = []
        raw_components = data.get("components") or []
        if not isinstance(raw_components, list):
            raise MalformedError(f"pipeline '{path}': components must be a list", path)
        for index, raw in enumerate(raw_components):
            if not isinstance(raw, dict) or "path" not in raw:
                raise MalformedError(f"pipeline '{path}': component #{index + 1} has no path", path)
            try:
                order = int(raw.get("order", index + 1))
            except (TypeError, ValueError) as e:
                raise MalformedError(f"pipeline '{path}': invalid order {raw.get('order')!r}", path) from e
            kind = raw.get("type") or _kind_from_ref(str(raw["path"]))
            refs.append(ComponentRef(type=normalize_kind(kind), path=str(raw["path"]), order=order))

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]

        known = {"name", "path", "tags", "output_path", "components"}
        return cls(
            name=str(data.get("name") or PurePosixPath(path).stem),
            path=path,
            components=refs,
            tags=[str(t) for t in tags],
            output_path=str(data.get("output_path") or ""),
            archived=archived,
            extra={k: v for k, v in data.items() if k not in known},
        )


def _kind_from_ref(ref_path: str) -> str:
    parts = PurePosixPath(ref_target(ref_path)).parts
    return parts[-2] if len(parts) >= 2 else ""


@dataclass
class Tag:
    """A registered tag."""

    name: str  # normalised
    display_name: str
    color: str


@dataclass
class Section:
    """One configured output section."""

    kind: str  # contexts, prompts or rules
    heading: str  # markdown heading line, e.g. "## CONTEXTS"


def default_sections() -> list[Section]:
    return [
        Section(kind="contexts", heading="## CONTEXTS"),
        Section(kind="prompts", heading="## PROMPTS"),
        Section(kind="rules", heading="## RULES"),
    ]


@dataclass
class Settings:
    """User-configurable output layout."""

    export_path: str = "./"
    default_filename: str = "PLUQQY.md"
    show_headings: bool = True
    sections: list[Section] = field(default_factory=default_sections)
    extra: dict[str, Any] = field(default_factory=dict)  # ui/editor blocks, preserved on save
