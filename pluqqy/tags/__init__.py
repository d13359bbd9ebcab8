"""Tag names, the persistent registry and usage counting."""

from .names import PALETTE, normalize_tag_list, normalize_tag_name, tag_color
from .registry import TagRegistry, TagReloadReport
from .usage import TagUsage, all_tag_usage, count_tag_usage

__all__ = [
    "PALETTE",
    "TagRegistry",
    "TagReloadReport",
    "TagUsage",
    "all_tag_usage",
    "count_tag_usage",
    "normalize_tag_list",
    "normalize_tag_name",
    "tag_color",
]
