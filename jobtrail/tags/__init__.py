"""Scoped log tags and the structured-tag-capable sink."""

from jobtrail.tags.context import TagContext, merge_tag_context, tag_context
from jobtrail.tags.logger import (
    SupportsScopedTags,
    SupportsTagQuery,
    TaggedLogger,
    is_tagged_logger,
    parse_level,
)

__all__ = [
    "SupportsScopedTags",
    "SupportsTagQuery",
    "TagContext",
    "TaggedLogger",
    "is_tagged_logger",
    "merge_tag_context",
    "parse_level",
    "tag_context",
]
