"""Shared reporting utilities."""

from .utils import (
    attention_items,
    format_attention_items,
    format_duration,
    render_condensed_summary,
    truncate_list,
)

__all__ = [
    "attention_items",
    "render_condensed_summary",
    "format_attention_items",
    "format_duration",
    "truncate_list",
]
