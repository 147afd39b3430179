"""Utility helpers for rendering packaging summaries and attention items."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

DEFAULT_MAX_LIST_ITEMS = 3
DEFAULT_MAX_ATTENTION_ITEMS = 5


def truncate_list(items: Iterable[Any], max_items: int = DEFAULT_MAX_LIST_ITEMS) -> str:
    """Return a comma-separated string capped at *max_items* with a suffix when truncated."""
    if not items:
        return ""

    materialized = [str(item) for item in items if item is not None and str(item).strip()]
    if not materialized:
        return ""

    if len(materialized) <= max_items:
        return ", ".join(materialized)

    visible = materialized[:max_items]
    remaining = len(materialized) - max_items
    return f"{', '.join(visible)} (+{remaining} more)"


def format_duration(seconds: Optional[float]) -> str:
    if seconds is None:
        return "N/A"
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    return f"{seconds:.2f} s"


def format_attention_items(attention_items: List[str], max_items: int = DEFAULT_MAX_ATTENTION_ITEMS) -> List[str]:
    """Limit attention lines to a manageable number while preserving order."""
    if not attention_items:
        return []

    if len(attention_items) <= max_items:
        return attention_items

    trimmed = attention_items[:max_items]
    trimmed.append(f"… (+{len(attention_items) - max_items} more)")
    return trimmed


def attention_items(snapshot: Dict[str, Any]) -> List[str]:
    """Lines worth a look after a run: skipped overlays and refused copies."""
    items = []
    for task in snapshot.get("tasks", []):
        if task.get("metadata", {}).get("skipped_overlay"):
            items.append(f"Overlay [{task.get('owner_id')}] was skipped")
        elif task.get("skipped"):
            items.append(f"{task['skipped']} file(s) of [{task.get('owner_id') or task.get('task')}] not copied")
    return items


def render_condensed_summary(snapshot: Dict[str, Any]) -> str:
    """Render a compact multi-line summary of a packaging report dump."""
    if snapshot.get("skipped"):
        return f"⏭️ PACKAGING SKIPPED: {snapshot.get('project', 'unknown')}"

    owners = snapshot.get("owners", {})
    lines = [
        f"📦 WEBAPP ASSEMBLED: {snapshot.get('project', 'unknown')}",
        f"📂 Directory: {snapshot.get('webapp_directory')}",
        f"🧩 Overlays: {truncate_list(snapshot.get('overlays', []))}",
        f"📄 Files: {snapshot.get('files', 0)} from {len([o for o in owners.values() if o])} owner(s)",
        f"⏱️ Duration: {format_duration(snapshot.get('duration'))}"
        + (" (incremental)" if snapshot.get("cache_used") else ""),
    ]
    if snapshot.get("archive"):
        lines.append(f"🗜️ Archive: {snapshot['archive']}")

    for item in format_attention_items(attention_items(snapshot)):
        lines.append(f"⚠️ {item}")

    return "\n".join(lines)
