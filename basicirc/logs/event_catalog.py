"""Event template catalog loaded from ``event_templates.json``."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}
_JSON_FILENAME = "event_templates.json"


def _flatten(raw: Mapping[str, Any]) -> dict[tuple[str, str], str]:
    templates: dict[tuple[str, str], str] = {}
    for domain, actions in raw.items():
        if not isinstance(domain, str) or not isinstance(actions, Mapping):
            continue
        for action, template in actions.items():
            if isinstance(action, str) and isinstance(template, str):
                templates[(domain, action)] = template
    return templates


def load_event_templates(path: Path | None = None) -> dict[tuple[str, str], str]:
    """Read ``{domain: {action: template}}`` from the JSON catalog.

    A missing or unreadable catalog never breaks logging: the returned
    mapping then only holds an ``app/load_error`` entry and every other event
    falls back to its derived name.
    """
    path = path or Path(__file__).with_name(_JSON_FILENAME)
    try:
        with path.open("r", encoding="utf-8") as f:
            raw: Any = json.load(f)
    except FileNotFoundError:
        return {("app", "load_error"): "Event templates file missing"}
    except (OSError, ValueError) as e:
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}
    if not isinstance(raw, Mapping):
        return {("app", "load_error"): "Event templates file is not an object"}
    return _flatten(raw)


def reload_event_templates(path: Path | None = None) -> None:
    global EVENT_TEMPLATES  # noqa: PLW0603
    EVENT_TEMPLATES = load_event_templates(path)


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "load_event_templates", "reload_event_templates"]
