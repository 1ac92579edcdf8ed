"""Loaders for the JSON files that describe the calculator and report pages.

``calculator.json`` holds three sections: ``defaults`` (initial form state
keyed by model field), ``choices`` (select options) and ``ui`` (labels and
flash messages).
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict

CONFIG_DIR = Path(__file__).parent


def load_config(config_name: str) -> Dict[str, Any]:
    """Read ``<config_name>.json`` from this directory.

    Raises:
        FileNotFoundError: If there is no such page configuration
        json.JSONDecodeError: If the file is not valid JSON
    """
    path = CONFIG_DIR / f"{config_name}.json"
    return json.loads(path.read_text(encoding='utf-8'))


def get_calculator_config() -> Dict[str, Any]:
    return load_config('calculator')


def get_default_form_values() -> Dict[str, Any]:
    """Initial calculator form, keyed by model field name.

    Date fields (``*_date``) are stored as ISO strings in the JSON file and
    returned as :class:`datetime.date`; empty strings mean no date.

    Example:
        >>> get_default_form_values()['season_start_date']
        datetime.date(2025, 9, 14)
    """
    values = dict(get_calculator_config()['defaults'])
    for name, value in values.items():
        if name.endswith('_date'):
            values[name] = date.fromisoformat(value) if value else None
    return values


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Look up a nested entry such as ``('ui', 'messages', 'no_models')``.

    Missing files and missing keys both give ``default``, so pages can fall
    back to a built-in message.
    """
    try:
        node: Any = load_config(config_name)
    except FileNotFoundError:
        return default
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node
