from __future__ import annotations

from typing import Any


def _check_item(item: Any, name: str) -> None:
    if item is None:
        raise ValueError(f"Expected an item for `{name}`. Got None.")


def _check_config(value: Any, name: str) -> None:
    if value is None:
        raise ValueError(f"`{name}` must be supplied. Got None.")
