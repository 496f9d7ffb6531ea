"""Cap inventory records and their expansion into assignable slots."""

from __future__ import annotations

import json
import operator
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple

from cap_mosaic.color_utils import Color
from cap_mosaic.errors import InvalidInput


@dataclass(frozen=True)
class Tile:
    """One kind of cap: its colour and how many of them are on hand.

    ``image`` is an opaque reference (path, data URL, ...) passed through
    to the placement grid for whoever renders it.
    """

    id: str
    color: Color
    quantity: int
    name: str = ""
    image: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            msg = "Tile id must be a non-empty string"
            raise InvalidInput(msg)
        if not isinstance(self.color, Color):
            msg = f"Tile {self.id!r}: color must be a Color, got {self.color!r}"
            raise InvalidInput(msg)
        if isinstance(self.quantity, bool):
            msg = f"Tile {self.id!r}: quantity must be an integer"
            raise InvalidInput(msg)
        try:
            quantity = operator.index(self.quantity)
        except TypeError:
            msg = f"Tile {self.id!r}: quantity must be an integer, got {self.quantity!r}"
            raise InvalidInput(msg) from None
        if quantity < 0:
            msg = f"Tile {self.id!r}: quantity must be >= 0, got {quantity}"
            raise InvalidInput(msg)
        object.__setattr__(self, "quantity", int(quantity))


class Slot(NamedTuple):
    """A single cap out of a tile's quantity."""

    index: int
    tile_index: int
    tile_id: str


def total_quantity(tiles: Sequence[Tile]) -> int:
    return sum(t.quantity for t in tiles)


def check_unique_ids(tiles: Sequence[Tile]) -> None:
    seen: set[str] = set()
    for tile in tiles:
        if tile.id in seen:
            msg = f"Duplicate tile id {tile.id!r}"
            raise InvalidInput(msg)
        seen.add(tile.id)


def expand_slots(tiles: Sequence[Tile]) -> list[Slot]:
    """Flatten *tiles* into one slot per cap, in inventory order."""
    check_unique_ids(tiles)
    slots: list[Slot] = []
    for tile_index, tile in enumerate(tiles):
        for _ in range(tile.quantity):
            slots.append(Slot(len(slots), tile_index, tile.id))
    return slots


def _parse_color(value: Any, tile_id: str) -> Color:
    if isinstance(value, str):
        return Color.from_hex(value)
    if isinstance(value, dict):
        return Color(value.get("r"), value.get("g"), value.get("b"))
    if isinstance(value, (list, tuple)):
        return Color.from_iterable(value)
    msg = f"Tile {tile_id!r}: unsupported colour {value!r}"
    raise InvalidInput(msg)


def tile_from_dict(entry: dict[str, Any]) -> Tile:
    """Build a :class:`Tile` from a JSON-style mapping."""
    if not isinstance(entry, dict):
        msg = f"Inventory entry must be an object, got {entry!r}"
        raise InvalidInput(msg)
    missing = [key for key in ("id", "color", "quantity") if key not in entry]
    if missing:
        msg = f"Inventory entry {entry!r} is missing {', '.join(missing)}"
        raise InvalidInput(msg)
    tile_id = str(entry["id"])
    return Tile(
        id=tile_id,
        color=_parse_color(entry["color"], tile_id),
        quantity=entry["quantity"],
        name=str(entry.get("name", "")),
        image=entry.get("image") or entry.get("imageData"),
    )


def load_inventory(path: str | Path) -> list[Tile]:
    """Read a JSON list of ``{id, name?, color, quantity, image?}`` entries.

    ``color`` may be ``"#RRGGBB"``, ``[r, g, b]`` or ``{"r":, "g":, "b":}``.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read inventory {path}: {exc}"
        raise InvalidInput(msg) from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"{path}: not valid JSON ({exc})"
        raise InvalidInput(msg) from exc
    if isinstance(data, dict) and "beercaps" in data:
        data = data["beercaps"]
    if not isinstance(data, list):
        msg = f"{path}: expected a list of inventory entries"
        raise InvalidInput(msg)
    tiles = [tile_from_dict(entry) for entry in data]
    check_unique_ids(tiles)
    return tiles
