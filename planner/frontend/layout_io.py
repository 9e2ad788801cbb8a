"""Share links and saved files for building layouts.

A layout travels as a *locator*: an opaque ASCII token that usually sits
after the ``#`` of a share URL. Two locator formats exist and both must stay
loadable:

  * **compact-v2** (written by ``encode_layout``): an array of short-key
    records ``{"t": code, "x": .., "y": .., "n": name, "w": .., "h": ..}``
    serialized as compact JSON, zlib-compressed, base64-encoded. ``n`` is
    only written for a non-blank name and ``w``/``h`` only for a resizable
    building whose extent differs from its footprint.
  * **legacy-v1** (links from older versions): base64 of the
    percent-encoded JSON array of full-key records (``type``, ``x``, ``y``,
    ``playerName``, ``width``, ``height``).

``decode_layout`` tries the formats in ``FORMATS`` order (newest first). A
format fails as a whole if the base64, the decompression or the JSON is
broken, or if the payload is not an array; the next one is then tried.
Within an accepted payload, records with an unknown type code or bad fields
are skipped with a warning. Loaded buildings get fresh ids: ids are
session-local and never persisted.

Files: the PNG export embeds the locator in a tEXt chunk (key:
``planner_layout``) so a saved image is both shareable and re-loadable.
``load_layout`` dispatches by extension (``.png``, ``.json``, ``.txt``).

Used by ``app.py`` for its Share/Load/Save actions.
"""

from __future__ import annotations

import base64
import json
import logging
import urllib.parse
import zlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from ..engine.types import Building, BuildingType, LayoutLoadError

logger = logging.getLogger(__name__)

METADATA_KEY = "planner_layout"

# encodeURIComponent leaves these unescaped on top of [A-Za-z0-9_.~-].
_URI_COMPONENT_SAFE = "!*'()"


@dataclass(frozen=True)
class LayoutFormat:
    """One decodable locator format.

    ``unpack`` turns a locator into the raw record list and raises
    ValueError or zlib.error when the locator is not in this format.
    ``parse_record`` turns one raw record into a ``Building`` and raises
    ValueError, KeyError or TypeError for a bad record.
    """

    name: str
    unpack: Callable[[str], list]
    parse_record: Callable[[Any], Building]


# -- base64 / zlib helpers --


def _b64decode(token: str) -> bytes:
    # Accept urlsafe alphabet and missing padding; links get mangled.
    token = token.replace("-", "+").replace("_", "/").rstrip("=")
    token += "=" * (-len(token) % 4)
    return base64.b64decode(token, validate=True)


def _inflate(data: bytes) -> bytes:
    d = zlib.decompressobj()
    out = d.decompress(data)
    if not d.eof or d.unused_data:
        raise zlib.error("truncated or trailing zlib data")
    return out


def _as_record_list(payload: Any) -> list:
    if not isinstance(payload, list):
        raise ValueError(
            f"layout payload must be an array, got {type(payload).__name__}"
        )
    return payload


def _int_field(d: dict, key: str) -> int:
    value = d[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


# -- compact-v2 --


def _compact_record(b: Building) -> dict:
    r: dict = {"t": b.spec.short_code, "x": b.x, "y": b.y}
    if b.name.strip():
        r["n"] = b.name
    fp = b.spec.footprint
    if b.spec.resizable and (b.width != fp or b.height != fp):
        r["w"] = b.width
        r["h"] = b.height
    return r


def _unpack_compact(token: str) -> list:
    raw = _inflate(_b64decode(token))
    return _as_record_list(json.loads(raw.decode("utf-8")))


def _parse_compact(r: Any) -> Building:
    building_type = BuildingType.from_code(r["t"])
    if building_type is None:
        raise ValueError(f"unknown building code {r['t']!r}")
    name = r.get("n") or ""
    if not isinstance(name, str):
        raise ValueError(f"name must be a string, got {name!r}")
    width = height = None
    if "w" in r or "h" in r:
        fp = building_type.spec.footprint
        width = r.get("w", fp)
        height = r.get("h", fp)
        if not all(
            isinstance(v, int) and not isinstance(v, bool) and v >= 1
            for v in (width, height)
        ):
            raise ValueError(f"bad extent {width!r}x{height!r}")
    return Building.create(
        building_type,
        _int_field(r, "x"),
        _int_field(r, "y"),
        name=name,
        width=width,
        height=height,
    )


# -- legacy-v1 --


def _unpack_legacy(token: str) -> list:
    text = _b64decode(token).decode("ascii")
    return _as_record_list(json.loads(urllib.parse.unquote(text)))


COMPACT_V2 = LayoutFormat("compact-v2", _unpack_compact, _parse_compact)
LEGACY_V1 = LayoutFormat("legacy-v1", _unpack_legacy, Building.from_dict)

FORMATS: list[LayoutFormat] = [COMPACT_V2, LEGACY_V1]


def register_format(fmt: LayoutFormat, index: int = 0) -> None:
    """Add a decodable format; index 0 makes it the first one tried."""
    FORMATS.insert(index, fmt)


# -- encode --


def encode_layout(buildings: Iterable[Building]) -> str:
    records = [_compact_record(b) for b in buildings]
    raw = json.dumps(records, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(zlib.compress(raw.encode("utf-8"))).decode("ascii")


def encode_legacy(buildings: Iterable[Building]) -> str:
    records = [b.to_dict() for b in buildings]
    raw = json.dumps(records, separators=(",", ":"), ensure_ascii=False)
    quoted = urllib.parse.quote(raw, safe=_URI_COMPONENT_SAFE)
    return base64.b64encode(quoted.encode("ascii")).decode("ascii")


def share_url(buildings: Iterable[Building], base_url: str = "") -> str:
    """``base_url#<locator>``; any fragment already on base_url is dropped."""
    base = base_url.split("#", 1)[0]
    return f"{base}#{encode_layout(buildings)}"


# -- decode --


def extract_locator(text: str) -> str:
    """Strip a share URL (or a bare leading '#') down to the locator."""
    text = text.strip()
    _, sep, fragment = text.partition("#")
    if sep:
        text = fragment
    return urllib.parse.unquote(text.strip())


def _parse_records(fmt: LayoutFormat, records: list) -> list[Building]:
    buildings: list[Building] = []
    for i, record in enumerate(records):
        try:
            buildings.append(fmt.parse_record(record))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping %s record %d (%r): %s", fmt.name, i, record, e
            )
    return buildings


def decode_layout(
    locator: str, formats: Iterable[LayoutFormat] | None = None
) -> list[Building]:
    """Decode a locator (or share URL) into fresh buildings.

    Raises LayoutLoadError if no format can read it. The caller's registry
    is untouched either way; apply the result with
    ``BuildingRegistry.replace_all``.
    """
    token = extract_locator(locator)
    if not token:
        raise LayoutLoadError("empty layout locator")
    failures: list[str] = []
    for fmt in FORMATS if formats is None else formats:
        try:
            records = fmt.unpack(token)
        except (ValueError, zlib.error) as e:
            logger.warning("Locator is not %s: %s", fmt.name, e)
            failures.append(f"{fmt.name}: {e}")
            continue
        buildings = _parse_records(fmt, records)
        logger.info(
            "Decoded %d building(s) from %s locator", len(buildings), fmt.name
        )
        return buildings
    logger.error("Could not decode layout locator: %s", "; ".join(failures))
    raise LayoutLoadError(
        "Could not load the layout from this link: " + "; ".join(failures)
    )


# -- files --


def save_layout_png(
    img: Image.Image, buildings: Iterable[Building], path: str
) -> None:
    """Save a rendered layout image with the locator as a PNG tEXt chunk."""
    info = PngInfo()
    info.add_text(METADATA_KEY, encode_layout(buildings))
    img.save(path, pnginfo=info)


def load_layout_png(path: str) -> list[Building]:
    """Raises LayoutLoadError if the PNG carries no layout metadata."""
    with Image.open(path) as img:
        text_data = getattr(img, "text", None)
        if not text_data or METADATA_KEY not in text_data:
            raise LayoutLoadError(
                "PNG file does not contain layout metadata "
                f"(missing '{METADATA_KEY}' chunk)"
            )
        locator = text_data[METADATA_KEY]
    return decode_layout(locator)


def load_layout_json(path: str) -> list[Building]:
    """Load a plain JSON array of full-key records."""
    with open(path, encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise LayoutLoadError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(payload, list):
        raise LayoutLoadError(f"{path}: expected a JSON array of buildings")
    return _parse_records(LEGACY_V1, payload)


def save_layout_json(buildings: Iterable[Building], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump([b.to_dict() for b in buildings], f, indent=2)


def load_layout_text(path: str) -> list[Building]:
    """Load a share link or bare locator stored in a text file."""
    with open(path, encoding="utf-8") as f:
        return decode_layout(f.read())


def load_layout(path: str) -> list[Building]:
    """Load a layout from a file, dispatching by extension.

    Supports .png (embedded metadata), .json (full-key records) and .txt
    (share link or locator). Raises LayoutLoadError for anything else.
    """
    lower = path.lower()
    if lower.endswith(".png"):
        return load_layout_png(path)
    elif lower.endswith(".json"):
        return load_layout_json(path)
    elif lower.endswith(".txt"):
        return load_layout_text(path)
    else:
        raise LayoutLoadError(f"Unsupported file extension: {path}")
