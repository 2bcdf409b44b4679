from __future__ import annotations

from typing import Optional, Union
import math
import re
from datetime import datetime, timezone

import pandas as pd

Number = Union[int, float]

_ABBREVIATIONS = {"nin", "bvn", "lga", "id", "api", "sms", "gps", "pdf", "qr"}
_PREPOSITIONS = {"of", "in", "on", "at", "to", "for", "with", "by", "from", "and", "or", "the", "a", "an"}
_LOCATION_ABBREVIATIONS = {"lga", "fc", "fct"}
_CROP_NAMES = {
    "maize": "Maize",
    "rice": "Rice",
    "beans": "Beans",
    "cassava": "Cassava",
    "yam": "Yam",
    "groundnut": "Groundnut",
    "soybean": "Soybean",
    "cowpea": "Cowpea",
    "millet": "Millet",
    "sorghum": "Sorghum",
}


def is_valid_number(v) -> bool:
    """Check if value is a real number (not None/NaN/bool/str)."""
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    try:
        return math.isfinite(float(v))
    except (OverflowError, ValueError):
        # ints too large for a float
        return False


def to_aware_utc(v: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """Convert input to an aware UTC datetime; None if missing or unparseable."""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.astimezone(timezone.utc) if v.tzinfo else v.replace(tzinfo=timezone.utc)
    ts = pd.to_datetime(v, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def flatten_coords(coords):
    """Flatten nested GeoJSON coordinates to a list of [lon, lat] pairs."""
    if not isinstance(coords, (list, tuple)):
        return []
    if len(coords) == 2 and all(isinstance(v, (int, float)) for v in coords):
        return [coords]
    out = []
    for c in coords:
        out.extend(flatten_coords(c))
    return out


def to_title_case(text: Optional[str]) -> str:
    """Title-case a phrase, keeping known abbreviations upper and short prepositions lower."""
    if not text:
        return ""
    words = []
    for i, word in enumerate(text.lower().split(" ")):
        if word in _ABBREVIATIONS:
            words.append(word.upper())
        elif word in _PREPOSITIONS and i > 0:
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:])
    return " ".join(words)


def format_full_name(
    first_name: Optional[str],
    middle_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> str:
    parts = [to_title_case(p) for p in (first_name, middle_name, last_name) if p]
    return " ".join(p for p in parts if p)


def format_location(location: Optional[str]) -> str:
    if not location:
        return ""
    words = []
    for word in re.split(r"[\s-]", location.lower()):
        if word in _LOCATION_ABBREVIATIONS:
            words.append(word.upper())
        else:
            words.append(word[:1].upper() + word[1:])
    return " ".join(words)


def format_crop_name(crop: Optional[str]) -> str:
    if not crop:
        return ""
    return _CROP_NAMES.get(crop.lower(), to_title_case(crop))


def format_number(v: Optional[Number]) -> Optional[str]:
    """Render 2.5 as "2.5", 3.0 as "3" and 12345678 as "12345678"; None for missing values."""
    if v is None or not is_valid_number(v):
        return None
    text = f"{v:.6f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_date(v: Optional[Union[str, datetime]]) -> Optional[str]:
    ts = to_aware_utc(v)
    if ts is None:
        return None
    return ts.strftime("%d/%m/%Y")
