from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DIMENSION_RE = re.compile(r"(\d+)\s*x\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class NameMeta:
    side: str = "Unknown"
    colour: str = "Unknown"
    size: str = "Unknown"
    base: str = ""
    type: str = ""
    dimensions: str = ""
    area: int = 0


def parse_name_meta(name: Optional[str]) -> NameMeta:
    """Derive side / colour / size attributes from a Packages product name.

    >>> parse_name_meta("Double Side Tri Colour 10x12 Cover").type
    'Double | Tri'
    """
    name = name or ""
    lower = name.lower()

    base = "Parcel" if "parcel" in lower else "Cover"

    if "non-printed" in lower:
        side, colour, kind = "Non-Printed", "None", "Non-Printed"
    else:
        if "double side" in lower:
            side = "Double"
        elif "single side" in lower:
            side = "Single"
        else:
            side = "Unknown"

        if "tri colour" in lower or "tri color" in lower:
            colour = "Tri"
        elif "double colour" in lower or "double color" in lower:
            colour = "Double"
        elif "single colour" in lower or "single color" in lower:
            colour = "Single"
        else:
            colour = "Unknown"
        kind = f"{side} | {colour}"

    size, dimensions, area = "Unknown", "", 0
    match = DIMENSION_RE.search(name)
    if match:
        width, height = int(match.group(1)), int(match.group(2))
        dimensions = f"{width}x{height}"
        size = dimensions
        area = width * height

    return NameMeta(side=side, colour=colour, size=size, base=base, type=kind, dimensions=dimensions, area=area)
