from __future__ import annotations

import os
from pathlib import Path
from typing import Union


def resolve_link(initial_path: Union[str, os.PathLike], link_value: str) -> Path:
    """Replace the file name of `initial_path` with `link_value`.

    Links are always relative to the directory of the first segment of the
    archive, never to the segment that holds the link.
    """
    parent = Path(initial_path).parent
    if parent == Path("."):
        return Path(link_value)
    return parent / link_value
