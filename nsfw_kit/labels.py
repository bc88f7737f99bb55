from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

PathLike = Union[str, Path]

# Class order of the NudeNet 320n export.
LABELS = (
    "FEMALE_GENITALIA_COVERED",
    "FACE_FEMALE",
    "BUTTOCKS_EXPOSED",
    "FEMALE_BREAST_EXPOSED",
    "FEMALE_GENITALIA_EXPOSED",
    "MALE_BREAST_EXPOSED",
    "ANUS_EXPOSED",
    "FEET_EXPOSED",
    "BELLY_COVERED",
    "FEET_COVERED",
    "ARMPITS_COVERED",
    "ARMPITS_EXPOSED",
    "FACE_MALE",
    "BELLY_EXPOSED",
    "MALE_GENITALIA_EXPOSED",
    "ANUS_COVERED",
    "FEMALE_BREAST_COVERED",
    "BUTTOCKS_COVERED",
)

NSFW_LABELS = frozenset(
    {
        "FEMALE_GENITALIA_EXPOSED",
        "BUTTOCKS_EXPOSED",
        "FEMALE_BREAST_EXPOSED",
        "MALE_GENITALIA_EXPOSED",
        "ANUS_EXPOSED",
        "ARMPITS_EXPOSED",
        "BELLY_EXPOSED",
        "MALE_BREAST_EXPOSED",
    }
)


def label_name(label: int, labels: Sequence[str] = LABELS) -> Optional[str]:
    if 0 <= label < len(labels):
        return labels[label]
    return None


_NAME_ENTRY = re.compile(r"""^\s+(\d+)\s*:\s*['"]?(.*?)['"]?\s*$""")


def load_labels(metadata_path: PathLike) -> Tuple[str, ...]:
    """
    Read the label table from the `names:` block of a YOLO export's `metadata.yaml`.

        names:
          0: FEMALE_GENITALIA_COVERED
          1: FACE_FEMALE
          ...

    Ids must run contiguously from 0. Other top-level keys are ignored.
    """

    lines = Path(metadata_path).read_text(encoding="utf-8").splitlines()
    try:
        start = next(i for i, line in enumerate(lines) if line.rstrip() == "names:")
    except StopIteration:
        raise ValueError(f"No 'names:' block in {metadata_path}") from None

    names: Dict[int, str] = {}
    for line in lines[start + 1 :]:
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        match = _NAME_ENTRY.match(line)
        if match is None:
            break
        names[int(match.group(1))] = match.group(2)

    if not names:
        raise ValueError(f"'names:' block in {metadata_path} is empty")
    if sorted(names) != list(range(len(names))):
        raise ValueError(f"class ids must be contiguous from 0, got {sorted(names)}")
    return tuple(names[i] for i in range(len(names)))
