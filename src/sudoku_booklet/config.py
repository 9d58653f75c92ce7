"""Run configuration for booklet generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


class GivenMode(str, Enum):
    """Which styled subset of the answers grid appears in the constraint sections."""

    BOLD = "bold"
    PLAIN = "plain"

    @classmethod
    def from_any(cls, value: Optional[str]) -> "GivenMode":
        if value is None:
            return cls.BOLD
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ValueError(
                f"Unsupported given_mode '{value}'. Expected one of {[v.value for v in cls]}"
            ) from exc


class BatchPolicy(str, Enum):
    """What a batch run does when it reaches a row without a name."""

    SKIP = "skip"
    STOP = "stop"

    @classmethod
    def from_any(cls, value: Optional[str]) -> "BatchPolicy":
        if value is None:
            return cls.SKIP
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ValueError(
                f"Unsupported batch_policy '{value}'. Expected one of {[v.value for v in cls]}"
            ) from exc


@dataclass(slots=True)
class BookletConfig:
    """Everything a single or batch run needs besides the workbook itself."""

    title: str = "Sudoku"
    images_sheet: Optional[str] = None
    row: int = 1
    column_offset: int = 0
    given_mode: GivenMode = GivenMode.BOLD
    may_contain: bool = False
    image_width: int = 100
    image_height: int = 100
    margin_top: int = 36
    margin_bottom: int = 18
    fetch_timeout: float = 30.0
    batch: bool = False
    start_row: int = 2
    name_column: int = 1
    batch_policy: BatchPolicy = BatchPolicy.SKIP
    template_sheet: Optional[str] = None
    template_origin: Tuple[int, int] = (1, 1)
    marker: str = "X"
    output_dir: Path = field(default_factory=lambda: Path("out"))
    workbook_out: Optional[Path] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "BookletConfig":
        data = dict(payload)
        config = cls()

        for key in ("title", "marker"):
            if key in data:
                setattr(config, key, str(data.pop(key)))
        for key in ("images_sheet", "template_sheet"):
            if key in data:
                value = data.pop(key)
                setattr(config, key, str(value) if value else None)
        for key in ("row", "column_offset", "image_width", "image_height",
                    "margin_top", "margin_bottom", "start_row", "name_column"):
            if key in data:
                setattr(config, key, int(data.pop(key)))
        for key in ("may_contain", "batch"):
            if key in data:
                setattr(config, key, bool(data.pop(key)))

        if "fetch_timeout" in data:
            config.fetch_timeout = float(data.pop("fetch_timeout"))
        if "given_mode" in data:
            config.given_mode = GivenMode.from_any(data.pop("given_mode"))
        if "batch_policy" in data:
            config.batch_policy = BatchPolicy.from_any(data.pop("batch_policy"))
        if "template_origin" in data:
            origin_row, origin_col = data.pop("template_origin")
            config.template_origin = (int(origin_row), int(origin_col))
        if "output_dir" in data:
            config.output_dir = Path(data.pop("output_dir")).expanduser()
        if "workbook_out" in data:
            value = data.pop("workbook_out")
            config.workbook_out = Path(value).expanduser() if value else None

        if data:
            raise ValueError(f"Unknown configuration keys: {sorted(data)}")

        if config.row < 1 or config.start_row < 1 or config.name_column < 1:
            raise ValueError("Row and column numbers are 1-based and must be positive")
        if config.column_offset < 0:
            raise ValueError(f"column_offset must be >= 0, got {config.column_offset}")

        return config

    @property
    def image_size(self) -> Tuple[int, int]:
        return self.image_width, self.image_height
