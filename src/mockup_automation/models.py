"""Value objects passed between the pipeline stages."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from .errors import ResolutionError


class ColorKey(str, Enum):
    """Base notebook colours. Each names a template image."""

    BLUE = "blue"
    GREY = "grey"
    PINK = "pink"
    PURPLE = "purple"

    @classmethod
    def parse(cls, value: str) -> "ColorKey":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(c.value for c in cls)
            raise ResolutionError(f"Unknown color '{value}'. Available colors: {choices}")


@dataclass(frozen=True)
class GenerationRequest:
    """Resolved inputs of one run."""

    base_color: ColorKey
    design_description: str
    design_image: Optional[Path]
    output_dir: Path


class UploadSet:
    """
    Ordered attachment list: base, optional design, reference.

    The web app infers each image's role from its position, so the order
    given here is the order uploaded.
    """

    def __init__(self, base: Path, reference: Path, design: Optional[Path] = None):
        paths = [Path(base)]
        if design is not None:
            paths.append(Path(design))
        paths.append(Path(reference))

        missing = [str(p) for p in paths if not p.is_file()]
        if missing:
            raise ResolutionError(f"Upload file(s) not found: {', '.join(missing)}")

        self._paths: Tuple[Path, ...] = tuple(paths)

    @classmethod
    def from_paths(cls, paths: Sequence[Path]) -> "UploadSet":
        if len(paths) == 2:
            return cls(base=paths[0], reference=paths[1])
        if len(paths) == 3:
            return cls(base=paths[0], design=paths[1], reference=paths[2])
        raise ValueError(f"An upload set holds 2 or 3 files, got {len(paths)}")

    @property
    def paths(self) -> Tuple[Path, ...]:
        return self._paths

    @property
    def has_design(self) -> bool:
        return len(self._paths) == 3

    def as_strings(self):
        return [str(p) for p in self._paths]

    def __len__(self):
        return len(self._paths)

    def __iter__(self):
        return iter(self._paths)

    def __repr__(self):
        names = ", ".join(p.name for p in self._paths)
        return f"UploadSet({names})"


@dataclass(frozen=True)
class GenerationResult:
    """The persisted mockup and where it was found in the conversation."""

    output_path: Path
    source_locator: Dict[str, Any] = field(default_factory=dict)
