"""Reference gesture templates and the store that holds them."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from gesture_dtw.errors import (
    DimensionMismatchError,
    DuplicateTemplateError,
    TemplateTooShortError,
)

logger = logging.getLogger("gesture_dtw.templates")


@dataclass(frozen=True)
class GestureTemplate:
    """A named reference sequence for DTW matching.

    The sequence is copied and made read-only on creation.
    """
    name: str
    sequence: np.ndarray  # shape (N, D), N >= 2

    def __post_init__(self):
        if not self.name:
            raise ValueError("template name must be non-empty")
        seq = np.array(self.sequence, dtype=np.float64)
        if seq.ndim != 2:
            raise ValueError(f"template sequence must be 2-D, got shape {seq.shape}")
        if len(seq) < 2:
            raise TemplateTooShortError(self.name, len(seq))
        seq.setflags(write=False)
        object.__setattr__(self, "sequence", seq)

    @property
    def length(self) -> int:
        return len(self.sequence)

    @property
    def dimensionality(self) -> int:
        return self.sequence.shape[1]

    def to_dict(self) -> dict:
        return {"name": self.name, "frames": self.sequence.tolist()}

    @classmethod
    def from_dict(cls, data: dict) -> GestureTemplate:
        return cls(name=data["name"], sequence=np.asarray(data["frames"], dtype=np.float64))


class TemplateStore:
    """Ordered name → template mapping.

    Iteration follows insertion order, which is also the tie-break order
    used during matching.
    """

    def __init__(self, dimensionality: Optional[int] = None):
        self._dim = dimensionality
        self._templates: dict[str, GestureTemplate] = {}

    @property
    def dimensionality(self) -> Optional[int]:
        """Fixed D, or None until the first template is added."""
        return self._dim

    def add(self, template: GestureTemplate, overwrite: bool = False):
        """Insert a template.

        Raises:
            DimensionMismatchError: if the template's D differs from the store's.
            DuplicateTemplateError: if the name exists and overwrite is False.
        """
        if self._dim is not None and template.dimensionality != self._dim:
            raise DimensionMismatchError(
                self._dim, template.dimensionality, context=f"template {template.name!r}"
            )
        if template.name in self._templates:
            if not overwrite:
                raise DuplicateTemplateError(template.name)
            # Replacing keeps the original position in iteration order
            logger.info("Replacing template %s", template.name)

        self._templates[template.name] = template
        if self._dim is None:
            self._dim = template.dimensionality

    def get(self, name: str) -> Optional[GestureTemplate]:
        return self._templates.get(name)

    def remove(self, name: str) -> bool:
        """Delete a template. Returns False if it did not exist."""
        return self._templates.pop(name, None) is not None

    def clear(self):
        self._templates.clear()

    @property
    def names(self) -> list[str]:
        return list(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[GestureTemplate]:
        return iter(list(self._templates.values()))

    # ── persistence ─────────────────────────────────────────

    def save(self, path: str | Path):
        """Save templates to JSON, or compact npz if the suffix is .npz."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix == ".npz":
            arrays = {f"t{i}": t.sequence for i, t in enumerate(self)}
            np.savez_compressed(path, names=np.array(self.names, dtype=str), **arrays)
            return

        data = {
            "version": 1,
            "dimensionality": self._dim,
            "templates": [t.to_dict() for t in self],
        }
        with open(path, "w") as f:
            json.dump(data, f)

    @classmethod
    def load(cls, path: str | Path) -> TemplateStore:
        """Load a store saved by :meth:`save`."""
        path = Path(path)

        if path.suffix == ".npz":
            data = np.load(path, allow_pickle=False)
            names = [str(n) for n in data["names"]]
            templates = [
                GestureTemplate(name=name, sequence=data[f"t{i}"])
                for i, name in enumerate(names)
            ]
            store = cls()
        else:
            with open(path) as f:
                data = json.load(f)
            templates = [GestureTemplate.from_dict(t) for t in data.get("templates", [])]
            store = cls(dimensionality=data.get("dimensionality"))

        for template in templates:
            store.add(template)

        logger.debug("Loaded %d templates from %s", len(store), path)
        return store
