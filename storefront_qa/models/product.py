"""Product definitions — the configuration matrix exercised by ordering runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConfigurationOption(BaseModel):
    """One selectable UI choice, e.g. a shape or a quantity tier."""

    model_config = ConfigDict(frozen=True)

    name: str
    locator_hint: str = ""


class Dimension(BaseModel):
    name: str
    options: list[ConfigurationOption] = Field(default_factory=list)
    depends_on: Optional[str] = None
    options_by: dict[str, list[ConfigurationOption]] = Field(default_factory=dict)
    optional: bool = False  # omitted from a branch that has no options
    section_title: Optional[str] = None  # heading on the product page, defaults to name

    @property
    def title(self) -> str:
        return self.section_title or self.name

    @model_validator(mode="after")
    def check_dependency(self) -> "Dimension":
        if self.options_by and not self.depends_on:
            raise ValueError(f"Dimension '{self.name}' has options_by but no depends_on")
        return self

    def options_for(self, chosen: dict[str, ConfigurationOption]) -> list[ConfigurationOption]:
        if not self.depends_on:
            return self.options
        parent = chosen.get(self.depends_on)
        if parent is None:
            return self.options
        return self.options_by.get(parent.name, self.options)


class Combination:
    """Ordered mapping of dimension name to the option chosen for it."""

    def __init__(self, choices: dict[str, ConfigurationOption]):
        self._choices = dict(choices)

    def __getitem__(self, dimension: str) -> ConfigurationOption:
        return self._choices[dimension]

    def __iter__(self):
        return iter(self._choices.items())

    def __len__(self) -> int:
        return len(self._choices)

    def __contains__(self, dimension: str) -> bool:
        return dimension in self._choices

    def __eq__(self, other) -> bool:
        return isinstance(other, Combination) and self._choices == other._choices

    def __repr__(self) -> str:
        return f"Combination({self.label})"

    def get(self, dimension: str) -> ConfigurationOption | None:
        return self._choices.get(dimension)

    def values(self) -> dict[str, str]:
        return {name: option.name for name, option in self._choices.items()}

    @property
    def label(self) -> str:
        return " / ".join(option.name for option in self._choices.values())


class QuantityExpectation(BaseModel):
    base: list[str] = Field(default_factory=list)
    modal: list[str] = Field(default_factory=list)


class ProductDefinition(BaseModel):
    name: str  # also the key into the baseline price file
    slug: str = ""
    path: str  # relative to the environment base URL
    dimensions: list[Dimension]
    shape_dimension: str = "Shape"
    size_dimension: str = "Size"
    quantity_dimension: str = "Quantity"
    quantity_expectation: Optional[QuantityExpectation] = None

    def dimension(self, name: str) -> Dimension | None:
        for dim in self.dimensions:
            if dim.name == name:
                return dim
        return None

    def combinations(self) -> Iterator[Combination]:
        """Yield every combination in nested-loop order (first dimension outermost)."""
        yield from self._expand(0, {})

    def _expand(self, index: int, chosen: dict[str, ConfigurationOption]) -> Iterator[Combination]:
        if index == len(self.dimensions):
            yield Combination(chosen)
            return
        dim = self.dimensions[index]
        options = dim.options_for(chosen)
        if not options:
            if dim.optional:
                yield from self._expand(index + 1, chosen)
            return
        for option in options:
            yield from self._expand(index + 1, {**chosen, dim.name: option})

    def url(self, base_url: str) -> str:
        return base_url.rstrip("/") + "/" + self.path.lstrip("/")

    @classmethod
    def load(cls, path: str | Path) -> "ProductDefinition":
        """Load a product definition from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Product definition not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)
