"""Baseline price tables used to validate live-computed prices."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaselineError(ValueError):
    """The baseline file is missing, malformed, or has no data for the product."""


class BaselineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: Optional[str] = None  # None matches any shape
    dimensions: dict[str, Decimal | str] = Field(default_factory=dict)
    prices_by_quantity: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def width(self) -> Decimal | None:
        value = self.dimensions.get("width")
        return value if isinstance(value, Decimal) else None

    @property
    def height(self) -> Decimal | None:
        value = self.dimensions.get("height")
        return value if isinstance(value, Decimal) else None

    def matches_shape(self, shape: str | None) -> bool:
        if self.shape is None:
            return True
        return shape is not None and self.shape.strip().lower() == shape.strip().lower()

    @classmethod
    def from_raw(cls, raw: dict[str, Any], shape: str | None = None) -> "BaselineEntry":
        """Split a raw fixture entry: numeric keys are quantity prices, the rest are dimensions."""
        if not isinstance(raw, dict):
            raise BaselineError(f"Baseline entry must be an object, got {type(raw).__name__}")
        dimensions: dict[str, Decimal | str] = {}
        prices: dict[str, Decimal] = {}
        for key, value in raw.items():
            quantity = key.strip().replace(",", "")
            if quantity.isdigit():
                prices[quantity] = _to_decimal(value, key)
            elif key == "shape" and shape is None:
                shape = str(value)
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                dimensions[key] = _to_decimal(value, key)
            else:
                dimensions[key] = str(value)
        return cls(shape=shape, dimensions=dimensions, prices_by_quantity=prices)


def _to_decimal(value: Any, key: str) -> Decimal:
    try:
        # str() first so 4.4 stays 4.4 rather than its binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise BaselineError(f"Invalid number for '{key}': {value!r}") from e


class BaselineTable(BaseModel):
    product: str
    grouped_by_shape: bool = False
    entries: list[BaselineEntry] = Field(default_factory=list)

    def shapes(self) -> set[str]:
        return {e.shape.strip().lower() for e in self.entries if e.shape}

    def has_shape(self, shape: str) -> bool:
        if not self.grouped_by_shape:
            return True
        return shape.strip().lower() in self.shapes()

    def find(self, width: Decimal, height: Decimal, shape: str | None = None) -> BaselineEntry | None:
        for entry in self.entries:
            if entry.width == width and entry.height == height and entry.matches_shape(shape):
                return entry
        return None

    @classmethod
    def from_data(cls, data: Any, product: str) -> "BaselineTable":
        if not isinstance(data, dict):
            raise BaselineError("Baseline file must contain an object keyed by product name")
        product_data = data.get(product)
        if product_data is None:
            raise BaselineError(f"No baseline for {product}")

        if isinstance(product_data, list):
            entries = [BaselineEntry.from_raw(raw) for raw in product_data]
            return cls(product=product, grouped_by_shape=False, entries=entries)

        if isinstance(product_data, dict):
            entries = []
            for shape, group in product_data.items():
                if not isinstance(group, list):
                    raise BaselineError(f"Baseline group '{shape}' for {product} must be a list")
                entries.extend(BaselineEntry.from_raw(raw, shape=shape) for raw in group)
            return cls(product=product, grouped_by_shape=True, entries=entries)

        raise BaselineError(f"Unsupported baseline layout for {product}")

    @classmethod
    def load(cls, path: str | Path, product: str) -> "BaselineTable":
        """Load the baseline entries for one product from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise BaselineError(f"Baseline file not found: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise BaselineError(f"Baseline file is not valid JSON: {e}") from e
        except UnicodeDecodeError as e:
            raise BaselineError(f"Baseline file is not UTF-8 text: {path}") from e
        except OSError as e:
            raise BaselineError(f"Could not read baseline file {path}: {e}") from e
        return cls.from_data(data, product)
