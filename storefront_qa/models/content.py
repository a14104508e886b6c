"""Content fixture — the expected copy and imagery of a product page."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class QuoteBanner(BaseModel):
    images: list[str] = Field(default_factory=list)  # src substrings
    thumbnails: list[str] = Field(default_factory=list)


class ContentContainer(BaseModel):
    title: str = ""
    subtitle: str = ""
    descriptions: list[str] = Field(default_factory=list)
    perfect_for: list[str] = Field(default_factory=list)


class TitledItem(BaseModel):
    title: str


class Finishing(BaseModel):
    description: str = ""
    options: list[TitledItem] = Field(default_factory=list)


class Precautions(BaseModel):
    notices: list[TitledItem] = Field(default_factory=list)


class ShapesSizes(BaseModel):
    images: list[str] = Field(default_factory=list)


class Download(BaseModel):
    type: str
    icon: str


class ProductInfo(BaseModel):
    finishing: Optional[Finishing] = None
    precautions: Optional[Precautions] = None
    shapes_sizes: Optional[ShapesSizes] = None
    downloads: list[Download] = Field(default_factory=list)


class ContentFixture(BaseModel):
    url: str
    name: str = ""
    quote_banner: Optional[QuoteBanner] = None
    content_container: Optional[ContentContainer] = None
    product_info: Optional[ProductInfo] = None

    @property
    def label(self) -> str:
        return self.name or self.url.rstrip("/").rsplit("/", 1)[-1]

    @classmethod
    def load(cls, path: str | Path) -> "ContentFixture":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Content fixture not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)
