from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    title: Optional[str] = None
    heading: Optional[str] = None
    default_page: Optional[str] = Field(default=None, alias="defaultPage")
    data_file: Optional[str] = Field(default=None, alias="dataFile")


class Registry(BaseModel):
    model_config = ConfigDict(extra="allow")

    categories: List[CategoryMeta] = Field(default_factory=list)

    def find_category(self, category_id: str) -> Optional[CategoryMeta]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


class PageRef(BaseModel):
    """A navigation item; a leaf when it has a ``page`` and no ``children``."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    title: Optional[str] = None
    page: Optional[str] = None
    href: Optional[str] = None
    children: Optional[List["PageRef"]] = None


PageRef.model_rebuild()


class Section(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    icon: Optional[str] = None
    children: List[PageRef] = Field(default_factory=list)


class CategoryManifest(BaseModel):
    model_config = ConfigDict(extra="allow")

    sections: List[Section] = Field(default_factory=list)


@dataclass(frozen=True)
class PageSource:
    """A leaf page flattened out of a category manifest."""

    id: str
    title: str
    category: str
    section: Optional[str]
    page: str


@dataclass(frozen=True)
class IndexEntry:
    id: str
    title: str
    category: str
    section: Optional[str]
    page: str
    url: str
    anchor: str = ""
    content: str = ""
    title_lower: str = ""
    is_header: bool = False
    is_sub_section: bool = False
    type: str = "page"
