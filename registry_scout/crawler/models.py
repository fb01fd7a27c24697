# registry_scout/crawler/models.py
"""
Data models for the registry crawler: query, extracted records, captures and
the tagged crawl result.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Sequence, Tuple, Union

from registry_scout.errors import InvalidQuery

NOT_FOUND_MESSAGE = "Not Found data"


class PageClassification(enum.Enum):
    """Kind of page the query submission landed on."""

    LIST = "list"
    PROFILE = "profile"


@dataclass(frozen=True, slots=True)
class CrawlQuery:
    """Company name or registration number, validated once on creation."""

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise InvalidQuery("query must be a non-empty string")
        object.__setattr__(self, "text", self.text.strip())

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class Record:
    """One row of the search-results table; values are kept as page text."""

    identifier: str = field(default="", metadata={"label": "ID"})
    registration_number: str = field(default="", metadata={"label": "Number"})
    name: str = field(default="", metadata={"label": "Name"})
    legal_type: str = field(default="", metadata={"label": "Type"})
    status: str = field(default="", metadata={"label": "Status"})
    industry_code: str = field(default="", metadata={"label": "TSIC"})
    industry: str = field(default="", metadata={"label": "Industry"})
    province: str = field(default="", metadata={"label": "Province"})
    capital: str = field(default="", metadata={"label": "Capital"})
    revenue: str = field(default="", metadata={"label": "TotalRevenue"})
    net_profit: str = field(default="", metadata={"label": "NetProfit"})
    total_assets: str = field(default="", metadata={"label": "TotalAssets"})
    shareholder_equity: str = field(default="", metadata={"label": "ShareholderEquity"})

    @classmethod
    def from_cells(cls, cells: Sequence[str]) -> Record:
        """Map table cells to fields; cell 0 is the row counter and is skipped.

        Missing cells become empty strings.
        """
        values = [cells[i] if i < len(cells) else "" for i in range(1, len(RECORD_FIELDS) + 1)]
        return cls(*values)

    def as_dict(self) -> Dict[str, str]:
        return {f.metadata["label"]: getattr(self, f.name) for f in fields(self)}


RECORD_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(Record))
#: row counter + one cell per record field
ROW_WIDTH: int = len(RECORD_FIELDS) + 1


@dataclass(frozen=True, slots=True)
class ImageArtifact:
    """Base64-encoded capture of one profile tab."""

    tab: str
    data: str

    @property
    def empty(self) -> bool:
        return not self.data


@dataclass(frozen=True, slots=True)
class TableResult:
    records: Tuple[Record, ...]

    def to_payload(self) -> Dict[str, Any]:
        return {"records": [r.as_dict() for r in self.records]}


@dataclass(frozen=True, slots=True)
class ProfileResult:
    captures: Tuple[ImageArtifact, ...]

    def to_payload(self) -> Dict[str, Any]:
        return {"captures": [c.data for c in self.captures]}


@dataclass(frozen=True, slots=True)
class NotFound:
    message: str = NOT_FOUND_MESSAGE

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message}


CrawlResult = Union[TableResult, ProfileResult, NotFound]

__all__: List[str] = [
    "NOT_FOUND_MESSAGE",
    "PageClassification",
    "CrawlQuery",
    "Record",
    "RECORD_FIELDS",
    "ROW_WIDTH",
    "ImageArtifact",
    "TableResult",
    "ProfileResult",
    "NotFound",
    "CrawlResult",
]
