from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

CellValue = Union[int, float, str, None]


class YearFilterModel(BaseModel):
    selected_year: Union[int, str, None] = "All"


class RecordFormModel(BaseModel):
    year: Union[int, str, None] = None
    values: Dict[str, CellValue] = Field(default_factory=dict)

    def to_form(self) -> Dict[str, CellValue]:
        return {**self.values, "year": self.year}


class CategoryModel(BaseModel):
    field: str
    label: str


class DatasetMetaModel(BaseModel):
    key: str
    collection: str
    title: str
    chart: str
    description: str = ""
    categories: List[CategoryModel]


class MetaDatasetsResponse(BaseModel):
    datasets: List[DatasetMetaModel]


class CreatedResponse(BaseModel):
    id: str


class DeletedResponse(BaseModel):
    deleted: str


class ImportResponse(BaseModel):
    persisted: int
    skipped: int
    ids: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    type: str
    code: Optional[str] = None
    persisted: Optional[int] = None
