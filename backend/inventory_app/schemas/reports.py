"""
Reporting Schemas
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WhereClause(BaseModel):
    """One filter row of the manual report builder; incomplete rows are skipped"""
    column: Optional[str] = None
    operator: Optional[str] = None
    value: Optional[str] = None


class ManualReportRequest(BaseModel):
    view: str = Field(..., description="vw_transaction_full or inventory_view")
    columns: List[str] = Field(default_factory=list, description="Empty selects every column")
    where: List[WhereClause] = Field(default_factory=list)


class ManualReportResponse(BaseModel):
    view: str
    columns: List[str]
    rows: List[Dict[str, Any]]
    row_count: int


class ViewInfo(BaseModel):
    name: str
    columns: List[str]

