from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

NO_MATCH = "no_match"
FILL_FAILED = "fill_failed"
UNRESOLVED_SELECTION = "unresolved_selection"


class FillFailure(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: str
    control: str
    semantic_key: Optional[str] = Field(default=None, alias="semanticKey")
    search_text: str = Field(default="", alias="searchText")
    reason: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None


class FieldResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    control: str
    semantic_key: str = Field(alias="semanticKey")
    source: str
    confidence: float
    score: int
    matched_keywords: List[str] = Field(default_factory=list, alias="matchedKeywords")
    state: str
    reason: Optional[str] = None


class AutofillResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filled_count: int = Field(default=0, alias="filledCount")
    failures: List[FillFailure] = Field(default_factory=list)
    message: str = ""
    fields: List[FieldResult] = Field(default_factory=list)


class AutofillRequest(BaseModel):
    action: str
    data: Optional[Dict[str, object]] = None
    form_url: Optional[str] = None
    debug: Optional[bool] = None


class AutofillResponse(BaseModel):
    success: bool
    result: Optional[AutofillResult] = None
    error: Optional[str] = None

    def to_payload(self) -> Dict[str, object]:
        payload = self.model_dump(by_alias=True)
        return {key: value for key, value in payload.items() if value is not None}
