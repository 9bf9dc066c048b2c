"""
Request / response shapes for the analysis proxy.

`AnalysisResult` doubles as the structured-output schema handed to the
model, so the wire contract and the model contract cannot drift apart.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


Category = Literal["Environment", "Physical", "Medication", "Care", "Other"]


class PreventionMeasure(BaseModel):
    measure: str
    rationale: str
    category: Category


class AnalysisResult(BaseModel):
    detectedTextSummary: str = Field(
        ...,
        description="Summary of the document text, or a description of the environment photographed.",
    )
    possibleCauses: List[str] = Field(
        ...,
        description="Root causes of the recorded fall, or potential hazards seen in the environment.",
    )
    preventionStrategies: List[PreventionMeasure] = Field(
        ...,
        description="Measures to prevent a recurrence, or environmental modifications.",
    )
    handoverNote: str = Field(
        ...,
        description="Professional paragraph ready to paste into the shift handover log.",
    )


class AnalysisRequest(BaseModel):
    image: Optional[str] = None
    images: Optional[List[str]] = None

    def payloads(self) -> List[str]:
        """Images in submission order, empty entries included."""
        if self.images:
            return list(self.images)
        if self.image:
            return [self.image]
        return []


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_FOUND = "not_found"
    MISSING_API_KEY = "missing_api_key"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    BAD_UPSTREAM_RESPONSE = "bad_upstream_response"


class ErrorBody(BaseModel):
    error: str
    kind: ErrorKind
