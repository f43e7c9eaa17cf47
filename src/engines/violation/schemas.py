from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class RankedPredictionDTO(BaseModel):
    """One ranked model class, ready for display."""
    prediction: str = Field(..., description="'Violation - <code>' or 'No Violation - <code>'")
    probability: float = Field(..., description="Raw model probability (not validated)")
    caption: str = Field(..., description="Code description or 'No violation detected.'")
    code: str = Field(..., description="Regulatory code")


class PredictionResponseDTO(BaseModel):
    """Response for POST /api/predict."""
    predictions: List[RankedPredictionDTO] = Field(default_factory=list)


class ErrorResponseDTO(BaseModel):
    """Error body returned by every failing endpoint."""
    error: str
    request_id: Optional[str] = None
    code: int
    stage: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str
