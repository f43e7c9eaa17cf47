"""
API v1 Router Module - Violation Detector

All v1 endpoints are prefixed with /api/v1/

Primary endpoint: POST /api/v1/predict
(also mounted at POST /api/predict, the path the browser UI uses)
"""

from fastapi import APIRouter

from src.api.v1.predict import router as predict_router
from src.api.v1.metrics import router as metrics_router

# Main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(predict_router, tags=["prediction"])
api_v1_router.include_router(metrics_router, tags=["metrics"])
