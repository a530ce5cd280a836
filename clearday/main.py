from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from clearday.config import get_settings
from clearday.schemas import (
    EvaluationRequest,
    EvaluationResult,
    InsightResponse,
    PhotoAnalysisRequest,
    ProductInsightRequest,
    ProgressAnalysis,
    ProgressInsightRequest,
    ServiceStatus,
)
from clearday.services.claude import ClaudeChatService
from clearday.services.insights import InsightService
from clearday.services.status import ServiceMonitor
import logging

settings = get_settings()

# Set up logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Initialize services
chat_service = ClaudeChatService(settings)
insight_service = InsightService(chat_service)
service_monitor = ServiceMonitor(chat_service, interval_s=settings.ai_status_interval_s)


@asynccontextmanager
async def lifespan(app: FastAPI):
    service_monitor.start()
    yield
    await service_monitor.stop()


app = FastAPI(title="ClearDay Insights", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_insight_service() -> InsightService:
    return insight_service


def get_service_monitor() -> ServiceMonitor:
    return service_monitor


@app.get("/")
async def health_check():
    return {"status": "healthy", "service": "ClearDay Insights"}


@app.get("/ai/status", response_model=ServiceStatus)
async def ai_status(
    refresh: bool = False,
    monitor: ServiceMonitor = Depends(get_service_monitor),
):
    if refresh:
        return await monitor.check_service_status()
    return monitor.get_status()


@app.post("/ai/evaluate-product", response_model=EvaluationResult)
async def evaluate_product(
    request: EvaluationRequest,
    service: InsightService = Depends(get_insight_service),
):
    return await service.evaluate(request)


@app.post("/ai/progress-insight", response_model=InsightResponse)
async def progress_insight(
    request: ProgressInsightRequest,
    service: InsightService = Depends(get_insight_service),
):
    insight = await service.analyze_progress(request.metrics, request.days_tracked)
    return InsightResponse(insight=insight)


@app.post("/ai/analyze-photos", response_model=ProgressAnalysis)
async def analyze_photos(
    request: PhotoAnalysisRequest,
    service: InsightService = Depends(get_insight_service),
):
    return await service.analyze_photos(request.photos, request.previous_photos)


@app.post("/ai/product-insight", response_model=InsightResponse)
async def product_insight(
    request: ProductInsightRequest,
    service: InsightService = Depends(get_insight_service),
):
    insight = await service.product_insight(request.product_name, request.context)
    return InsightResponse(insight=insight)
