from fastapi import APIRouter, Depends
from openai import AsyncOpenAI

from agritrack import advisor
from agritrack.config import AI_MODEL
from agritrack.models import User
from agritrack.schemas import AIReply, ChatRequest, WeatherSummaryRequest
from agritrack.security import get_current_user

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/weather/reporter-summary", response_model=AIReply)
async def weather_reporter_summary(
    request: WeatherSummaryRequest,
    client: AsyncOpenAI = Depends(advisor.get_ai_client),
):
    summary = await advisor.summarize_weather(
        client,
        weather_data=request.weather_data,
        forecast_data=request.forecast_data,
        air_quality_data=request.air_quality_data,
        location=request.location,
        products=request.products,
    )
    return AIReply(model=AI_MODEL, reply=summary)


@router.post("/chatbot/message", response_model=AIReply)
async def chatbot_message(
    request: ChatRequest,
    client: AsyncOpenAI = Depends(advisor.get_ai_client),
    current_user: User = Depends(get_current_user),
):
    reply = await advisor.chat(client, request.message)
    return AIReply(model=AI_MODEL, reply=reply)
