import logging
from typing import Any, List, Optional

from openai import APIError, AsyncOpenAI

from agritrack.config import AI_API_KEY, AI_BASE_URL, AI_MAX_TOKENS, AI_MODEL
from agritrack.errors import DependencyError

logger = logging.getLogger(__name__)

WEATHER_SUMMARY_MAX_TOKENS = 280

CHATBOT_SYSTEM_PROMPT = """
Ikaw ay isang AI assistant para sa AgriTrack, isang smart farming application. Ikaw ay:
1. Magalang at helpful
2. Mag-focus sa agricultural advice
3. Gumamit ng Tagalog at simple English
4. Magbigay ng praktikal na payo
"""

_client: Optional[AsyncOpenAI] = None


def get_ai_client() -> AsyncOpenAI:
    """One shared client for the configured OpenAI-compatible provider."""
    global _client
    if not AI_API_KEY:
        raise DependencyError("AI provider API key not configured", details="AI_API_KEY is missing in .env")
    if _client is None:
        _client = AsyncOpenAI(api_key=AI_API_KEY, base_url=AI_BASE_URL)
    return _client


def describe_products(products: List[str]) -> str:
    if not products:
        return ""
    if len(products) <= 3:
        return f"Farm is growing: {', '.join(products)}. "
    extra = len(products) - 3
    return f"Farm is growing multiple crops including {', '.join(products[:3])} and {extra} more. "


def _forecast_lines(forecast_data: Any) -> List[str]:
    if not isinstance(forecast_data, list) or not forecast_data:
        return []
    lines = []
    for label, day in zip(("Today", "Tomorrow"), forecast_data[:2]):
        if isinstance(day, dict):
            lines.append(
                f"{label}: High {day.get('tempMax')}°C, Low {day.get('tempMin')}°C, {day.get('description')}"
            )
    return lines


def build_weather_prompt(
    weather_data: dict,
    forecast_data: Any = None,
    air_quality_data: Any = None,
    location: Optional[str] = None,
    products: Optional[List[str]] = None,
) -> str:
    products = products or []
    lines = [
        "You are an agricultural weather advisor speaking directly to a Filipino farmer.",
        "Based on the following weather data, write a practical weather summary (2-3 sentences max)",
        "in Taglish, addressing the farmer directly with ikaw/mo/iyo.",
        "",
    ]
    if location:
        lines.append(f"Location: {location}")
    lines += [
        "Current Weather:",
        f"- Temperature: {weather_data.get('temperature')}°C (feels like {weather_data.get('feelsLike')}°C)",
        f"- Condition: {weather_data.get('description')}",
        f"- Humidity: {weather_data.get('humidity')}%",
        f"- Wind Speed: {weather_data.get('windSpeed')} m/s",
        f"- Clouds: {weather_data.get('clouds')}%",
    ]
    if weather_data.get("rain1h"):
        lines.append(f"- Rainfall: {weather_data['rain1h']} mm in last hour")
    if isinstance(air_quality_data, dict):
        lines.append(f"Air Quality: {air_quality_data.get('quality')} (AQI {air_quality_data.get('aqi')})")
    lines += _forecast_lines(forecast_data)
    lines.append(describe_products(products))
    lines.append(
        "Focus on field work suitability, crop protection, irrigation needs and soil moisture."
        if not products
        else f"Tailor the advice to the farmer's {'crop' if len(products) == 1 else 'crops'}."
    )
    return "\n".join(lines)


async def complete(client: AsyncOpenAI, messages: List[dict], max_tokens: int = AI_MAX_TOKENS) -> str:
    """Send a chat completion to the provider and return the reply text."""
    try:
        completion = await client.chat.completions.create(
            model=AI_MODEL,
            messages=messages,
            max_tokens=max_tokens,
        )
    except APIError as e:
        logger.error("AI provider call failed: %s", e)
        raise DependencyError("AI provider request failed", details=str(e)) from e

    reply = completion.choices[0].message.content if completion.choices else None
    if not reply:
        raise DependencyError("AI provider returned an empty response")
    return reply.strip()


async def summarize_weather(client: AsyncOpenAI, **weather) -> str:
    prompt = build_weather_prompt(**weather)
    return await complete(client, [{"role": "user", "content": prompt}], max_tokens=WEATHER_SUMMARY_MAX_TOKENS)


async def chat(client: AsyncOpenAI, message: str) -> str:
    return await complete(
        client,
        [
            {"role": "system", "content": CHATBOT_SYSTEM_PROMPT.strip()},
            {"role": "user", "content": message},
        ]
    )
