from types import SimpleNamespace

import httpx
import openai
import pytest

from agritrack import advisor
from agritrack.main import app

WEATHER = {
    "temperature": 31,
    "feelsLike": 36,
    "description": "scattered clouds",
    "humidity": 70,
    "windSpeed": 3.1,
    "clouds": 40,
}


class FakeCompletions:
    def __init__(self, reply="Maaraw ngayon, pwede kang mag-spray.", error=None):
        self.reply = reply
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture(name="completions")
def completions_fixture(client):
    completions = FakeCompletions()
    fake_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    app.dependency_overrides[advisor.get_ai_client] = lambda: fake_client
    return completions


def test_weather_summary(client, completions):
    response = client.post(
        "/api/ai/weather/reporter-summary",
        json={
            "weather_data": WEATHER,
            "location": "Pila, Laguna",
            "products": ["1: Corn", "2: Rice", "Tilapia", "4: Okra", "5: Eggplant", "6: Squash"],
        },
    )

    assert response.status_code == 200
    assert response.json()["reply"] == "Maaraw ngayon, pwede kang mag-spray."
    [request] = completions.requests
    prompt = request["messages"][0]["content"]
    assert "Pila, Laguna" in prompt
    assert "Corn, Rice, Tilapia and 2 more" in prompt
    assert "Squash" not in prompt
    assert request["max_tokens"] == advisor.WEATHER_SUMMARY_MAX_TOKENS


def test_weather_data_is_required(client, completions):
    response = client.post("/api/ai/weather/reporter-summary", json={"location": "Pila"})
    assert response.status_code == 400
    assert completions.requests == []


def test_chatbot_message(client, completions):
    response = client.post("/api/ai/chatbot/message", json={"message": "  Kailan magtanim ng mais?  "})

    assert response.status_code == 200
    [request] = completions.requests
    assert request["messages"][0]["role"] == "system"
    assert request["messages"][1] == {"role": "user", "content": "Kailan magtanim ng mais?"}


def test_blank_chat_message(client, completions):
    assert client.post("/api/ai/chatbot/message", json={"message": "   "}).status_code == 400


def test_provider_failure_is_dependency_error(client, completions):
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    completions.error = openai.APIConnectionError(request=request)

    response = client.post("/api/ai/chatbot/message", json={"message": "hello"})

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "DEPENDENCY_ERROR"


def test_empty_reply_is_dependency_error(client, completions):
    completions.reply = ""
    assert client.post("/api/ai/chatbot/message", json={"message": "hello"}).status_code == 502


def test_missing_api_key(client):
    # No override: the real dependency sees no configured key
    response = client.post("/api/ai/chatbot/message", json={"message": "hello"})

    assert response.status_code == 502
    assert response.json()["message"] == "AI provider API key not configured"


def test_prompt_without_products():
    prompt = advisor.build_weather_prompt(WEATHER, forecast_data=[{"tempMax": 33, "tempMin": 25, "description": "rain"}])
    assert "Today: High 33°C, Low 25°C, rain" in prompt
    assert "Farm is growing" not in prompt
