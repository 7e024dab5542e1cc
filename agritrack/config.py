import os
import logging

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "mysql+pymysql://root:@localhost:3306/agritrack")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# --- Firebase ID token verification ---
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "")
FIREBASE_CERTS_URL = os.getenv(
    "FIREBASE_CERTS_URL",
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com",
)

# --- CORS ---
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost,http://localhost:5173").split(",")
    if origin.strip()
]

# --- AI provider (any OpenAI-compatible endpoint, e.g. OpenRouter) ---
AI_API_KEY = os.getenv("AI_API_KEY") or os.getenv("OPEN_ROUTER_API_KEY")
AI_BASE_URL = os.getenv("AI_BASE_URL", "https://openrouter.ai/api/v1")
AI_MODEL = os.getenv("AI_MODEL", "google/gemini-2.5-flash")
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", 1024))
