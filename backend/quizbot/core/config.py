import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Paths: database lives in backend/data/, question corpus in <project>/data/
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))
PROJECT_DIR = os.path.abspath(os.path.join(BACKEND_DIR, ".."))

# "memory" keeps everything in-process, "sqlite" persists to DATABASE_PATH
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory").lower()

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "quiz.db"),
)

# Directory, single file or http(s) URL with the question corpus
DATA_DIR: str = os.getenv("DATA_DIR", os.path.join(PROJECT_DIR, "data"))

# Signs answer tokens; changing it invalidates buttons of already sent questions
TOKEN_SECRET: str = os.getenv("TOKEN_SECRET", "quizbot-dev-secret-change-in-prod")

# Shared secret the transport gateway sends in X-Transport-Secret (empty = off)
TRANSPORT_SECRET: str = os.getenv("TRANSPORT_SECRET", "")

_feedback_chat = os.getenv("FEEDBACK_CHAT_ID", "").strip()
FEEDBACK_CHAT_ID: int | None = int(_feedback_chat) if _feedback_chat else None

NEXT_QUESTION_DELAY_SECONDS: float = float(os.getenv("NEXT_QUESTION_DELAY_SECONDS", "1.0"))

# Characters the active transport markup treats as reserved (MarkdownV2 subset)
MARKUP_ESCAPE_CHARS: str = os.getenv("MARKUP_ESCAPE_CHARS", ".-!()")
