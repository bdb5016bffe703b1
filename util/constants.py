from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent

# File holding the Gemini API key when GEMINI_API_KEY is not set
TOKEN_FILE = REPO_ROOT / "TOKEN"

DEFAULT_MODEL_NAME = "gemini-1.5-flash"
