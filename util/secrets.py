"""
Secret lookup for external services.
"""

import os
from pathlib import Path

from util.constants import TOKEN_FILE

GEMINI_API_KEY_ENV = "GEMINI_API_KEY"


def get_gemini_api_key(token_file: Path = TOKEN_FILE) -> str:
    """Return the Gemini API key from the environment or the TOKEN file.

    Raises:
        RuntimeError: if neither source provides a key.
    """
    api_key = os.environ.get(GEMINI_API_KEY_ENV)
    if api_key:
        return api_key.strip()

    if token_file.exists():
        api_key = token_file.read_text(encoding="utf-8").strip()
        if api_key:
            return api_key

    raise RuntimeError(
        f"No Gemini API key found: set {GEMINI_API_KEY_ENV} or create {token_file}"
    )
