"""
Inference gateway: renders a Jinja2 prompt template and asks Gemini for a completion.
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import PromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI

from util.constants import DEFAULT_MODEL_NAME
from util.logging_util import setup_logger, log_llm_interaction
from util.secrets import get_gemini_api_key

logger = setup_logger(__name__)


class GatewayError(Exception):
    """The inference call failed or returned nothing usable."""


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around a model response."""
    return text.replace("```json", "").replace("```", "").strip()


def parse_json_response(text: str) -> Any:
    """Unwrap and parse a JSON structure embedded in a model response.

    Raises:
        json.JSONDecodeError: if the unwrapped text is not valid JSON.
    """
    return json.loads(strip_code_fences(text))


def _response_text(response) -> str:
    # Gemini returns content as a list of parts, extract the text
    content = response.content
    if isinstance(content, list):
        text_parts = [part.get('text', '') for part in content if isinstance(part, dict) and 'text' in part]
        content = ''.join(text_parts)
    return content


class InferenceGateway:
    """Single prompt-completion exchange with a chat model.

    The chat model is created on first use unless one is injected (tests pass
    a fake model here). Every failure of the exchange is raised as
    GatewayError so callers can fall back.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME, llm: Optional[BaseChatModel] = None):
        self.model_name = model_name
        self._llm = llm
        # Built chains, keyed by template path
        self._chains = {}

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = ChatGoogleGenerativeAI(
                model=self.model_name,
                google_api_key=get_gemini_api_key(),
            )
        return self._llm

    def _build_chain(self, template_path: Path):
        key = str(template_path)
        chain = self._chains.get(key)
        if chain is None:
            template_content = Path(template_path).read_text(encoding="utf-8")
            # Create a prompt template that treats the input as a Jinja2 template
            prompt = PromptTemplate.from_template(template_content, template_format="jinja2")
            chain = self._chains[key] = prompt | self.llm
        return chain

    def complete(self, template_path: Path, params: dict) -> str:
        """
        Generates a response from the LLM based on a Jinja2 template file and parameters.

        Args:
            template_path: Path to the Jinja2 template file.
            params: A dictionary of parameters to populate the template.

        Returns:
            The string response from the LLM.

        Raises:
            GatewayError: if the model could not be reached or returned nothing usable.
        """
        start_time = time.time()
        try:
            response = self._build_chain(template_path).invoke(params)
        except Exception as e:
            raise GatewayError(f"Inference call failed: {e}") from e

        response_content = _response_text(response)
        duration_ms = (time.time() - start_time) * 1000
        log_llm_interaction(logger, str(template_path), params, response_content, self.model_name, duration_ms)
        return response_content

    async def acomplete(self, template_path: Path, params: dict) -> str:
        """Async variant of complete()."""
        start_time = time.time()
        try:
            chain = self._chains.get(str(template_path))
            if chain is None:
                # File read and client construction block, keep them off the event loop
                chain = await asyncio.to_thread(self._build_chain, template_path)
            response = await chain.ainvoke(params)
        except Exception as e:
            raise GatewayError(f"Inference call failed: {e}") from e

        response_content = _response_text(response)
        duration_ms = (time.time() - start_time) * 1000
        log_llm_interaction(logger, str(template_path), params, response_content, self.model_name, duration_ms)
        return response_content
