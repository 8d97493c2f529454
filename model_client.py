# model_client.py
"""
Provider-neutral model interface: (template, inputs) -> output model instance.

`GroqModelClient` implements it on top of Groq chat completions with a strict
`json_schema` response format derived from the template's output model.
"""
import json
from functools import lru_cache
import logging
from typing import Any, Mapping, Optional, Union

import groq
from groq import Groq
from pydantic import BaseModel, ValidationError

import config
from errors import ModelOutputError, ModelTimeoutError, ProviderError
from prompts import PromptTemplate, get_template

logger = logging.getLogger(__name__)


class ModelClient:
    def generate(
        self, template: Union[PromptTemplate, str], inputs: Union[BaseModel, Mapping[str, Any]]
    ) -> BaseModel:
        raise NotImplementedError


class GroqModelClient(ModelClient):
    def __init__(
        self,
        client: Optional[Any] = None,
        model_id: str = config.MODEL_ID,
        temperature: float = config.MODEL_TEMPERATURE,
        max_tokens: int = config.MODEL_MAX_TOKENS,
        timeout: float = config.MODEL_TIMEOUT,
    ):
        self._client = client
        self.model_id = model_id
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _ensure_client(self) -> Any:
        if self._client is None:
            api_key = config.GROQ_API_KEY
            if not api_key:
                raise ProviderError("Set GROQ_API_KEY environment variable.")
            self._client = Groq(api_key=api_key, timeout=self.timeout)
        return self._client

    def generate(
        self, template: Union[PromptTemplate, str], inputs: Union[BaseModel, Mapping[str, Any]]
    ) -> BaseModel:
        template = get_template(template)
        prompt = template.render(inputs)
        client = self._ensure_client()

        # Pydantic -> JSON Schema (v2)
        schema = template.output_model.model_json_schema()

        logger.info("Model call %s (model=%s, prompt=%d chars)", template.name, self.model_id, len(prompt))
        try:
            resp = client.chat.completions.create(
                model=self.model_id,
                messages=[{"role": "user", "content": prompt}],
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": template.name,
                        "schema": schema,
                        "strict": True,  # requires additionalProperties: false
                    },
                },
                temperature=self.temperature,
                top_p=1,
                max_tokens=self.max_tokens,
                stream=False,  # structured output doesn't stream
            )
        except groq.APITimeoutError as e:
            raise ModelTimeoutError(f"Model call timed out after {self.timeout}s: {e}")
        except groq.APIError as e:
            logger.warning("Model provider error on %s: %s", template.name, e)
            raise ProviderError(f"Upstream model error: {e}")

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise ModelOutputError(f"Model returned no output for {template.name}")
        try:
            return template.output_model.model_validate(json.loads(content))
        except (ValueError, ValidationError) as e:
            logger.warning("Unparseable output for %s: %r", template.name, content[:200])
            raise ModelOutputError(f"Model output for {template.name} did not match schema: {e}")


@lru_cache(maxsize=1)
def get_model_client() -> ModelClient:
    return GroqModelClient()
