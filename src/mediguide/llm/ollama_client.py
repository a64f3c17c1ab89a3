# ============================================================================
# src/mediguide/llm/ollama_client.py
# ============================================================================
"""
Ollama Text-Completion Oracle

Posts to a local Ollama server's /api/chat endpoint with aiohttp.

Setup:
    ollama pull mistral
    ollama serve

The first call may wait up to LLM_WARMUP_TIMEOUT while Ollama loads the
model into memory; afterwards LLM_PARSE_TIMEOUT applies.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from ..config.llm_config import LLMSettings, llm_settings
from ..utils.exceptions import OracleError, OracleTimeoutError, OracleUnavailableError
from .base import BackendType, TextCompletionOracle


class OllamaTextOracle(TextCompletionOracle):
    """
    Ollama chat client.

    Config keys override settings: ollama_host, ollama_model, temperature,
    max_tokens, request_timeout, warmup_timeout.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, settings: LLMSettings = llm_settings):
        super().__init__(config)

        self.host = self.config.get('ollama_host', settings.OLLAMA_HOST).rstrip('/')
        self._model = self.config.get('ollama_model', settings.OLLAMA_MODEL)
        self.default_temperature = self.config.get('temperature', settings.LLM_TEMPERATURE)
        self.max_tokens = self.config.get('max_tokens', settings.LLM_MAX_TOKENS)
        self.request_timeout = self.config.get('request_timeout', settings.LLM_PARSE_TIMEOUT)
        self.warmup_timeout = self.config.get('warmup_timeout', settings.LLM_WARMUP_TIMEOUT)

        self._model_loaded = False
        # one session per event loop; TestClient and uvicorn run different loops
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Ollama oracle configured: model={self._model} host={self.host}")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return self._model

    async def _http(self) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        if self._session is not None and not self._session.closed and self._session_loop is loop:
            return self._session

        await self.close()
        # per-call deadlines come from asyncio.wait_for
        self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None, sock_connect=30))
        self._session_loop = loop
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    def _health(self, healthy: bool, details: str) -> Dict[str, Any]:
        return {"healthy": healthy, "backend": "ollama", "model": self._model, "details": details}

    async def health_check(self) -> Dict[str, Any]:
        """Reachable server with the configured model pulled."""
        try:
            session = await self._http()
            async with session.get(f"{self.host}/api/tags") as response:
                if response.status != 200:
                    return self._health(False, f"Ollama answered /api/tags with status {response.status}")
                tags = await response.json()
        except aiohttp.ClientConnectorError:
            return self._health(False, f"Ollama is not reachable at {self.host}. Start it with: ollama serve")
        except aiohttp.ClientError as e:
            return self._health(False, f"Health check failed: {e}")

        pulled = [m.get('name', '') for m in tags.get('models', [])]
        if not any(self._model in name for name in pulled):
            return self._health(False, f"Model not pulled (have {pulled}). Run: ollama pull {self._model}")
        return self._health(True, "Ollama running with model available")

    def _chat_payload(self, system_prompt: str, user_prompt: str, temperature: float, json_mode: bool) -> Dict[str, Any]:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": self.max_tokens},
        }
        if json_mode:
            payload["format"] = "json"
        return payload

    async def _post_chat(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._http()
        async with session.post(f"{self.host}/api/chat", json=payload) as response:
            if response.status != 200:
                body = await response.text()
                raise OracleError(f"Ollama /api/chat returned {response.status}: {body}", oracle="ollama")
            return await response.json()

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> str:
        if temperature is None:
            temperature = self.default_temperature
        if timeout is None:
            timeout = self.request_timeout if self._model_loaded else self.warmup_timeout

        payload = self._chat_payload(system_prompt, user_prompt, temperature, json_mode)
        started = time.perf_counter()
        try:
            data = await asyncio.wait_for(self._post_chat(payload), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.error(f"{self._model} gave no answer within {timeout}s")
            raise OracleTimeoutError(
                f"LLM request timed out after {timeout}s",
                oracle="ollama",
                timeout_seconds=timeout,
            )
        except aiohttp.ClientConnectorError as e:
            raise OracleUnavailableError(f"Cannot connect to Ollama at {self.host}: {e}", oracle="ollama")
        except aiohttp.ClientError as e:
            raise OracleError(f"Ollama request failed: {e}", oracle="ollama")

        elapsed = time.perf_counter() - started
        self._model_loaded = True
        self._record_inference(elapsed)

        content = (data.get('message') or {}).get('content', '')
        self.logger.info(f"{self._model}: {data.get('eval_count', 0)} tokens in {elapsed:.2f}s")
        return content.strip()
