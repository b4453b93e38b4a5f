"""
HTTP Client for the PromoMo API
Wraps httpx clients with unified error handling, bearer auth and retry logic.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import httpx

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]

_SENSITIVE_HEADERS = ["authorization", "x-api-key"]


# ============================================================================
# Error Classes
# ============================================================================


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_text: str = ""):
        self.message = message
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(self.message)

    def user_friendly_message(self) -> str:
        """Returns a user-friendly error message."""
        return self.message


class NetworkError(APIError):
    """Network connectivity errors (connection refused, DNS failure, etc.)."""

    def user_friendly_message(self) -> str:
        return (
            f"[CONNECT] Não foi possível ligar ao servidor\n\n"
            f"Erro: {self.message}\n\n"
            f"Sugestões:\n"
            f"  1. Verifique se o servidor da API está em execução\n"
            f"  2. Verifique o parâmetro --api-base\n"
            f"  3. Verifique a ligação à rede"
        )


class TimeoutError(APIError):
    """Request timeout errors."""

    def user_friendly_message(self) -> str:
        return (
            f"[TIMEOUT] O pedido excedeu o tempo limite\n\n"
            f"Erro: {self.message}\n\n"
            f"Sugestões:\n"
            f"  1. Verifique a ligação à rede\n"
            f"  2. O servidor pode estar sobrecarregado\n"
            f"  3. Aumente o tempo limite (--timeout)"
        )


class HTTPStatusError(APIError):
    """HTTP status code errors (4xx, 5xx)."""

    def user_friendly_message(self) -> str:
        status = self.status_code or "Unknown"
        if self.status_code == 401:
            return (
                f"[AUTH] Sessão expirada ou token inválido (HTTP {status})\n\n"
                f"Defina PROMOMO_API_TOKEN ou use --token"
            )
        return (
            f"[SERVIDOR] Erro HTTP {status}\n\n"
            f"Erro: {self.message}\n\n"
            f"Resposta: {self.response_text[:200]}"
        )


class JSONParseError(APIError):
    """JSON parsing errors in response."""

    def user_friendly_message(self) -> str:
        return (
            f"[JSON] Resposta inválida do servidor\n\n"
            f"Erro: {self.message}\n\n"
            f"Resposta: {self.response_text[:200]}"
        )


def error_message_from_body(response_text: str, status_code: int) -> str:
    """Pick the backend's ``message`` field from an error body, else ``HTTP <status>``."""
    try:
        body = json.loads(response_text) if response_text else {}
    except (json.JSONDecodeError, ValueError):
        body = {}
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message:
            return message
    return f"HTTP {status_code}"


def _masked_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    safe_headers = {k: "***" for k in headers if k.lower() in _SENSITIVE_HEADERS}
    safe_headers.update({k: v for k, v in headers.items() if k.lower() not in _SENSITIVE_HEADERS})
    return safe_headers


def _raise_for_status(status_code: int, response_text: str) -> None:
    if status_code >= 400:
        raise HTTPStatusError(
            f"HTTP {status_code}: {response_text[:100]}",
            status_code=status_code,
            response_text=response_text,
        )


# ============================================================================
# HTTP Client
# ============================================================================


class APIClient:
    """
    HTTP Client wrapper around httpx.Client with unified error handling.

    Features:
    - Configurable base_url, timeout, retry strategy
    - Bearer token attached per request from a token provider
    - Unified error handling for network, timeout, HTTP status, JSON parse errors
    - Sensitive header masking in logs
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api/v1",
        timeout: float = 30.0,
        retry_times: int = 1,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize API client.

        Args:
            base_url: Base URL for API server (e.g., http://localhost:8000/api/v1)
            timeout: Request timeout in seconds
            retry_times: Number of attempts on network errors (not on 4xx/5xx)
            token_provider: Callable returning the current bearer token, if any
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_times = max(1, retry_times)
        self.token_provider = token_provider

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            trust_env=False,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the underlying httpx client."""
        if self._client:
            self._client.close()

    def _auth_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def _log_request(self, method: str, url: str, headers: Dict[str, Any]):
        """Log request details (without sensitive headers)."""
        logger.debug(f"{method} {url} | headers: {_masked_headers(headers)}")

    def _handle_error(self, error: Exception, attempt: int) -> None:
        """Handle different error types and log them."""
        logger.error(f"Request failed (attempt {attempt}): {type(error).__name__}: {str(error)}")

    def request(self, method: str, path: str, **kwargs) -> Any:
        """
        Make a request and return the decoded JSON body.

        Raises:
            NetworkError: Connection failure
            TimeoutError: Request timeout
            HTTPStatusError: Non-2xx HTTP status
            JSONParseError: JSON parsing failure
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        headers = self._auth_headers(kwargs.pop("headers", None))
        self._log_request(method, url, headers)

        for attempt in range(1, self.retry_times + 1):
            try:
                response = self._client.request(method, path, headers=headers, **kwargs)
                return self._process_response(response)
            except httpx.ConnectTimeout as e:
                self._handle_error(e, attempt)
                if attempt >= self.retry_times:
                    raise NetworkError(
                        "Connection timeout: server may be unreachable",
                    ) from e
            except httpx.TimeoutException as e:
                self._handle_error(e, attempt)
                if attempt >= self.retry_times:
                    raise TimeoutError(
                        f"Request timeout after {self.retry_times} attempts",
                    ) from e
            except (httpx.ConnectError, httpx.NetworkError) as e:
                self._handle_error(e, attempt)
                if attempt >= self.retry_times:
                    raise NetworkError(str(e)) from e
            except httpx.HTTPError as e:
                self._handle_error(e, attempt)
                if attempt >= self.retry_times:
                    raise NetworkError(f"HTTP error: {str(e)}") from e

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self.request("POST", path, json=json, **kwargs)

    def patch(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self.request("PATCH", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)

    def post_form(self, path: str, data: Dict[str, Any], files: Dict[str, Any], **kwargs) -> Any:
        """POST multipart form data; httpx sets the boundary header itself."""
        return self.request("POST", path, data=data, files=files, **kwargs)

    def _process_response(self, response: httpx.Response) -> Any:
        """
        Process HTTP response.

        Handles:
        - Non-2xx status codes -> HTTPStatusError
        - JSON parse errors -> JSONParseError
        - Empty 204 bodies -> {}
        """
        if response.status_code >= 400:
            _raise_for_status(response.status_code, response.text)

        if response.status_code == 204:
            return {}

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            response_text = response.text
            raise JSONParseError(
                f"Failed to parse JSON response: {str(e)}",
                response_text=response_text,
            ) from e


# ============================================================================
# Async Version
# ============================================================================


class _AsyncStreamContextWrapper:
    """
    Async wrapper around the httpx stream context manager.
    Validates the status code when entering the context.
    """

    def __init__(self, ctx_mgr):
        self.ctx_mgr = ctx_mgr
        self.response: Optional[httpx.Response] = None

    async def __aenter__(self) -> httpx.Response:
        try:
            self.response = await self.ctx_mgr.__aenter__()
        except httpx.ConnectTimeout as e:
            raise NetworkError("Connection timeout: server may be unreachable") from e
        except httpx.TimeoutException as e:
            raise TimeoutError("Stream request timeout") from e
        except (httpx.ConnectError, httpx.NetworkError) as e:
            raise NetworkError(str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"HTTP error: {str(e)}") from e

        if self.response.status_code >= 400:
            body = await self.response.aread()
            response_text = body.decode("utf-8", errors="replace")
            await self.ctx_mgr.__aexit__(None, None, None)
            _raise_for_status(self.response.status_code, response_text)
        return self.response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return await self.ctx_mgr.__aexit__(exc_type, exc_val, exc_tb)


class AsyncAPIClient:
    """
    Async HTTP Client wrapper around httpx.AsyncClient.

    Used for the streaming chat endpoint. Stream reads have no read timeout:
    the server may stay silent for a long time while tools run.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api/v1",
        timeout: float = 30.0,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token_provider = token_provider

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            trust_env=False,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()

    def _auth_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def stream(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None, **kwargs
    ) -> _AsyncStreamContextWrapper:
        """
        Open a streaming request.

        Usage:
            async with client.stream("POST", "/chat/message", json=payload) as response:
                async for chunk in response.aiter_bytes():
                    ...

        Raises (on enter):
            NetworkError: Connection failure
            TimeoutError: Connect timeout
            HTTPStatusError: Non-2xx HTTP status
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        headers = self._auth_headers(kwargs.pop("headers", None))
        logger.debug(f"{method} {url} | headers: {_masked_headers(headers)}")

        stream_timeout = kwargs.pop("timeout", None)
        if stream_timeout is None:
            stream_timeout = httpx.Timeout(
                connect=self.timeout,
                read=None,
                write=self.timeout,
                pool=self.timeout,
            )

        ctx_mgr = self._client.stream(
            method, path, json=json, headers=headers, timeout=stream_timeout, **kwargs
        )
        return _AsyncStreamContextWrapper(ctx_mgr)
