"""Google Gemini Provider 适配器。

使用 generateContent 端点：
- URL: {base_url}/models/{model}:generateContent
- 认证: 查询参数 ?key=<api_key>
- 请求体: {"contents": [...], "systemInstruction": {...}}
- 响应体: {"candidates": [{"content": {"parts": [{"text": ...}]}}]} 或 {"error": {"code", "message"}}

post() 对调用方永不抛出传输层异常：内部抛出的 TransportError 在边界处统一转换为 ReplyFailure。
"""

from typing import Any, Dict, Optional

import httpx

from notate_ai.config.settings import settings
from notate_ai.domain.exceptions import (
    USER_MESSAGES,
    AuthError,
    MalformedResponseError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
)
from notate_ai.domain.models import OutboundRequest, ReplyFailure, ReplyOutcome, ReplySuccess, Role
from notate_ai.infrastructure.credentials import CredentialStore
from notate_ai.infrastructure.logging.logger import logger
from notate_ai.providers.registry import GEMINI_CONFIG

MAX_ERROR_EXCERPT = 500


class GeminiClient:
    """Gemini Provider 客户端实现。"""

    name = "gemini"

    def __init__(self, cfg=settings, credentials: Optional[CredentialStore] = None, model: str = "notate-chat"):
        self._settings = cfg
        self._credentials = credentials
        self._model = model

    def post(self, req: OutboundRequest) -> ReplyOutcome:
        try:
            text = self._generate(req)
        except TransportError as e:
            logger.warning(
                "Gemini request failed",
                extra={"extra": {"kind": e.kind.value, "code": e.code, "detail": e.detail}},
            )
            return ReplyFailure(kind=e.kind, message=USER_MESSAGES[e.kind], detail=e.detail)
        logger.info("Gemini reply received", extra={"extra": {"reply_chars": len(text)}})
        return ReplySuccess(text=text)

    @property
    def endpoint_url(self) -> str:
        base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
        return f"{base.rstrip('/')}/models/{self.provider_model}:generateContent"

    @property
    def provider_model(self) -> str:
        configured = getattr(self._settings, "gemini_model", None)
        if configured:
            return configured
        return GEMINI_CONFIG.models[self._model].provider_model

    # ---- 请求 ----

    def _generate(self, req: OutboundRequest) -> str:
        api_key = self._api_key()
        if not api_key:
            raise AuthError(code="MISSING_API_KEY", message="GEMINI_API_KEY not set", detail="GEMINI_API_KEY not set")
        payload = self.build_payload(req)
        timeout = self._settings.http_timeout
        logger.info(
            "Sending request to Gemini",
            extra={"extra": {
                "model": self.provider_model,
                "turns": len(req.turns),
                "system_prompt_chars": len(req.system_prompt),
            }},
        )
        try:
            # verify 仅作用于本次创建的客户端
            with httpx.Client(timeout=timeout, verify=GEMINI_CONFIG.verify_tls, trust_env=False) as client:
                resp = client.post(
                    self.endpoint_url,
                    params={"key": api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                code="TIMEOUT",
                message="Gemini request timed out",
                detail=f"Request timed out after {timeout:.0f}s: {e}",
            )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), detail=str(e) or type(e).__name__)

        data = self._decode_body(resp)
        if resp.status_code >= 400 or (isinstance(data, dict) and isinstance(data.get("error"), dict)):
            self._raise_for_error(resp.status_code, data, resp)
        if not isinstance(data, dict):
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE",
                message="Failed to parse API response",
                detail=self._body_excerpt(resp),
            )
        return self._extract_text(data)

    def _api_key(self) -> Optional[str]:
        if self._credentials is not None:
            key = self._credentials.get_api_key()
        else:
            key = getattr(self._settings, "gemini_api_key", None)
        if key and key.strip():
            return key.strip()
        return None

    # ---- 辅助方法 ----

    def build_payload(self, req: OutboundRequest) -> Dict[str, Any]:
        contents = [self._content(turn.role, turn.text) for turn in req.turns]
        contents.append(self._content(Role.USER, req.current_message))
        payload: Dict[str, Any] = {"contents": contents}
        if req.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": req.system_prompt}]}
        return payload

    @staticmethod
    def _content(role: Role, text: str) -> Dict[str, Any]:
        return {"role": role.value, "parts": [{"text": text}]}

    @staticmethod
    def _decode_body(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return None

    def _raise_for_error(self, status: int, data: Any, resp: httpx.Response) -> None:
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            raise NetworkError(
                code="API_ERROR",
                message=f"HTTP {status}",
                detail=f"HTTP {status}: {self._body_excerpt(resp)}",
            )

        remote_message = error.get("message")
        remote_message = remote_message if isinstance(remote_message, str) else ""
        error_code = error.get("code")
        code = error_code if isinstance(error_code, int) else status
        detail = f"API error {code}: {remote_message}" if remote_message else f"API error {code}"

        if code in (401, 403):
            raise AuthError(code="AUTH_FAILED", message=remote_message, detail=detail)
        if code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=remote_message, detail=detail)
        raise NetworkError(code="API_ERROR", message=remote_message, detail=detail)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """按 candidates[0] → content → parts[0] → text 取出回复；任意一层缺失都视为格式错误。"""

        candidates = data.get("candidates")
        if not isinstance(candidates, list):
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE", message="Invalid API response format", detail="Response missing 'candidates' field"
            )
        if not candidates:
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE", message="No response generated", detail="No candidates in response"
            )

        first = candidates[0] if isinstance(candidates[0], dict) else {}
        content = first.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not parts:
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE", message="Empty response from API", detail="No parts in candidate response"
            )

        part = parts[0] if isinstance(parts[0], dict) else {}
        text = part.get("text")
        if not isinstance(text, str) or not text:
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE", message="Empty response from API", detail="Empty text in response"
            )
        return text

    @staticmethod
    def _body_excerpt(resp: httpx.Response) -> str:
        try:
            raw = resp.text or ""
        except (UnicodeDecodeError, httpx.ResponseNotRead):
            return ""
        excerpt = raw.replace("\n", " ").strip()
        if len(excerpt) > MAX_ERROR_EXCERPT:
            return f"{excerpt[:MAX_ERROR_EXCERPT]}..."
        return excerpt
