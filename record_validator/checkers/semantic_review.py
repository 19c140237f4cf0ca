"""
Semantic review checker - asks an OpenAI compatible chat model to review a cell.
Enabled only when an API key is configured; failures never leave this module.
"""
import json
import re
from typing import Any, Dict, List, Optional

import openai
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from record_validator.checkers.base import RuleChecker
from record_validator.core.config import Settings, get_settings
from record_validator.core.errors import SemanticServiceError
from record_validator.core.logging import LogEvent
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity

SYSTEM_PROMPT = """당신은 한국의 학교생활기록부 검증 전문가입니다. 학교생활기록부 작성 규정에 따라 텍스트를 검증하고, 문제가 있는 부분을 찾아 JSON 형식으로 응답해주세요.

응답 형식:
{
  "issues": [
    {
      "type": "content|grammar|appropriateness|style",
      "severity": "high|medium|low",
      "message": "문제 설명",
      "suggestion": "개선 제안",
      "confidence": 0.8
    }
  ]
}

검증 기준:
1. 교육적 맥락에서의 적절성
2. 학교생활기록부 작성 규정 준수
3. 한국어 문법 및 표현의 자연스러움
4. 내용의 구체성과 객관성
5. 학생 개인정보 보호 관련 사항"""

USER_PROMPT = """다음 텍스트를 학교생활기록부 작성 기준에 따라 검증해주세요:

텍스트: "{text}"

위치 정보:
- 시트: {sheet}
- 셀: {cell}

다음 관점에서 검증해주세요:
1. 학교생활기록부 작성 규정 준수 여부
2. 교육적으로 적절한 표현 사용 여부
3. 한국어 문법 및 어법의 정확성
4. 내용의 객관성과 구체성
5. 개인정보 보호 관련 이슈

문제가 없으면 빈 배열로 응답해주세요."""

SEVERITY_MAP = {
    "high": Severity.ERROR,
    "medium": Severity.WARNING,
    "low": Severity.INFO,
}

TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.InternalServerError,
)

JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class SemanticReviewChecker(RuleChecker):
    """Contextual review by a language model (Upstage Solar by default)."""

    kind = FindingKind.SEMANTIC_REVIEW
    name = "semantic_review"

    retry_wait = wait_exponential(multiplier=1, min=1, max=8)

    def __init__(self, settings: Optional[Settings] = None, client: Optional[openai.AsyncOpenAI] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self.client = client

    def _ensure_client(self) -> openai.AsyncOpenAI:
        if self.client is None:
            # retries are handled by tenacity below
            self.client = openai.AsyncOpenAI(
                api_key=self.settings.semantic_api_key,
                base_url=self.settings.semantic_base_url,
                timeout=self.settings.semantic_timeout,
                max_retries=0,
            )
        return self.client

    def should_apply(self, context: CellContext) -> bool:
        return self.settings.semantic_enabled

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not self.settings.semantic_enabled or not text:
            return []
        stripped = text.strip()
        if self.is_only_numbers(stripped) or self.is_date_time(stripped):
            return []
        if len(stripped) <= self.settings.semantic_min_length or not self.is_korean_text(stripped):
            return []

        try:
            content = await self.review(stripped, context)
        except SemanticServiceError as e:
            self.logger.warning(
                LogEvent.SEMANTIC_ERROR,
                cell=context.location.reference,
                error=e.message,
                details=e.details,
            )
            return []
        return self.parse_response(content, text)

    async def review(self, text: str, context: CellContext) -> str:
        """Call the chat model with bounded retry on transient failures."""
        client = self._ensure_client()
        prompt = USER_PROMPT.format(text=text, sheet=context.sheet, cell=context.cell)
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                stop=stop_after_attempt(self.settings.semantic_max_retries + 1),
                wait=self.retry_wait,
                reraise=True,
            ):
                with attempt:
                    self.logger.debug(
                        LogEvent.SEMANTIC_CALL,
                        model=self.settings.semantic_model,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    response = await client.chat.completions.create(
                        model=self.settings.semantic_model,
                        messages=[
                            {"role": "system", "content": SYSTEM_PROMPT},
                            {"role": "user", "content": prompt},
                        ],
                        max_tokens=self.settings.semantic_max_tokens,
                        temperature=self.settings.semantic_temperature,
                    )
        except openai.OpenAIError as e:
            raise SemanticServiceError("Semantic review request failed", api_error=e) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def parse_response(self, content: str, original_text: str) -> List[Finding]:
        if not content:
            return []
        payload = self._load_json(content)
        if payload is None:
            self.logger.warning(LogEvent.SEMANTIC_ERROR, error="unparseable response", preview=content[:100])
            return []

        issues = payload.get("issues")
        if not isinstance(issues, list):
            return []

        findings = []
        for issue in issues:
            if not isinstance(issue, dict):
                continue
            confidence = issue.get("confidence")
            findings.append(self.create_finding(
                issue.get("message") or "AI 검증에서 문제가 발견되었습니다",
                f"ai-validation-{issue.get('type') or 'content'}",
                SEVERITY_MAP.get(str(issue.get("severity", "")).lower(), Severity.INFO),
                original_text=original_text,
                suggestion=issue.get("suggestion"),
                confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.7,
            ))
        return findings

    @staticmethod
    def _load_json(content: str) -> Optional[Dict[str, Any]]:
        match = JSON_OBJECT_RE.search(content)
        if not match:
            return None
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        return payload if isinstance(payload, dict) else None
