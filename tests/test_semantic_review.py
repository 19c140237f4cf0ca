import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from tenacity import wait_none

from record_validator.checkers.semantic_review import SemanticReviewChecker
from record_validator.models.validation import FindingKind, Severity

TEXT = "학생은 모둠 활동에서 자료 조사를 맡아 성실하게 수행하였으며 발표를 준비함."
REQUEST = httpx.Request("POST", "https://api.example.com/v1/chat/completions")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def issues_payload(*issues) -> str:
    return json.dumps({"issues": list(issues)}, ensure_ascii=False)


@pytest.fixture()
def semantic_settings(settings):
    return settings.model_copy(update={"semantic_api_key": "test-key", "semantic_max_retries": 2})


@pytest.fixture()
def client():
    mock = MagicMock()
    mock.chat.completions.create = AsyncMock()
    return mock


@pytest.fixture()
def checker(semantic_settings, client):
    checker = SemanticReviewChecker(semantic_settings, client=client)
    checker.retry_wait = wait_none()
    return checker


class TestSemanticReview:
    @pytest.mark.asyncio
    async def test_issues_become_findings(self, checker, client, make_context) -> None:
        client.chat.completions.create.return_value = completion(
            "검토 결과입니다.\n" + issues_payload(
                {"type": "content", "severity": "high", "message": "주관적 표현", "suggestion": "구체화", "confidence": 0.9},
                {"type": "style", "severity": "low", "message": "어색한 표현"},
            )
        )

        findings = await checker.check(TEXT, make_context())

        assert [f.rule for f in findings] == ["ai-validation-content", "ai-validation-style"]
        assert findings[0].kind == FindingKind.SEMANTIC_REVIEW
        assert findings[0].severity == Severity.ERROR
        assert findings[0].suggestion == "구체화"
        assert findings[0].confidence == 0.9
        assert findings[1].severity == Severity.INFO
        assert findings[1].confidence == 0.7

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "solar-pro"
        assert TEXT in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, checker, client, make_context) -> None:
        client.chat.completions.create.side_effect = [
            openai.APIConnectionError(request=REQUEST),
            completion(issues_payload({"type": "grammar", "severity": "medium", "message": "맞춤법"})),
        ]

        findings = await checker.check(TEXT, make_context())

        assert client.chat.completions.create.await_count == 2
        assert [f.severity for f in findings] == [Severity.WARNING]

    @pytest.mark.asyncio
    async def test_exhausted_retries_produce_no_findings(self, checker, client, make_context) -> None:
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

        assert await checker.check(TEXT, make_context()) == []
        assert client.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_authentication_error_is_not_retried(self, checker, client, make_context) -> None:
        client.chat.completions.create.side_effect = openai.AuthenticationError(
            "invalid key", response=httpx.Response(401, request=REQUEST), body=None
        )

        assert await checker.check(TEXT, make_context()) == []
        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["짧은 문장", "20240302", "2024-03-02", "English only text without Korean letters"])
    async def test_unsuitable_text_is_not_sent(self, checker, client, make_context, text) -> None:
        assert await checker.check(text, make_context()) == []
        client.chat.completions.create.assert_not_awaited()

    @pytest.mark.parametrize(
        "content",
        ["", "응답을 생성할 수 없습니다", "{not json}", '{"issues": "none"}', '{"issues": ["bad", 3]}'],
    )
    def test_unusable_responses_are_ignored(self, checker, content) -> None:
        assert checker.parse_response(content, TEXT) == []

    def test_disabled_without_api_key(self, settings, make_context) -> None:
        assert not SemanticReviewChecker(settings).should_apply(make_context())
