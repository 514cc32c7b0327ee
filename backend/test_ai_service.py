"""
AI service layer tests: retry policy, call modes, reply post-processing.
"""
import pytest

from erp_ai import prompts
from erp_ai.ai_service import (
    CUSTOM_PROMPT_MARKER,
    ORDER_DATA_MARKER,
    strip_code_fences,
    trim_custom_prompt,
    trim_order_data,
)
from erp_ai.exceptions import (
    AIResponseError,
    AIServiceError,
    AITimeoutError,
    AIUnavailableError,
)
from erp_ai.groq_client import GroqClient
from erp_ai.retry import RetryPolicy


def test_retry_delays_double(sleeps):
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise AIServiceError("AI服务连接失败")
        return "ok"

    policy = RetryPolicy(max_attempts=3, base_delay=1.0, sleep=sleeps.append)
    assert policy.call(flaky) == "ok"
    assert len(attempts) == 3
    assert sleeps == [1.0, 2.0]
    assert policy.delay_for(3) == 4.0


def test_retry_gives_up_and_keeps_timeout_type(sleeps):
    policy = RetryPolicy(max_attempts=3, base_delay=1.0, sleep=sleeps.append)

    def always_timeout():
        raise AITimeoutError("AI请求超时 (timeout 15s)")

    with pytest.raises(AITimeoutError) as exc:
        policy.call(always_timeout, mode="INTENT")
    assert "已重试3次" in exc.value.message
    assert isinstance(exc.value.cause, AITimeoutError)
    assert sleeps == [1.0, 2.0]


def test_non_retryable_error_surfaces_immediately(sleeps):
    policy = RetryPolicy(sleep=sleeps.append)
    calls = []

    def unavailable():
        calls.append(1)
        raise AIUnavailableError("AI服务未配置API密钥")

    with pytest.raises(AIUnavailableError):
        policy.call(unavailable)
    assert len(calls) == 1
    assert sleeps == []


def test_retry_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("```\nplain\n```") == "plain"
    assert strip_code_fences("  no fences  ") == "no fences"
    assert strip_code_fences(None) == ""


def test_trimming():
    data = "a" * 3000 + "b" * 3000
    trimmed = trim_order_data(data)
    assert trimmed == "a" * 2000 + ORDER_DATA_MARKER + "b" * 2000
    assert trim_order_data("short") == "short"

    prompt = "x" * 800 + "y" * 400
    assert trim_custom_prompt(prompt) == "x" * 700 + CUSTOM_PROMPT_MARKER + "y" * 200
    assert trim_custom_prompt("") == ""


def test_call_modes_use_their_timeouts(make_ai):
    ai, transport = make_ai(["你好！", "分析结果"])
    assert ai.chat("你好") == "你好！"
    assert ai.analyze_data("销售数据", "finance") == "分析结果"

    assert transport.calls[0]["timeout"] == ai.timeouts["chat"]
    assert transport.calls[0]["messages"][0]["content"] == prompts.CHAT_PROMPT
    assert transport.calls[1]["timeout"] == ai.timeouts["analysis"]
    assert prompts.ANALYSIS_FOCUS["FINANCE"] in transport.calls[1]["messages"][0]["content"]


def test_empty_reply_is_a_failed_attempt(make_ai, sleeps):
    ai, transport = make_ai(["   ", "```\n```", "终于有内容"])
    assert ai.chat("你好") == "终于有内容"
    assert len(transport.calls) == 3


def test_short_order_analysis_is_retried(make_ai):
    long_report = "订单分析：" + "销售稳定增长。" * 20
    ai, transport = make_ai(["太短了", long_report])
    assert ai.analyze_order_data("📊 订单数据") == long_report
    assert len(transport.calls) == 2
    assert transport.calls[0]["timeout"] == ai.timeouts["order_analysis"]
    assert transport.calls[0]["temperature"] == 0.4


def test_order_analysis_gives_up(make_ai):
    ai, _ = make_ai(["短", "短", "短"])
    with pytest.raises(AIServiceError) as exc:
        ai.analyze_order_data("📊 订单数据")
    assert isinstance(exc.value.cause, AIResponseError)


def test_health_check_is_single_attempt(make_ai):
    ai, transport = make_ai(fail_with=AITimeoutError("AI请求超时 (timeout 15s)"))
    assert ai.health_check() is False
    assert len(transport.calls) == 1

    ai, _ = make_ai(["连接正常"])
    status = ai.service_status()
    assert status["healthy"] is True
    assert status["status"] == "ACTIVE"
    assert status["maxAttempts"] == 3


def test_groq_client_without_key_is_unavailable():
    client = GroqClient(api_key="")
    assert client.is_available() is False
    with pytest.raises(AIUnavailableError):
        client.complete([{"role": "user", "content": "你好"}], timeout=1)
