from typing import Any

from app.core.config import SentryConfig

FILTERED = "[Filtered]"

# 中文注释: 审稿人的保密意见只允许编辑查看，任何情况下都不能进入 Sentry 事件。
_SENSITIVE_KEYS = {
    "authorization",
    "cookie",
    "set-cookie",
    "password",
    "token",
    "access_token",
    "refresh_token",
    "supabase_key",
    "service_role_key",
    "confidential_comments",
}

# 超过该长度的字符串视为稿件正文/摘要，不上报
_MAX_TEXT_LEN = 5000


def _scrub(value: Any) -> Any:
    """
    递归去除敏感字段、PDF 字节与超长文本。
    """
    if isinstance(value, (bytes, bytearray)):
        return FILTERED
    if isinstance(value, str):
        return FILTERED if len(value) > _MAX_TEXT_LEN else value
    if isinstance(value, dict):
        return {
            str(k): FILTERED if str(k).strip().lower() in _SENSITIVE_KEYS else _scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {
                k: v for k, v in headers.items() if str(k).strip().lower() not in _SENSITIVE_KEYS
            }
        # 请求体（投稿 multipart、审稿意见）一律不上报
        for key in ("cookies", "data", "body"):
            if key in request:
                request[key] = FILTERED
        event["request"] = request

    for section in ("extra", "contexts"):
        obj = event.get(section)
        if isinstance(obj, dict):
            event[section] = _scrub(obj)

    return event


def init_sentry() -> bool:
    """
    初始化 Sentry。未配置 DSN 或显式关闭时返回 False。

    调用方负责 try/except：初始化失败不得阻塞应用启动。
    """
    cfg = SentryConfig.from_env()
    if not cfg.enabled or not cfg.dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=cfg.dsn,
        environment=cfg.environment,
        traces_sample_rate=cfg.traces_sample_rate,
        integrations=[FastApiIntegration()],
        send_default_pii=False,
        max_request_body_size="never",
        before_send=_before_send,
    )
    return True
