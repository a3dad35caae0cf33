"""翻译流程中使用的异常类型."""

from typing import Iterable, Optional

# 缺少关键配置时展示给用户的提示
CONFIGURATION_MESSAGE = "关键参数没有设置完全"


class CompletionError(Exception):
    """所有 completion 相关异常的基类."""


class ConfigurationError(CompletionError):
    """endpoint / api_key / 目标模式 缺失."""

    def __init__(self, missing: Optional[Iterable[str]] = None):
        self.missing = list(missing or [])
        super().__init__(CONFIGURATION_MESSAGE)

    @property
    def user_message(self) -> str:
        return CONFIGURATION_MESSAGE


class NetworkError(CompletionError):
    """传输层失败（连接失败、超时等）."""


class HttpError(CompletionError):
    """接口返回非 2xx 状态码."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP error! Status: {status}")


class MalformedResponseError(CompletionError):
    """响应体不是预期的 JSON 结构."""


class StreamParseError(CompletionError):
    """单行 SSE 事件解析失败，只在解析器内部使用，不会向外抛出."""
