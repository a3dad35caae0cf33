"""数据模型定义."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from translator.errors import ConfigurationError


class TargetMode(str, Enum):
    """目标模式，决定 system prompt 的内容."""

    EDITING_ASSISTANT = "editing_assistant"
    TRANSLATE = "translate"

    @classmethod
    def resolve(cls, value: Optional[str]) -> Optional["TargetMode"]:
        """将设置中的字符串解析为模式，未设置时返回 None，未知值一律按翻译处理."""
        if isinstance(value, cls):
            return value
        if not value or not str(value).strip():
            return None
        if str(value).strip() == cls.EDITING_ASSISTANT.value:
            return cls.EDITING_ASSISTANT
        return cls.TRANSLATE


class RenderTarget(str, Enum):
    """翻译结果的展示位置."""

    REPLACE_SELECTION = "replace_selection"
    FLOATING_PANEL = "floating_panel"


class ChatMessage(BaseModel):
    """单条对话消息."""

    role: str
    content: str


class CompletionRequest(BaseModel):
    """一次 chat completion 调用所需的全部参数."""

    endpoint: str = ""
    api_key: str = ""
    model_name: Optional[str] = None
    system_prompt: str = ""
    user_text: str = ""
    stream: bool = False

    def validate_for_send(self) -> None:
        """发送前校验关键参数，缺失时在任何网络调用之前抛出 ConfigurationError."""
        missing = [
            name
            for name, value in (
                ("endpoint", self.endpoint),
                ("api_key", self.api_key),
                ("system_prompt", self.system_prompt),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise ConfigurationError(missing)

    def messages(self) -> List[ChatMessage]:
        return [
            ChatMessage(role="system", content=self.system_prompt),
            ChatMessage(role="user", content=self.user_text),
        ]

    def to_payload(self) -> Dict:
        """构造请求体，模型名为空时不携带 model 字段，非流式时不携带 stream 字段."""
        payload: Dict = {}
        if self.model_name:
            payload["model"] = self.model_name
        payload["messages"] = [message.model_dump() for message in self.messages()]
        if self.stream:
            payload["stream"] = True
        return payload


class TranslateRequest(BaseModel):
    """翻译接口请求数据模型."""

    text: str = Field(..., min_length=1)
    stream: Optional[bool] = None


class TranslateResponse(BaseModel):
    """翻译接口非流式响应."""

    text: str


class SettingsView(BaseModel):
    """对外展示的当前配置，密钥已脱敏."""

    endpoint: str
    api_key: str
    target_mode: str
    model_name: str
    replace_text: bool
    stream_mode: bool


class SSEMessageType:
    """SSE消息类型常量."""

    DELTA = "delta"
    COMPLETE = "complete"
    ERROR = "error"
