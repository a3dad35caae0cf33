"""基于 httpx 的 chat completion 客户端，支持非流式和流式两种调用方式."""

from typing import AsyncIterator, Dict, Optional

import httpx

from config.settings import settings
from config.logging_config import get_logger
from models.models import CompletionRequest
from translator.errors import HttpError, MalformedResponseError, NetworkError
from translator.sse_parser import SSEStreamParser

logger = get_logger(__name__)


def build_headers(api_key: str) -> Dict[str, str]:
    """构造请求头，密钥同时放在 api-key 和 Bearer 授权头中，兼容不同网关."""
    return {
        "accept": "application/json",
        "api-key": api_key,
        "content-type": "application/json",
        "authorization": f"Bearer {api_key}",
        "referrer-policy": "strict-origin-when-cross-origin",
    }


class CompletionStream:
    """
    流式调用的结果：一个只能消费一次的异步增量序列.

    在第一次迭代时才真正发起请求；迭代结束后 text 为全部增量的拼接。
    """

    def __init__(self, client: "CompletionClient", request: CompletionRequest):
        self._client = client
        self._request = request
        self._parser = SSEStreamParser()
        self._started = False
        self.finished = False

    @property
    def text(self) -> str:
        return self._parser.text

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("CompletionStream 只能被消费一次")
        self._started = True
        return self._iterate()

    async def collect(self) -> str:
        """消费整个流并返回拼接后的完整文本."""
        async for _ in self:
            pass
        return self.text

    async def _iterate(self) -> AsyncIterator[str]:
        request = self._request
        try:
            async with self._client.open_stream(request) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise HttpError(response.status_code, body)
                async for chunk in response.aiter_bytes():
                    for delta in self._parser.feed(chunk):
                        yield delta
                    if self._parser.done:
                        break
                for delta in self._parser.finish():
                    yield delta
        except (httpx.TransportError, httpx.InvalidURL) as e:
            logger.error(f"流式请求失败: {e}")
            raise NetworkError(str(e)) from e
        self.finished = True
        logger.info(
            f"流式翻译完成，共 {len(self.text)} 个字符，跳过 {self._parser.skipped_lines} 行"
        )


class CompletionClient:
    """Chat completion 客户端."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化客户端.
        :param timeout: 请求超时时间（秒），默认读取配置
        :param transport: 自定义传输层，测试时可传入 httpx.MockTransport
        """
        self.client = httpx.AsyncClient(
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def complete(self, request: CompletionRequest) -> str:
        """
        非流式调用，返回 choices[0].message.content.

        Raises:
            ConfigurationError: 关键参数缺失，未发起任何网络请求
            NetworkError: 传输层失败
            HttpError: 非 2xx 状态码
            MalformedResponseError: 响应结构不符合预期
        """
        request.validate_for_send()
        if request.stream:
            request = request.model_copy(update={"stream": False})
        logger.debug(f"发起非流式请求: {request.endpoint}")
        # 不携带任何 cookie
        self.client.cookies.clear()
        try:
            response = await self.client.post(
                request.endpoint,
                headers=build_headers(request.api_key),
                json=request.to_payload(),
            )
        except (httpx.TransportError, httpx.InvalidURL) as e:
            logger.error(f"请求失败: {e}")
            raise NetworkError(str(e)) from e

        if not response.is_success:
            raise HttpError(response.status_code, response.text)

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"响应中缺少 choices[0].message.content: {e}") from e
        if not isinstance(content, str):
            raise MalformedResponseError("choices[0].message.content 不是字符串")
        return content

    def complete_stream(self, request: CompletionRequest) -> CompletionStream:
        """流式调用；参数校验在调用时立即进行，网络请求在开始迭代时才发起."""
        request.validate_for_send()
        if not request.stream:
            request = request.model_copy(update={"stream": True})
        return CompletionStream(self, request)

    def open_stream(self, request: CompletionRequest):
        """打开流式 HTTP 响应（异步上下文管理器）."""
        logger.debug(f"发起流式请求: {request.endpoint}")
        self.client.cookies.clear()
        return self.client.stream(
            "POST",
            request.endpoint,
            headers=build_headers(request.api_key),
            json=request.to_payload(),
        )
