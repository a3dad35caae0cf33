"""流式响应（SSE 风格 data: 行）的增量解析器."""

import codecs
import json
from typing import List, Optional

from config.logging_config import get_logger
from translator.errors import StreamParseError

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class SSEStreamParser:
    """
    将任意切分的字节块解析为文本增量.

    - 使用增量 UTF-8 解码器，多字节字符可以跨块
    - 每块解码后按换行切分，最后一段可能不完整，留到下一块再处理
    - 遇到 data: [DONE] 后停止消费后续内容
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""
        self._done = False
        self._parts: List[str] = []
        self.skipped_lines = 0

    @property
    def done(self) -> bool:
        """是否已经收到结束标记."""
        return self._done

    @property
    def text(self) -> str:
        """目前为止所有增量的拼接结果."""
        return "".join(self._parts)

    def feed(self, chunk: bytes) -> List[str]:
        """喂入一块字节，返回本块中可以确定的增量."""
        if self._done or not chunk:
            return []
        return self._consume(self._decoder.decode(chunk), final=False)

    def finish(self) -> List[str]:
        """输入结束：冲刷解码器，并处理最后一行（如果没有以换行结尾）."""
        if self._done:
            return []
        return self._consume(self._decoder.decode(b"", final=True), final=True)

    def _consume(self, decoded: str, final: bool) -> List[str]:
        lines = (self._pending + decoded).split("\n")
        self._pending = "" if final else lines.pop()
        deltas = []
        for line in lines:
            try:
                delta = self._parse_line(line)
            except StreamParseError as e:
                self.skipped_lines += 1
                logger.debug(f"跳过无法解析的事件行: {e}")
                continue
            if self._done:
                self._pending = ""
                break
            if delta:
                self._parts.append(delta)
                deltas.append(delta)
        return deltas

    def _parse_line(self, line: str) -> Optional[str]:
        line = line.strip()
        if not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            self._done = True
            return None
        try:
            event = json.loads(payload)
            content = event["choices"][0]["delta"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise StreamParseError(f"{payload[:80]!r}: {e}") from e
        if content and isinstance(content, str):
            return content
        return None
