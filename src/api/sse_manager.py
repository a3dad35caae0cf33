"""SSE管理器，用于把流式翻译的增量推送给客户端."""

import json
import asyncio
from typing import AsyncGenerator, Dict, Any
from models.models import SSEMessageType


class SSEManager:
    """SSE管理器类."""

    def __init__(self):
        self.clients: Dict[str, asyncio.Queue] = {}  # 存储客户端连接

    async def send_delta(self, task_id: str, content: str) -> None:
        """发送一段翻译增量."""
        await self._send_sse_message(
            task_id, {"type": SSEMessageType.DELTA, "content": content}
        )

    async def send_complete(self, task_id: str, content: str) -> None:
        """发送完成消息，携带完整译文."""
        await self._send_sse_message(
            task_id, {"type": SSEMessageType.COMPLETE, "content": content}
        )

    async def send_error(self, task_id: str, message: str) -> None:
        """发送错误消息."""
        await self._send_sse_message(
            task_id, {"type": SSEMessageType.ERROR, "message": message}
        )

    async def _send_sse_message(
        self, task_id: str, message_data: Dict[str, Any]
    ) -> None:
        """发送SSE消息."""
        if task_id in self.clients:
            queue = self.clients[task_id]
            await queue.put((message_data, self.format_message(message_data)))

    @staticmethod
    def format_message(message_data: Dict[str, Any]) -> str:
        return f"data: {json.dumps(message_data, ensure_ascii=False)}\n\n"

    @staticmethod
    def is_terminal(message_data: Dict[str, Any]) -> bool:
        """完成或错误消息之后不会再有后续消息."""
        return message_data.get("type") in (SSEMessageType.COMPLETE, SSEMessageType.ERROR)

    async def register_client(self, task_id: str) -> asyncio.Queue:
        """注册客户端连接."""
        queue = asyncio.Queue()
        self.clients[task_id] = queue
        return queue

    async def unregister_client(self, task_id: str) -> None:
        """注销客户端连接."""
        self.clients.pop(task_id, None)

    async def stream_messages(self, task_id: str) -> AsyncGenerator[str, None]:
        """流式传输消息，直到收到完成或错误消息."""
        queue = self.clients.get(task_id)
        if queue is None:
            queue = await self.register_client(task_id)
        try:
            while True:
                message_data, message = await queue.get()
                yield message
                queue.task_done()
                if self.is_terminal(message_data):
                    break
        finally:
            await self.unregister_client(task_id)
