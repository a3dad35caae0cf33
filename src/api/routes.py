"""LLM Translator API 路由."""

import uuid
import asyncio
from typing import Optional, Set
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from .sse_manager import SSEManager
from config.settings import Settings, settings
from config.logging_config import get_logger
from models.models import SettingsView, TranslateRequest, TranslateResponse
from translator.completion_client import CompletionClient, CompletionStream
from translator.errors import CompletionError, ConfigurationError
from translator.selection_translator import SelectionTranslator

logger = get_logger(__name__)

# 创建路由实例
router = APIRouter(prefix="/api/v1/llm-translator")

# 创建SSE管理器实例
sse_manager = SSEManager()

# 保存后台任务引用，避免任务在完成前被回收
_background_tasks: Set[asyncio.Task] = set()


def get_settings() -> Settings:
    return settings


def get_completion_client() -> CompletionClient:
    return CompletionClient()


@router.get("/settings", response_model=SettingsView)
async def read_settings(config: Settings = Depends(get_settings)):
    """返回当前生效的配置，密钥脱敏."""
    return SettingsView(
        endpoint=config.endpoint,
        api_key=config.masked_api_key(),
        target_mode=config.target_mode,
        model_name=config.model_name,
        replace_text=config.replace_text,
        stream_mode=config.stream_mode,
    )


@router.post("/translate")
async def translate(
    body: TranslateRequest,
    config: Settings = Depends(get_settings),
    client: CompletionClient = Depends(get_completion_client),
):
    """
    翻译一段文本

    Args:
        body: 待翻译文本；stream 为空时使用配置中的 stream_mode

    Returns:
    非流式：{"text": "译文"}
    流式 SSE 消息格式：
       - 增量消息：data: {"type": "delta", "content": "部分译文"}
       - 完成消息：data: {"type": "complete", "content": "完整译文"}
       - 错误消息：data: {"type": "error", "message": "错误详情"}
    """
    translator = SelectionTranslator(client, config=config)
    stream = config.stream_mode if body.stream is None else body.stream

    if not stream:
        try:
            text = await client.complete(translator.build_request(body.text, stream=False))
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=e.user_message)
        except CompletionError as e:
            logger.error(f"翻译失败: {e}")
            raise HTTPException(status_code=502, detail=f"翻译失败: {e}")
        finally:
            await client.aclose()
        return TranslateResponse(text=text)

    try:
        completion = translator.stream_text(body.text)
    except ConfigurationError as e:
        await client.aclose()
        raise HTTPException(status_code=400, detail=e.user_message)

    # 生成任务ID
    job = TranslationStreamJob(str(uuid.uuid4()), completion, client)
    return StreamingResponse(
        job.messages(),
        media_type="text/event-stream",
        background=BackgroundTask(job.close_if_idle),
    )


class TranslationStreamJob:
    """一次流式翻译：后台任务消费模型输出并通过 SSE 转发，结束后关闭客户端

    先注册客户端再启动后台任务，确保所有消息都能被发送。
    客户端断开后后台请求不会被中断，会继续运行到结束。
    """

    def __init__(
        self, task_id: str, completion: CompletionStream, client: CompletionClient
    ):
        self.task_id = task_id
        self.completion = completion
        self.client = client
        self.task: Optional[asyncio.Task] = None

    async def messages(self):
        await sse_manager.register_client(self.task_id)
        # 启动翻译任务作为后台任务
        self.task = asyncio.create_task(self._run())
        _background_tasks.add(self.task)
        self.task.add_done_callback(_background_tasks.discard)

        async for message in sse_manager.stream_messages(self.task_id):
            yield message

    async def close_if_idle(self) -> None:
        """响应结束时后台任务还没有启动（例如客户端提前断开），由这里关闭客户端."""
        if self.task is None:
            await self.client.aclose()

    async def _run(self) -> None:
        task_id = self.task_id
        try:
            async for delta in self.completion:
                await sse_manager.send_delta(task_id, delta)
            logger.info(f"翻译完成，任务 {task_id}")
            await sse_manager.send_complete(task_id, self.completion.text)
        except CompletionError as e:
            logger.error(f"翻译失败: {e}")
            await sse_manager.send_error(task_id, f"翻译失败: {e}")
        except Exception as e:
            logger.exception(f"翻译失败: {str(e)}")
            await sse_manager.send_error(task_id, f"翻译失败: {str(e)}")
        finally:
            await self.client.aclose()
