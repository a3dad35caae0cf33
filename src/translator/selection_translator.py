"""选中文本翻译流程：读取选区 -> 调用模型 -> 渲染结果."""

import asyncio
from typing import Optional

from config.settings import Settings, settings as default_settings
from config.logging_config import get_logger
from models.models import CompletionRequest, RenderTarget, TargetMode
from translator.completion_client import CompletionClient, CompletionStream
from translator.errors import CompletionError, ConfigurationError
from translator.prompts import get_system_content
from translator.render import DocumentHost, RenderReconciler

logger = get_logger(__name__)


class SelectionTranslator:
    """
    串联 completion 客户端和渲染器.

    同一时间只处理一个翻译动作：后发起的动作会等待前一个完成后再开始，
    避免两个会话交替更新同一个面板。
    """

    def __init__(
        self,
        client: CompletionClient,
        host: Optional[DocumentHost] = None,
        reconciler: Optional[RenderReconciler] = None,
        config: Optional[Settings] = None,
    ):
        self.client = client
        self.host = host
        self.reconciler = reconciler or (RenderReconciler(host) if host is not None else None)
        self.config = config or default_settings
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def build_request(self, text: str, stream: bool) -> CompletionRequest:
        """根据当前配置构造请求，目标模式未设置时 system_prompt 为空，发送前会被拒绝."""
        mode = TargetMode.resolve(self.config.target_mode)
        return CompletionRequest(
            endpoint=self.config.endpoint,
            api_key=self.config.api_key,
            model_name=self.config.model_name or None,
            system_prompt=get_system_content(mode) if mode else "",
            user_text=text,
            stream=stream,
        )

    def render_target(self) -> RenderTarget:
        if self.config.replace_text:
            return RenderTarget.REPLACE_SELECTION
        return RenderTarget.FLOATING_PANEL

    async def translate_selection(self) -> Optional[str]:
        """
        翻译宿主文档中当前选中的文本.

        Returns:
            最终渲染的文本；没有选中内容或请求失败时返回 None
        """
        if self.host is None or self.reconciler is None:
            raise RuntimeError("translate_selection 需要提供宿主文档")
        if self.busy:
            logger.info("上一次翻译尚未完成，等待其结束")
        async with self._lock:
            return await self._run_selection()

    async def _run_selection(self) -> Optional[str]:
        self._host_call("显示加载状态", self.host.show_loading_indicator)
        try:
            selected_text = self.host.get_selected_text()
            if not selected_text:
                logger.info("没有选中的文本")
                return None
            target = self.render_target()
            logger.info(
                f"开始翻译选中文本，长度 {len(selected_text)}，"
                f"目标 {target.value}，流式 {self.config.stream_mode}"
            )
            if self.config.stream_mode:
                return await self._render_stream(selected_text, target)
            return await self._render_buffered(selected_text, target)
        except CompletionError as e:
            logger.error(f"翻译失败: {e}")
            return None
        except Exception as e:
            logger.exception(f"翻译过程中出现错误: {e}")
            return None
        finally:
            self._host_call("移除加载状态", self.host.remove_loading_indicator)

    async def _render_buffered(self, text: str, target: RenderTarget) -> Optional[str]:
        try:
            translated = await self.client.complete(self.build_request(text, stream=False))
        except ConfigurationError as e:
            logger.warning(f"配置不完整，缺少: {', '.join(e.missing)}")
            translated = e.user_message
        if not translated:
            return None
        self.reconciler.begin_session()
        try:
            self.reconciler.on_delta(translated, target, is_session_start=True)
        finally:
            self.reconciler.end_session()
        return translated

    async def _render_stream(self, text: str, target: RenderTarget) -> Optional[str]:
        stream = self.client.complete_stream(self.build_request(text, stream=True))
        self.reconciler.begin_session()
        accumulated = ""
        is_session_start = True
        try:
            async for delta in stream:
                accumulated += delta
                self.reconciler.on_delta(accumulated, target, is_session_start)
                is_session_start = False
        finally:
            self.reconciler.end_session()
        return stream.text or None

    def stream_text(self, text: str) -> CompletionStream:
        """直接翻译一段文本（流式），配置缺失时立即抛出 ConfigurationError."""
        return self.client.complete_stream(self.build_request(text, stream=True))

    def _host_call(self, action: str, func) -> None:
        try:
            func()
        except Exception:
            logger.exception(f"{action}失败")
