"""翻译结果的渲染：替换选中文本，或在选区下方显示浮动面板."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Tuple

from config.logging_config import get_logger
from models.models import RenderTarget

logger = get_logger(__name__)

# 复制成功提示的持续时间（秒）
COPY_FEEDBACK_SECONDS = 2.0


@dataclass(frozen=True)
class Rect:
    """选区的包围盒，视口坐标."""

    left: float
    top: float
    right: float
    bottom: float


@dataclass
class PanelState:
    """浮动面板状态，同一时间最多存在一个."""

    anchor_rect: Rect
    accumulated_text: str
    left: float
    top: float
    is_open: bool = True
    copied: bool = False
    handle: Any = None


class DocumentHost(Protocol):
    """宿主文档提供的读取和修改能力."""

    def get_selected_text(self) -> str:
        ...

    def capture_selection(self) -> Optional[Any]:
        """记录当前选区边界，返回之后可以重新解析的锚点."""
        ...

    def replace_range(self, anchor: Any, text: str) -> bool:
        """用 text 替换锚点对应的原始范围，锚点无法解析时返回 False."""
        ...

    def selection_rect(self) -> Optional[Rect]:
        ...

    def scroll_offset(self) -> Tuple[float, float]:
        ...

    def mount_panel(self, panel: PanelState) -> Any:
        ...

    def update_panel(self, handle: Any, text: str) -> bool:
        """更新面板内容，找不到内容元素时返回 False."""
        ...

    def move_panel(self, handle: Any, left: float, top: float) -> None:
        ...

    def unmount_panel(self, handle: Any) -> None:
        ...

    def set_copy_indicator(self, handle: Any, copied: bool) -> None:
        ...

    def write_clipboard(self, text: str) -> None:
        ...

    def show_loading_indicator(self) -> None:
        ...

    def remove_loading_indicator(self) -> None:
        ...


class ReconcilerState(str, Enum):
    """渲染会话状态."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    CLOSED = "closed"


class RenderReconciler:
    """
    将增量文本映射到渲染目标.

    每次调用传入的都是目前为止的完整文本：
    - 替换模式下始终替换会话开始时记录的原始选区，而不是上一次替换后的范围
    - 面板模式下首次调用（或面板已不存在）时重建面板，之后只覆盖内容
    宿主操作的异常都在这里捕获并记录，不会中断正在进行的流。
    """

    def __init__(self, host: DocumentHost, copy_feedback_delay: float = COPY_FEEDBACK_SECONDS):
        self.host = host
        self.copy_feedback_delay = copy_feedback_delay
        self.state = ReconcilerState.IDLE
        self.panel: Optional[PanelState] = None
        self._anchor: Any = None
        # begin_session 刚记录、尚未被会话首个增量使用的锚点
        self._anchor_fresh = False
        self._drag_offset: Optional[Tuple[float, float]] = None

    def begin_session(self) -> None:
        """开始新的会话，记录原始选区."""
        self._anchor = self._safe_call("记录选区", self.host.capture_selection)
        self._anchor_fresh = True
        self.state = ReconcilerState.ACCUMULATING

    def end_session(self) -> None:
        if self.state == ReconcilerState.ACCUMULATING:
            self.state = ReconcilerState.IDLE
        self._anchor = None
        self._anchor_fresh = False

    def on_delta(self, text: str, target: RenderTarget, is_session_start: bool = False) -> None:
        """应用一次增量，text 为目前为止累积的完整文本."""
        if target == RenderTarget.REPLACE_SELECTION:
            self._apply_replacement(text, is_session_start)
        else:
            self._apply_panel(text, is_session_start)

    def _apply_replacement(self, text: str, is_session_start: bool) -> None:
        if not text:
            return
        if is_session_start and not self._anchor_fresh:
            # 新会话必须重新记录选区，不能沿用上一会话的锚点
            self.begin_session()
        self._anchor_fresh = False
        if self._anchor is None:
            logger.warning("原始选区不可用，跳过替换")
            return
        replaced = self._safe_call("替换选中文本", self.host.replace_range, self._anchor, text)
        if replaced is False:
            logger.warning("原始选区已无法解析，跳过替换")

    def _apply_panel(self, text: str, is_session_start: bool) -> None:
        if is_session_start or self.panel is None:
            self._create_panel(text)
            return
        self.panel.accumulated_text = text
        updated = self._safe_call("更新面板内容", self.host.update_panel, self.panel.handle, text)
        if not updated:
            logger.warning("找不到面板内容元素，跳过更新")

    def _create_panel(self, text: str) -> None:
        # 已有面板先完整移除，保证同一时间只有一个
        self._teardown_panel()
        rect = self._safe_call("读取选区位置", self.host.selection_rect)
        if rect is None:
            logger.warning("没有可用的选区，无法创建翻译面板")
            return
        offset = self._safe_call("读取滚动位置", self.host.scroll_offset) or (0.0, 0.0)
        scroll_x, scroll_y = offset
        panel = PanelState(
            anchor_rect=rect,
            accumulated_text=text,
            left=rect.left + scroll_x,
            top=rect.bottom + scroll_y,
        )
        handle = self._safe_call("创建面板", self.host.mount_panel, panel)
        if handle is None:
            return
        panel.handle = handle
        self.panel = panel
        self.state = ReconcilerState.ACCUMULATING

    def _teardown_panel(self) -> None:
        panel = self.panel
        if panel is None:
            return
        self.panel = None
        self._drag_offset = None
        panel.is_open = False
        self._safe_call("移除面板", self.host.unmount_panel, panel.handle)

    def dismiss(self) -> None:
        """关闭面板（点击面板外部或关闭按钮）；不会中断进行中的请求."""
        if self.panel is None:
            return
        self._teardown_panel()
        self.state = ReconcilerState.CLOSED

    def start_drag(self, page_x: float, page_y: float) -> None:
        if self.panel is None:
            return
        self._drag_offset = (page_x - self.panel.left, page_y - self.panel.top)

    def drag_to(self, page_x: float, page_y: float) -> None:
        if self.panel is None or self._drag_offset is None:
            return
        dx, dy = self._drag_offset
        self.panel.left = page_x - dx
        self.panel.top = page_y - dy
        self._safe_call("移动面板", self.host.move_panel, self.panel.handle, self.panel.left, self.panel.top)

    def end_drag(self) -> None:
        self._drag_offset = None

    async def copy_to_clipboard(self) -> bool:
        """复制当前面板文本，成功后显示提示并在固定时间后恢复."""
        panel = self.panel
        if panel is None:
            return False
        try:
            self.host.write_clipboard(panel.accumulated_text)
        except Exception as e:
            logger.error(f"复制失败: {e}")
            return False
        panel.copied = True
        self._safe_call("显示复制提示", self.host.set_copy_indicator, panel.handle, True)
        asyncio.get_running_loop().call_later(
            self.copy_feedback_delay, self._reset_copy_indicator, panel
        )
        return True

    def _reset_copy_indicator(self, panel: PanelState) -> None:
        panel.copied = False
        if panel.is_open and panel is self.panel:
            self._safe_call("恢复复制按钮", self.host.set_copy_indicator, panel.handle, False)

    def _safe_call(self, action: str, func, *args):
        try:
            return func(*args)
        except Exception:
            logger.exception(f"{action}失败")
            return None
