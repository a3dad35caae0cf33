"""测试用的内存文档，实现 DocumentHost 协议."""

from typing import Dict, List, Optional, Tuple

from translator.render import PanelState, Rect


class FakeRange:
    """类似 DOM Range：替换后范围扩展为包含新插入的内容."""

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end


class FakeDocument:
    def __init__(
        self,
        text: str = "",
        selection: Tuple[int, int] = (0, 0),
        rect: Optional[Rect] = Rect(left=100, top=40, right=180, bottom=60),
        scroll: Tuple[float, float] = (0.0, 0.0),
    ):
        self.text = text
        self.selection = selection
        self.rect = rect
        self.scroll = scroll
        self.detached = False
        self.content_missing = False
        self.fail_mount = False
        self.fail_clipboard = False
        self.loading = False
        self.loading_history: List[bool] = []
        self.panels: Dict[int, Dict] = {}
        self.panel_history: List[str] = []
        self.replace_history: List[str] = []
        self.clipboard: Optional[str] = None
        self.mount_count = 0
        self._next_handle = 1

    def get_selected_text(self) -> str:
        start, end = self.selection
        return self.text[start:end]

    def capture_selection(self) -> Optional[FakeRange]:
        start, end = self.selection
        if start == end:
            return None
        return FakeRange(start, end)

    def replace_range(self, anchor: FakeRange, text: str) -> bool:
        if self.detached or anchor.end > len(self.text):
            return False
        self.text = self.text[: anchor.start] + text + self.text[anchor.end:]
        anchor.end = anchor.start + len(text)
        self.replace_history.append(text)
        return True

    def selection_rect(self) -> Optional[Rect]:
        return self.rect

    def scroll_offset(self) -> Tuple[float, float]:
        return self.scroll

    def mount_panel(self, panel: PanelState) -> int:
        if self.fail_mount:
            raise RuntimeError("document.body is not available")
        handle = self._next_handle
        self._next_handle += 1
        self.mount_count += 1
        self.panels[handle] = {
            "text": panel.accumulated_text,
            "left": panel.left,
            "top": panel.top,
            "copied": False,
        }
        self.panel_history.append(panel.accumulated_text)
        return handle

    def update_panel(self, handle: int, text: str) -> bool:
        if self.content_missing or handle not in self.panels:
            return False
        self.panels[handle]["text"] = text
        self.panel_history.append(text)
        return True

    def move_panel(self, handle: int, left: float, top: float) -> None:
        self.panels[handle]["left"] = left
        self.panels[handle]["top"] = top

    def unmount_panel(self, handle: int) -> None:
        self.panels.pop(handle, None)

    def set_copy_indicator(self, handle: int, copied: bool) -> None:
        if handle in self.panels:
            self.panels[handle]["copied"] = copied

    def write_clipboard(self, text: str) -> None:
        if self.fail_clipboard:
            raise PermissionError("clipboard write denied")
        self.clipboard = text

    def show_loading_indicator(self) -> None:
        self.loading = True
        self.loading_history.append(True)

    def remove_loading_indicator(self) -> None:
        self.loading = False
        self.loading_history.append(False)

    @property
    def only_panel(self) -> Dict:
        assert len(self.panels) == 1, f"expected one panel, got {len(self.panels)}"
        return next(iter(self.panels.values()))
