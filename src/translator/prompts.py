"""system 角色提示词."""

from typing import Optional, Union

from models.models import TargetMode

EDITING_ASSISTANT_PROMPT = (
    "你是一个专业的编辑助手。请将以下文本修改得更加清晰、专业，适合用于官方文档。"
    "请直接输出修改后的文本，不要包含任何额外的评论或解释。"
)

TRANSLATE_PROMPT = (
    "你是一个专业的翻译引擎。请翻译以下文本。如果是中文，请翻译成英文；如果是英文，请翻译成中文。"
    "请直接输出翻译结果，不要包含任何额外的评论或解释。"
)


def get_system_content(target: Optional[Union[TargetMode, str]]) -> str:
    """根据目标模式生成 system 角色的内容，编辑模式之外一律使用翻译提示词."""
    if TargetMode.resolve(target) == TargetMode.EDITING_ASSISTANT:
        return EDITING_ASSISTANT_PROMPT
    return TRANSLATE_PROMPT
