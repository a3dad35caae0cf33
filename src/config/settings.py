"""应用配置管理模块."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类.

    对应扩展设置页中保存的键值，核心逻辑只读取，不负责持久化。
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    endpoint: str = Field(default="", description="chat completion 接口完整地址")
    api_key: str = Field(default="", description="接口密钥")
    target_mode: str = Field(default="translate", description="translate / editing_assistant")
    model_name: str = Field(default="", description="模型名称，留空则不在请求体中携带")
    replace_text: bool = Field(default=False, description="是否直接替换选中文本")
    stream_mode: bool = Field(default=True, description="是否使用流式传输")
    request_timeout: int = Field(default=60, ge=1, le=600)
    log_level: str = Field(default="INFO")

    def masked_api_key(self) -> str:
        """返回脱敏后的密钥，用于日志和接口展示."""
        if not self.api_key:
            return ""
        if len(self.api_key) <= 8:
            return "*" * len(self.api_key)
        return f"{self.api_key[:4]}{'*' * (len(self.api_key) - 8)}{self.api_key[-4:]}"


settings = Settings()
