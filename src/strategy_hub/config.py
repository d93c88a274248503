"""配置加载模块 - 从环境变量和 .env 文件加载配置。"""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """日志格式枚举。"""

    JSON = "json"
    CONSOLE = "console"


class Settings(BaseSettings):
    """系统配置设置。

    从环境变量和 .env 文件加载配置。
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== Gemini API ====================
    gemini_api_key: str = Field(default="", description="Gemini API Key")
    gemini_model: str = Field(default="gemini-2.5-pro", description="Gemini 模型名称")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API 根地址",
    )
    gemini_timeout: int = Field(
        default=120,
        ge=5,
        le=600,
        description="生成调用超时（秒）",
    )

    # ==================== 回测默认值 ====================
    default_asset: str = Field(default="BTCUSDT", description="默认回测标的")
    default_timeframe: str = Field(default="1h", description="默认回测周期")

    # ==================== 日志配置 ====================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="日志级别",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="日志输出格式",
    )

    # ==================== 数据存储 ====================
    library_dir: Path = Field(
        default=Path("data/library"),
        description="策略库存储目录",
    )
    library_key: str = Field(
        default="tradingStrategies",
        min_length=1,
        description="策略库在键值存储中的槽位名",
    )

    @field_validator("library_dir", mode="before")
    @classmethod
    def parse_library_dir(cls, v: str | Path) -> Path:
        """将字符串转换为 Path 对象。"""
        return Path(v) if isinstance(v, str) else v

    def ensure_directories(self) -> None:
        """确保必要的目录存在。"""
        self.library_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_online(self) -> bool:
        """是否已配置在线生成服务。"""
        return bool(self.gemini_api_key)

    def validate_for_online(self) -> list[str]:
        """验证在线生成的必要配置，返回缺失项列表。"""
        missing = []
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        if not self.gemini_model:
            missing.append("GEMINI_MODEL")
        return missing


# 全局配置实例（延迟初始化）
_settings: Settings | None = None


def get_settings() -> Settings:
    """获取全局配置实例。"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """重新加载配置。"""
    global _settings
    _settings = Settings()
    return _settings
