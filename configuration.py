#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging.config
import os
import shutil
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError


class BotSettings(BaseModel):
    """机器人基本信息"""
    name: str = "Pipit"
    version: str = "1.0.0"
    admin_addresses: List[str] = Field(default_factory=list, description="启动时标记为管理员的地址")
    operator_address: Optional[str] = Field(default=None, description="周报接收地址，空则不发送")
    admin_panel_url: Optional[str] = None


class StorageSettings(BaseModel):
    db_path: str = "data/pipit.db"
    uploads_dir: str = "uploads"


class FeatureSettings(BaseModel):
    auto_reply: bool = True
    scheduled_messages: bool = True
    file_handling: bool = True


class SchedulerSettings(BaseModel):
    """定时任务参数，时间单位均为秒"""
    sweep_interval: float = Field(default=60, gt=0)
    cleanup_interval: float = Field(default=24 * 3600, gt=0)
    digest_interval: float = Field(default=7 * 24 * 3600, gt=0)
    health_interval: float = Field(default=30 * 60, gt=0)
    send_timeout: float = Field(default=10, gt=0, description="单个接收者的发送超时")
    upload_retention_days: int = Field(default=7, ge=1)
    message_retention_days: int = Field(default=30, ge=1)
    memory_warn_mb: float = Field(default=500, gt=0)


class ApiSettings(BaseModel):
    weather_key: Optional[str] = None
    openai_key: Optional[str] = None
    openai_base: Optional[str] = None
    translate_model: str = "gpt-3.5-turbo"
    timeout: float = Field(default=10, gt=0)


class Config(object):
    def __init__(self, path: Optional[str] = None, data: Optional[dict] = None) -> None:
        self._path = path
        self._data = data
        self.reload()

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """直接从字典构建配置（不读取文件，测试用）"""
        return cls(data=data)

    def _load_config(self) -> dict:
        if self._data is not None:
            return self._data

        if self._path:
            with open(self._path, "rb") as fp:
                return yaml.safe_load(fp) or {}

        pwd = os.path.dirname(os.path.abspath(__file__))
        try:
            with open(f"{pwd}/config.yaml", "rb") as fp:
                yconfig = yaml.safe_load(fp)
        except FileNotFoundError:
            shutil.copyfile(f"{pwd}/config.yaml.template", f"{pwd}/config.yaml")
            with open(f"{pwd}/config.yaml", "rb") as fp:
                yconfig = yaml.safe_load(fp)

        return yconfig or {}

    def reload(self) -> None:
        yconfig = self._load_config()
        if yconfig.get("logging"):
            logging.config.dictConfig(yconfig["logging"])

        try:
            self.BOT = BotSettings.model_validate(yconfig.get("bot") or {})
            self.STORAGE = StorageSettings.model_validate(yconfig.get("storage") or {})
            self.FEATURES = FeatureSettings.model_validate(yconfig.get("features") or {})
            self.SCHEDULER = SchedulerSettings.model_validate(yconfig.get("scheduler") or {})
            self.APIS = ApiSettings.model_validate(yconfig.get("apis") or {})
        except PydanticValidationError as e:
            raise ValueError(f"配置文件校验失败: {e}") from e

        known = {"logging", "bot", "storage", "features", "scheduler", "apis"}
        unknown = set(yconfig) - known
        if unknown:
            logging.getLogger("Config").warning(f"忽略未识别的配置项: {', '.join(sorted(unknown))}")
