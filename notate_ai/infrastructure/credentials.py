"""API key 存储。

宿主应用通过 CredentialStore 读写 Gemini API key；
默认实现把 key 保存在 .env 文件中（与 GUI 配置编辑共用同一个文件）。
"""

import os
from pathlib import Path
from typing import Optional, Protocol

from notate_ai.config import env_utils
from notate_ai.config.settings import settings


API_KEY_ENV = "GEMINI_API_KEY"


class CredentialStore(Protocol):
    def get_api_key(self) -> Optional[str]:
        ...

    def set_api_key(self, key: str) -> None:
        ...


class EnvFileCredentialStore:
    """读取顺序：.env 文件 > 进程环境变量 > settings。空白 key 视为未配置。"""

    def __init__(self, env_file: Optional[Path] = None, cfg=settings):
        self._env_file = env_file or env_utils.ENV_FILE
        self._settings = cfg

    def get_api_key(self) -> Optional[str]:
        candidates = (
            env_utils.read_env_file(self._env_file).get(API_KEY_ENV),
            os.environ.get(API_KEY_ENV),
            getattr(self._settings, "gemini_api_key", None),
        )
        for value in candidates:
            if value and value.strip():
                return value.strip()
        return None

    def set_api_key(self, key: str) -> None:
        env_utils.update_env_value(API_KEY_ENV, key.strip(), self._env_file)
