"""
アプリケーション設定

環境変数から設定を読み込みます。設定値は各コンポーネントの生成時に明示的に渡し、
モジュールレベルの状態としては保持しません。
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_API_BASE = "https://sihbackend-production.up.railway.app"


class AppConfig(BaseModel):
    """
    breed-lookup の設定

    環境変数:
        BREED_API_BASE: 上流サービスのベース URL
        BREED_API_TIMEOUT: HTTP タイムアウト（秒）
        IDENTIFICATION_STORE_DIR: 識別履歴の保存ディレクトリ
        BREED_OUTPUT_DIR: 品種レコード JSON の出力ディレクトリ
        LOG_LEVEL: ログレベル
    """

    api_base: str = Field(default=DEFAULT_API_BASE, description="上流サービスのベース URL")
    timeout: float = Field(default=30.0, description="HTTP タイムアウト（秒）")
    store_dir: Path = Field(default=Path("data"), description="識別履歴の保存ディレクトリ")
    output_dir: Path = Field(default=Path("output"), description="品種レコードの出力ディレクトリ")
    log_level: str = Field(default="INFO", description="ログレベル")

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """
        ベース URL の末尾スラッシュを除去

        Raises:
            ValueError: 空文字列の場合
        """
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("api_base は空にできません")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """タイムアウトの正値チェック"""
        if v <= 0:
            raise ValueError(f"timeout は正の値である必要があります: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """ログレベルを大文字に揃える"""
        return v.strip().upper()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        環境変数から設定を生成

        Args:
            environ: 環境変数（None の場合は os.environ）

        Returns:
            AppConfig: 設定（未設定の項目はデフォルト値）
        """
        environ = os.environ if environ is None else environ
        mapping = {
            "api_base": "BREED_API_BASE",
            "timeout": "BREED_API_TIMEOUT",
            "store_dir": "IDENTIFICATION_STORE_DIR",
            "output_dir": "BREED_OUTPUT_DIR",
            "log_level": "LOG_LEVEL",
        }
        values = {
            field: environ[name]
            for field, name in mapping.items()
            if environ.get(name)
        }
        return cls(**values)
