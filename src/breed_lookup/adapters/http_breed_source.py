"""
HTTP 品種データソース

品種判定・品種詳細 API (FastAPI バックエンド) に requests で接続するアダプターです。
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, List, Optional, Union
from urllib.parse import quote

import requests

from .breed_source import (
    BreedDetailFetchError,
    BreedSource,
    NetworkError,
    RecognitionRejectedError,
)
from ..config import AppConfig
from ..domain.models import Prediction


class HttpBreedSource(BreedSource):
    """
    品種判定・品種詳細 API 向け HTTP 実装

    エンドポイント:
    - GET  /                        疎通確認
    - GET  /buffalo_breeds/         品種識別子一覧
    - GET  /buffalo_breeds/{name}   品種詳細（形状不定の JSON）
    - POST /recognize_breed         画像判定（multipart, フィールド名 "file"）
    """

    BREEDS_PATH = "/buffalo_breeds/"
    RECOGNIZE_PATH = "/recognize_breed"

    # HTTP リクエストヘッダー
    HEADERS = {
        "User-Agent": "BreedLookup/1.0 (Livestock Breed Identification Client)",
        "Accept": "application/json",
    }

    def __init__(self, config: Optional[AppConfig] = None):
        """
        Args:
            config: 接続設定（None の場合はデフォルト設定）
        """
        self.config = config or AppConfig()
        self.base_url = self.config.api_base
        self.timeout = self.config.timeout
        self.logger = logging.getLogger(__name__)

    def ping(self) -> Any:
        """
        ルートエンドポイントへの疎通確認

        Returns:
            Any: ルートエンドポイントのレスポンス JSON

        Raises:
            NetworkError: 通信失敗・2xx 以外の応答時
        """
        url = f"{self.base_url}/"
        response = self._request("GET", url)
        if not response.ok:
            raise NetworkError(
                f"Root ping failed: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response.json()

    def list_breeds(self) -> List[str]:
        """
        品種識別子の一覧を取得

        取得に失敗しても例外はスローせず、空リストを返します（画面表示を継続するため）。

        Returns:
            List[str]: 品種識別子リスト
        """
        url = f"{self.base_url}{self.BREEDS_PATH}"
        try:
            response = self._request("GET", url)
            if not response.ok:
                self.logger.warning(
                    f"Failed to fetch buffalo breeds: {response.status_code} {response.text}",
                    extra={"url": url}
                )
                return []
            body = response.json()
        except (NetworkError, ValueError) as e:
            self.logger.warning(
                f"Failed to fetch buffalo breeds: {str(e)}",
                extra={"url": url}
            )
            return []

        if not isinstance(body, list):
            self.logger.warning(
                "Unexpected breed list payload",
                extra={"url": url, "payload_type": type(body).__name__}
            )
            return []

        return [str(item) for item in body if item is not None]

    def get_breed_detail(self, breed_id: str) -> Any:
        """
        品種詳細の生レスポンスを取得

        Args:
            breed_id: 品種識別子

        Returns:
            Any: デコード済み JSON

        Raises:
            BreedDetailFetchError: 2xx 以外の応答時、または本文が JSON でない時
            NetworkError: 通信失敗時
        """
        url = f"{self.base_url}{self.BREEDS_PATH}{quote(breed_id, safe='')}"
        response = self._request("GET", url)

        if not response.ok:
            raise BreedDetailFetchError(
                breed_id=breed_id,
                url=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            raise BreedDetailFetchError(
                breed_id=breed_id,
                url=url,
                status_code=response.status_code,
            )

    def recognize_breed(self, image_path: Union[str, Path]) -> Prediction:
        """
        画像をアップロードして品種を判定

        Args:
            image_path: 画像ファイルのパス

        Returns:
            Prediction: 判定結果

        Raises:
            RecognitionRejectedError: 4xx 応答時（サーバーの detail を保持）
            NetworkError: 通信失敗・5xx 応答時
        """
        url = f"{self.base_url}{self.RECOGNIZE_PATH}"
        path = Path(image_path)
        mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"

        with open(path, "rb") as f:
            response = self._request(
                "POST",
                url,
                files={"file": (path.name, f, mime_type)},
            )

        if 400 <= response.status_code < 500:
            raise RecognitionRejectedError(
                self._error_message(response),
                url=url,
                status_code=response.status_code,
            )
        if not response.ok:
            raise NetworkError(
                f"recognize_breed failed: {response.status_code} {response.text}",
                url=url,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        return Prediction(
            predicted_class=str(body.get("predicted_class") or "unknown"),
            confidence_score=self._confidence(body.get("confidence_score")),
        )

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        HTTP リクエストを送信

        2xx 以外の応答はそのまま返し、呼び出し側で扱いを決めます。

        Raises:
            NetworkError: 接続失敗・タイムアウトなど通信レベルのエラー時
        """
        try:
            return requests.request(
                method,
                url,
                headers=self.HEADERS,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                f"Network request failed: {e}",
                url=url,
            )

    @staticmethod
    def _confidence(value) -> float:
        """信頼度を float に変換（数値に変換できない場合は 0.0）"""
        try:
            return float(value or 0.0)
        except (TypeError, ValueError):
            return 0.0

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """
        エラー応答からメッセージを取り出す

        JSON の detail → message → 本文 → "Server returned <status>" の順に使用します。
        """
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            message = body.get("detail") or body.get("message")
            if message:
                return str(message)

        return response.text or f"Server returned {response.status_code}"
