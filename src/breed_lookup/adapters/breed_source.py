"""
品種データソース抽象基底クラス

品種分類・品種詳細を提供する上流サービスへの抽象インターフェースを定義します。
別のバックエンドに接続する場合は、このクラスを継承して具象アダプターを実装します。
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Union

from ..domain.models import Prediction


class NetworkError(Exception):
    """
    ネットワークエラー例外

    接続失敗、タイムアウト、5xx 応答などの一時的な障害を表します。
    呼び出し側でリトライ対象になります。
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        """
        Args:
            message: エラーメッセージ
            url: エラーが発生した URL
            status_code: HTTP ステータスコード（該当する場合）
        """
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class BreedDetailFetchError(Exception):
    """
    品種詳細取得エラー例外

    品種詳細 API が 2xx 以外を返した場合を表します。この場合は正規化を行わず、
    呼び出し側でデフォルト値のみのレコードに切り替えます。
    """

    def __init__(
        self,
        message: str = "Failed to fetch breed detail",
        breed_id: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        """
        Args:
            message: エラーメッセージ
            breed_id: 要求した品種識別子
            url: エラーが発生した URL
            status_code: HTTP ステータスコード
        """
        super().__init__(message)
        self.breed_id = breed_id
        self.url = url
        self.status_code = status_code


class RecognitionRejectedError(Exception):
    """
    画像判定拒否例外

    分類 API が 4xx で画像を拒否した場合 (動物が写っていない等) を表します。
    detail にはサーバーが返した理由が入ります。
    """

    def __init__(
        self,
        detail: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        """
        Args:
            detail: サーバーが返した拒否理由
            url: エラーが発生した URL
            status_code: HTTP ステータスコード
        """
        super().__init__(detail)
        self.detail = detail
        self.url = url
        self.status_code = status_code


class BreedSource(ABC):
    """
    品種データソース抽象基底クラス

    上流サービスの通信方式を隠蔽し、統一的なインターフェースで
    品種一覧・品種詳細・画像判定を提供するための抽象クラスです。
    """

    @abstractmethod
    def list_breeds(self) -> List[str]:
        """
        品種識別子の一覧を取得

        Returns:
            List[str]: 品種識別子リスト（取得失敗時は空リスト）
        """
        pass

    @abstractmethod
    def get_breed_detail(self, breed_id: str) -> Any:
        """
        品種詳細の生レスポンスを取得

        Args:
            breed_id: 品種識別子

        Returns:
            Any: デコード済み JSON（形状は保証されない）

        Raises:
            BreedDetailFetchError: 2xx 以外の応答時
            NetworkError: 通信失敗時
        """
        pass

    @abstractmethod
    def recognize_breed(self, image_path: Union[str, Path]) -> Prediction:
        """
        画像から品種を判定

        Args:
            image_path: 画像ファイルのパス

        Returns:
            Prediction: 判定結果

        Raises:
            RecognitionRejectedError: 画像が拒否された時 (4xx)
            NetworkError: 通信失敗・5xx 応答時
        """
        pass
