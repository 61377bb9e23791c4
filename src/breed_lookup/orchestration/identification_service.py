"""品種識別オーケストレーションサービス"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Type, TypeVar, Union
import logging
import time

from pydantic import BaseModel

from ..adapters.breed_source import (
    BreedDetailFetchError,
    BreedSource,
    NetworkError,
    RecognitionRejectedError,
)
from ..domain.models import (
    BreedRecord,
    IdentificationRecord,
    IdentificationStatus,
    Prediction,
)
from ..domain.normalizer import BreedNormalizer
from ..infrastructure.identification_store import IdentificationStore

T = TypeVar("T")


class IdentificationResult(BaseModel):
    """
    識別結果サマリー

    Attributes:
        success: 画像判定が成功したか
        record: 保存した識別履歴レコード
        prediction: 分類 API の判定結果
        breed: 判定品種の正規化済みレコード（詳細取得失敗時はデフォルト値のみ）
        errors: エラーメッセージリスト
        execution_time_seconds: 実行時間（秒）
    """
    success: bool
    record: Optional[IdentificationRecord] = None
    prediction: Optional[Prediction] = None
    breed: Optional[BreedRecord] = None
    errors: List[str] = []
    execution_time_seconds: float = 0.0


class IdentificationService:
    """
    画像判定から品種情報表示までのオーケストレーション

    Responsibilities:
    - 画像判定、履歴保存、品種詳細取得、正規化の調整
    - ネットワークエラーのリトライ（指数バックオフ）
    - 品種詳細取得失敗時のフォールバックレコード生成
    - 構造化ログ出力
    """

    FAILED_PREDICTION = "No buffalo detected"
    PENDING_PREDICTION = "pending"

    def __init__(
        self,
        source: BreedSource,
        store: IdentificationStore,
        normalizer: Type[BreedNormalizer] = BreedNormalizer,
        max_retries: int = 3,
    ):
        """
        IdentificationService を初期化

        Args:
            source: 品種データソース
            store: 識別履歴ストア
            normalizer: 品種レコード正規化クラス
            max_retries: ネットワークエラー時の最大試行回数
        """
        self.source = source
        self.store = store
        self.normalizer = normalizer
        self.max_retries = max_retries
        self.logger = logging.getLogger(__name__)

    def lookup_breed(self, breed_id: str) -> BreedRecord:
        """
        品種詳細を取得して正規化

        Args:
            breed_id: 品種識別子

        Returns:
            BreedRecord: 正規化済みレコード。取得に失敗した場合は
                         デフォルト値のみのフォールバックレコード

        Note: 取得失敗時は正規化処理を呼ばない
        """
        try:
            raw = self._with_retry(self.source.get_breed_detail, breed_id)
        except (BreedDetailFetchError, NetworkError) as e:
            self.logger.warning(
                f"Failed to fetch breed detail, using fallback: {breed_id}",
                extra={"breed_id": breed_id, "error": str(e)}
            )
            return self.normalizer.fallback(breed_id)

        return self.normalizer.normalize(breed_id, raw)

    def identify(self, image_path: Union[str, Path]) -> IdentificationResult:
        """
        画像から品種を識別

        Args:
            image_path: 画像ファイルのパス

        Returns:
            IdentificationResult: 識別結果サマリー

        Postconditions: 識別履歴に1件追加され、状態が ok / failed に更新される
        Invariants: 判定失敗時も履歴の更新とログ記録は実行
        """
        start_time = time.time()
        record = self.store.save_identification(
            prediction=self.PENDING_PREDICTION,
            image_path=str(image_path),
            timestamp=self._now(),
            confidence=0.0,
            status=IdentificationStatus.PENDING,
        )

        self.logger.info(
            f"Starting identification: {image_path}",
            extra={"identification_id": record.id}
        )

        try:
            prediction = self._with_retry(self.source.recognize_breed, image_path)
        except RecognitionRejectedError as e:
            self.logger.warning(
                f"Image rejected by classifier: {e.detail}",
                extra={"identification_id": record.id, "status_code": e.status_code}
            )
            return self._failed(record, e.detail, start_time)
        except (NetworkError, OSError) as e:
            self.logger.error(
                f"Identification failed: {str(e)}",
                extra={"identification_id": record.id}
            )
            return self._failed(record, str(e), start_time)

        updated = self.store.update_identification(
            record.id,
            prediction=prediction.predicted_class,
            confidence=prediction.confidence_score,
            status=IdentificationStatus.OK,
            error_message=None,
        ) or record

        breed = self.lookup_breed(prediction.predicted_class)

        execution_time = time.time() - start_time
        self.logger.info(
            "Identification completed",
            extra={
                "identification_id": record.id,
                "predicted_class": prediction.predicted_class,
                "confidence_score": prediction.confidence_score,
                "execution_time_seconds": execution_time
            }
        )

        return IdentificationResult(
            success=True,
            record=updated,
            prediction=prediction,
            breed=breed,
            execution_time_seconds=execution_time
        )

    def history(self) -> List[IdentificationRecord]:
        """
        識別履歴を取得

        Returns:
            List[IdentificationRecord]: 新しい順の識別履歴
        """
        return self.store.load_identifications()

    def _failed(
        self,
        record: IdentificationRecord,
        message: str,
        start_time: float
    ) -> IdentificationResult:
        """履歴を失敗状態に更新し、失敗結果を返す"""
        updated = self.store.update_identification(
            record.id,
            prediction=self.FAILED_PREDICTION,
            confidence=0.0,
            status=IdentificationStatus.FAILED,
            error_message=message,
        ) or record

        return IdentificationResult(
            success=False,
            record=updated,
            errors=[message],
            execution_time_seconds=time.time() - start_time
        )

    def _with_retry(self, operation: Callable[..., T], *args) -> T:
        """
        リトライ付き呼び出し

        Args:
            operation: 呼び出す操作
            *args: 操作の引数

        Returns:
            T: 操作の戻り値

        Raises:
            NetworkError: 最大試行回数後も解決しない場合
            BreedDetailFetchError, RecognitionRejectedError: リトライせず即座にスロー
        """
        retry_count = 0
        last_error = None

        while retry_count < self.max_retries:
            try:
                return operation(*args)
            except NetworkError as e:
                retry_count += 1
                last_error = e
                if retry_count < self.max_retries:
                    # 指数バックオフ
                    sleep_time = 2 ** retry_count
                    self.logger.warning(
                        f"Network error, retrying in {sleep_time}s (attempt {retry_count}/{self.max_retries})",
                        extra={"error": str(e)}
                    )
                    time.sleep(sleep_time)
                else:
                    self.logger.error(
                        "Max retries exceeded for network error",
                        extra={"error": str(e)}
                    )

        if last_error:
            raise last_error
        raise NetworkError("Request failed after retries")

    @staticmethod
    def _now() -> str:
        """
        現在時刻を ISO 8601 形式で取得

        Returns:
            str: ISO 8601 形式のタイムスタンプ（UTC、Z サフィックス付き）
        """
        return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
