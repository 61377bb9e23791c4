"""
識別履歴ストア

画像判定の履歴を JSON ファイルに永続化します（新しいものが先頭）。
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError

from ..domain.models import IdentificationRecord, IdentificationStatus


class IdentificationStore:
    """
    識別履歴の永続化

    IdentificationRecord のリストを JSON 配列として保存します。
    ID は既存の最大値 + 1（空の場合は 1）を採番し、新規レコードは先頭に追加します。
    """

    IDENTIFICATIONS_FILENAME = "identifications.json"

    # 旧形式の未判定レコードを失敗扱いに移行する際の値
    LEGACY_FAILED_PREDICTION = "No buffalo detected"
    LEGACY_FAILED_MESSAGE = "Legacy: likely no buffalo detected"
    LEGACY_CONFIDENCE_THRESHOLD = 0.5

    def __init__(self, store_dir: Optional[Path] = None):
        """
        IdentificationStore を初期化

        Args:
            store_dir: 履歴保存ディレクトリ。
                       None の場合は "data" を使用。
        """
        self.store_dir = Path(store_dir) if store_dir else Path("data")
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(__name__)

    @property
    def store_file(self) -> Path:
        """履歴ファイルのパス"""
        return self.store_dir / self.IDENTIFICATIONS_FILENAME

    def load_identifications(self) -> List[IdentificationRecord]:
        """
        識別履歴を読み込み

        旧形式のレコード（status なし・予測に "unknown" を含み信頼度 0.5 以下）は
        失敗レコードに移行し、移行があった場合はファイルに書き戻します。
        検証に失敗した項目は戻り値から除外しますが、ファイルには残します。

        Returns:
            List[IdentificationRecord]: 識別履歴（存在しない・読み込み失敗時は空リスト）
        """
        records = []
        for item in self._load_items():
            record = self._to_record(item)
            if record is not None:
                records.append(record)
        return records

    def save_identification(
        self,
        prediction: str,
        image_path: str,
        timestamp: str,
        confidence: float,
        status: Optional[IdentificationStatus] = None,
        error_message: Optional[str] = None,
    ) -> IdentificationRecord:
        """
        識別結果を先頭に追加して保存

        Args:
            prediction: 判定品種
            image_path: 画像パスまたは data URL
            timestamp: 識別日時 (ISO 8601)
            confidence: 信頼度
            status: 処理状態
            error_message: 失敗時のエラーメッセージ

        Returns:
            IdentificationRecord: 採番済みのレコード

        Note: ID は検証に失敗した項目も含め、整数 id を持つ全項目の最大値 + 1
        """
        items = self._load_items()
        ids = [
            item["id"] for item in items
            if isinstance(item, dict)
            and isinstance(item.get("id"), int)
            and not isinstance(item.get("id"), bool)
        ]
        next_id = max(ids) + 1 if ids else 1

        record = IdentificationRecord(
            id=next_id,
            prediction=prediction,
            image_path=image_path,
            timestamp=timestamp,
            confidence=confidence,
            status=status,
            error_message=error_message,
        )
        items.insert(0, self._to_item(record))
        self._write(items)
        return record

    def update_identification(self, record_id: int, **changes: Any) -> Optional[IdentificationRecord]:
        """
        既存レコードを部分更新

        Args:
            record_id: 更新対象の ID
            **changes: 更新するフィールド（snake_case）

        Returns:
            Optional[IdentificationRecord]: 更新後のレコード、ID が存在しない場合は None
        """
        items = self._load_items()
        for index, item in enumerate(items):
            record = self._to_record(item)
            if record is None or record.id != record_id:
                continue
            updated = IdentificationRecord(**{**record.model_dump(), **changes})
            # 未知のキーは保持したまま上書き
            items[index] = {**item, **self._to_item(updated)}
            self._write(items)
            return updated
        return None

    def _load_items(self) -> List[Any]:
        """
        履歴ファイルの生の項目を読み込み、旧形式レコードを移行

        Returns:
            List[Any]: JSON 配列の各項目（存在しない・読み込み失敗時は空リスト）
        """
        if not self.store_file.exists():
            return []

        try:
            with open(self.store_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(
                f"Failed to load identifications: {str(e)}",
                extra={"path": str(self.store_file)}
            )
            return []

        if not isinstance(data, list):
            self.logger.error(
                "Identification store is not a JSON array",
                extra={"path": str(self.store_file)}
            )
            return []

        items = [self._migrate_legacy(item) for item in data]
        if any(migrated is not item for migrated, item in zip(items, data)):
            try:
                self._write(items)
            except OSError as e:
                self.logger.warning(
                    f"Failed to save migrated identifications: {str(e)}",
                    extra={"path": str(self.store_file)}
                )

        return items

    def _to_record(self, item: Any) -> Optional[IdentificationRecord]:
        """生の項目を IdentificationRecord に変換（不正な項目は None）"""
        if not isinstance(item, dict):
            self.logger.warning(
                "Skipping non-object identification item",
                extra={"path": str(self.store_file)}
            )
            return None
        try:
            return IdentificationRecord(**item)
        except (TypeError, ValidationError) as e:
            self.logger.warning(
                f"Skipping invalid identification record: {str(e)}",
                extra={"path": str(self.store_file)}
            )
            return None

    @staticmethod
    def _to_item(record: IdentificationRecord) -> dict:
        """IdentificationRecord を保存形式 (camelCase) の dict に変換"""
        return record.model_dump(mode="json", by_alias=True)

    def _migrate_legacy(self, item: Any) -> Any:
        """
        旧形式の未判定レコードを失敗レコードに変換

        Returns:
            Any: 変換後の新しい dict、変換不要の場合は item そのもの
        """
        if not isinstance(item, dict) or item.get("status") is not None:
            return item

        prediction = item.get("prediction")
        confidence = item.get("confidence")
        if not isinstance(prediction, str) or "unknown" not in prediction.lower():
            return item
        if not isinstance(confidence, (int, float)) or confidence > self.LEGACY_CONFIDENCE_THRESHOLD:
            return item

        return {
            **item,
            "prediction": self.LEGACY_FAILED_PREDICTION,
            "confidence": 0,
            "status": IdentificationStatus.FAILED.value,
            "errorMessage": self.LEGACY_FAILED_MESSAGE,
        }

    def _write(self, items: List[Any]) -> None:
        """
        履歴をファイルに書き込み

        Note:
            - ensure_ascii=False で非 ASCII 文字をそのまま保存
            - indent=2 で人間が読みやすい形式に整形
        """
        with open(self.store_file, "w", encoding="utf-8") as f:
            json.dump(items, f, ensure_ascii=False, indent=2)
