"""JSON 出力コンポーネント"""

from pathlib import Path
import json
import re
from typing import Optional

from ..domain.models import BreedRecord


class OutputWriter:
    """
    正規化済み品種レコードを描画層向け JSON として出力

    Responsibilities:
    - BreedRecord を camelCase の JSON ファイルに書き込み
    - 出力先ディレクトリ管理
    """

    OUTPUT_DIR = Path("output")

    def __init__(self, output_dir: Optional[Path] = None):
        """
        OutputWriter を初期化

        Args:
            output_dir: 出力先ディレクトリ（None の場合は OUTPUT_DIR）
        """
        if output_dir is not None:
            self.OUTPUT_DIR = Path(output_dir)

    def write_breed(self, record: BreedRecord) -> Path:
        """
        品種レコードを <id>.json として出力

        Args:
            record: 正規化済み品種レコード

        Returns:
            Path: 出力ファイルパス

        Postconditions: 同じ ID のファイルは上書きされる
        """
        # ディレクトリ自動作成
        self.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

        output_file = self.OUTPUT_DIR / f"{self._safe_filename(record.id)}.json"
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(record.to_json_dict(), f, ensure_ascii=False, indent=2)

        return output_file

    @staticmethod
    def _safe_filename(breed_id: str) -> str:
        """
        品種 ID をファイル名に使える形に変換

        英数字・ハイフン・アンダースコア以外は "_" に置換します。
        """
        name = re.sub(r"[^A-Za-z0-9_-]+", "_", breed_id.strip()).strip("_")
        return name or "breed"
