"""
データモデル定義

このモジュールは breed-lookup のドメイン層のデータモデルを定義します:
- BreedRecord: 品種詳細 API の生レスポンスを正規化した品種レコード
- Prediction: 品種分類 API の判定結果
- IdentificationRecord: ローカルに保存する識別履歴
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    camelCase エイリアス付きモデル基底クラス

    属性名は snake_case、JSON 出力は描画層が期待する camelCase になります。
    """

    class Config:
        """Pydantic 設定"""
        alias_generator = to_camel
        populate_by_name = True


class Characteristics(CamelModel):
    """品種の外見・用途特性"""

    color: List[str] = Field(default_factory=list, description="毛色一覧")
    horn_size: str = Field(default="polled", description="角の大きさ・形状")
    body_size: str = Field(default="medium", description="体格")
    milk_yield: str = Field(default="0-0", description="乳量の範囲")
    uses: List[str] = Field(default_factory=list, description="用途一覧")


class ProductionData(CamelModel):
    """
    生産データ

    上流レスポンスのどこにも値が見つからないフィールドは "N/A" になります。
    """

    peak_milk_production: str = Field(default="N/A", description="最大乳量")
    fat_content: str = Field(default="N/A", description="乳脂肪率")
    protein_content: str = Field(default="N/A", description="乳タンパク質率")
    average_lactation_period: str = Field(default="N/A", description="平均泌乳期間")
    calving_interval: str = Field(default="N/A", description="分娩間隔")
    age_at_first_calving: str = Field(default="N/A", description="初産月齢")


class GenderProfile(CamelModel):
    """雌雄別の特性"""

    body_weight: str = Field(default="N/A", description="体重")
    height: str = Field(default="N/A", description="体高")
    temperament: str = Field(default="", description="気質")
    special_features: List[str] = Field(default_factory=list, description="特徴一覧")


class GenderCharacteristics(CamelModel):
    """雄 (bull) / 雌 (cow) の特性"""

    bull: GenderProfile = Field(default_factory=GenderProfile)
    cow: GenderProfile = Field(default_factory=GenderProfile)


class Management(CamelModel):
    """飼養管理情報"""

    diet: List[str] = Field(default_factory=list, description="推奨飼料")
    common_diseases: List[str] = Field(default_factory=list, description="主な疾病")
    care_notes: List[str] = Field(default_factory=list, description="飼養上の注意")


class BreedRecord(CamelModel):
    """
    正規化済み品種レコード

    描画層に渡す一時的な DTO です。全フィールドが常に設定されており、
    genderCharacteristics のみ元データに雌雄情報がない場合 None になります。
    """

    id: str = Field(..., description="品種識別子")
    name: str = Field(..., description="表示名")
    english_name: str = Field(..., description="英語名")
    category: Literal["cow", "buffalo"] = Field(default="buffalo", description="畜種")
    origin: str = Field(default="", description="原産地")
    characteristics: Characteristics = Field(default_factory=Characteristics)
    production_data: ProductionData = Field(default_factory=ProductionData)
    gender_characteristics: Optional[GenderCharacteristics] = Field(
        default=None, description="雌雄別特性 (雌雄情報がない場合 None)"
    )
    management: Management = Field(default_factory=Management)
    conservation: str = Field(default="common", description="保全状況")
    description: str = Field(default="", description="説明")
    history: str = Field(default="", description="来歴")
    image: str = Field(default="", description="画像 URL")

    def to_json_dict(self) -> dict:
        """
        描画層向けの JSON 互換 dict に変換

        Returns:
            dict: camelCase キーの dict (genderCharacteristics が None の場合は省略)
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Prediction(BaseModel):
    """
    品種分類 API の判定結果

    フィールド名は API のレスポンスキーと同じです。
    """

    predicted_class: str = Field(..., description="判定された品種識別子")
    confidence_score: float = Field(default=0.0, description="信頼度 (0.0〜1.0)")


class IdentificationStatus(str, Enum):
    """識別処理の状態"""
    PENDING = "pending"
    OK = "ok"
    FAILED = "failed"


class IdentificationRecord(CamelModel):
    """
    識別履歴レコード

    保存形式: {id, prediction, imagePath, timestamp, confidence, status, errorMessage}
    """

    id: int = Field(..., description="連番 ID")
    prediction: str = Field(..., description="判定品種")
    image_path: str = Field(..., description="画像パスまたは data URL")
    timestamp: str = Field(..., description="識別日時 (ISO 8601)")
    confidence: float = Field(default=0.0, description="信頼度")
    status: Optional[IdentificationStatus] = Field(default=None, description="処理状態")
    error_message: Optional[str] = Field(default=None, description="失敗時のエラーメッセージ")

    class Config:
        """Pydantic 設定"""
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "prediction": "murrah",
                "imagePath": "captures/capture-1760832000.jpg",
                "timestamp": "2026-10-19T09:00:00Z",
                "confidence": 0.92,
                "status": "ok",
                "errorMessage": None
            }
        }
