"""
品種データ正規化ロジック

品種詳細 API の生レスポンス (スキーマ不定の JSON) を統一スキーマ (BreedRecord) に変換します。
各フィールドは候補キー表の順に解決し、見つからない場合は雌雄ノード、
最後にレスポンス全体の深さ優先探索にフォールバックします。
"""

import logging
from typing import Any, NamedTuple, Optional, Pattern, Tuple

from .field_resolver import (
    as_dict,
    as_text,
    as_text_list,
    compile_pattern,
    deep_find,
    first_dict,
    first_key_match,
    first_present,
    is_scalar,
    unwrap_image,
)
from .models import (
    BreedRecord,
    Characteristics,
    GenderCharacteristics,
    GenderProfile,
    Management,
    ProductionData,
)

logger = logging.getLogger(__name__)


class ProductionField(NamedTuple):
    """生産データ1項目分の解決ルール"""
    name: str
    direct_keys: Tuple[str, ...]
    node_keys: Tuple[str, ...]
    deep_pattern: Pattern


def _coalesce(*values: Any) -> Optional[Any]:
    """None でない最初の値を返す"""
    for value in values:
        if value is not None:
            return value
    return None


def _first_text(obj: Any, keys: Tuple[str, ...]) -> Optional[str]:
    """候補キーのうち、最初に空でない文字列を持つものの値を返す"""
    for key in keys:
        value = as_dict(obj).get(key)
        if isinstance(value, str) and value:
            return value
    return None


class BreedNormalizer:
    """
    品種データ正規化クラス

    上流サービスごとに異なるキー名・入れ子構造を吸収し、
    常に全フィールドが埋まった BreedRecord を返す静的メソッドを提供します。
    正規化は例外をスローしません (キー欠損は「不明」としてデフォルト値で補完)。
    """

    # 雌雄ノード
    _MALE_NODE_KEYS = ("male", "bull")
    _FEMALE_NODE_KEYS = ("female", "cow")

    # トップレベルの候補キー (優先順)
    _ENGLISH_NAME_KEYS = ("englishName", "english_name", "name")
    _IMAGE_KEYS = ("image", "photo", "image_url", "photo_url", "picture", "imageUrl")
    _NODE_IMAGE_KEYS = ("image", "photo", "image_url", "picture")
    _ORIGIN_KEYS = (
        "origin", "region", "location", "country", "place_of_origin", "origin_country",
    )
    _DESCRIPTION_KEYS = ("description", "desc")
    _HISTORY_KEYS = (
        "history", "historical_notes", "originHistory", "background",
        "historical", "history_text",
    )
    _CONSERVATION_KEYS = ("conservation", "status")
    _CATEGORY_KEYS = ("category", "type")
    _NODE_CATEGORY_KEYS = ("type", "type_of_animal")
    _MANAGEMENT_KEYS = ("management", "care")
    _PRODUCTION_SOURCE_KEYS = ("production", "production_data", "milk")
    _GENDER_KEYS = ("genderCharacteristics", "gender_characteristics")

    # 深さ優先探索のキー名パターン
    _IMAGE_PATTERN = compile_pattern(r"image|photo|picture|img")
    _ORIGIN_PATTERN = compile_pattern(r"origin|region|location|place_of_origin|country")
    _HISTORY_PATTERN = compile_pattern(r"history|histor|background|origin")

    _PRODUCTION_FIELDS = (
        ProductionField(
            "peak_milk_production",
            ("peakMilkProduction", "peak_milk_production", "peak_yield", "milk_yield"),
            ("milk_production", "milk_yield"),
            compile_pattern(r"milk|yield|production"),
        ),
        ProductionField(
            "fat_content",
            ("fatContent", "fat_content", "fat_pct", "fat_percentage"),
            ("fat_content", "fat_pct", "fat_percentage"),
            compile_pattern(r"fat"),
        ),
        ProductionField(
            "protein_content",
            ("proteinContent", "protein_content", "protein_pct", "protein_percentage"),
            ("protein_content", "protein_pct", "protein_percentage"),
            compile_pattern(r"protein"),
        ),
        ProductionField(
            "average_lactation_period",
            (
                "averageLactationPeriod", "average_lactation_period",
                "lactation_period", "lactation_period_days",
            ),
            ("lactation_period",),
            compile_pattern(r"lactation"),
        ),
        ProductionField(
            "calving_interval",
            ("calvingInterval", "calving_interval"),
            ("calving_interval",),
            compile_pattern(r"calving_interval|calvingInterval"),
        ),
        ProductionField(
            "age_at_first_calving",
            ("ageAtFirstCalving", "age_at_first_calving", "first_calving_age", "first_calving"),
            ("age_at_first_calving", "first_calving_age", "first_calving"),
            compile_pattern(r"first_calv|firstCalv|age_at_first_calving"),
        ),
    )

    @staticmethod
    def normalize(breed_id: str, raw: Any) -> BreedRecord:
        """
        生レスポンスを統一スキーマに正規化

        Args:
            breed_id: 要求した品種識別子 (ID・表示名のフォールバックに使用)
            raw: 品種詳細 API のレスポンス (任意の形状)

        Returns:
            BreedRecord: 正規化済みレコード
        """
        data = as_dict(raw)
        male = first_dict(data, BreedNormalizer._MALE_NODE_KEYS)
        female = first_dict(data, BreedNormalizer._FEMALE_NODE_KEYS)

        english_name = as_text(
            _coalesce(first_present(data, BreedNormalizer._ENGLISH_NAME_KEYS), breed_id)
        )
        characteristics, milk_yield = BreedNormalizer._resolve_characteristics(
            data, male, female
        )

        record = BreedRecord(
            id=as_text(_coalesce(first_present(data, ("id",)), breed_id)),
            name=as_text(_coalesce(first_present(data, ("name",)), english_name)),
            english_name=english_name,
            category=BreedNormalizer._resolve_category(data, male, female),
            origin=BreedNormalizer._resolve_origin(data, male, female),
            characteristics=characteristics,
            production_data=BreedNormalizer._resolve_production(
                data, male, female, milk_yield
            ),
            gender_characteristics=BreedNormalizer._resolve_gender(data, male, female),
            management=BreedNormalizer._resolve_management(data),
            conservation=_first_text(data, BreedNormalizer._CONSERVATION_KEYS) or "common",
            description=as_text(first_present(data, BreedNormalizer._DESCRIPTION_KEYS)),
            history=BreedNormalizer._resolve_history(data),
            image=BreedNormalizer._resolve_image(data, male, female),
        )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Normalized breed detail: {breed_id}",
                extra={"breed_record": record.to_json_dict()}
            )
        return record

    @staticmethod
    def fallback(breed_id: str) -> BreedRecord:
        """
        品種詳細の取得失敗時に使用するデフォルト値のみのレコード

        Args:
            breed_id: 要求した品種識別子

        Returns:
            BreedRecord: id, name, englishName が breed_id のレコード
        """
        return BreedNormalizer.normalize(breed_id, {})

    @staticmethod
    def _resolve_image(data: dict, male: Optional[dict], female: Optional[dict]) -> str:
        """
        画像 URL を解決

        トップレベル → 雌ノード → 雄ノード → 深さ優先探索 の順に探します。
        """
        image = unwrap_image(first_present(data, BreedNormalizer._IMAGE_KEYS))
        if image:
            return image

        for node in (female, male):
            image = unwrap_image(first_present(node, BreedNormalizer._NODE_IMAGE_KEYS))
            if image:
                return image

        found = deep_find(
            data,
            BreedNormalizer._IMAGE_PATTERN,
            accept=lambda value: bool(unwrap_image(value)),
        )
        return unwrap_image(found)

    @staticmethod
    def _resolve_origin(data: dict, male: Optional[dict], female: Optional[dict]) -> str:
        """原産地を解決 (雌ノード優先)"""
        origin = first_present(data, BreedNormalizer._ORIGIN_KEYS)
        if origin is None:
            female_node = female or {}
            male_node = male or {}
            origin = _coalesce(
                first_present(female_node, ("origin",)),
                first_present(male_node, ("origin",)),
                first_present(female_node, ("location",)),
                first_present(male_node, ("location",)),
            )
        if origin is None:
            origin = deep_find(data, BreedNormalizer._ORIGIN_PATTERN, accept=is_scalar)
        return as_text(origin)

    @staticmethod
    def _resolve_history(data: dict) -> str:
        """来歴を解決 (探索で dict/list が見つかった場合は JSON 文字列化)"""
        history = first_present(data, BreedNormalizer._HISTORY_KEYS)
        if history is None:
            history = deep_find(data, BreedNormalizer._HISTORY_PATTERN)
        return as_text(history)

    @staticmethod
    def _resolve_characteristics(
        data: dict, male: Optional[dict], female: Optional[dict]
    ) -> Tuple[Characteristics, Optional[Any]]:
        """
        外見・用途特性を解決

        各項目を「characteristics オブジェクト → 雌雄ノードからの合成 → トップレベル」
        の順に解決します。雌雄ノードからの合成は雌雄ノードが存在する場合のみ行います。

        Returns:
            Tuple[Characteristics, Optional[Any]]: 特性と、解決できた乳量 (未解決なら None)
        """
        unified = first_dict(data, ("characteristics",))
        has_nodes = male is not None or female is not None
        male_node = male or {}
        female_node = female or {}

        color = first_present(unified, ("color", "colors"))
        horn_size = first_present(unified, ("hornSize", "horn_size"))
        body_size = first_present(unified, ("bodySize", "body_size"))
        milk_yield = first_present(unified, ("milkYield", "milk_yield"))
        uses = first_present(unified, ("uses", "purpose"))

        if unified is not None and milk_yield is None and is_scalar(data.get("milk")):
            milk_yield = data["milk"]

        if has_nodes:
            color = _coalesce(
                color,
                first_present(male_node, ("coat_color",)),
                first_present(female_node, ("coat_color",)),
            )
            horn_size = _coalesce(
                horn_size,
                first_present(male_node, ("horn_shape",)),
                first_present(female_node, ("horn_shape",)),
            )
            milk_yield = _coalesce(milk_yield, first_present(female_node, ("milk_production",)))

        color = _coalesce(color, first_present(data, ("color", "colors")))
        horn_size = _coalesce(
            horn_size, first_present(data, ("hornSize", "horn_shape", "horn_size"))
        )
        body_size = _coalesce(body_size, first_present(data, ("bodySize", "body_size")))
        milk_yield = _coalesce(
            milk_yield, first_present(data, ("milkYield", "milk_yield", "milk_production"))
        )
        uses = _coalesce(uses, first_present(data, ("uses",)))

        characteristics = Characteristics(
            color=as_text_list(color),
            horn_size=as_text(horn_size) if horn_size is not None else "polled",
            body_size=as_text(body_size) if body_size is not None else "medium",
            milk_yield=as_text(milk_yield) if milk_yield is not None else "0-0",
            uses=as_text_list(uses),
        )
        return characteristics, milk_yield

    @staticmethod
    def _resolve_production(
        data: dict,
        male: Optional[dict],
        female: Optional[dict],
        milk_yield: Optional[Any],
    ) -> ProductionData:
        """
        生産データを解決

        項目ごとに以下の順で探し、最後まで見つからない場合は "N/A" とします:
        1. production / production_data / milk オブジェクト
        2. トップレベル
        3. 雌ノード
        4. (最大乳量のみ) 解決済みの特性乳量
        5. レスポンス全体の深さ優先探索
        6. 雌ノード → 雄ノードの再照合
        """
        source = first_dict(data, BreedNormalizer._PRODUCTION_SOURCE_KEYS)
        female_node = female or {}
        male_node = male or {}
        values = {}

        for field in BreedNormalizer._PRODUCTION_FIELDS:
            value = _coalesce(
                first_present(source, field.direct_keys),
                first_present(data, field.direct_keys),
                first_present(female_node, field.node_keys),
            )
            if value is None and field.name == "peak_milk_production":
                value = milk_yield
            if value is None:
                value = deep_find(data, field.deep_pattern, accept=is_scalar)
            if value is None:
                # 雌雄ノードで再度照合
                value = _coalesce(
                    first_key_match(female_node, field.deep_pattern),
                    first_key_match(male_node, field.deep_pattern),
                    first_present(female_node, field.node_keys),
                    first_present(male_node, field.node_keys),
                )
            values[field.name] = as_text(value) if value is not None else "N/A"

        return ProductionData(**values)

    @staticmethod
    def _resolve_category(data: dict, male: Optional[dict], female: Optional[dict]) -> str:
        """
        畜種を 'buffalo', 'cow' に正規化

        候補文字列に "buffalo" を含めば buffalo、"cow" / "cattle" を含めば cow、
        それ以外 (候補なしを含む) は buffalo とします。
        """
        candidate = (
            _first_text(data, BreedNormalizer._CATEGORY_KEYS)
            or _first_text(male, BreedNormalizer._NODE_CATEGORY_KEYS)
            or _first_text(female, BreedNormalizer._NODE_CATEGORY_KEYS)
            or ""
        )
        candidate_lower = candidate.lower()

        if "buffalo" in candidate_lower:
            return "buffalo"
        if "cow" in candidate_lower or "cattle" in candidate_lower:
            return "cow"
        return "buffalo"

    @staticmethod
    def _resolve_gender(
        data: dict, male: Optional[dict], female: Optional[dict]
    ) -> Optional[GenderCharacteristics]:
        """
        雌雄別特性を解決

        genderCharacteristics フィールドまたは雌雄ノードがない場合は None を返します。
        """
        existing = first_dict(data, BreedNormalizer._GENDER_KEYS)
        if existing is not None:
            bull_source = first_dict(existing, ("bull", "male"))
            cow_source = first_dict(existing, ("cow", "female"))
        elif male is not None or female is not None:
            bull_source, cow_source = male, female
        else:
            return None

        return GenderCharacteristics(
            bull=BreedNormalizer._gender_profile(bull_source),
            cow=BreedNormalizer._gender_profile(cow_source),
        )

    @staticmethod
    def _gender_profile(node: Optional[dict]) -> GenderProfile:
        """雌雄ノードから GenderProfile を生成"""
        body_weight = first_present(node, ("body_weight", "bodyWeight", "bodyWeightRange"))
        height = first_present(node, ("height",))
        temperament = first_present(node, ("temperament",))

        return GenderProfile(
            body_weight=as_text(body_weight) if body_weight is not None else "N/A",
            height=as_text(height) if height is not None else "N/A",
            temperament=as_text(temperament),
            special_features=as_text_list(
                first_present(node, ("specialFeatures", "features", "special_features"))
            ),
        )

    @staticmethod
    def _resolve_management(data: dict) -> Management:
        """飼養管理情報を解決"""
        management = first_dict(data, BreedNormalizer._MANAGEMENT_KEYS)

        return Management(
            diet=as_text_list(first_present(management, ("diet",))),
            common_diseases=as_text_list(
                first_present(management, ("commonDiseases", "common_diseases", "diseases"))
            ),
            care_notes=as_text_list(first_present(management, ("careNotes", "care_notes", "notes"))),
        )
