"""
BreedNormalizer のユニットテスト

フィールドファミリーごとの解決順序を個別にテストし、
統合テストで生レスポンス → BreedRecord の変換を検証します。
"""
import copy
import json

import pytest

from src.breed_lookup.domain.models import BreedRecord
from src.breed_lookup.domain.normalizer import BreedNormalizer


EXPECTED_DEFAULT_RECORD = {
    "id": "x",
    "name": "x",
    "englishName": "x",
    "category": "buffalo",
    "origin": "",
    "characteristics": {
        "color": [],
        "hornSize": "polled",
        "bodySize": "medium",
        "milkYield": "0-0",
        "uses": [],
    },
    "productionData": {
        "peakMilkProduction": "N/A",
        "fatContent": "N/A",
        "proteinContent": "N/A",
        "averageLactationPeriod": "N/A",
        "calvingInterval": "N/A",
        "ageAtFirstCalving": "N/A",
    },
    "management": {"diet": [], "commonDiseases": [], "careNotes": []},
    "conservation": "common",
    "description": "",
    "history": "",
    "image": "",
}


class TestNormalizeDefaults:
    """デフォルト値補完のテスト"""

    def test_normalize_empty_object_yields_defaults(self):
        """空オブジェクトは全フィールドがデフォルト値になること"""
        record = BreedNormalizer.normalize("x", {})

        assert record.to_json_dict() == EXPECTED_DEFAULT_RECORD
        assert record.gender_characteristics is None

    def test_fallback_matches_empty_normalization(self):
        """fallback は空オブジェクトの正規化と同じ結果になること"""
        assert BreedNormalizer.fallback("jaffarabadi") == BreedNormalizer.normalize("jaffarabadi", {})

    @pytest.mark.parametrize("raw", [
        None,
        [],
        ["murrah", "surti"],
        "murrah",
        42,
        {"male": [], "female": "n/a", "characteristics": []},
        {"name": None, "origin": None, "image": None, "production": None},
        {"a": {"b": {"c": {"d": [{"e": [1, 2, {"f": None}]}]}}}},
        {"image": {"width": 100}, "management": "none", "genderCharacteristics": []},
    ])
    def test_normalize_never_raises(self, raw):
        """任意の形状の入力で例外をスローしないこと"""
        record = BreedNormalizer.normalize("murrah", raw)

        assert isinstance(record, BreedRecord)
        assert record.id == "murrah"
        assert record.category in ("cow", "buffalo")

    def test_normalize_deeply_nested_structure(self):
        """探索上限を超える深い入れ子でも例外をスローしないこと"""
        raw = {}
        node = raw
        for _ in range(200):
            node["child"] = {}
            node = node["child"]
        node["image_url"] = "http://x/deep.jpg"

        record = BreedNormalizer.normalize("murrah", raw)

        assert record.image == ""

    def test_normalize_self_referencing_history(self):
        """自己参照する値を持つ入力でも例外をスローしないこと"""
        history = {"era": "ancient"}
        history["self"] = history

        record = BreedNormalizer.normalize("murrah", {"history": history})

        assert isinstance(record, BreedRecord)
        assert "ancient" in record.history

    def test_normalize_branching_cycle_terminates(self):
        """分岐する循環参照を含む入力でも正規化が完了すること"""
        node = {}
        for key in ("a", "b", "c", "d"):
            node[key] = node

        record = BreedNormalizer.normalize("murrah", {"n": node, "origin": "Haryana"})

        assert record.origin == "Haryana"
        assert record.production_data.fat_content == "N/A"
        assert record.image == ""


class TestNormalizeNames:
    """ID・名称解決のテスト"""

    def test_english_name_falls_back_to_name(self):
        """englishName がない場合は name を使うこと"""
        record = BreedNormalizer.normalize("murrah", {"name": "Murrah"})

        assert record.english_name == "Murrah"
        assert record.name == "Murrah"

    def test_name_falls_back_to_english_name(self):
        """name がない場合は englishName を使うこと"""
        record = BreedNormalizer.normalize("murrah", {"englishName": "Murrah Buffalo"})

        assert record.name == "Murrah Buffalo"
        assert record.english_name == "Murrah Buffalo"

    def test_names_fall_back_to_breed_id(self):
        """名称がない場合は breed_id を使うこと"""
        record = BreedNormalizer.normalize("surti", {"origin": "Gujarat"})

        assert record.id == "surti"
        assert record.name == "surti"
        assert record.english_name == "surti"

    def test_numeric_id_is_converted_to_string(self):
        """数値 ID は文字列に変換されること"""
        record = BreedNormalizer.normalize("murrah", {"id": 7})

        assert record.id == "7"


class TestNormalizeCategory:
    """畜種判定のテスト"""

    def test_category_buffalo_keyword(self):
        """'buffalo' を含む種別は buffalo"""
        assert BreedNormalizer.normalize("m", {"type": "Murrah Buffalo"}).category == "buffalo"

    def test_category_cattle_keyword(self):
        """'cattle' を含む種別は cow"""
        assert BreedNormalizer.normalize("d", {"type": "Desi Cattle"}).category == "cow"

    def test_category_cow_keyword(self):
        """'cow' を含む種別は cow (大文字小文字を区別しない)"""
        assert BreedNormalizer.normalize("g", {"category": "Indigenous COW"}).category == "cow"

    def test_category_unknown_keyword_defaults_to_buffalo(self):
        """判定できない種別は buffalo"""
        assert BreedNormalizer.normalize("e", {"type": "Exotic"}).category == "buffalo"

    def test_category_prefers_category_over_type(self):
        """category が type より優先されること"""
        raw = {"category": "cattle", "type": "buffalo"}
        assert BreedNormalizer.normalize("g", raw).category == "cow"

    def test_category_from_male_node(self):
        """トップレベルにない場合は雄ノードの type_of_animal を使うこと"""
        raw = {"male": {"type_of_animal": "Cattle"}, "female": {"type": "Buffalo"}}
        assert BreedNormalizer.normalize("g", raw).category == "cow"

    def test_category_from_female_node(self):
        """雄ノードにもない場合は雌ノードを使うこと"""
        raw = {"male": {"body_weight": "500kg"}, "female": {"type": "Desi cow"}}
        assert BreedNormalizer.normalize("g", raw).category == "cow"


class TestNormalizeImage:
    """画像 URL 解決のテスト"""

    def test_image_candidate_order(self):
        """候補キーの順に解決されること"""
        raw = {"picture": "http://x/picture.jpg", "photo": "http://x/photo.jpg"}
        assert BreedNormalizer.normalize("m", raw).image == "http://x/photo.jpg"

    def test_image_camel_case_key(self):
        """imageUrl も候補に含まれること"""
        assert BreedNormalizer.normalize("m", {"imageUrl": "http://x/a.jpg"}).image == "http://x/a.jpg"

    def test_image_object_unwrap_order(self):
        """画像オブジェクトは url → src → path の順に取り出されること"""
        assert BreedNormalizer.normalize("m", {"image": {"src": "s", "url": "u"}}).image == "u"
        assert BreedNormalizer.normalize("m", {"image": {"path": "p", "src": "s"}}).image == "s"
        assert BreedNormalizer.normalize("m", {"image": {"path": "p"}}).image == "p"

    def test_image_object_without_url_is_unresolved(self):
        """URL を持たない画像オブジェクトは未解決になること"""
        assert BreedNormalizer.normalize("m", {"image": {"width": 640}}).image == ""

    def test_image_from_female_node_preferred(self):
        """雌雄ノードでは雌ノードが優先されること"""
        raw = {
            "male": {"photo": "http://x/bull.jpg"},
            "female": {"image": {"url": "http://x/cow.jpg"}},
        }
        assert BreedNormalizer.normalize("m", raw).image == "http://x/cow.jpg"

    def test_image_from_male_node(self):
        """雌ノードにない場合は雄ノードを使うこと"""
        raw = {"bull": {"picture": "http://x/bull.jpg"}, "cow": {"height": "130cm"}}
        assert BreedNormalizer.normalize("m", raw).image == "http://x/bull.jpg"

    def test_image_deep_search_fallback(self):
        """入れ子の奥にある画像キーを深さ優先探索で見つけること"""
        raw = {"some": {"nested": {"image_url": "http://x/y.jpg"}}}
        assert BreedNormalizer.normalize("m", raw).image == "http://x/y.jpg"

    def test_image_deep_search_inside_list(self):
        """リスト内の画像キーも探索されること"""
        raw = {"gallery": [{"caption": "side"}, {"img": {"src": "http://x/side.jpg"}}]}
        assert BreedNormalizer.normalize("m", raw).image == "http://x/side.jpg"


class TestNormalizeOrigin:
    """原産地解決のテスト"""

    def test_origin_candidate_order(self):
        """origin → region → location の順に解決されること"""
        assert BreedNormalizer.normalize("m", {"region": "Haryana", "location": "Rohtak"}).origin == "Haryana"
        assert BreedNormalizer.normalize("m", {"country": "India"}).origin == "India"

    def test_origin_from_female_node_preferred(self):
        """雌雄ノードでは雌ノードの origin が優先されること"""
        raw = {"male": {"origin": "Punjab"}, "female": {"origin": "Haryana"}}
        assert BreedNormalizer.normalize("m", raw).origin == "Haryana"

    def test_origin_node_origin_before_location(self):
        """雌雄ノードでは origin が location より優先されること"""
        raw = {"male": {"origin": "Punjab"}, "female": {"location": "Hisar"}}
        assert BreedNormalizer.normalize("m", raw).origin == "Punjab"

    def test_origin_deep_search_converts_to_string(self):
        """深さ優先探索で見つかった非文字列値は文字列化されること"""
        raw = {"meta": {"geo": {"region_code": 12}}}
        assert BreedNormalizer.normalize("m", raw).origin == "12"

    def test_origin_deep_search_skips_objects(self):
        """オブジェクト値は採用せずその中を探索すること"""
        raw = {"meta": {"place_of_origin": {"country": "India"}}}
        assert BreedNormalizer.normalize("m", raw).origin == "India"


class TestNormalizeHistory:
    """来歴解決のテスト"""

    def test_history_candidate_keys(self):
        """来歴の候補キーから解決されること"""
        assert BreedNormalizer.normalize("m", {"historical_notes": "Ancient breed"}).history == "Ancient breed"
        assert BreedNormalizer.normalize("m", {"background": "Delta region"}).history == "Delta region"

    def test_history_deep_search_object_is_json_encoded(self):
        """深さ優先探索でオブジェクトが見つかった場合は JSON 文字列化されること"""
        raw = {"details": {"breed_history": {"era": "Indus valley"}}}
        history = BreedNormalizer.normalize("m", raw).history

        assert json.loads(history) == {"era": "Indus valley"}


class TestNormalizeCharacteristics:
    """外見・用途特性解決のテスト"""

    def test_characteristics_object_has_priority_over_flat_fields(self):
        """characteristics オブジェクトがトップレベルのフィールドより優先されること"""
        raw = {"milk_yield": "500-700", "characteristics": {"milkYield": "900-1200"}}
        record = BreedNormalizer.normalize("m", raw)

        assert record.characteristics.milk_yield == "900-1200"

    def test_characteristics_object_snake_case_keys(self):
        """characteristics オブジェクトの snake_case キーも解決されること"""
        raw = {
            "characteristics": {
                "colors": ["black", "brown"],
                "horn_size": "large",
                "body_size": "large",
                "milk_yield": "1500",
                "purpose": ["milk", "draught"],
            }
        }
        characteristics = BreedNormalizer.normalize("m", raw).characteristics

        assert characteristics.color == ["black", "brown"]
        assert characteristics.horn_size == "large"
        assert characteristics.body_size == "large"
        assert characteristics.milk_yield == "1500"
        assert characteristics.uses == ["milk", "draught"]

    def test_characteristics_object_falls_back_to_scalar_milk(self):
        """characteristics に乳量がない場合はトップレベルの milk を文字列化すること"""
        raw = {"characteristics": {"color": ["black"]}, "milk": 1800}
        assert BreedNormalizer.normalize("m", raw).characteristics.milk_yield == "1800"

    def test_characteristics_synthesized_from_gender_nodes(self):
        """雌雄ノードから特性が合成されること"""
        raw = {
            "male": {"coat_color": "jet black", "horn_shape": "tightly curled"},
            "female": {"coat_color": "black", "milk_production": "1800-2500"},
            "uses": ["dairy"],
        }
        characteristics = BreedNormalizer.normalize("m", raw).characteristics

        assert characteristics.color == ["jet black"]
        assert characteristics.horn_size == "tightly curled"
        assert characteristics.body_size == "medium"
        assert characteristics.milk_yield == "1800-2500"
        assert characteristics.uses == ["dairy"]

    def test_characteristics_synthesis_uses_female_when_male_missing(self):
        """雄ノードに毛色・角がない場合は雌ノードを使うこと"""
        raw = {"male": {"height": "140cm"}, "female": {"coat_color": "grey", "horn_shape": "sickle"}}
        characteristics = BreedNormalizer.normalize("m", raw).characteristics

        assert characteristics.color == ["grey"]
        assert characteristics.horn_size == "sickle"

    def test_characteristics_flat_fields(self):
        """characteristics も雌雄ノードもない場合はトップレベルから解決されること"""
        raw = {
            "color": "white",
            "horn_shape": "lyre",
            "body_size": "small",
            "milk_production": "600",
            "uses": "draught",
        }
        characteristics = BreedNormalizer.normalize("m", raw).characteristics

        assert characteristics.color == ["white"]
        assert characteristics.horn_size == "lyre"
        assert characteristics.body_size == "small"
        assert characteristics.milk_yield == "600"
        assert characteristics.uses == ["draught"]


class TestNormalizeProductionData:
    """生産データ解決のテスト"""

    def test_production_from_production_object(self):
        """production オブジェクトの各種キーから解決されること"""
        raw = {
            "production": {
                "peak_yield": "18 L/day",
                "fat_pct": 7.2,
                "protein_percentage": "4.2%",
                "lactation_period_days": 305,
                "calving_interval": "14 months",
                "first_calving_age": "40 months",
            }
        }
        production = BreedNormalizer.normalize("m", raw).production_data

        assert production.peak_milk_production == "18 L/day"
        assert production.fat_content == "7.2"
        assert production.protein_content == "4.2%"
        assert production.average_lactation_period == "305"
        assert production.calving_interval == "14 months"
        assert production.age_at_first_calving == "40 months"

    def test_production_object_before_top_level(self):
        """production オブジェクトがトップレベルより優先されること"""
        raw = {"fat_content": "6%", "production_data": {"fatContent": "8%"}}
        assert BreedNormalizer.normalize("m", raw).production_data.fat_content == "8%"

    def test_production_top_level_calving_interval(self):
        """トップレベルの calving_interval が使われること"""
        raw = {"calving_interval": "450 days"}
        assert BreedNormalizer.normalize("m", raw).production_data.calving_interval == "450 days"

    def test_production_from_female_node(self):
        """雌ノードの値が使われること"""
        raw = {"female": {"milk_yield": "2000", "fat_percentage": "7.5", "lactation_period": "310"}}
        production = BreedNormalizer.normalize("m", raw).production_data

        assert production.peak_milk_production == "2000"
        assert production.fat_content == "7.5"
        assert production.average_lactation_period == "310"

    def test_production_female_node_preferred_over_male(self):
        """雌雄両方にある場合は雌ノードが優先されること"""
        raw = {"male": {"fat_content": "1%"}, "female": {"fat_content": "7%"}}
        assert BreedNormalizer.normalize("m", raw).production_data.fat_content == "7%"

    def test_peak_milk_falls_back_to_resolved_milk_yield(self):
        """最大乳量は解決済みの特性乳量にフォールバックすること"""
        raw = {"characteristics": {"milkYield": "900-1200"}}
        assert BreedNormalizer.normalize("m", raw).production_data.peak_milk_production == "900-1200"

    def test_peak_milk_does_not_use_default_milk_yield(self):
        """特性乳量がデフォルト値の場合は最大乳量に使わないこと"""
        raw = {"characteristics": {"color": ["black"]}}
        assert BreedNormalizer.normalize("m", raw).production_data.peak_milk_production == "N/A"

    def test_production_deep_search(self):
        """入れ子の奥にある生産データを深さ優先探索で見つけること"""
        raw = {"stats": {"dairy": {"avg_protein": "4.5%", "milk_fat": "7.8%"}}}
        production = BreedNormalizer.normalize("m", raw).production_data

        assert production.protein_content == "4.5%"
        assert production.fat_content == "7.8%"

    def test_production_deep_search_skips_objects(self):
        """一致したキーの値がオブジェクトの場合はその中を探索すること"""
        raw = {"lactation": {"days": None, "lactation_length": "300 days"}}
        assert BreedNormalizer.normalize("m", raw).production_data.average_lactation_period == "300 days"

    def test_production_unresolved_fields_are_na(self):
        """どこにも見つからない項目は 'N/A' になること"""
        raw = {"female": {"milk_production": "1800"}}
        production = BreedNormalizer.normalize("m", raw).production_data

        assert production.peak_milk_production == "1800"
        assert production.fat_content == "N/A"
        assert production.protein_content == "N/A"
        assert production.calving_interval == "N/A"


class TestNormalizeGenderCharacteristics:
    """雌雄別特性解決のテスト"""

    def test_gender_profiles_from_nodes(self):
        """雌雄ノードから bull / cow プロファイルが生成されること"""
        raw = {"male": {"body_weight": "400-500kg"}, "female": {"body_weight": "300-400kg"}}
        gender = BreedNormalizer.normalize("m", raw).gender_characteristics

        assert gender is not None
        assert gender.bull.body_weight == "400-500kg"
        assert gender.cow.body_weight == "300-400kg"

    def test_empty_gender_nodes_are_absent(self):
        """空の雌雄ノードは存在しないものとして扱うこと"""
        assert BreedNormalizer.normalize("m", {"male": {}}).gender_characteristics is None
        assert BreedNormalizer.normalize("m", {"male": {}, "female": {}}).gender_characteristics is None

    def test_empty_gender_node_falls_through_to_alias(self):
        """空の male ノードは bull ノードに譲り、空の female は既定値になること"""
        raw = {"male": {}, "bull": {"body_weight": "600kg"}, "female": {}}
        gender = BreedNormalizer.normalize("m", raw).gender_characteristics

        assert gender.bull.body_weight == "600kg"
        assert gender.cow.body_weight == "N/A"

    def test_gender_profile_defaults(self):
        """不足項目はデフォルト値で補完されること"""
        raw = {"bull": {"bodyWeightRange": "550kg"}}
        gender = BreedNormalizer.normalize("m", raw).gender_characteristics

        assert gender.bull.body_weight == "550kg"
        assert gender.bull.height == "N/A"
        assert gender.bull.temperament == ""
        assert gender.bull.special_features == []
        assert gender.cow.body_weight == "N/A"

    def test_gender_profile_all_fields(self):
        """全項目が解決されること"""
        raw = {
            "female": {
                "bodyWeight": "450kg",
                "height": "133cm",
                "temperament": "docile",
                "features": ["wedge-shaped body", "long tail"],
            }
        }
        cow = BreedNormalizer.normalize("m", raw).gender_characteristics.cow

        assert cow.body_weight == "450kg"
        assert cow.height == "133cm"
        assert cow.temperament == "docile"
        assert cow.special_features == ["wedge-shaped body", "long tail"]

    def test_gender_from_existing_field(self):
        """既存の genderCharacteristics フィールドが使われること"""
        raw = {
            "gender_characteristics": {
                "bull": {"bodyWeight": "600kg", "specialFeatures": ["massive"]},
                "cow": {"bodyWeight": "450kg"},
            },
            "male": {"body_weight": "ignored"},
        }
        gender = BreedNormalizer.normalize("m", raw).gender_characteristics

        assert gender.bull.body_weight == "600kg"
        assert gender.bull.special_features == ["massive"]
        assert gender.cow.body_weight == "450kg"

    def test_gender_absent_without_source(self):
        """雌雄情報がない場合は None になること"""
        assert BreedNormalizer.normalize("m", {}).gender_characteristics is None
        assert BreedNormalizer.normalize("m", {"name": "Murrah"}).gender_characteristics is None


class TestNormalizeManagement:
    """飼養管理情報・保全状況解決のテスト"""

    def test_management_object(self):
        """management オブジェクトの各種キーから解決されること"""
        raw = {
            "management": {
                "diet": ["green fodder", "concentrate"],
                "common_diseases": ["mastitis"],
                "care_notes": "provide wallowing",
            }
        }
        management = BreedNormalizer.normalize("m", raw).management

        assert management.diet == ["green fodder", "concentrate"]
        assert management.common_diseases == ["mastitis"]
        assert management.care_notes == ["provide wallowing"]

    def test_management_from_care_key(self):
        """care キーも使われること"""
        raw = {"care": {"commonDiseases": ["FMD"]}}
        management = BreedNormalizer.normalize("m", raw).management

        assert management.common_diseases == ["FMD"]
        assert management.diet == []

    def test_conservation_status(self):
        """conservation → status の順に解決されること"""
        assert BreedNormalizer.normalize("m", {"status": "vulnerable"}).conservation == "vulnerable"
        assert BreedNormalizer.normalize("m", {"conservation": "endangered", "status": "x"}).conservation == "endangered"
        assert BreedNormalizer.normalize("m", {"status": {"code": 1}}).conservation == "common"


class TestNormalizerInvariants:
    """正規化の不変条件のテスト"""

    @pytest.fixture
    def raw_response(self):
        """品種詳細 API のサンプルレスポンス"""
        return {
            "name": "Murrah",
            "origin": "Haryana",
            "characteristics": {"color": ["jet black"], "uses": ["dairy"]},
            "management": {"diet": ["green fodder"]},
            "male": {"body_weight": "550kg", "features": ["curled horns"]},
            "female": {"body_weight": "450kg", "milk_production": "1800-2500"},
        }

    def test_normalize_is_idempotent(self, raw_response):
        """同じ入力を2回正規化すると同じ結果になること"""
        first = BreedNormalizer.normalize("murrah", raw_response)
        second = BreedNormalizer.normalize("murrah", raw_response)

        assert first.to_json_dict() == second.to_json_dict()

    def test_normalize_does_not_mutate_input(self, raw_response):
        """入力を変更しないこと"""
        original = copy.deepcopy(raw_response)

        BreedNormalizer.normalize("murrah", raw_response)

        assert raw_response == original

    def test_output_does_not_alias_input(self, raw_response):
        """出力のリストが入力と参照を共有しないこと"""
        record = BreedNormalizer.normalize("murrah", raw_response)

        raw_response["characteristics"]["color"].append("brown")
        raw_response["management"]["diet"].clear()
        raw_response["male"]["features"].append("white tail switch")

        assert record.characteristics.color == ["jet black"]
        assert record.management.diet == ["green fodder"]
        assert record.gender_characteristics.bull.special_features == ["curled horns"]


class TestNormalizerIntegration:
    """BreedNormalizer の統合テスト"""

    def test_normalize_murrah_response(self):
        """分類結果 'murrah' の品種詳細を正規化する統合テスト"""
        raw = {
            "name": "Murrah",
            "origin": "Haryana",
            "milk": "1800-2500",
            "male": {"body_weight": "500-600kg"},
            "female": {"body_weight": "400-500kg", "milk_production": "1800-2500"},
        }

        record = BreedNormalizer.normalize("murrah", raw)

        assert record.id == "murrah"
        assert record.name == "Murrah"
        assert record.english_name == "Murrah"
        assert record.category == "buffalo"
        assert record.origin == "Haryana"
        assert record.characteristics.milk_yield == "1800-2500"
        assert record.production_data.peak_milk_production == "1800-2500"
        assert record.gender_characteristics.bull.body_weight == "500-600kg"
        assert record.gender_characteristics.cow.body_weight == "400-500kg"

    def test_normalize_to_json_dict_uses_camel_case(self):
        """JSON 出力は描画層の camelCase キーになること"""
        raw = {"male": {"body_weight": "500kg"}}
        data = BreedNormalizer.normalize("murrah", raw).to_json_dict()

        assert "englishName" in data
        assert "peakMilkProduction" in data["productionData"]
        assert data["genderCharacteristics"]["bull"]["bodyWeight"] == "500kg"
        assert data["genderCharacteristics"]["cow"]["specialFeatures"] == []
