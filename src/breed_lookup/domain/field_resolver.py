"""
フィールド解決ヘルパー

スキーマが不定な JSON から候補キー順に値を取り出すための汎用関数群です。
品種正規化 (BreedNormalizer) の各フィールド解決はすべてここを経由します。
"""

import json
import re
from typing import Any, Callable, Iterable, List, Optional, Pattern, Set

# 深さ優先探索の再帰上限
MAX_SEARCH_DEPTH = 32

_IMAGE_OBJECT_KEYS = ("url", "src", "path")


def is_present(value: Any) -> bool:
    """
    値が「使用可能」かを判定

    None, 空文字列, 空リスト, 空 dict は未設定として扱います。

    Args:
        value: 判定対象

    Returns:
        bool: 使用可能なら True
    """
    if value is None:
        return False
    if isinstance(value, (str, list, dict)) and len(value) == 0:
        return False
    return True


def is_scalar(value: Any) -> bool:
    """None 以外のスカラー値 (文字列・数値・真偽値) か"""
    return is_present(value) and isinstance(value, (str, int, float, bool))


def as_dict(value: Any) -> dict:
    """dict ならそのまま、それ以外は空 dict を返す"""
    return value if isinstance(value, dict) else {}


def first_present(obj: Any, keys: Iterable[str]) -> Optional[Any]:
    """
    候補キーを順に調べ、最初に使用可能な値を返す

    Args:
        obj: 探索対象 (dict 以外は常に None)
        keys: 候補キー (優先順)

    Returns:
        Optional[Any]: 最初に見つかった値、見つからない場合は None
    """
    if not isinstance(obj, dict):
        return None
    for key in keys:
        value = obj.get(key)
        if is_present(value):
            return value
    return None


def first_dict(obj: Any, keys: Iterable[str]) -> Optional[dict]:
    """候補キーのうち、最初に空でない dict を持つものの値を返す"""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        value = obj.get(key)
        if isinstance(value, dict) and value:
            return value
    return None


def first_key_match(obj: Any, pattern: Pattern) -> Optional[Any]:
    """
    dict 直下のキーを正規表現で照合し、最初に一致した使用可能な値を返す

    Args:
        obj: 探索対象
        pattern: キー名パターン

    Returns:
        Optional[Any]: 一致した値、見つからない場合は None
    """
    if not isinstance(obj, dict):
        return None
    for key, value in obj.items():
        if pattern.search(str(key)) and is_scalar(value):
            return value
    return None


def deep_find(
    obj: Any,
    pattern: Pattern,
    accept: Callable[[Any], bool] = is_present,
    max_depth: int = MAX_SEARCH_DEPTH,
    _visited: Optional[Set[int]] = None,
) -> Optional[Any]:
    """
    キー名パターンに一致する値を再帰的に探索

    dict のキー (挿入順) とリスト要素を先行順・深さ優先で辿り、
    キーが pattern に一致し accept を満たす最初の値を返します。
    一致したが accept を満たさない値の中も続けて探索します。

    Args:
        obj: 探索対象
        pattern: キー名パターン
        accept: 値の採用条件
        max_depth: 再帰の深さ上限
        _visited: 探索済みコンテナの id (循環参照の検出用)

    Returns:
        Optional[Any]: 見つかった値、見つからない場合は None
    """
    if max_depth < 0:
        return None

    if _visited is None:
        _visited = set()
    if isinstance(obj, (dict, list)):
        # 循環参照・共有部分木は一度だけ辿る
        if id(obj) in _visited:
            return None
        _visited.add(id(obj))

    if isinstance(obj, dict):
        for key, value in obj.items():
            if pattern.search(str(key)) and accept(value):
                return value
            if isinstance(value, (dict, list)):
                nested = deep_find(value, pattern, accept, max_depth - 1, _visited)
                if nested is not None:
                    return nested
    elif isinstance(obj, list):
        for item in obj:
            if isinstance(item, (dict, list)):
                nested = deep_find(item, pattern, accept, max_depth - 1, _visited)
                if nested is not None:
                    return nested

    return None


def unwrap_image(value: Any) -> str:
    """
    画像値を URL 文字列に変換

    - 文字列 → そのまま
    - dict → url, src, path の順に取り出し
    - それ以外 → 空文字列

    Args:
        value: 画像フィールドの値

    Returns:
        str: 画像 URL (未解決の場合は空文字列)
    """
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        inner = first_present(value, _IMAGE_OBJECT_KEYS)
        if isinstance(inner, str):
            return inner
    return ""


def as_text(value: Any) -> str:
    """
    値を文字列に変換

    数値・真偽値は str() で、dict/list は JSON 文字列に変換します。
    循環参照を含み JSON 化できない場合は str() の表現を返します。
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except ValueError:
            return str(value)
    return str(value)


def as_text_list(value: Any) -> List[str]:
    """
    値を文字列リストに変換

    単一の文字列は1要素のリストにラップし、リスト要素は as_text で変換します。
    常に新しいリストを返すため、元データと参照を共有しません。
    """
    if not is_present(value):
        return []
    if isinstance(value, list):
        return [as_text(item) for item in value if is_present(item)]
    return [as_text(value)]


def compile_pattern(expression: str) -> Pattern:
    """キー名照合用の大文字小文字を区別しない正規表現を生成"""
    return re.compile(expression, re.IGNORECASE)
