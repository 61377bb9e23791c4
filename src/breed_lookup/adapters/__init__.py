"""
アダプター層

品種判定・品種詳細を提供する上流サービスへの接続ロジックを提供します。
"""

from .breed_source import (
    BreedDetailFetchError,
    BreedSource,
    NetworkError,
    RecognitionRejectedError,
)
from .http_breed_source import HttpBreedSource

__all__ = [
    "BreedSource",
    "NetworkError",
    "BreedDetailFetchError",
    "RecognitionRejectedError",
    "HttpBreedSource",
]
