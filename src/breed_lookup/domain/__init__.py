"""
ドメイン層

品種レコードのデータモデルと正規化ロジックを提供します。
"""

from .models import (
    BreedRecord,
    Characteristics,
    GenderCharacteristics,
    GenderProfile,
    IdentificationRecord,
    IdentificationStatus,
    Management,
    Prediction,
    ProductionData,
)
from .normalizer import BreedNormalizer

__all__ = [
    "BreedRecord",
    "Characteristics",
    "ProductionData",
    "GenderProfile",
    "GenderCharacteristics",
    "Management",
    "Prediction",
    "IdentificationRecord",
    "IdentificationStatus",
    "BreedNormalizer",
]
