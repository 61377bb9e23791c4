"""
インフラストラクチャ層

識別履歴の永続化、品種レコードの JSON 出力などのファイル I/O を提供します。
"""

from .identification_store import IdentificationStore
from .output_writer import OutputWriter

__all__ = ["IdentificationStore", "OutputWriter"]
