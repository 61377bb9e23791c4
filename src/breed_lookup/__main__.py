"""CLI エントリーポイント"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .adapters.http_breed_source import HttpBreedSource
from .config import AppConfig
from .infrastructure.identification_store import IdentificationStore
from .infrastructure.output_writer import OutputWriter
from .orchestration.identification_service import IdentificationService


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    コマンドライン引数を解析

    Args:
        argv: 引数リスト（None の場合は sys.argv）

    Returns:
        argparse.Namespace: 解析結果
    """
    parser = argparse.ArgumentParser(
        prog="breed_lookup",
        description="Livestock breed identification and breed detail lookup",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detail = subparsers.add_parser("detail", help="Show normalized breed detail")
    detail.add_argument("breed", help="Breed identifier (e.g. murrah)")
    detail.add_argument(
        "--save",
        action="store_true",
        help="Also write the record to the output directory",
    )

    subparsers.add_parser("breeds", help="List known breed identifiers")

    identify = subparsers.add_parser("identify", help="Identify the breed in an image")
    identify.add_argument("image", help="Path to an image file")

    subparsers.add_parser("history", help="Show stored identification history")

    return parser.parse_args(argv)


def _print_json(data) -> None:
    """JSON を標準出力に書き出す"""
    print(json.dumps(data, ensure_ascii=False, indent=2))


def main(argv: Optional[List[str]] = None):
    """
    CLI エントリーポイント

    Usage:
        python -m src.breed_lookup detail murrah [--save]
        python -m src.breed_lookup breeds
        python -m src.breed_lookup identify capture.jpg
        python -m src.breed_lookup history

    Exit codes:
        0: 成功
        1: 失敗
    """
    args = parse_args(argv)
    config = AppConfig.from_env()

    # ロギング設定
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger = logging.getLogger(__name__)

    try:
        # 依存関係の初期化
        source = HttpBreedSource(config)
        store = IdentificationStore(config.store_dir)
        service = IdentificationService(source=source, store=store)

        if args.command == "detail":
            record = service.lookup_breed(args.breed)
            _print_json(record.to_json_dict())
            if args.save:
                output_path = OutputWriter(config.output_dir).write_breed(record)
                logger.info(f"Breed record written: {output_path}")
            sys.exit(0)

        if args.command == "breeds":
            for breed in source.list_breeds():
                print(breed)
            sys.exit(0)

        if args.command == "history":
            _print_json([
                record.model_dump(mode="json", by_alias=True)
                for record in service.history()
            ])
            sys.exit(0)

        # identify
        logger.info("Starting identification...")
        result = service.identify(args.image)
        _print_json(result.model_dump(mode="json", by_alias=True, exclude_none=True))

        if result.success:
            logger.info(
                f"Identification completed successfully: "
                f"{result.prediction.predicted_class} "
                f"(confidence {result.prediction.confidence_score:.2f})"
            )
            sys.exit(0)
        else:
            logger.error(
                f"Identification failed: {', '.join(result.errors)}"
            )
            sys.exit(1)

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
