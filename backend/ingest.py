import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import configure_logging, find_config_path, load_config
from core import PresentationEvaluator
from errors import EvaluatorError
from loaders import get_loader_for_file


def main():
    parser = argparse.ArgumentParser(
        description="Chunk, embed and index a reference document"
    )
    parser.add_argument("file", type=Path, help="PDF, DOCX or text file to ingest")
    parser.add_argument(
        "--document-id",
        default=None,
        help="Document id (default: the file name without extension)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Store zero vectors without calling the embedding service",
    )

    args = parser.parse_args()

    try:
        config = load_config(find_config_path(args.config))
        configure_logging(config)

        text = get_loader_for_file(args.file).load_text(args.file)
        evaluator = PresentationEvaluator.from_config(config)
        document_id = args.document_id or args.file.stem
        result = evaluator.process_document(text, document_id, degraded=args.offline)
        stats = evaluator.get_document_stats(document_id)

        print("\n=== Ingestion Complete ===")
        print(f"Document: {result['document_id']}")
        print(f"Chunks created: {result['chunk_count']}")
        print(f"Words: {result['word_count']}")
        print(f"Average chunk size: {stats.average_chunk_size:.0f} chars")
        print(f"Sections detected: {len(stats.sections)}")
        if result["degraded"]:
            print("Embeddings skipped (offline mode)")
        return 0
    except (EvaluatorError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
