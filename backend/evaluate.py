import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import configure_logging, find_config_path, load_config
from core import PresentationEvaluator
from errors import EvaluatorError, NoRelevantContextError
from loaders import get_loader_for_file
from models.evaluation import EvaluationOptions

logger = logging.getLogger(__name__)


def run_evaluation(args: argparse.Namespace) -> dict:
    """Ingest the document, evaluate the transcript and return the result as a dict."""
    config = load_config(find_config_path(args.config))
    configure_logging(config)

    evaluator = PresentationEvaluator.from_config(config)
    document_id = args.document.stem
    text = get_loader_for_file(args.document).load_text(args.document)
    evaluator.process_document(text, document_id, degraded=args.offline)

    transcript = args.transcript.read_text(encoding="utf-8")
    options = EvaluationOptions(
        max_relevant_chunks=args.max_chunks,
        min_similarity_score=args.min_similarity,
        fact_check=args.fact_check or None,
    )
    result = evaluator.evaluate(transcript, document_id, options)
    return result.model_dump(mode="json")


def main():
    parser = argparse.ArgumentParser(
        description="Evaluate a presentation transcript against a reference document"
    )
    parser.add_argument("--document", type=Path, required=True, help="Reference document")
    parser.add_argument(
        "--transcript", type=Path, required=True, help="Plain-text transcript file"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )
    parser.add_argument(
        "--fact-check",
        action="store_true",
        help="Also run the statement-level fact check",
    )
    parser.add_argument("--max-chunks", type=int, default=None)
    parser.add_argument("--min-similarity", type=float, default=None)
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Index the document with zero vectors; retrieval then ranks on lexical signals",
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="Write the JSON result to this file"
    )

    args = parser.parse_args()

    try:
        output = run_evaluation(args)
    except NoRelevantContextError as e:
        print(
            f"Error: the transcript does not appear to be about this document "
            f"(best score {e.max_score:.3f}, threshold {e.threshold})",
            file=sys.stderr,
        )
        return 2
    except (EvaluatorError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    serialized = json.dumps(output, indent=4, ensure_ascii=False)
    if args.output:
        args.output.write_text(serialized, encoding="utf-8")
        logger.info(f"Evaluation results saved to {args.output}")
    else:
        print(serialized)
    return 0


if __name__ == "__main__":
    sys.exit(main())
