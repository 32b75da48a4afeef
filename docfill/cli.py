"""Command-line interface for document extraction and CSV export.

Provides subcommands for processing a single document, processing a
folder of documents into a CSV file, and checking that the configured
provider credentials are accepted.
"""

import argparse
import asyncio
import csv
import json
import mimetypes
import sys
import time
import uuid
from pathlib import Path

from docfill.extraction.field_matcher import (
    FieldMatcher,
    load_templates,
    missing_required,
)
from docfill.extraction.models import Document
from docfill.extraction.orchestrator import ExtractionOrchestrator
from docfill.providers import build_adapters
from docfill.utils.config import AppConfig, load_config
from docfill.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = (
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.tiff",
    "*.tif",
    "*.pdf",
    "*.txt",
)
_META_COLUMNS = [
    "filename",
    "status",
    "provider",
    "processing_time_s",
    "confidence",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def load_document(file_path: Path) -> Document:
    """Read a file from disk into a document.

    ``.txt`` files are passed as text; everything else as binary content.
    """
    document_id = str(uuid.uuid4())
    if file_path.suffix.lower() == ".txt":
        return Document(
            document_id=document_id,
            text=file_path.read_text(encoding="utf-8"),
            filename=file_path.name,
            content_type="text/plain",
        )
    content_type, _ = mimetypes.guess_type(file_path.name)
    return Document(
        document_id=document_id,
        content=file_path.read_bytes(),
        filename=file_path.name,
        content_type=content_type,
    )


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        config: Application configuration. Loaded from disk if ``None``.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = config or load_config()
    orchestrator = ExtractionOrchestrator(config.pipeline)

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        document = load_document(file_path)
        result = asyncio.run(
            orchestrator.process(document, config.enabled_providers())
        )
        row: dict[str, object] = {
            "filename": file_path.name,
            "status": "success" if result.success else "failed",
            "provider": result.provider_label,
            "processing_time_s": round(time.time() - start_time, 2),
            "confidence": result.confidence,
            "error": result.error,
        }
        row.update(result.values())
        results.append(row)

        if result.success:
            successful += 1
        else:
            logger.error("Failed to process %s: %s", file_path.name, result.error)
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed documents.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path,
    template_name: str | None = None,
    config: AppConfig | None = None,
) -> dict[str, object]:
    """Process a single document and return structured results.

    Args:
        file_path: Path to the document file.
        template_name: Template to fill with the extracted data.
        config: Application configuration. Loaded from disk if ``None``.

    Returns:
        Dictionary with the merged result and, if requested, the
        matched template fields.

    Raises:
        KeyError: If ``template_name`` is not a configured template.
    """
    config = config or load_config()
    template = None
    if template_name:
        templates = load_templates(Path(config.templates_path))
        if template_name not in templates:
            raise KeyError(f"Unknown template: {template_name}")
        template = templates[template_name]

    orchestrator = ExtractionOrchestrator(config.pipeline)
    document = load_document(file_path)
    result = asyncio.run(orchestrator.process(document, config.enabled_providers()))

    output: dict[str, object] = {
        "filename": file_path.name,
        "success": result.success,
        "data": result.values(),
        "confidence": result.confidence,
        "provider": result.provider_label,
        "error": result.error,
    }
    if template is not None and result.success:
        matched = FieldMatcher().match(template.fields, result.data)
        output["template"] = template.name
        output["matched_fields"] = matched
        output["missing_required"] = missing_required(template.fields, matched)
    return output


async def _check_providers(config: AppConfig) -> dict[str, bool]:
    adapters = build_adapters()
    checks = {
        provider.id: adapters[provider.kind].check_connection(provider)
        for provider in config.enabled_providers()
    }
    outcomes = await asyncio.gather(*checks.values())
    return dict(zip(checks.keys(), outcomes, strict=True))


def check_providers(config: AppConfig | None = None) -> dict[str, bool]:
    """Check every enabled provider's credential against its API.

    Returns:
        Mapping of provider id to whether the credential was accepted.
    """
    config = config or load_config()
    return asyncio.run(_check_providers(config))


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Document form-filling extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, help="Configuration YAML file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "-t", "--template", help="Template to fill with the extracted data"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    subparsers.add_parser(
        "check-providers", help="Verify the configured provider credentials"
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, args.template, config)
        except KeyError as exc:
            print(f"Error: {exc.args[0]}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "check-providers":
        results = check_providers(config)
        if not results:
            print("No providers enabled")
            sys.exit(1)
        for provider_id, ok in results.items():
            print(f"{provider_id}: {'ok' if ok else 'FAILED'}")
        sys.exit(0 if all(results.values()) else 1)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
