"""Command-line interface for crtool.

This module provides the CLI entry point for signing assets with C2PA
manifests, extracting embedded manifests and validating extracted
documents.
"""

import argparse
import logging
import sys
from pathlib import Path

from .algorithms import select_signing_algorithm
from .backends import ManifestBackend, default_backend
from .batch import (
    BatchOptions,
    BatchOrchestrator,
    SignOptions,
    check_supported_assets,
    expand_input_patterns,
    extract_files,
    sign_files,
    validate_files,
)
from .core.config import load_manifest_spec
from .core.errors import CrToolError, UsageError
from .core.types import BatchResult, BatchUnit
from .core.validator import load_validator
from .pipeline import default_ingredients_dir

EXIT_OK = 0
EXIT_UNIT_FAILED = 1
EXIT_PREFLIGHT = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all three modes."""
    parser = argparse.ArgumentParser(
        prog="crtool",
        description="Sign assets with C2PA manifests, extract them, and validate the results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sign one image
  crtool -m manifest.json -o signed.jpg -c cert.pem -k key.pem photo.jpg

  # Sign every JPEG in a folder into an output directory
  crtool -m manifest.json -o out/ -c cert.pem -k key.pem "images/*.jpg"

  # Extract manifests in JPEG Trust form
  crtool --extract --jpt -o manifests/ "out/*.jpg"

  # Validate extracted documents
  crtool --validate "manifests/*.json"
        """,
    )

    parser.add_argument(
        "inputs",
        metavar="INPUT_FILE",
        nargs="+",
        help="Input files or glob patterns (e.g. 'images/*.jpg', 'media/**/*.png')",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-e", "--extract", action="store_true", help="Extract embedded manifests to JSON"
    )
    mode.add_argument(
        "-v", "--validate", action="store_true", help="Validate JSON files against the schema"
    )

    parser.add_argument("-m", "--manifest", type=Path, help="Manifest description (JSON)")
    parser.add_argument(
        "-o", "--output", type=Path, help="Output file, or directory for several inputs"
    )
    parser.add_argument("-c", "--cert", type=Path, help="Signing certificate chain (PEM)")
    parser.add_argument("-k", "--key", type=Path, help="Private key (PEM)")
    parser.add_argument(
        "-a",
        "--algorithm",
        help="Signing algorithm (es256, es384, es512, ps256, ps384, ps512, ed25519); "
        "inferred from the certificate when omitted",
    )
    parser.add_argument(
        "--allow-self-signed",
        action="store_true",
        help=(
            "Compute signatures locally through a callback signer (development only); "
            "the certificate chain must still meet the C2PA certificate profile"
        ),
    )
    parser.add_argument("--tsa-url", help="Time-stamp authority URL")
    parser.add_argument(
        "--ingredients-dir",
        type=Path,
        help="Base directory for ingredient paths (default: the manifest's directory)",
    )
    parser.add_argument(
        "--thumbnail-asset", action="store_true", help="Embed a thumbnail of the signed asset"
    )
    parser.add_argument(
        "--thumbnail-ingredients",
        action="store_true",
        help="Embed thumbnails of file-based ingredients",
    )
    parser.add_argument(
        "--jpt", action="store_true", help="Extract in JPEG Trust form (with --extract)"
    )
    parser.add_argument(
        "--schema", type=Path, help="Schema to validate against (default: bundled schema)"
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=1, help="Files processed in parallel (default: 1)"
    )
    parser.add_argument(
        "--fail-fast", action="store_true", help="Stop after the first failed file"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging threshold (default: WARNING)",
    )

    return parser


def check_usage(args: argparse.Namespace) -> None:
    """Reject option combinations the selected mode cannot use.

    Raises:
        UsageError: Naming the missing or misplaced option
    """
    if args.jpt and not args.extract:
        raise UsageError("--jpt can only be used with --extract")
    if args.jobs < 1:
        raise UsageError("--jobs must be at least 1")

    if args.validate:
        return
    if args.output is None:
        raise UsageError("--output is required")
    if args.extract:
        return

    missing = [
        flag
        for flag, value in (("--manifest", args.manifest), ("--cert", args.cert), ("--key", args.key))
        if value is None
    ]
    if missing:
        raise UsageError(f"Signing requires {', '.join(missing)}")


def report_unit(unit: BatchUnit) -> None:
    """Print the outcome of one unit as it finishes."""
    if unit.succeeded:
        target = f" -> {unit.output_path}" if unit.output_path is not None else ""
        print(f"OK    {unit.input_path}{target}")
    elif unit.succeeded is None:
        print(f"SKIP  {unit.input_path}", file=sys.stderr)
    elif unit.error is not None:
        print(f"FAIL  {unit.input_path}: {unit.error}", file=sys.stderr)
    else:
        print(f"FAIL  {unit.input_path}", file=sys.stderr)


def print_summary(result: BatchResult) -> None:
    """Print the end-of-run summary for a mode."""
    total = len(result.units)
    print()
    if result.mode == "validate":
        print("Validation summary:")
        print(f"  Total:   {total}")
        print(f"  Valid:   {len(result.succeeded)}")
        print(f"  Invalid: {len(result.failed)}")
        for unit in result.failed:
            print(f"\n{unit.input_path}:")
            if unit.report is not None:
                for issue in unit.report.errors:
                    print(f"  - {issue.location}: {issue.message}")
            elif unit.error is not None:
                print(f"  - {unit.error}")
    else:
        print(f"{result.mode.capitalize()} summary:")
        print(f"  Successful: {len(result.succeeded)}")
        print(f"  Failed:     {len(result.failed)}")
        if result.skipped:
            print(f"  Skipped:    {len(result.skipped)}")
        print(f"  Total:      {total}")


def run_sign(
    args: argparse.Namespace, backend: ManifestBackend, orchestrator: BatchOrchestrator
) -> BatchResult:
    """Sign every input with the manifest description."""
    inputs = expand_input_patterns(args.inputs)
    check_supported_assets(inputs)

    spec = load_manifest_spec(args.manifest)
    options = SignOptions(
        cert_path=args.cert,
        key_path=args.key,
        algorithm=select_signing_algorithm(args.cert, args.algorithm),
        allow_self_signed=args.allow_self_signed,
        thumbnail_asset=args.thumbnail_asset,
        thumbnail_ingredients=args.thumbnail_ingredients,
        ingredients_dir=default_ingredients_dir(args.manifest, args.ingredients_dir),
        tsa_url=args.tsa_url,
    )
    print(f"Signing {len(inputs)} file(s) with {options.algorithm.value}", file=sys.stderr)

    return sign_files(
        inputs,
        args.output,
        options.assembler(spec),
        options.credentials(),
        backend,
        orchestrator,
    )


def run_extract(
    args: argparse.Namespace, backend: ManifestBackend, orchestrator: BatchOrchestrator
) -> BatchResult:
    """Extract the manifest of every input."""
    inputs = expand_input_patterns(args.inputs)
    check_supported_assets(inputs)
    shape = "jpt" if args.jpt else "native"
    print(f"Extracting manifests from {len(inputs)} file(s) ({shape})", file=sys.stderr)
    return extract_files(inputs, args.output, backend, shape, orchestrator)


def run_validate(args: argparse.Namespace, orchestrator: BatchOrchestrator) -> BatchResult:
    """Validate every input against the schema."""
    inputs = expand_input_patterns(args.inputs)
    validator = load_validator(args.schema)
    print(f"Validating {len(inputs)} file(s)", file=sys.stderr)
    return validate_files(inputs, validator, orchestrator)


def run(argv: list[str] | None = None, backend: ManifestBackend | None = None) -> int:
    """Run the CLI and return the exit status.

    Args:
        argv: Arguments (default: ``sys.argv[1:]``)
        backend: Signing/reading backend (default: c2pa-python)

    Returns:
        0 if every file succeeded, 1 if any file failed, 2 on a usage or
        pre-flight error
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    orchestrator = BatchOrchestrator(
        BatchOptions(jobs=args.jobs, fail_fast=args.fail_fast), on_unit_done=report_unit
    )

    try:
        check_usage(args)
        if args.validate:
            result = run_validate(args, orchestrator)
        else:
            if backend is None:
                backend = default_backend()
            if args.extract:
                result = run_extract(args, backend, orchestrator)
            else:
                result = run_sign(args, backend, orchestrator)
    except CrToolError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_PREFLIGHT

    print_summary(result)
    return EXIT_OK if result.ok else EXIT_UNIT_FAILED


def main() -> None:
    """Main entry point for the crtool script."""
    sys.exit(run())


if __name__ == "__main__":
    main()
