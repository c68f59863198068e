"""Batch orchestration across input files.

A run goes through four stages:

1. Expanding: input tokens become a concrete file list
2. Mapping: every input gets a unique output location
3. Processing: each file is signed, extracted or validated on its own;
   one file's failure never stops the others
4. Reporting: outcomes are returned in input order

Stages 1 and 2 raise on caller mistakes before any file is processed.
"""

import glob
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from jsonschema.protocols import Validator

from .algorithms import SigningAlgorithm
from .backends.base import ManifestBackend, SigningCredentials
from .core.errors import (
    DuplicateOutputPath,
    InputNotFound,
    MultiFileOutputMustBeDirectory,
    NoMatchingFiles,
    UnsupportedAssetFormat,
    UsageError,
)
from .core.formats import SUPPORTED_ASSET_EXTENSIONS, is_supported_asset_path, mime_type_for
from .core.types import BatchResult, BatchUnit, ManifestSpec
from .core.validator import validate_json_file
from .extraction import (
    SHAPES,
    ExtractionShape,
    extract_manifest,
    extraction_output_path,
    write_extraction,
)
from .pipeline import ManifestAssembler

logger = logging.getLogger(__name__)

MODE_SIGN = "sign"
MODE_EXTRACT = "extract"
MODE_VALIDATE = "validate"


@dataclass
class BatchOptions:
    """How units are scheduled.

    Attributes:
        jobs: Number of worker threads (1 = sequential)
        fail_fast: Skip units not yet started once one unit fails
    """

    jobs: int = 1
    fail_fast: bool = False


@dataclass
class SignOptions:
    """Everything sign mode needs beyond the inputs and the output.

    Attributes:
        cert_path: PEM certificate chain
        key_path: PEM private key
        algorithm: Signing algorithm, explicit or inferred from the certificate
        allow_self_signed: Sign locally without the backend's certificate checks
        thumbnail_asset: Attach a preview of each signed asset
        thumbnail_ingredients: Attach previews of file-based ingredients
        ingredients_dir: Directory ingredient paths are resolved against
        tsa_url: Optional time-stamp authority URL
    """

    cert_path: Path
    key_path: Path
    algorithm: SigningAlgorithm
    allow_self_signed: bool = False
    thumbnail_asset: bool = False
    thumbnail_ingredients: bool = False
    ingredients_dir: Path = Path(".")
    tsa_url: str | None = None

    def credentials(self) -> SigningCredentials:
        return SigningCredentials(
            cert_path=self.cert_path,
            key_path=self.key_path,
            algorithm=self.algorithm,
            allow_self_signed=self.allow_self_signed,
            tsa_url=self.tsa_url,
        )

    def assembler(self, spec: ManifestSpec) -> ManifestAssembler:
        return ManifestAssembler(
            spec,
            self.ingredients_dir,
            thumbnail_asset=self.thumbnail_asset,
            thumbnail_ingredients=self.thumbnail_ingredients,
        )


# ============================================================================
# Expanding
# ============================================================================


def expand_input_patterns(patterns: Sequence[str]) -> list[Path]:
    """Expand input tokens into concrete file paths.

    A token naming an existing path is taken literally; anything else is
    a glob pattern (``**`` recurses). Tokens keep their order, matches of
    one pattern are sorted, and duplicates keep their first position.

    Raises:
        NoMatchingFiles: If a pattern matches nothing
    """
    files: list[Path] = []
    seen: set[Path] = set()

    for pattern in patterns:
        literal = Path(pattern)
        if literal.exists():
            matches = [literal]
        else:
            matches = sorted(Path(m) for m in glob.glob(pattern, recursive=True))
            matches = [m for m in matches if m.is_file()]
            if not matches:
                raise NoMatchingFiles(pattern)

        for match in matches:
            key = match.absolute()
            if key not in seen:
                seen.add(key)
                files.append(match)

    return files


def check_supported_assets(paths: Sequence[Path]) -> None:
    """Ensure every path has an extension a manifest can be embedded into.

    Raises:
        UnsupportedAssetFormat: Listing every unsupported path
    """
    unsupported = [p for p in paths if not is_supported_asset_path(p)]
    if unsupported:
        raise UnsupportedAssetFormat(unsupported, SUPPORTED_ASSET_EXTENSIONS)


# ============================================================================
# Mapping
# ============================================================================


def sign_output_path(input_path: Path, output: Path) -> Path:
    """Map an input to its signed output: ``<output>/<name>`` for a directory."""
    if output.is_dir():
        return output / input_path.name
    return output


def map_outputs(
    inputs: Sequence[Path],
    output: Path,
    name_for: Callable[[Path, Path], Path],
) -> list[Path]:
    """Assign an output path to every input.

    Args:
        inputs: Expanded input files
        output: Output file or directory
        name_for: Maps (input, output) to the input's output path

    Returns:
        Output paths, parallel to ``inputs``

    Raises:
        MultiFileOutputMustBeDirectory: If several inputs share a non-directory output
        DuplicateOutputPath: If two inputs map to the same file
        UsageError: If an output would overwrite its own input
    """
    if len(inputs) > 1 and not output.is_dir():
        raise MultiFileOutputMustBeDirectory(output)

    outputs = [name_for(input_path, output) for input_path in inputs]

    by_output: dict[Path, list[Path]] = {}
    for input_path, out in zip(inputs, outputs):
        if out.absolute() == input_path.absolute():
            raise UsageError(f"Output would overwrite its input: {input_path}")
        by_output.setdefault(out.absolute(), []).append(input_path)
    for out, sources in by_output.items():
        if len(sources) > 1:
            raise DuplicateOutputPath(out, sources)

    return outputs


# ============================================================================
# Processing and reporting
# ============================================================================


class BatchOrchestrator:
    """Runs a per-file operation over a list of units.

    Exceptions raised by the operation are recorded on the failing unit.
    Units may run on worker threads, but the result always lists them in
    input order.

    Example:
        >>> orchestrator = BatchOrchestrator(BatchOptions(jobs=4))
        >>> result = orchestrator.run('extract', units, process)
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        options: BatchOptions | None = None,
        on_unit_done: Callable[[BatchUnit], None] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            options: Scheduling options
            on_unit_done: Called (on the calling thread) after each unit finishes
        """
        self.options = options or BatchOptions()
        self.on_unit_done = on_unit_done

    def run(
        self,
        mode: str,
        units: list[BatchUnit],
        process: Callable[[BatchUnit], bool],
    ) -> BatchResult:
        """Process every unit.

        Args:
            mode: Operating mode name recorded on the result
            units: Units to process, in input order
            process: Returns True on success, False on a reported failure,
                or raises

        Returns:
            BatchResult with one entry per unit, in input order
        """
        if self.options.jobs > 1 and len(units) > 1:
            self._run_parallel(units, process)
        else:
            self._run_sequential(units, process)
        return BatchResult(mode=mode, units=units)

    def _run_sequential(self, units: list[BatchUnit], process: Callable[[BatchUnit], bool]) -> None:
        for unit in units:
            self._execute(unit, process)
            self._finished(unit)
            if self.options.fail_fast and not unit.succeeded:
                break

    def _run_parallel(self, units: list[BatchUnit], process: Callable[[BatchUnit], bool]) -> None:
        with ThreadPoolExecutor(max_workers=self.options.jobs) as executor:
            future_to_unit = {executor.submit(self._execute, unit, process): unit for unit in units}
            for future in as_completed(future_to_unit):
                if future.cancelled():
                    continue
                unit = future_to_unit[future]
                self._finished(unit)
                if self.options.fail_fast and not unit.succeeded:
                    for pending in future_to_unit:
                        pending.cancel()

    @staticmethod
    def _execute(unit: BatchUnit, process: Callable[[BatchUnit], bool]) -> None:
        try:
            unit.succeeded = bool(process(unit))
        except Exception as e:
            unit.succeeded = False
            unit.error = e
            logger.debug("Unit %d (%s) failed", unit.index, unit.input_path, exc_info=True)

    def _finished(self, unit: BatchUnit) -> None:
        if self.on_unit_done is not None:
            self.on_unit_done(unit)


def make_units(inputs: Sequence[Path], outputs: Sequence[Path | None] | None = None) -> list[BatchUnit]:
    """Create one unit per input, in order."""
    if outputs is None:
        outputs = [None] * len(inputs)
    return [
        BatchUnit(index=i, input_path=input_path, output_path=out)
        for i, (input_path, out) in enumerate(zip(inputs, outputs))
    ]


def unit_output(unit: BatchUnit) -> Path:
    """Return the output path mapped for a unit.

    Raises:
        UsageError: If the unit has no output path
    """
    if unit.output_path is None:
        raise UsageError(f"No output path mapped for {unit.input_path}")
    return unit.output_path


def sign_files(
    inputs: Sequence[Path],
    output: Path,
    assembler: ManifestAssembler,
    credentials: SigningCredentials,
    backend: ManifestBackend,
    orchestrator: BatchOrchestrator | None = None,
) -> BatchResult:
    """Assemble, sign and embed a manifest into every input.

    Raises:
        MultiFileOutputMustBeDirectory: Before any file is read
        DuplicateOutputPath: Before any file is read
    """
    units = make_units(inputs, map_outputs(inputs, output, sign_output_path))

    def process(unit: BatchUnit) -> bool:
        source = unit.input_path
        if not source.is_file():
            raise InputNotFound(source)
        fmt = mime_type_for(source)
        if fmt is None:
            raise UnsupportedAssetFormat([source], SUPPORTED_ASSET_EXTENSIONS)

        manifest = assembler.assemble(source)
        unit.warnings.extend(manifest.warnings)

        dest = unit_output(unit)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.exists():
            dest.unlink()
            message = f"Removed existing output file: {dest}"
            logger.warning(message)
            unit.warnings.append(message)

        backend.sign_file(manifest, credentials, source, dest, fmt)
        return True

    return (orchestrator or BatchOrchestrator()).run(MODE_SIGN, units, process)


def extract_files(
    inputs: Sequence[Path],
    output: Path,
    backend: ManifestBackend,
    shape: ExtractionShape | str = "native",
    orchestrator: BatchOrchestrator | None = None,
) -> BatchResult:
    """Extract the manifest of every input to JSON.

    Raises:
        MultiFileOutputMustBeDirectory: Before any file is read
        DuplicateOutputPath: Before any file is read
    """
    if isinstance(shape, str):
        shape = SHAPES[shape]
    selected = shape

    units = make_units(
        inputs,
        map_outputs(inputs, output, lambda i, o: extraction_output_path(i, o, selected)),
    )

    def process(unit: BatchUnit) -> bool:
        result = extract_manifest(unit.input_path, backend, selected)
        write_extraction(result, unit_output(unit))
        return True

    return (orchestrator or BatchOrchestrator()).run(MODE_EXTRACT, units, process)


def validate_files(
    inputs: Sequence[Path],
    validator: Validator,
    orchestrator: BatchOrchestrator | None = None,
) -> BatchResult:
    """Validate every input against one compiled schema.

    A document that fails validation marks its unit failed; the report is
    attached to the unit.
    """
    units = make_units(inputs)

    def process(unit: BatchUnit) -> bool:
        unit.report = validate_json_file(unit.input_path, validator)
        return unit.report.is_valid

    return (orchestrator or BatchOrchestrator()).run(MODE_VALIDATE, units, process)
