# audiotools/batch.py
"""
Per-file batch runner shared by the CLI commands.

Files are independent: a failure in one (decode error, invalid time range,
unreadable file) is recorded in its FileOutcome and the remaining files are
still processed. With jobs > 1 files are analysed in worker processes and
outcomes are collected in completion order.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

WAV_EXTENSIONS = frozenset({".wav"})


@dataclass(frozen=True)
class FileOutcome:
    input_path: Path
    succeeded: bool
    message: str


FileWorker = Callable[[Path], str]


def _is_wav_file(path: Path) -> bool:
    return path.suffix.lower() in WAV_EXTENSIONS


def iter_wav_files(input_path: str | Path, recursive: bool = False) -> Iterator[Path]:
    """
    Yield input_path itself if it is a WAV file, otherwise the WAV files in the
    directory (one level, or the whole tree when recursive), sorted.

    Files with other extensions are skipped, also when named directly.
    """
    input_path = Path(input_path)

    if input_path.is_file():
        if _is_wav_file(input_path):
            yield input_path
        return

    if not input_path.exists():
        raise FileNotFoundError(f"Input not found: {input_path}")

    candidates = input_path.rglob("*") if recursive else input_path.glob("*")
    for candidate in sorted(candidates):
        if candidate.is_file() and _is_wav_file(candidate):
            yield candidate


def output_path_for(input_path: Path, output_directory: Optional[str | Path], suffix: str = ".png") -> Path:
    """
    <input>.png next to the input, or <output_directory>/<stem>.png.
    """
    if output_directory is None:
        return input_path.with_suffix(suffix)
    return Path(output_directory) / f"{input_path.stem}{suffix}"


def run_file(worker: FileWorker, input_path: Path) -> FileOutcome:
    try:
        message = worker(input_path)
    except Exception as error:
        return FileOutcome(input_path=input_path, succeeded=False, message=str(error))
    return FileOutcome(input_path=input_path, succeeded=True, message=message)


def run_batch(
    input_paths: Iterable[Path],
    worker: FileWorker,
    jobs: int = 1,
) -> List[FileOutcome]:
    """
    Apply worker to every path. worker must be picklable when jobs > 1
    (a module-level function or a functools.partial of one).
    """
    paths = list(input_paths)

    if jobs <= 1 or len(paths) <= 1:
        return [run_file(worker, path) for path in paths]

    outcomes: List[FileOutcome] = []
    with ProcessPoolExecutor(max_workers=jobs) as executor:
        futures = [executor.submit(run_file, worker, path) for path in paths]
        for future in as_completed(futures):
            outcomes.append(future.result())
    return outcomes
