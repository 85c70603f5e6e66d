"""Main entry point for the harmonizer.

Wires the pieces together:
- scan: count the events in the merger run range
- MergerReader -> HarmonicWriter: re-chunk the event stream
- process_scalers: gather all scalers into one parquet file

Usage:
    harmonizer --config /path/to/some/config.yml
    harmonizer --config /path/to/some/config.yml new
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from harmonizer import __version__
from harmonizer.config import HarmonizerConfig
from harmonizer.data.harmonic_writer import HarmonicWriter
from harmonizer.data.merger_reader import MergerReader
from harmonizer.data.scalers import process_scalers
from harmonizer.data.abstractions import ScanSummary
from harmonizer.data.scan import scan
from harmonizer.errors import HarmonizerError
from harmonizer.output_formatter import banner, format_bytes, rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HarmonizeResult:
    """Outcome of a harmonizer invocation.

    Attributes:
        events_written: Number of events written across all harmonic runs
        harmonic_runs: Paths of the harmonic runs, in order
        scaler_path: Path of the scaler parquet file
    """

    events_written: int
    harmonic_runs: List[Path]
    scaler_path: Path


def harmonize(
    config: HarmonizerConfig,
    show_progress: bool = True,
    summary: Optional[ScanSummary] = None,
) -> HarmonizeResult:
    """Main processing loop. Takes the config and harmonizes the data.

    Args:
        config: Validated configuration
        show_progress: Display a progress bar over the event count
        summary: Scan of the run range, scanned here if not given

    Returns:
        HarmonizeResult describing what was written
    """
    if summary is None:
        summary = scan(config.merger_path, config.min_run, config.max_run)
    total_events = summary.total_events
    logger.info(f"Harmonizing {total_events} events from runs {config.min_run}-{config.max_run}")

    events_written = 0
    with MergerReader(config.merger_path, config.min_run, config.max_run) as reader, \
            HarmonicWriter(config.harmonic_path, config.harmonic_size) as writer, \
            tqdm(total=total_events, desc="Progress", unit="event", disable=not show_progress) as progress:
        for event in reader:
            writer.write(event)
            events_written += 1
            progress.update(1)

    harmonic_runs = writer.finished_runs
    logger.info(f"Wrote {events_written} events to {len(harmonic_runs)} harmonic runs")

    logger.info("Extracting scalers...")
    scaler_path = process_scalers(
        config.merger_path,
        config.harmonic_path,
        config.min_run,
        config.max_run,
    )
    return HarmonizeResult(
        events_written=events_written,
        harmonic_runs=harmonic_runs,
        scaler_path=scaler_path,
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="harmonizer",
        description="Re-organize AT-TPC merger runs into equal sized harmonic runs",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to a configuration file (YAML)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["new"],
        help="'new' writes a template configuration file to the config path",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Program entry point. Handles the CLI.

    Returns:
        Process exit status
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    print(banner())
    config_path = Path(args.config)

    if args.command == "new":
        print(f"Making a template configuration file at {config_path}...")
        try:
            HarmonizerConfig.template().save(config_path)
        except OSError as e:
            print(f"Could not write configuration to {config_path}: {e}")
            print(rule())
            return 1
        print("Done.")
        print(rule())
        return 0

    try:
        config = HarmonizerConfig.load(config_path)
        print(f"Successfully loaded configuration from {config_path}")

        if not config.merger_path.exists():
            print(f"Merger path {config.merger_path} does not exist! Quitting.")
            print(rule())
            return 1
        if not config.harmonic_path.exists():
            print(
                f"Harmonic path {config.harmonic_path} does not exist! "
                "Please create it before running the harmonizer."
            )
            print(rule())
            return 1

        summary = scan(config.merger_path, config.min_run, config.max_run)
        print(f"Total amount of data to be harmonized: {format_bytes(summary.total_bytes)}")
        print("Harmonizing...")
        result = harmonize(config, show_progress=not args.no_progress, summary=summary)
    except HarmonizerError as e:
        logger.error(f"Harmonizer failed: {e}")
        print(rule())
        return 1

    print(f"Wrote {result.events_written} events to {len(result.harmonic_runs)} harmonic runs")
    print(f"Scalers written to {result.scaler_path}")
    print("Complete.")
    print(rule())
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
