"""Command-Line Interface handler for palfix."""

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from .audio_resampler import AudioResampler
from .batch import run_batch
from .config_loader import ConfigLoader, Settings, build_settings
from .exceptions import ConfigurationError, OverwriteDeclined, PalFixError, UsageError
from .log_setup import setup_logging
from .mkvtoolnix import MkvToolNix
from .models import RoundingMode
from .pal_fixer import PalFixer
from .track_classifier import TrackClassifier
from .utils import confirm_prompt

logger = logging.getLogger(__name__) # Get logger for this module

DEFAULT_CONFIG = "config.yaml"
EXIT_INTERRUPTED = 130
EXIT_UNEXPECTED = 10


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"Received signal {signum}")


class CLIHandler:
    """Parses arguments and runs a single or a batch conversion."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            prog="palfix",
            description="Slow a Matroska movie down to correct for PAL speedup.",
            usage="%(prog)s [options] <infile> <outfile>\n       %(prog)s [options] <directory>",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument("input", help="Input file, or a directory to convert every file in it.")
        parser.add_argument("output", nargs="?", default=None,
                            help="Output file (single-file mode only). Batch mode writes to <directory>/Fixed.")
        parser.add_argument(
            "-c", "--config",
            default=None,
            help=f"Path to a YAML configuration file. '{DEFAULT_CONFIG}' is used when present."
        )
        parser.add_argument("--factor", default=None,
                            help="Override the correction factor, e.g. 25025/24000.")
        parser.add_argument("--language", default=None,
                            help="Keep only audio/subtitle tracks in this language (e.g. eng). Empty keeps all.")
        parser.add_argument("--rounding", default=None, choices=[mode.value for mode in RoundingMode],
                            help="How fractional milliseconds of rescaled timecodes are resolved.")
        parser.add_argument("--temp-dir", default=None,
                            help="Directory in which the temporary workspace is created.")
        parser.add_argument("-y", "--yes", action="store_true",
                            help="Overwrite existing output files without asking.")
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        return parser

    def _load_settings(self, args: argparse.Namespace) -> Settings:
        config = {}
        config_path = args.config
        if config_path is None and os.path.isfile(DEFAULT_CONFIG):
            config_path = DEFAULT_CONFIG
        if config_path is not None:
            config = ConfigLoader().load_config(config_path)

        # --- Apply CLI Overrides ---
        if args.factor is not None:
            logger.info(f"Overriding correction_factor with CLI argument: {args.factor}")
            config['correction_factor'] = args.factor
        if args.language is not None:
            logger.info(f"Overriding language with CLI argument: {args.language!r}")
            config['language'] = args.language
        if args.rounding is not None:
            config['rounding'] = args.rounding
        if args.temp_dir:
            logger.info(f"Overriding temp_dir with CLI argument: {args.temp_dir}")
            config['temp_dir'] = args.temp_dir
        return build_settings(config)

    def _build_fixer(self, settings: Settings, assume_yes: bool) -> PalFixer:
        mkvtoolnix = MkvToolNix(settings.mkvmerge_path, settings.mkvextract_path)
        return PalFixer(
            settings=settings,
            mkvtoolnix=mkvtoolnix,
            classifier=TrackClassifier(mkvtoolnix, settings.ffprobe_path),
            resampler=AudioResampler(
                ffmpeg_path=settings.ffmpeg_path,
                audio_codec=settings.audio_codec,
                audio_quality=settings.audio_quality,
                resample_to_source_rate=settings.resample_to_source_rate,
            ),
            confirm_overwrite=(lambda path: True) if assume_yes else confirm_prompt,
        )

    def _check_usage(self, args: argparse.Namespace) -> bool:
        """Returns True for batch mode, False for single-file mode."""
        if os.path.isdir(args.input):
            if args.output is not None:
                raise UsageError("An output file cannot be given when the input is a directory.")
            return True
        if os.path.isfile(args.input):
            if args.output is None:
                raise UsageError("An output file is required when the input is a file.")
            return False
        raise UsageError(f"Input is neither a file nor a directory: {args.input}")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Parses arguments, sets up logging, loads config, and runs the conversion. Returns the exit code."""
        args = self.parser.parse_args(argv)

        log_level = getattr(logging, args.log_level.upper(), logging.INFO)
        # Console only until the config says where the log file goes
        setup_logging(log_level=log_level, log_file=None)

        try:
            settings = self._load_settings(args)
        except (ConfigurationError, FileNotFoundError) as e:
            logger.critical(f"Failed to load configuration: {e}")
            return ConfigurationError.exit_code

        setup_logging(log_level=log_level, log_dir=settings.log_dir, log_file=settings.log_file)
        logger.info(f"Correction factor {settings.correction_factor}, language filter {settings.language or '(none)'}")

        previous_handler = signal.signal(signal.SIGTERM, _raise_interrupt)
        try:
            batch_mode = self._check_usage(args)
            fixer = self._build_fixer(settings, args.yes)
            if batch_mode:
                summary = run_batch(fixer, args.input)
                return 1 if summary.failed else 0
            fixer.fix(args.input, args.output)
            logger.info("PAL correction finished successfully.")
            return 0
        except UsageError as e:
            self.parser.print_usage(sys.stderr)
            logger.error(str(e))
            return e.exit_code
        except OverwriteDeclined as e:
            logger.info(str(e))
            return e.exit_code
        except PalFixError as e:
            logger.error(f"PAL correction failed: {e}")
            return e.exit_code
        except FileNotFoundError as e:
            logger.error(str(e))
            return 1
        except KeyboardInterrupt:
            logger.warning("Process interrupted. Exiting.")
            return EXIT_INTERRUPTED
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            return EXIT_UNEXPECTED
        finally:
            signal.signal(signal.SIGTERM, previous_handler)


def main() -> None:
    sys.exit(CLIHandler().run())
