"""
Command Line Interface for image export optimization.
"""

import argparse
import logging
import os
from typing import List, Optional

from .config import ConfigError, OptimizerConfig
from .generation_progress import GenerationProgress
from .pipeline import Pipeline
from .reconciler import Reconciler
from .reporter import Reporter
from .scanner import SourceEnumerationError


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('PIL').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('imgexport')


def get_config(args: argparse.Namespace, logger: logging.Logger) -> Optional[OptimizerConfig]:
    """
    Load configuration from file and apply CLI overrides.

    Returns:
        Validated config, or None if it is invalid (errors are logged)
    """
    project_dir = os.path.abspath(args.project_dir)
    config_path = args.config
    if config_path and not os.path.isabs(config_path):
        config_path = os.path.join(os.getcwd(), config_path)

    try:
        config = OptimizerConfig.load(config_path, project_dir=project_dir, logger=logger)
    except ConfigError as e:
        logger.error(str(e))
        return None

    if getattr(args, 'export_folder_path', None):
        config.export_folder_path = os.path.abspath(args.export_folder_path)
    if getattr(args, 'quality', None) is not None:
        config.quality = args.quality
    if getattr(args, 'workers', None) is not None:
        config.workers = args.workers
    if getattr(args, 'no_webp', False):
        config.store_pictures_in_webp = False

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return None

    if not os.path.isdir(config.public_folder_path):
        logger.warning(
            f"Could not find a public folder at {config.public_folder_path}. "
            f"Make sure you run the command in the main directory of your project."
        )

    return config


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add configuration arguments to a parser."""
    group = parser.add_argument_group('Configuration')
    group.add_argument('--config', metavar='PATH',
                       help='Config file (default: image-export.json in the project dir)')
    group.add_argument('--project-dir', default='.', metavar='PATH',
                       help='Project root directory (default: current directory)')
    group.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')


def cmd_optimize(args: argparse.Namespace) -> int:
    """Execute optimize command."""
    logger = setup_logging(args.verbose)

    config = get_config(args, logger)
    if config is None:
        return 1

    logger.info(f"Image folder: {config.image_folder_path}")
    logger.info(f"Static folder: {config.static_image_folder_path}")
    logger.info(f"Quality: {config.quality}, webp: {config.store_pictures_in_webp}")

    if args.dry_run:
        logger.info("Dry-run mode: nothing will be written")

    progress = None
    if not args.quiet:
        progress = GenerationProgress(show_files=args.show_files, logger=logger)

    pipeline = Pipeline(config, logger=logger)

    try:
        result = pipeline.run(
            dry_run=args.dry_run,
            include_remote=not args.skip_remote,
            export_copy=not args.no_export_copy,
            progress=progress,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except SourceEnumerationError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Optimization failed: {e}")
        return 1

    if not args.quiet:
        print()
        reporter = Reporter()
        if args.dry_run:
            reporter.report_plan(result.plan, show_files=args.show_files)
        else:
            reporter.report_run(result)

    if result.run is not None and (result.run.stats.errors > 0 or not result.complete):
        return 1
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Execute scan command: list sources and whether they would be regenerated."""
    logger = setup_logging(args.verbose)

    config = get_config(args, logger)
    if config is None:
        return 1

    pipeline = Pipeline(config, logger=logger)
    try:
        result = pipeline.run(dry_run=True, include_remote=True)
    except SourceEnumerationError as e:
        logger.error(str(e))
        return 1

    Reporter().report_plan(result.plan, show_files=args.show_files)
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    """Execute clean command: remove every derivative from the output folders."""
    logger = setup_logging(args.verbose)

    config = get_config(args, logger)
    if config is None:
        return 1

    reconciler = Reconciler(config, logger)
    if not args.yes:
        orphans = reconciler.reconcile([], dry_run=True)
        logger.info(f"{len(orphans)} optimized images would be deleted. Use --yes to delete them.")
        return 0

    deleted = reconciler.reconcile([])
    logger.info(f"Deleted {len(deleted)} optimized images")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='imgexport',
        description='Build resized image variants for a static site export',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Workflow:
  1. Build the site (static media appear in the framework's build folder)
  2. Optimize: python -m imgexport optimize
  3. Export the site; optimized images are copied into the export folder

Testing:
  Use 'scan' or 'optimize --dry-run' to see which images would be regenerated
"""
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Optimize command
    opt_parser = subparsers.add_parser('optimize', help='Generate optimized images')
    opt_parser.add_argument('--export-folder-path', metavar='PATH',
                            help='Override the static export folder')
    opt_parser.add_argument('--quality', type=int, help='Override encoder quality (0-100)')
    opt_parser.add_argument('--workers', type=int, help='Number of worker processes')
    opt_parser.add_argument('--no-webp', action='store_true',
                            help='Keep source formats instead of converting to webp')
    opt_parser.add_argument('-n', '--dry-run', action='store_true', help='Show what would be done')
    opt_parser.add_argument('--no-export-copy', action='store_true',
                            help='Do not copy optimized images into the export folder')
    opt_parser.add_argument('--skip-remote', action='store_true',
                            help='Do not download or optimize remote images')
    opt_parser.add_argument('--show-files', action='store_true',
                            help='Print each image as processed with result')
    opt_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    add_config_arguments(opt_parser)

    # Scan command
    scan_parser = subparsers.add_parser('scan', help='List source images and their status')
    scan_parser.add_argument('--show-files', action='store_true',
                             help='List every image that would be regenerated')
    add_config_arguments(scan_parser)

    # Clean command
    clean_parser = subparsers.add_parser('clean', help='Delete all optimized images')
    clean_parser.add_argument('--yes', action='store_true', help='Actually delete the files')
    add_config_arguments(clean_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'optimize':
        return cmd_optimize(parsed_args)
    elif parsed_args.command == 'scan':
        return cmd_scan(parsed_args)
    elif parsed_args.command == 'clean':
        return cmd_clean(parsed_args)

    return 1
