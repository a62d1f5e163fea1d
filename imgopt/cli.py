"""
Command Line Interface for the image optimizer.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import OptimizerConfig
from .errors import ConfigError, InputDirectoryMissing
from .generation_progress import GenerationProgress
from .pipeline import Pipeline


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('imgopt')


def get_config(args: argparse.Namespace) -> OptimizerConfig:
    """Get configuration from environment and CLI overrides."""
    config = OptimizerConfig.from_env()

    if getattr(args, 'input', None):
        config.input = args.input
    if getattr(args, 'output', None):
        config.output = args.output
    if getattr(args, 'public_path', None):
        config.public_path = args.public_path
    if getattr(args, 'format', None):
        config.formats = args.format
    if getattr(args, 'size', None):
        config.sizes = args.size
    if getattr(args, 'quality', None) is not None:
        config.quality = args.quality
    if getattr(args, 'root', None):
        config.root = args.root
    if getattr(args, 'keep_original', False):
        config.keep_original = True
    if getattr(args, 'no_skip_existing', False):
        config.skip_existing = False
    if getattr(args, 'no_manifest', False):
        config.generate_manifest = False
    if getattr(args, 'verbose', False):
        config.verbose = True

    return config


def get_pipeline(args: argparse.Namespace, logger: logging.Logger) -> Pipeline:
    """
    Build a pipeline from arguments.

    Raises:
        ConfigError: if the configuration is invalid
    """
    try:
        return Pipeline(get_config(args), logger=logger)
    except ConfigError as e:
        for error in e.errors:
            logger.error(error)
        raise


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add configuration override arguments to a parser."""
    group = parser.add_argument_group('Configuration')
    group.add_argument('-i', '--input', help='Source image directory (overrides IMGOPT_INPUT)')
    group.add_argument('-o', '--output', help='Output directory (default: static/optimized)')
    group.add_argument('--root', help='Directory input/output are relative to (default: cwd)')
    group.add_argument('--public-path', help='Public URL prefix (default: /optimized)')
    group.add_argument('--format', action='append', metavar='FMT',
                       help='Output format; repeat for several (webp, avif, jpeg, png)')
    group.add_argument('--size', action='append', type=int, metavar='WIDTH',
                       help='Target width; repeat for several')
    group.add_argument('--quality', type=int, help='Compression quality 1-100')
    group.add_argument('--keep-original', action='store_true',
                       help='Copy originals into the output directory')
    group.add_argument('--no-skip-existing', action='store_true',
                       help='Re-encode variants even if their file exists')
    group.add_argument('--no-manifest', action='store_true', help='Do not write manifest.json')
    group.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')


def cmd_process(args: argparse.Namespace) -> int:
    """Execute process command."""
    logger = setup_logging(args.verbose)

    try:
        pipeline = get_pipeline(args, logger)
    except ConfigError:
        return 1

    progress = None
    if not args.quiet:
        progress = GenerationProgress(show_files=args.show_files, logger=logger)

    try:
        pipeline.load_manifest()
        stats = pipeline.process_all(force_all=args.force, progress=progress)
    except InputDirectoryMissing as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Processing failed: {e}")
        return 1
    finally:
        pipeline.close()

    if stats is None:
        return 1

    if not args.quiet:
        print()
        print(f"Originals: {stats.discovered} ({stats.cached} up to date)")
        print(f"Generated: {stats.variants_generated}")
        print(f"Skipped: {stats.variants_skipped}")
        print(f"Errors: {stats.errors + stats.variants_failed}")
        if stats.unsupported:
            print(f"Unsupported: {stats.unsupported}")
        print(f"Time: {stats.elapsed_seconds:.1f}s")

    return 0 if stats.errors == 0 and stats.variants_failed == 0 else 1


def cmd_clean(args: argparse.Namespace) -> int:
    """Execute clean command."""
    logger = setup_logging(args.verbose)

    try:
        pipeline = get_pipeline(args, logger)
    except ConfigError:
        return 1

    try:
        pipeline.clean()
    except OSError as e:
        logger.error(f"Failed to clean: {e}")
        return 1
    return 0


def cmd_manifest(args: argparse.Namespace) -> int:
    """Execute manifest command."""
    logger = setup_logging(args.verbose)

    try:
        pipeline = get_pipeline(args, logger)
    except ConfigError:
        return 1

    if not pipeline.config.generate_manifest:
        logger.error("Manifest generation is disabled")
        return 1

    pipeline.load_manifest()
    try:
        pipeline.regenerate_manifest()
    except OSError as e:
        logger.error(f"Failed to write manifest: {e}")
        return 1
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Execute serve command."""
    from .server import run_server

    logger = setup_logging(args.verbose)

    try:
        pipeline = get_pipeline(args, logger)
    except ConfigError:
        return 1

    run_server(pipeline, host=args.host, port=args.port)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='imgopt',
        description='Responsive image variant generation and serving',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  process   Generate variants for new or changed images (--force for all)
  clean     Delete the output directory
  manifest  Rewrite manifest.json without encoding images
  serve     Process, then serve variants over HTTP

Configuration is read from IMGOPT_* environment variables; flags override it.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    process_parser = subparsers.add_parser('process', help='Process images')
    process_parser.add_argument('-f', '--force', action='store_true', help='Force reprocess all images')
    process_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    process_parser.add_argument('--show-files', action='store_true',
                                help='Print each variant as it is generated')
    add_config_arguments(process_parser)

    clean_parser = subparsers.add_parser('clean', help='Clean output directory')
    add_config_arguments(clean_parser)

    manifest_parser = subparsers.add_parser('manifest', help='Regenerate manifest only')
    add_config_arguments(manifest_parser)

    serve_parser = subparsers.add_parser('serve', help='Serve images with on-the-fly optimization')
    serve_parser.add_argument('--host', default='0.0.0.0', help='Bind address (default: 0.0.0.0)')
    serve_parser.add_argument('--port', type=int, default=8080, help='Port (default: 8080)')
    add_config_arguments(serve_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'process':
        return cmd_process(parsed_args)
    elif parsed_args.command == 'clean':
        return cmd_clean(parsed_args)
    elif parsed_args.command == 'manifest':
        return cmd_manifest(parsed_args)
    elif parsed_args.command == 'serve':
        return cmd_serve(parsed_args)

    return 1
